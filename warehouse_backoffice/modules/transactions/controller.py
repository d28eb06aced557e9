"""
Inbound facade for the back office: one method per user action.

Every call is one atomic operation in the repository layer. The controller
only adds the audit trail: committed operations are logged at INFO, domain
failures at WARNING with the reason, and the exception is re-raised
unchanged for the caller to show.
"""
from __future__ import annotations

import sqlite3
from dataclasses import replace
from pathlib import Path
from typing import Callable, Iterable, Optional, TypeVar

from ...database.repositories import (
    DeliveryOrdersRepo,
    DomainError,
    PurchaseHeader,
    PurchaseItem,
    PurchasesRepo,
    ReportingRepo,
    SaleHeader,
    SaleItem,
    SalePaymentsRepo,
    SalesRepo,
)
from ...documents import render_html, write_pdf
from ...utils.loggers import get_logger

_log = get_logger(__name__)

T = TypeVar("T")


class TransactionsController:
    def __init__(self, conn: sqlite3.Connection, current_user: dict | None = None):
        self.conn = conn
        self.user = current_user
        self.sales = SalesRepo(conn)
        self.purchases = PurchasesRepo(conn)
        self.payments = SalePaymentsRepo(conn)
        self.delivery_orders = DeliveryOrdersRepo(conn)
        self.reporting = ReportingRepo(conn)

    def _run(self, action: str, ref, fn: Callable[..., T], *args, **kwargs) -> T:
        try:
            result = fn(*args, **kwargs)
        except DomainError as e:
            _log.warning("ROLLBACK %s %s due to %s: %s", action, ref, type(e).__name__, e)
            raise
        _log.info("%s %s ok", action, ref if ref is not None else result)
        return result

    # ---------------------------------------------------------------------
    # Sales
    # ---------------------------------------------------------------------
    def create_sale(self, header: SaleHeader, items: Iterable[SaleItem]) -> int:
        if header.created_by is None and self.user:
            header = replace(header, created_by=self.user.get("username"))
        return self._run("create_sale", None, self.sales.create_sale, header, list(items))

    def edit_sale(self, sale_id: int, items: Iterable[SaleItem], **changes) -> None:
        """changes: discount_pct, tax_enabled, due_date, notes."""
        self._run("edit_sale", sale_id, self.sales.update_sale_items, sale_id, list(items), **changes)

    def cancel_sale(self, sale_id: int) -> None:
        self._run("cancel_sale", sale_id, self.sales.cancel_sale, sale_id)

    def record_payment(
        self,
        sale_id: int,
        amount,
        method: str,
        payer_name: str,
        date: Optional[str] = None,
    ) -> int:
        return self._run(
            "record_payment", sale_id, self.payments.record_payment,
            sale_id, amount=amount, method=method, payer_name=payer_name, date=date,
        )

    # ---------------------------------------------------------------------
    # Purchases
    # ---------------------------------------------------------------------
    def create_purchase(self, header: PurchaseHeader, items: Iterable[PurchaseItem]) -> int:
        return self._run("create_purchase", None, self.purchases.create_purchase, header, list(items))

    def receive_purchase(self, purchase_id: int, **doc_numbers) -> None:
        """doc_numbers: invoice_no, npb_no, do_no."""
        self._run("receive_purchase", purchase_id, self.purchases.receive_purchase, purchase_id, **doc_numbers)

    def decline_purchase(self, purchase_id: int) -> None:
        self._run("decline_purchase", purchase_id, self.purchases.decline_purchase, purchase_id)

    # ---------------------------------------------------------------------
    # Delivery orders
    # ---------------------------------------------------------------------
    def create_delivery_order(self, sale_id: int, **fields) -> int:
        """fields: do_no, receipt_no, address, notes."""
        return self._run(
            "create_delivery_order", sale_id, self.delivery_orders.create_for_sale, sale_id, **fields
        )

    def transition_delivery_order(self, do_id: int, new_status: str, at: Optional[str] = None) -> dict:
        return self._run(
            f"delivery_order->{new_status}", do_id, self.delivery_orders.transition, do_id, new_status, at=at
        )

    # ---------------------------------------------------------------------
    # Documents
    # ---------------------------------------------------------------------
    def document_html(self, kind: str, doc_id: int) -> str:
        """kind: invoice | purchase | delivery_order | bast."""
        projections = {
            "invoice": self.reporting.sale_document,
            "purchase": self.reporting.purchase_document,
            "delivery_order": self.reporting.delivery_order_document,
            "bast": self.reporting.bast_document,
        }
        if kind not in projections:
            raise ValueError(f"Unknown document kind: {kind}")
        return render_html(kind, projections[kind](doc_id))

    def export_pdf(self, kind: str, doc_id: int, path: Path | str) -> Path:
        return write_pdf(self.document_html(kind, doc_id), path)
