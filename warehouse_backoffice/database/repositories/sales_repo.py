from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
import logging
import sqlite3
from typing import Iterable, Optional

from .. import transaction
from ...constants import (
    DELIVERY,
    DOC_DELIVERY_ORDER,
    DOC_INVOICE,
    DOC_NPB,
    DO_CANCELLED,
    DO_DRAFT,
    DO_SHIPPED,
    MOVE_SALE,
    MOVE_SALE_CANCEL,
    MOVE_SALE_EDIT,
    PAY_CASH,
    PICKUP,
    PICKUP_METHODS,
    SALE_CANCELLED,
    SALE_PAID,
    SALE_UNPAID,
    TAX_RATE,
    TIER_NORMAL,
)
from ...utils.helpers import to_iso_date
from ...utils.validators import assert_valid_money, parse_qty, quantize_money
from .delivery_orders_repo import DeliveryOrdersRepo
from .doc_numbers_repo import DocNumbersRepo
from .document_helpers import decimalize, normalize_payment_details
from .errors import (
    ConcurrencyConflictError,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
    validated,
)
from .products_repo import ProductsRepo
from .sale_payments_repo import SalePaymentsRepo
from .stock_repo import StockRepo

_log = logging.getLogger(__name__)

_ZERO = Decimal("0.00")
_SALE_MONEY = ("discount_pct", "total", "discount_amount", "tax_amount", "total_after_tax", "amount_paid")
_ITEM_MONEY = ("price", "subtotal")


@dataclass
class SaleHeader:
    customer_id: int
    date: str
    status: str = SALE_UNPAID              # Paid | Unpaid
    due_date: str | None = None            # required when Unpaid
    discount_pct: Decimal | str | int = 0
    tax_enabled: bool = False
    amount_paid: Decimal | str | int = 0   # down payment for Unpaid sales; ignored for Paid
    payment_method: str = PAY_CASH
    bank_name: str | None = None
    account_holder: str | None = None
    account_number: str | None = None
    pickup_method: str = PICKUP
    delivery_address: str | None = None
    invoice_no: str | None = None          # assigned when missing
    npb_no: str | None = None
    do_no: str | None = None
    receipt_no: str | None = None
    notes: str | None = None
    created_by: str | None = None


@dataclass
class SaleItem:
    supplier_product_id: int
    qty: int
    price: Decimal | str | None = None     # None -> current tier price
    price_tier: str = TIER_NORMAL


@dataclass
class _Line:
    supplier_product_id: int
    qty: int
    price: Decimal
    subtotal: Decimal = field(init=False)

    def __post_init__(self):
        self.subtotal = quantize_money(self.price * self.qty)


@dataclass(frozen=True)
class SaleTotals:
    total: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total_after_tax: Decimal


def compute_totals(subtotals: Iterable[Decimal], discount_pct: Decimal, tax_enabled: bool) -> SaleTotals:
    total = quantize_money(sum(subtotals, Decimal("0")))
    discount_amount = quantize_money(total * discount_pct / 100)
    after_discount = total - discount_amount
    tax_amount = quantize_money(after_discount * TAX_RATE) if tax_enabled else _ZERO
    return SaleTotals(total, discount_amount, tax_amount, after_discount + tax_amount)


def _parse_discount(value) -> Decimal:
    pct = validated(assert_valid_money, value, "Discount percentage")
    if pct > 100:
        raise ValidationError("Discount percentage cannot exceed 100.")
    return pct


def _parse_due_date(value) -> str:
    try:
        return to_iso_date(value)
    except ValueError:
        raise ValidationError(f"Invalid due date: {value!r}") from None


class SalesRepo:
    """
    Sale Transaction Manager.

    Each write (create, edit, cancel) runs in one database transaction that
    covers the header, the lines, every stock adjustment, the delivery order
    and the receivables ledger. If any step fails nothing is left behind: a
    later line running out of stock also undoes the decrements of earlier
    lines.

    Money columns are TEXT and come back from the reads as Decimal.
    """

    def __init__(self, conn: sqlite3.Connection):
        # ensure rows behave like dicts/tuples
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.stock = StockRepo(conn)
        self.products = ProductsRepo(conn)
        self.doc_numbers = DocNumbersRepo(conn)
        self.payments = SalePaymentsRepo(conn)
        self.delivery_orders = DeliveryOrdersRepo(conn)

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def list_sales(self, status: Optional[str] = None) -> list[dict]:
        sql = """
        SELECT s.sale_id, s.date, s.invoice_no, s.npb_no, s.do_no,
               s.customer_id, c.name AS customer_name,
               s.total_after_tax, s.amount_paid, s.status, s.due_date, s.pickup_method
          FROM sales s
          JOIN customers c ON c.customer_id = s.customer_id
        """
        params: tuple = ()
        if status is not None:
            sql += " WHERE s.status = ?"
            params = (status,)
        sql += " ORDER BY DATE(s.date) DESC, s.sale_id DESC"
        return [
            decimalize(r, ("total_after_tax", "amount_paid"))
            for r in self.conn.execute(sql, params).fetchall()
        ]

    def get_header(self, sale_id: int) -> dict | None:
        r = self.conn.execute("SELECT * FROM sales WHERE sale_id=?", (sale_id,)).fetchone()
        return decimalize(r, _SALE_MONEY) if r else None

    def list_items(self, sale_id: int) -> list[dict]:
        sql = """
        SELECT si.item_id, si.sale_id, si.supplier_product_id, p.code AS product_code,
               p.name AS product_name, p.unit, sup.name AS supplier_name,
               si.qty, si.price, si.subtotal
          FROM sale_items si
          JOIN supplier_products sp ON sp.supplier_product_id = si.supplier_product_id
          JOIN products  p   ON p.product_id    = sp.product_id
          JOIN suppliers sup ON sup.supplier_id = sp.supplier_id
         WHERE si.sale_id = ?
         ORDER BY si.item_id
        """
        return [decimalize(r, _ITEM_MONEY) for r in self.conn.execute(sql, (sale_id,)).fetchall()]

    def _require_header(self, sale_id: int) -> dict:
        h = self.get_header(sale_id)
        if h is None:
            raise NotFoundError("Sale", sale_id)
        return h

    # ---------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------
    def _resolve_lines(self, items: Iterable[SaleItem]) -> list[_Line]:
        """Validate items and snapshot their unit prices."""
        items = list(items)
        if not items:
            raise ValidationError("A sale needs at least one item.")
        lines: list[_Line] = []
        for it in items:
            qty = validated(parse_qty, it.qty, "Quantity")
            sp = self.products.require_supplier_product(it.supplier_product_id)
            if it.price is None:
                price = sp.price_for(it.price_tier)
            else:
                price = validated(assert_valid_money, it.price, "Unit price")
            line = _Line(sp.supplier_product_id, qty, price)
            validated(assert_valid_money, line.subtotal, "Line subtotal")
            lines.append(line)
        return lines

    def _insert_lines(self, sale_id: int, lines: list[_Line], reason: str) -> None:
        for ln in lines:
            self.conn.execute(
                """
                INSERT INTO sale_items (sale_id, supplier_product_id, qty, price, subtotal)
                VALUES (?, ?, ?, ?, ?)
                """,
                (sale_id, ln.supplier_product_id, ln.qty, ln.price, ln.subtotal),
            )
            self.stock.adjust(
                ln.supplier_product_id, -ln.qty,
                reason=reason, reference_table="sales", reference_id=sale_id,
            )

    def _number_used(self, column: str, value: str) -> bool:
        return self.conn.execute(f"SELECT 1 FROM sales WHERE {column}=?", (value,)).fetchone() is not None

    def _reserve(self, kind: str, sale_date: str, column: str) -> str:
        """Next free number of `kind`; skips numbers already printed on a sale."""
        while True:
            number = self.doc_numbers.next(kind, sale_date)
            if not self._number_used(column, number):
                return number
            _log.warning("%s already used by another sale, reserving the next one", number)

    @staticmethod
    def _check_totals(t: SaleTotals) -> None:
        for label, value in (
            ("Total", t.total),
            ("Total after tax", t.total_after_tax),
        ):
            validated(assert_valid_money, value, label)

    # ---------------------------------------------------------------------
    # WRITE
    # ---------------------------------------------------------------------
    def create_sale(self, header: SaleHeader, items: Iterable[SaleItem]) -> int:
        """
        Create a sale with its lines and return the new sale_id.

        Missing INV/NPB numbers (and the DO number of a Delivery sale) are
        reserved for the sale date. A Paid sale records its full amount as a
        payment; an Unpaid sale records its down payment, if any.
        """
        if header.status not in (SALE_PAID, SALE_UNPAID):
            raise ValidationError(f"A new sale must be {SALE_PAID} or {SALE_UNPAID}, got {header.status!r}.")
        if header.pickup_method not in PICKUP_METHODS:
            raise ValidationError(f"Unknown pickup method: {header.pickup_method}")
        try:
            sale_date = to_iso_date(header.date)
        except ValueError:
            raise ValidationError(f"Invalid sale date: {header.date!r}") from None
        due_date = None
        if header.status == SALE_UNPAID:
            if not header.due_date:
                raise ValidationError("Unpaid sales require a due date.")
            due_date = _parse_due_date(header.due_date)
        elif header.due_date:
            due_date = _parse_due_date(header.due_date)
        discount_pct = _parse_discount(header.discount_pct)
        method, bank_name, holder, account = normalize_payment_details(
            header.payment_method, header.bank_name, header.account_holder, header.account_number
        )
        down_payment = validated(assert_valid_money, header.amount_paid, "Down payment")

        with transaction(self.conn):
            customer = self.conn.execute(
                "SELECT customer_id, name FROM customers WHERE customer_id=?", (header.customer_id,)
            ).fetchone()
            if customer is None:
                raise NotFoundError("Customer", header.customer_id)

            lines = self._resolve_lines(items)
            totals = compute_totals((ln.subtotal for ln in lines), discount_pct, bool(header.tax_enabled))
            self._check_totals(totals)

            if header.status == SALE_PAID:
                amount_paid = totals.total_after_tax
            else:
                amount_paid = down_payment
                if amount_paid >= totals.total_after_tax:
                    raise ValidationError(
                        f"Down payment {amount_paid} covers the total of {totals.total_after_tax}; "
                        "record the sale as Paid instead."
                    )

            for col, value in (("invoice_no", header.invoice_no), ("npb_no", header.npb_no)):
                if value and self._number_used(col, value):
                    raise ValidationError(f"Document number already used: {value}")
            for value in (header.invoice_no, header.npb_no, header.do_no):
                self.doc_numbers.claim(value)

            invoice_no = header.invoice_no or self._reserve(DOC_INVOICE, sale_date, "invoice_no")
            npb_no = header.npb_no or self._reserve(DOC_NPB, sale_date, "npb_no")
            do_no = header.do_no
            if header.pickup_method == DELIVERY and not do_no:
                do_no = self.doc_numbers.next(DOC_DELIVERY_ORDER, sale_date)

            cur = self.conn.execute(
                """
                INSERT INTO sales (
                    customer_id, date, invoice_no, npb_no, do_no, receipt_no,
                    pickup_method, payment_method, bank_name, account_holder, account_number,
                    discount_pct, tax_enabled, total, discount_amount, tax_amount,
                    total_after_tax, amount_paid, status, due_date, notes, created_by
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    header.customer_id, sale_date, invoice_no, npb_no, do_no, header.receipt_no,
                    header.pickup_method, method, bank_name, holder, account,
                    discount_pct, int(bool(header.tax_enabled)), totals.total,
                    totals.discount_amount, totals.tax_amount, totals.total_after_tax,
                    amount_paid, header.status, due_date, header.notes, header.created_by,
                ),
            )
            sale_id = int(cur.lastrowid)

            self._insert_lines(sale_id, lines, MOVE_SALE)

            if header.pickup_method == DELIVERY:
                self.delivery_orders.create_for_sale(
                    sale_id, do_no=do_no, receipt_no=header.receipt_no, address=header.delivery_address
                )

            if amount_paid > 0:
                self.payments._append(
                    sale_id, date=sale_date, amount=amount_paid, method=method, payer_name=customer["name"]
                )

        _log.debug("sale %s created (%s, %s lines)", sale_id, invoice_no, len(lines))
        return sale_id

    def update_sale_items(
        self,
        sale_id: int,
        items: Iterable[SaleItem],
        *,
        discount_pct=None,
        tax_enabled: Optional[bool] = None,
        due_date: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        """
        Replace a sale's lines.

        Old quantities go back to stock, the new lines are deducted and the
        totals and status are recomputed, all or nothing. Payments already
        recorded are kept; the new total may not drop below them.
        """
        with transaction(self.conn):
            h = self._require_header(sale_id)
            if h["status"] == SALE_CANCELLED:
                raise InvalidStatusTransitionError(
                    "Sale", SALE_CANCELLED, h["status"], "cancelled sales cannot be edited."
                )

            pct = h["discount_pct"] if discount_pct is None else _parse_discount(discount_pct)
            tax_on = bool(h["tax_enabled"]) if tax_enabled is None else bool(tax_enabled)
            due = h["due_date"] if due_date is None else _parse_due_date(due_date)

            for old in self.list_items(sale_id):
                self.stock.adjust(
                    old["supplier_product_id"], int(old["qty"]),
                    reason=MOVE_SALE_EDIT, reference_table="sales", reference_id=sale_id,
                )
            self.conn.execute("DELETE FROM sale_items WHERE sale_id=?", (sale_id,))

            lines = self._resolve_lines(items)
            self._insert_lines(sale_id, lines, MOVE_SALE_EDIT)

            totals = compute_totals((ln.subtotal for ln in lines), pct, tax_on)
            self._check_totals(totals)
            paid = h["amount_paid"]
            if paid > totals.total_after_tax:
                raise ValidationError(
                    f"New total {totals.total_after_tax} is below the {paid} already paid."
                )
            status = SALE_PAID if paid >= totals.total_after_tax else SALE_UNPAID
            if status == SALE_UNPAID and not due:
                raise ValidationError("Unpaid sales require a due date.")

            cur = self.conn.execute(
                """
                UPDATE sales
                   SET discount_pct=?, tax_enabled=?, total=?, discount_amount=?, tax_amount=?,
                       total_after_tax=?, status=?, due_date=?, notes=COALESCE(?, notes),
                       updated_at=CURRENT_TIMESTAMP
                 WHERE sale_id=? AND status=? AND amount_paid=?
                """,
                (
                    pct, int(tax_on), totals.total, totals.discount_amount, totals.tax_amount,
                    totals.total_after_tax, status, due, notes,
                    sale_id, h["status"], paid,
                ),
            )
            if cur.rowcount == 0:
                raise ConcurrencyConflictError(f"Sale {sale_id} changed while it was being edited.")

        _log.debug("sale %s edited (%s lines, status %s)", sale_id, len(lines), status)

    def cancel_sale(self, sale_id: int) -> None:
        """
        Cancel a sale: every line goes back to stock exactly once and an open
        delivery order is cancelled with it. Recorded payments stay in the
        ledger.
        """
        with transaction(self.conn):
            h = self._require_header(sale_id)
            if h["status"] == SALE_CANCELLED:
                raise InvalidStatusTransitionError("Sale", SALE_CANCELLED, SALE_CANCELLED)

            cur = self.conn.execute(
                """
                UPDATE sales SET status=?, updated_at=CURRENT_TIMESTAMP
                 WHERE sale_id=? AND status=?
                """,
                (SALE_CANCELLED, sale_id, h["status"]),
            )
            if cur.rowcount == 0:
                raise ConcurrencyConflictError(f"Sale {sale_id} changed while it was being cancelled.")

            for it in self.list_items(sale_id):
                self.stock.adjust(
                    it["supplier_product_id"], int(it["qty"]),
                    reason=MOVE_SALE_CANCEL, reference_table="sales", reference_id=sale_id,
                )

            self.conn.execute(
                """
                UPDATE delivery_orders SET status=?, updated_at=CURRENT_TIMESTAMP
                 WHERE sale_id=? AND status IN (?, ?)
                """,
                (DO_CANCELLED, sale_id, DO_DRAFT, DO_SHIPPED),
            )

        _log.debug("sale %s cancelled (was %s)", sale_id, h["status"])
