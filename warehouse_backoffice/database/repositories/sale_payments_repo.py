from __future__ import annotations

import logging
import sqlite3
from decimal import Decimal
from typing import Optional

from .. import transaction
from ...constants import MONEY_MAX, PAYMENT_METHODS, SALE_CANCELLED, SALE_PAID, SALE_UNPAID
from ...utils.helpers import to_iso_date
from ...utils.validators import non_empty, parse_money
from .document_helpers import decimalize
from .errors import (
    ConcurrencyConflictError,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
    validated,
)

_log = logging.getLogger(__name__)


class SalePaymentsRepo:
    """
    Receivables ledger for sales.

    Conventions:
    - sale_payments is append-only (triggers reject UPDATE/DELETE).
    - sales.amount_paid always equals the sum of the sale's payment rows and
      never exceeds total_after_tax; status is Paid exactly when it reaches it.
    - A rejected payment writes nothing.
    """

    def __init__(self, conn: sqlite3.Connection):
        # ensure rows behave like dicts/tuples
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---------------------------------------------------------------------
    # Insert
    # ---------------------------------------------------------------------
    def _append(self, sale_id: int, *, date: str, amount: Decimal, method: str, payer_name: str) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO sale_payments (sale_id, date, amount, method, payer_name)
            VALUES (?, ?, ?, ?, ?)
            """,
            (sale_id, date, amount, method, payer_name),
        )
        return int(cur.lastrowid)

    def record_payment(
        self,
        sale_id: int,
        *,
        amount,
        method: str,
        payer_name: str,
        date: Optional[str] = None,
    ) -> int:
        """
        Record a customer payment against a sale and return the payment_id.

        Raises:
            InvalidStatusTransitionError: the sale is Cancelled.
            ValidationError: amount <= 0, or more than the remaining balance
                (a fully Paid sale has nothing remaining).
            ConcurrencyConflictError: another payment landed first.
        """
        if method not in PAYMENT_METHODS:
            raise ValidationError(f"Unknown payment method: {method}. Allowed: {', '.join(PAYMENT_METHODS)}")
        if not non_empty(payer_name):
            raise ValidationError("Payer name is required.")
        try:
            pay_date = to_iso_date(date)
        except ValueError:
            raise ValidationError(f"Invalid payment date: {date!r}") from None
        value = validated(parse_money, amount, "Payment amount")

        with transaction(self.conn):
            sale = self.conn.execute(
                "SELECT status, total_after_tax, amount_paid FROM sales WHERE sale_id=?",
                (sale_id,),
            ).fetchone()
            if sale is None:
                raise NotFoundError("Sale", sale_id)
            status = sale["status"]
            if status == SALE_CANCELLED:
                raise InvalidStatusTransitionError(
                    "Sale", SALE_CANCELLED, SALE_PAID, "payments cannot be recorded on a cancelled sale."
                )
            if value <= 0:
                raise ValidationError("Payment amount must be greater than zero.")
            if value > MONEY_MAX:
                raise ValidationError(f"Payment amount is too large. Maximum is {MONEY_MAX:,}.")

            total = Decimal(sale["total_after_tax"])
            paid = Decimal(sale["amount_paid"])
            remaining = total - paid
            if value > remaining:
                raise ValidationError(
                    f"Payment of {value} exceeds the remaining balance of {remaining} (overpay)."
                )

            new_paid = paid + value
            new_status = SALE_PAID if new_paid >= total else SALE_UNPAID
            payment_id = self._append(
                sale_id, date=pay_date, amount=value, method=method, payer_name=payer_name.strip()
            )
            cur = self.conn.execute(
                """
                UPDATE sales
                   SET amount_paid=?, status=?, updated_at=CURRENT_TIMESTAMP
                 WHERE sale_id=? AND status=? AND amount_paid=?
                """,
                (new_paid, new_status, sale_id, status, sale["amount_paid"]),
            )
            if cur.rowcount == 0:
                raise ConcurrencyConflictError(f"Sale {sale_id} changed while recording a payment.")

        _log.debug("payment %s on sale %s: %s (%s -> %s)", payment_id, sale_id, value, paid, new_paid)
        return payment_id

    # ---------------------------------------------------------------------
    # Reads
    # ---------------------------------------------------------------------
    def list_by_sale(self, sale_id: int) -> list[dict]:
        rows = self.conn.execute(
            """
            SELECT payment_id, sale_id, date, amount, method, payer_name, created_at
              FROM sale_payments
             WHERE sale_id = ?
             ORDER BY payment_id
            """,
            (sale_id,),
        ).fetchall()
        return [decimalize(r, ("amount",)) for r in rows]

    def outstanding(self, sale_id: int) -> Decimal:
        """Remaining balance (0 for Paid and Cancelled sales)."""
        r = self.conn.execute(
            "SELECT status, total_after_tax, amount_paid FROM sales WHERE sale_id=?", (sale_id,)
        ).fetchone()
        if r is None:
            raise NotFoundError("Sale", sale_id)
        if r["status"] != SALE_UNPAID:
            return Decimal("0.00")
        return Decimal(r["total_after_tax"]) - Decimal(r["amount_paid"])

    def list_receivables(self, as_of: Optional[str] = None) -> list[dict]:
        """
        Open receivables (piutang): every Unpaid sale with its remaining
        balance and whether it is past due on `as_of` (default today).
        Oldest due date first.
        """
        day = to_iso_date(as_of)
        rows = self.conn.execute(
            """
            SELECT s.sale_id, s.invoice_no, s.date, s.due_date,
                   s.customer_id, c.name AS customer_name,
                   s.total_after_tax, s.amount_paid
              FROM sales s
              JOIN customers c ON c.customer_id = s.customer_id
             WHERE s.status = ?
             ORDER BY s.due_date, s.sale_id
            """,
            (SALE_UNPAID,),
        ).fetchall()
        out = []
        for r in rows:
            d = decimalize(r, ("total_after_tax", "amount_paid"))
            d["remaining"] = d["total_after_tax"] - d["amount_paid"]
            d["overdue"] = d["due_date"] is not None and d["due_date"] < day
            out.append(d)
        return out
