from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from .. import transaction
from ...constants import (
    DOC_DELIVERY_ORDER,
    DO_CANCELLED,
    DO_DRAFT,
    DO_RECEIVED,
    DO_SHIPPED,
    DO_STATUSES,
    SALE_CANCELLED,
)
from ...utils.helpers import now_str
from .doc_numbers_repo import DocNumbersRepo
from .errors import (
    ConcurrencyConflictError,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
)

_log = logging.getLogger(__name__)

# Received and Cancelled are terminal.
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    DO_DRAFT: frozenset({DO_SHIPPED, DO_CANCELLED}),
    DO_SHIPPED: frozenset({DO_RECEIVED, DO_CANCELLED}),
    DO_RECEIVED: frozenset(),
    DO_CANCELLED: frozenset(),
}


class DeliveryOrdersRepo:
    """
    Delivery orders: at most one per sale, moving Draft -> Shipped -> Received
    (or Cancelled from Draft/Shipped).

    A delivery order never touches stock or the sale it belongs to.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---------------------------------------------------------------------
    # Reads
    # ---------------------------------------------------------------------
    def get(self, do_id: int) -> Optional[dict]:
        r = self.conn.execute("SELECT * FROM delivery_orders WHERE do_id=?", (do_id,)).fetchone()
        return dict(r) if r else None

    def get_by_sale(self, sale_id: int) -> Optional[dict]:
        r = self.conn.execute("SELECT * FROM delivery_orders WHERE sale_id=?", (sale_id,)).fetchone()
        return dict(r) if r else None

    def list_orders(self, status: Optional[str] = None) -> list[dict]:
        sql = """
        SELECT d.do_id, d.sale_id, d.do_no, d.receipt_no, d.status, d.address,
               d.shipped_at, d.received_at, s.invoice_no, s.date, c.name AS customer_name
          FROM delivery_orders d
          JOIN sales s     ON s.sale_id = d.sale_id
          JOIN customers c ON c.customer_id = s.customer_id
        """
        params: tuple = ()
        if status is not None:
            sql += " WHERE d.status = ?"
            params = (status,)
        sql += " ORDER BY d.do_id DESC"
        return [dict(r) for r in self.conn.execute(sql, params).fetchall()]

    # ---------------------------------------------------------------------
    # Writes
    # ---------------------------------------------------------------------
    def create_for_sale(
        self,
        sale_id: int,
        *,
        do_no: Optional[str] = None,
        receipt_no: Optional[str] = None,
        address: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> int:
        """
        Open a Draft delivery order for a sale. The DO number defaults to the
        one already printed on the sale, else a fresh DO/YYYYMMDD/NNNN is
        reserved for the sale date.
        """
        with transaction(self.conn):
            sale = self.conn.execute(
                "SELECT sale_id, date, status, do_no, receipt_no FROM sales WHERE sale_id=?",
                (sale_id,),
            ).fetchone()
            if sale is None:
                raise NotFoundError("Sale", sale_id)
            if sale["status"] == SALE_CANCELLED:
                raise InvalidStatusTransitionError(
                    "Sale", SALE_CANCELLED, DO_DRAFT, "a cancelled sale cannot be delivered."
                )
            if self.conn.execute("SELECT 1 FROM delivery_orders WHERE sale_id=?", (sale_id,)).fetchone():
                raise ValidationError(f"Sale {sale_id} already has a delivery order.")

            numbers = DocNumbersRepo(self.conn)
            numbers.claim(do_no)
            number = do_no or sale["do_no"] or numbers.next(DOC_DELIVERY_ORDER, sale["date"])
            cur = self.conn.execute(
                """
                INSERT INTO delivery_orders (sale_id, do_no, receipt_no, status, address, notes)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (sale_id, number, receipt_no or sale["receipt_no"], DO_DRAFT, address, notes),
            )
            do_id = int(cur.lastrowid)
        _log.debug("delivery order %s (%s) opened for sale %s", do_id, number, sale_id)
        return do_id

    def transition(self, do_id: int, new_status: str, *, at: Optional[str] = None) -> dict:
        """
        Move a delivery order to `new_status` and return the updated row.

        Entering Shipped stamps shipped_at, entering Received stamps
        received_at (with `at`, default now). Requesting the current status
        is a no-op.
        """
        if new_status not in DO_STATUSES:
            raise ValidationError(f"Unknown delivery order status: {new_status}")

        with transaction(self.conn):
            row = self.get(do_id)
            if row is None:
                raise NotFoundError("Delivery order", do_id)
            current = row["status"]
            if new_status == current:
                return row
            if new_status not in ALLOWED_TRANSITIONS[current]:
                raise InvalidStatusTransitionError("Delivery order", current, new_status)

            ts = at or now_str()
            cur = self.conn.execute(
                """
                UPDATE delivery_orders
                   SET status = ?,
                       shipped_at  = CASE WHEN ? = 'Shipped'  THEN COALESCE(shipped_at, ?)  ELSE shipped_at  END,
                       received_at = CASE WHEN ? = 'Received' THEN COALESCE(received_at, ?) ELSE received_at END,
                       updated_at = CURRENT_TIMESTAMP
                 WHERE do_id = ? AND status = ?
                """,
                (new_status, new_status, ts, new_status, ts, do_id, current),
            )
            if cur.rowcount == 0:
                raise ConcurrencyConflictError(f"Delivery order {do_id} changed while moving it to {new_status}.")
            updated = self.get(do_id)

        _log.info("delivery order %s: %s -> %s", do_id, current, new_status)
        return updated
