"""
Stock ledger: the only writer of supplier_products.quantity_on_hand.

adjust() is a single conditional UPDATE, so the stock check and the mutation
can never be separated by another writer. Callers compose several adjust()
calls inside one database.transaction() when a whole document must succeed
or fail together.

Conventions:
- Quantities are integers.
- Every successful adjustment appends one stock_movements row.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Dict, List, Optional

from .. import transaction
from ...constants import MOVE_ADJUSTMENT, MOVE_REASONS
from .errors import InsufficientStockError, NotFoundError, ValidationError

_log = logging.getLogger(__name__)


class StockRepo:
    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_quantity(self, supplier_product_id: int) -> int:
        row = self.conn.execute(
            "SELECT quantity_on_hand FROM supplier_products WHERE supplier_product_id=?",
            (int(supplier_product_id),),
        ).fetchone()
        if row is None:
            raise NotFoundError("Supplier product", supplier_product_id)
        return int(row["quantity_on_hand"])

    def list_movements(self, supplier_product_id: int, limit: int = 100) -> List[Dict]:
        """
        Most recent movements first:
           movement_id | delta | quantity_after | reason | reference_table | reference_id | created_at
        """
        rows = self.conn.execute(
            """
            SELECT movement_id, supplier_product_id, delta, quantity_after, reason,
                   reference_table, reference_id, created_at
              FROM stock_movements
             WHERE supplier_product_id = ?
             ORDER BY movement_id DESC
             LIMIT ?
            """,
            (int(supplier_product_id), int(limit)),
        ).fetchall()
        return [dict(r) for r in rows]

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def adjust(
        self,
        supplier_product_id: int,
        delta: int,
        *,
        reason: str = MOVE_ADJUSTMENT,
        reference_table: Optional[str] = None,
        reference_id: Optional[int] = None,
    ) -> int:
        """
        Atomically add `delta` (may be negative) to the on-hand quantity and
        return the new quantity.

        Raises:
            InsufficientStockError: the result would drop below zero
                (carries the quantity still available).
            NotFoundError: unknown supplier product.
            ValidationError: delta is zero/non-integer or reason is unknown.
        """
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise ValidationError(f"Stock adjustment must be a non-zero whole number, got {delta!r}.")
        if reason not in MOVE_REASONS:
            raise ValidationError(f"Unknown stock movement reason: {reason}")
        spid = int(supplier_product_id)

        with transaction(self.conn):
            cur = self.conn.execute(
                """
                UPDATE supplier_products
                   SET quantity_on_hand = quantity_on_hand + ?
                 WHERE supplier_product_id = ?
                   AND quantity_on_hand + ? >= 0
                """,
                (delta, spid, delta),
            )
            if cur.rowcount == 0:
                available = self.get_quantity(spid)  # raises NotFoundError
                raise InsufficientStockError(spid, available, requested=-delta)

            new_qty = self.get_quantity(spid)
            self.conn.execute(
                """
                INSERT INTO stock_movements (
                    supplier_product_id, delta, quantity_after, reason,
                    reference_table, reference_id
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (spid, delta, new_qty, reason, reference_table, reference_id),
            )

        _log.debug("stock %s %+d -> %d (%s %s:%s)", spid, delta, new_qty, reason, reference_table, reference_id)
        return new_qty
