from __future__ import annotations

import sqlite3

from ...constants import DO_RECEIVED
from .document_helpers import decimalize
from .errors import InvalidStatusTransitionError, NotFoundError

_SALE_MONEY = ("discount_pct", "total", "discount_amount", "tax_amount", "total_after_tax", "amount_paid")


class ReportingRepo:
    """
    Read-only projections for printed documents.

    Each method returns one plain dict (header fields, joined party names,
    `items`, and totals as Decimal) that documents.render can feed straight
    into a template. Nothing here writes.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ----------------------------------------------------------------------
    # Sales (invoice / NPB)
    # ----------------------------------------------------------------------
    def _sale_items(self, sale_id: int) -> list[dict]:
        sql = """
        SELECT si.item_id, p.code AS product_code, p.name AS product_name, p.unit,
               sup.name AS supplier_name, si.qty, si.price, si.subtotal
          FROM sale_items si
          JOIN supplier_products sp ON sp.supplier_product_id = si.supplier_product_id
          JOIN products  p   ON p.product_id    = sp.product_id
          JOIN suppliers sup ON sup.supplier_id = sp.supplier_id
         WHERE si.sale_id = ?
         ORDER BY si.item_id
        """
        return [decimalize(r, ("price", "subtotal")) for r in self.conn.execute(sql, (sale_id,))]

    def sale_document(self, sale_id: int) -> dict:
        r = self.conn.execute(
            """
            SELECT s.*, c.name AS customer_name, c.address AS customer_address,
                   c.phone AS customer_phone
              FROM sales s
              JOIN customers c ON c.customer_id = s.customer_id
             WHERE s.sale_id = ?
            """,
            (sale_id,),
        ).fetchone()
        if r is None:
            raise NotFoundError("Sale", sale_id)
        doc = decimalize(r, _SALE_MONEY)
        doc["items"] = self._sale_items(sale_id)
        doc["remaining"] = doc["total_after_tax"] - doc["amount_paid"]
        doc["payments"] = [
            decimalize(p, ("amount",))
            for p in self.conn.execute(
                "SELECT payment_id, date, amount, method, payer_name FROM sale_payments "
                "WHERE sale_id=? ORDER BY payment_id",
                (sale_id,),
            )
        ]
        return doc

    # ----------------------------------------------------------------------
    # Purchases
    # ----------------------------------------------------------------------
    def purchase_document(self, purchase_id: int) -> dict:
        r = self.conn.execute(
            """
            SELECT p.*, s.name AS supplier_name, s.address AS supplier_address,
                   s.phone AS supplier_phone
              FROM purchases p
              JOIN suppliers s ON s.supplier_id = p.supplier_id
             WHERE p.purchase_id = ?
            """,
            (purchase_id,),
        ).fetchone()
        if r is None:
            raise NotFoundError("Purchase", purchase_id)
        doc = decimalize(r, ("total",))
        doc["items"] = [
            decimalize(i, ("price", "subtotal"))
            for i in self.conn.execute(
                """
                SELECT pi.item_id, pr.code AS product_code, pr.name AS product_name, pr.unit,
                       pi.qty, pi.price, pi.subtotal
                  FROM purchase_items pi
                  JOIN supplier_products sp ON sp.supplier_product_id = pi.supplier_product_id
                  JOIN products pr          ON pr.product_id = sp.product_id
                 WHERE pi.purchase_id = ?
                 ORDER BY pi.item_id
                """,
                (purchase_id,),
            )
        ]
        return doc

    # ----------------------------------------------------------------------
    # Delivery orders / BAST
    # ----------------------------------------------------------------------
    def delivery_order_document(self, do_id: int) -> dict:
        r = self.conn.execute(
            """
            SELECT d.do_id, d.sale_id, d.do_no, d.receipt_no, d.status, d.notes,
                   COALESCE(d.address, c.address) AS address,
                   d.shipped_at, d.received_at,
                   s.date, s.invoice_no, s.npb_no,
                   c.name AS customer_name, c.phone AS customer_phone
              FROM delivery_orders d
              JOIN sales s     ON s.sale_id = d.sale_id
              JOIN customers c ON c.customer_id = s.customer_id
             WHERE d.do_id = ?
            """,
            (do_id,),
        ).fetchone()
        if r is None:
            raise NotFoundError("Delivery order", do_id)
        doc = dict(r)
        # prices are left off delivery paperwork
        doc["items"] = [
            {k: it[k] for k in ("product_code", "product_name", "unit", "qty")}
            for it in self._sale_items(doc["sale_id"])
        ]
        doc["total_qty"] = sum(it["qty"] for it in doc["items"])
        return doc

    def bast_document(self, do_id: int) -> dict:
        """
        Handover record (BAST) for a delivery order; only a Received order has one.
        """
        doc = self.delivery_order_document(do_id)
        if doc["status"] != DO_RECEIVED:
            raise InvalidStatusTransitionError(
                "Delivery order", doc["status"], DO_RECEIVED, "a handover record needs a received delivery."
            )
        return doc
