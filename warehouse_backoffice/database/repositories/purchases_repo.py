from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import logging
import sqlite3
from typing import Iterable, Optional

from .. import transaction
from ...constants import (
    MOVE_PURCHASE,
    MOVE_PURCHASE_RECEIVE,
    PAY_CASH,
    PURCHASE_COMPLETED,
    PURCHASE_DECLINE,
    PURCHASE_PENDING,
)
from ...utils.helpers import to_iso_date
from ...utils.validators import assert_valid_money, parse_qty, quantize_money
from .document_helpers import decimalize, normalize_payment_details
from .errors import (
    ConcurrencyConflictError,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
    validated,
)
from .products_repo import ProductsRepo
from .stock_repo import StockRepo

_log = logging.getLogger(__name__)


@dataclass
class PurchaseHeader:
    supplier_id: int
    date: str
    status: str = PURCHASE_PENDING         # Pending | Completed
    invoice_no: str | None = None
    npb_no: str | None = None
    do_no: str | None = None
    payment_method: str = PAY_CASH
    bank_name: str | None = None
    account_holder: str | None = None
    account_number: str | None = None
    notes: str | None = None


@dataclass
class PurchaseItem:
    supplier_product_id: int
    qty: int
    price: Decimal | str | None = None     # None -> supplier product's purchase price


class PurchasesRepo:
    """
    Purchase Transaction Manager.

    Pending purchases carry no stock. Stock enters when a purchase is created
    as Completed or when a Pending one is received; Decline is terminal and
    never touches stock.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.stock = StockRepo(conn)
        self.products = ProductsRepo(conn)

    # ---------------------------------------------------------------------
    # Reads
    # ---------------------------------------------------------------------
    def list_purchases(self, status: Optional[str] = None) -> list[dict]:
        sql = """
        SELECT p.purchase_id, p.date, p.supplier_id, s.name AS supplier_name,
               p.invoice_no, p.npb_no, p.do_no, p.total, p.status, p.payment_method
          FROM purchases p
          JOIN suppliers s ON s.supplier_id = p.supplier_id
        """
        params: tuple = ()
        if status is not None:
            sql += " WHERE p.status = ?"
            params = (status,)
        sql += " ORDER BY DATE(p.date) DESC, p.purchase_id DESC"
        return [decimalize(r, ("total",)) for r in self.conn.execute(sql, params).fetchall()]

    def get_header(self, purchase_id: int) -> dict | None:
        r = self.conn.execute("SELECT * FROM purchases WHERE purchase_id=?", (purchase_id,)).fetchone()
        return decimalize(r, ("total",)) if r else None

    def list_items(self, purchase_id: int) -> list[dict]:
        sql = """
        SELECT pi.item_id, pi.purchase_id, pi.supplier_product_id,
               pr.code AS product_code, pr.name AS product_name, pr.unit,
               pi.qty, pi.price, pi.subtotal
          FROM purchase_items pi
          JOIN supplier_products sp ON sp.supplier_product_id = pi.supplier_product_id
          JOIN products pr          ON pr.product_id = sp.product_id
         WHERE pi.purchase_id = ?
         ORDER BY pi.item_id
        """
        return [decimalize(r, ("price", "subtotal")) for r in self.conn.execute(sql, (purchase_id,)).fetchall()]

    def _require_header(self, purchase_id: int) -> dict:
        h = self.get_header(purchase_id)
        if h is None:
            raise NotFoundError("Purchase", purchase_id)
        return h

    # ---------------------------------------------------------------------
    # Writes
    # ---------------------------------------------------------------------
    def create_purchase(self, header: PurchaseHeader, items: Iterable[PurchaseItem]) -> int:
        """
        Insert a purchase with its lines and return the purchase_id.
        A purchase created as Completed is added to stock immediately.
        """
        if header.status not in (PURCHASE_PENDING, PURCHASE_COMPLETED):
            raise ValidationError(
                f"A new purchase must be {PURCHASE_PENDING} or {PURCHASE_COMPLETED}, got {header.status!r}."
            )
        try:
            purchase_date = to_iso_date(header.date)
        except ValueError:
            raise ValidationError(f"Invalid purchase date: {header.date!r}") from None
        method, bank_name, holder, account = normalize_payment_details(
            header.payment_method, header.bank_name, header.account_holder, header.account_number
        )
        items = list(items)
        if not items:
            raise ValidationError("A purchase needs at least one item.")

        with transaction(self.conn):
            if not self.conn.execute(
                "SELECT 1 FROM suppliers WHERE supplier_id=?", (header.supplier_id,)
            ).fetchone():
                raise NotFoundError("Supplier", header.supplier_id)

            # every line is validated before the first write
            lines = []
            for it in items:
                qty = validated(parse_qty, it.qty, "Quantity")
                sp = self.products.require_supplier_product(it.supplier_product_id)
                if sp.supplier_id != header.supplier_id:
                    raise ValidationError(
                        f"Supplier product {sp.supplier_product_id} does not belong to supplier {header.supplier_id}."
                    )
                price = sp.purchase_price if it.price is None else validated(
                    assert_valid_money, it.price, "Purchase price"
                )
                subtotal = validated(assert_valid_money, quantize_money(price * qty), "Line subtotal")
                lines.append((sp.supplier_product_id, qty, price, subtotal))
            total = validated(
                assert_valid_money, sum((ln[3] for ln in lines), Decimal("0.00")), "Purchase total"
            )

            cur = self.conn.execute(
                """
                INSERT INTO purchases (
                    supplier_id, date, invoice_no, npb_no, do_no, payment_method,
                    bank_name, account_holder, account_number, total, status, notes
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    header.supplier_id, purchase_date, header.invoice_no, header.npb_no, header.do_no,
                    method, bank_name, holder, account, total, header.status, header.notes,
                ),
            )
            purchase_id = int(cur.lastrowid)

            for spid, qty, price, subtotal in lines:
                self.conn.execute(
                    """
                    INSERT INTO purchase_items (purchase_id, supplier_product_id, qty, price, subtotal)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (purchase_id, spid, qty, price, subtotal),
                )
                if header.status == PURCHASE_COMPLETED:
                    self.stock.adjust(
                        spid, qty, reason=MOVE_PURCHASE,
                        reference_table="purchases", reference_id=purchase_id,
                    )

        _log.debug("purchase %s created as %s (%s lines)", purchase_id, header.status, len(lines))
        return purchase_id

    def receive_purchase(
        self,
        purchase_id: int,
        *,
        invoice_no: Optional[str] = None,
        npb_no: Optional[str] = None,
        do_no: Optional[str] = None,
    ) -> None:
        """
        Pending -> Completed: fill in the supplier's document numbers and add
        every line to stock. Receiving twice is rejected and adds nothing.
        """
        with transaction(self.conn):
            h = self._require_header(purchase_id)
            if h["status"] != PURCHASE_PENDING:
                raise InvalidStatusTransitionError("Purchase", h["status"], PURCHASE_COMPLETED)

            cur = self.conn.execute(
                """
                UPDATE purchases
                   SET invoice_no = COALESCE(?, invoice_no),
                       npb_no     = COALESCE(?, npb_no),
                       do_no      = COALESCE(?, do_no),
                       status     = ?,
                       updated_at = CURRENT_TIMESTAMP
                 WHERE purchase_id = ? AND status = ?
                """,
                (invoice_no, npb_no, do_no, PURCHASE_COMPLETED, purchase_id, PURCHASE_PENDING),
            )
            if cur.rowcount == 0:
                raise ConcurrencyConflictError(f"Purchase {purchase_id} changed while it was being received.")

            for it in self.list_items(purchase_id):
                self.stock.adjust(
                    it["supplier_product_id"], int(it["qty"]), reason=MOVE_PURCHASE_RECEIVE,
                    reference_table="purchases", reference_id=purchase_id,
                )

        _log.debug("purchase %s received", purchase_id)

    def decline_purchase(self, purchase_id: int) -> None:
        """Pending -> Decline. Stock is not touched."""
        with transaction(self.conn):
            h = self._require_header(purchase_id)
            if h["status"] != PURCHASE_PENDING:
                raise InvalidStatusTransitionError("Purchase", h["status"], PURCHASE_DECLINE)
            cur = self.conn.execute(
                """
                UPDATE purchases SET status=?, updated_at=CURRENT_TIMESTAMP
                 WHERE purchase_id=? AND status=?
                """,
                (PURCHASE_DECLINE, purchase_id, PURCHASE_PENDING),
            )
            if cur.rowcount == 0:
                raise ConcurrencyConflictError(f"Purchase {purchase_id} changed while it was being declined.")
