# warehouse_backoffice/database/repositories/products_repo.py
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
import sqlite3

from .. import transaction
from ...constants import MOVE_ADJUSTMENT, TIER_NORMAL, TIER_WHOLESALE, PRICE_TIERS
from ...utils.validators import assert_valid_money
from .errors import NotFoundError, ValidationError, validated
from .stock_repo import StockRepo


@dataclass
class Product:
    product_id: int | None
    code: str
    name: str
    unit: str
    category: str | None
    status: str = "Active"


@dataclass
class SupplierProduct:
    supplier_product_id: int | None
    supplier_id: int
    product_id: int
    purchase_price: Decimal
    sale_price: Decimal
    sale_price_wholesale: Decimal | None
    quantity_on_hand: int

    @classmethod
    def from_row(cls, r) -> "SupplierProduct":
        return cls(
            supplier_product_id=int(r["supplier_product_id"]),
            supplier_id=int(r["supplier_id"]),
            product_id=int(r["product_id"]),
            purchase_price=Decimal(r["purchase_price"]),
            sale_price=Decimal(r["sale_price"]),
            sale_price_wholesale=(
                Decimal(r["sale_price_wholesale"]) if r["sale_price_wholesale"] is not None else None
            ),
            quantity_on_hand=int(r["quantity_on_hand"]),
        )

    def price_for(self, tier: str = TIER_NORMAL) -> Decimal:
        if tier == TIER_WHOLESALE:
            if self.sale_price_wholesale is None:
                raise ValidationError(
                    f"Supplier product {self.supplier_product_id} has no wholesale price."
                )
            return self.sale_price_wholesale
        if tier != TIER_NORMAL:
            raise ValidationError(f"Unknown price tier: {tier}. Allowed: {', '.join(PRICE_TIERS)}")
        return self.sale_price


_SP_COLUMNS = (
    "supplier_product_id, supplier_id, product_id, purchase_price, sale_price, "
    "sale_price_wholesale, quantity_on_hand"
)


class ProductsRepo:
    """
    Product catalog and supplier pricing.

    Products carry no stock. Stock lives on supplier_products and is only
    written through StockRepo.adjust(); this repo never touches
    quantity_on_hand directly.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        # Use Row for named access; we normalize to dicts where we claim to return dicts.
        self.conn.row_factory = sqlite3.Row

    # ---------------------------- Products ----------------------------

    def list_products(self, active_only: bool = False) -> list[Product]:
        sql = "SELECT product_id, code, name, unit, category, status FROM products"
        if active_only:
            sql += " WHERE status = 'Active'"
        rows = self.conn.execute(sql + " ORDER BY product_id DESC").fetchall()
        return [Product(**r) for r in rows]

    def get(self, product_id: int) -> Product | None:
        r = self.conn.execute(
            "SELECT product_id, code, name, unit, category, status "
            "FROM products WHERE product_id=?",
            (product_id,),
        ).fetchone()
        return Product(**r) if r else None

    def create(self, code: str, name: str, unit: str = "pcs", category: str | None = None) -> int:
        if not code or not code.strip():
            raise ValidationError("Product code cannot be empty.")
        if not name or not name.strip():
            raise ValidationError("Product name cannot be empty.")
        with transaction(self.conn):
            dup = self.conn.execute(
                "SELECT 1 FROM products WHERE code=?", (code.strip(),)
            ).fetchone()
            if dup:
                raise ValidationError(f"Product code already exists: {code.strip()}")
            cur = self.conn.execute(
                "INSERT INTO products(code, name, unit, category) VALUES (?, ?, ?, ?)",
                (code.strip(), name.strip(), unit, category),
            )
            return int(cur.lastrowid)

    def update(self, product_id: int, name: str, unit: str, category: str | None) -> None:
        if not name or not name.strip():
            raise ValidationError("Product name cannot be empty.")
        with transaction(self.conn):
            cur = self.conn.execute(
                "UPDATE products SET name=?, unit=?, category=? WHERE product_id=?",
                (name.strip(), unit, category, product_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError("Product", product_id)

    def deactivate(self, product_id: int) -> None:
        """Soft-delete: historical sale/purchase lines keep pointing at the product."""
        with transaction(self.conn):
            cur = self.conn.execute(
                "UPDATE products SET status='Inactive' WHERE product_id=?", (product_id,)
            )
            if cur.rowcount == 0:
                raise NotFoundError("Product", product_id)

    # ------------------------ Supplier products ------------------------

    def create_supplier_product(
        self,
        *,
        supplier_id: int,
        product_id: int,
        purchase_price,
        sale_price,
        sale_price_wholesale=None,
        initial_qty: int = 0,
    ) -> int:
        """
        Register a (supplier, product) pairing with its prices. An opening
        quantity is posted through the stock ledger as an adjustment.
        """
        pp = validated(assert_valid_money, purchase_price, "Purchase price")
        sp = validated(assert_valid_money, sale_price, "Sale price")
        wp = None
        if sale_price_wholesale is not None:
            wp = validated(assert_valid_money, sale_price_wholesale, "Wholesale price")
        if isinstance(initial_qty, bool) or not isinstance(initial_qty, int) or initial_qty < 0:
            raise ValidationError("Opening quantity must be a non-negative whole number.")

        with transaction(self.conn):
            if not self.conn.execute("SELECT 1 FROM suppliers WHERE supplier_id=?", (supplier_id,)).fetchone():
                raise NotFoundError("Supplier", supplier_id)
            if not self.conn.execute("SELECT 1 FROM products WHERE product_id=?", (product_id,)).fetchone():
                raise NotFoundError("Product", product_id)
            if self.conn.execute(
                "SELECT 1 FROM supplier_products WHERE supplier_id=? AND product_id=?",
                (supplier_id, product_id),
            ).fetchone():
                raise ValidationError("This supplier already offers this product.")

            cur = self.conn.execute(
                """
                INSERT INTO supplier_products(
                    supplier_id, product_id, purchase_price, sale_price, sale_price_wholesale
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (supplier_id, product_id, pp, sp, wp),
            )
            spid = int(cur.lastrowid)
            if initial_qty > 0:
                StockRepo(self.conn).adjust(
                    spid, initial_qty, reason=MOVE_ADJUSTMENT,
                    reference_table="supplier_products", reference_id=spid,
                )
        return spid

    def update_prices(
        self,
        supplier_product_id: int,
        *,
        purchase_price=None,
        sale_price=None,
        sale_price_wholesale=None,
    ) -> None:
        """
        Update any subset of prices. Existing sale/purchase lines keep the
        price they were recorded with.
        """
        sets: list[str] = []
        params: list = []
        if purchase_price is not None:
            sets.append("purchase_price=?")
            params.append(validated(assert_valid_money, purchase_price, "Purchase price"))
        if sale_price is not None:
            sets.append("sale_price=?")
            params.append(validated(assert_valid_money, sale_price, "Sale price"))
        if sale_price_wholesale is not None:
            sets.append("sale_price_wholesale=?")
            params.append(validated(assert_valid_money, sale_price_wholesale, "Wholesale price"))
        if not sets:
            return
        with transaction(self.conn):
            cur = self.conn.execute(
                f"UPDATE supplier_products SET {', '.join(sets)} WHERE supplier_product_id=?",
                (*params, supplier_product_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError("Supplier product", supplier_product_id)

    def get_supplier_product(self, supplier_product_id: int) -> Optional[SupplierProduct]:
        r = self.conn.execute(
            f"SELECT {_SP_COLUMNS} FROM supplier_products WHERE supplier_product_id=?",
            (supplier_product_id,),
        ).fetchone()
        return SupplierProduct.from_row(r) if r else None

    def require_supplier_product(self, supplier_product_id: int) -> SupplierProduct:
        sp = self.get_supplier_product(supplier_product_id)
        if sp is None:
            raise NotFoundError("Supplier product", supplier_product_id)
        return sp

    def list_supplier_products(self, supplier_id: int | None = None) -> list[dict]:
        """
        Supplier products joined with product and supplier names, for pickers.
        """
        sql = """
        SELECT sp.supplier_product_id, sp.supplier_id, s.name AS supplier_name,
               sp.product_id, p.code AS product_code, p.name AS product_name, p.unit,
               sp.purchase_price, sp.sale_price, sp.sale_price_wholesale,
               sp.quantity_on_hand
          FROM supplier_products sp
          JOIN products  p ON p.product_id  = sp.product_id
          JOIN suppliers s ON s.supplier_id = sp.supplier_id
        """
        params: tuple = ()
        if supplier_id is not None:
            sql += " WHERE sp.supplier_id = ?"
            params = (supplier_id,)
        sql += " ORDER BY p.name, s.name"
        return [dict(r) for r in self.conn.execute(sql, params).fetchall()]
