# warehouse_backoffice/tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - Every test gets its own throw-away SQLite file (tmp_path), schema applied
#   by database.get_connection(); repositories commit, so no shared DB
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON (via get_connection)
# - `ids` seeds one customer, one supplier and two supplier products
#   (stock 5, sale price 1000.00) and hands back their ids
# ---------------------------------------------------------------------

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from warehouse_backoffice.database import get_connection
from warehouse_backoffice.database.repositories import (
    CustomersRepo,
    ProductsRepo,
    SaleHeader,
    SaleItem,
    SalesRepo,
    SuppliersRepo,
)


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "backoffice.db"


@pytest.fixture()
def conn(db_path: Path):
    con = get_connection(db_path)
    try:
        yield con
    finally:
        con.close()


@pytest.fixture()
def ids(conn: sqlite3.Connection) -> dict:
    """Common ids used throughout the repository tests."""
    customer_id = CustomersRepo(conn).create("Toko Maju", address="Jl. Merdeka 1", phone="0812")
    supplier_id = SuppliersRepo(conn).create("PT Sumber", address="Jl. Industri 9")
    other_supplier_id = SuppliersRepo(conn).create("CV Lain")

    products = ProductsRepo(conn)
    prod_a = products.create("A-001", "Widget A")
    prod_b = products.create("B-001", "Widget B", unit="box")

    sp_a = products.create_supplier_product(
        supplier_id=supplier_id, product_id=prod_a,
        purchase_price="700", sale_price="1000", sale_price_wholesale="900", initial_qty=5,
    )
    sp_b = products.create_supplier_product(
        supplier_id=supplier_id, product_id=prod_b,
        purchase_price="400", sale_price="1000", initial_qty=5,
    )
    sp_other = products.create_supplier_product(
        supplier_id=other_supplier_id, product_id=prod_a,
        purchase_price="650", sale_price="950", initial_qty=0,
    )
    return {
        "customer_id": customer_id,
        "supplier_id": supplier_id,
        "other_supplier_id": other_supplier_id,
        "prod_A": prod_a,
        "prod_B": prod_b,
        "sp_A": sp_a,
        "sp_B": sp_b,
        "sp_other": sp_other,
    }


@pytest.fixture()
def make_header(ids: dict):
    """Factory for an Unpaid, Pickup, Cash sale header for the seeded customer."""
    def _make(**overrides) -> SaleHeader:
        fields = dict(
            customer_id=ids["customer_id"],
            date="2024-05-01",
            status="Unpaid",
            due_date="2024-05-31",
        )
        fields.update(overrides)
        return SaleHeader(**fields)
    return _make


@pytest.fixture()
def unpaid_sale(conn, ids, make_header) -> int:
    """Unpaid sale of 1 x Widget A at 1000.00 (total_after_tax 1000.00)."""
    return SalesRepo(conn).create_sale(
        make_header(), [SaleItem(supplier_product_id=ids["sp_A"], qty=1)]
    )
