import sqlite3
from decimal import Decimal

import pytest

from warehouse_backoffice.constants import SCHEMA_VERSION
from warehouse_backoffice.database import get_connection, transaction


def test_schema_is_idempotent_and_versioned(conn, db_path):
    again = get_connection(db_path)
    try:
        row = again.execute("SELECT version FROM schema_version WHERE id=1").fetchone()
        assert row["version"] == SCHEMA_VERSION
        assert again.execute("PRAGMA foreign_keys").fetchone()[0] == 1
        assert again.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
    finally:
        again.close()


def test_in_memory_connection():
    con = get_connection(":memory:")
    try:
        tables = {r["name"] for r in con.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        assert {"sales", "supplier_products", "stock_movements", "document_sequences"} <= tables
    finally:
        con.close()


def test_transaction_commits_and_rolls_back(conn):
    with transaction(conn):
        conn.execute("INSERT INTO suppliers(name) VALUES ('kept')")
    with pytest.raises(RuntimeError):
        with transaction(conn):
            conn.execute("INSERT INTO suppliers(name) VALUES ('dropped')")
            raise RuntimeError("boom")
    names = [r["name"] for r in conn.execute("SELECT name FROM suppliers")]
    assert names == ["kept"]
    assert not conn.in_transaction


def test_nested_transaction_rolls_back_only_inner_work(conn):
    with transaction(conn):
        conn.execute("INSERT INTO suppliers(name) VALUES ('outer')")
        with pytest.raises(ValueError):
            with transaction(conn):
                conn.execute("INSERT INTO suppliers(name) VALUES ('inner')")
                raise ValueError("inner failure")
    names = [r["name"] for r in conn.execute("SELECT name FROM suppliers")]
    assert names == ["outer"]


def test_decimal_binds_as_exact_text(conn):
    with transaction(conn):
        conn.execute("INSERT INTO customers(name) VALUES ('x')")
        conn.execute(
            "INSERT INTO sales(customer_id, date, total, total_after_tax, status) VALUES (1, '2024-05-01', ?, ?, 'Paid')",
            (Decimal("0.10") + Decimal("0.20"), Decimal("0.30")),
        )
    row = conn.execute("SELECT total, typeof(total) AS t FROM sales").fetchone()
    assert row["total"] == "0.30"
    assert row["t"] == "text"


def test_foreign_keys_enforced(conn):
    with pytest.raises(sqlite3.IntegrityError):
        with transaction(conn):
            conn.execute("INSERT INTO sale_payments(sale_id, amount, method, payer_name) VALUES (99, '1.00', 'Cash', 'x')")
