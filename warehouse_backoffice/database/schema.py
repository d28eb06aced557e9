from pathlib import Path
import sqlite3
import sys

# Money columns are TEXT holding canonical 2-place decimal strings ("1000.00").
# TEXT affinity keeps them exact; CHECKs cast to REAL only for range checks.
SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== PARTIES ======================== */

CREATE TABLE IF NOT EXISTS customers (
    customer_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT NOT NULL,
    address      TEXT,
    phone        TEXT,
    is_active    INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1))
);

CREATE TABLE IF NOT EXISTS suppliers (
    supplier_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT NOT NULL,
    address      TEXT,
    phone        TEXT
);

/* ======================== CATALOG ======================== */

CREATE TABLE IF NOT EXISTS products (
    product_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    code        TEXT UNIQUE NOT NULL,
    name        TEXT NOT NULL,
    unit        TEXT NOT NULL DEFAULT 'pcs',
    category    TEXT,
    status      TEXT NOT NULL DEFAULT 'Active' CHECK (status IN ('Active','Inactive'))
);

/* the sellable/purchasable unit; sole owner of stock */
CREATE TABLE IF NOT EXISTS supplier_products (
    supplier_product_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    supplier_id          INTEGER NOT NULL,
    product_id           INTEGER NOT NULL,
    purchase_price       TEXT NOT NULL DEFAULT '0.00' CHECK (CAST(purchase_price AS REAL) >= 0),
    sale_price           TEXT NOT NULL DEFAULT '0.00' CHECK (CAST(sale_price AS REAL) >= 0),
    sale_price_wholesale TEXT CHECK (sale_price_wholesale IS NULL OR CAST(sale_price_wholesale AS REAL) >= 0),
    quantity_on_hand     INTEGER NOT NULL DEFAULT 0 CHECK (quantity_on_hand >= 0),
    UNIQUE (supplier_id, product_id),
    FOREIGN KEY (supplier_id) REFERENCES suppliers(supplier_id) ON DELETE RESTRICT,
    FOREIGN KEY (product_id)  REFERENCES products(product_id)  ON DELETE RESTRICT
);

/* ======================== SALES ======================== */

CREATE TABLE IF NOT EXISTS sales (
    sale_id        INTEGER PRIMARY KEY AUTOINCREMENT,
    customer_id    INTEGER NOT NULL,
    date           DATE NOT NULL DEFAULT CURRENT_DATE,

    /* document numbers */
    invoice_no     TEXT UNIQUE,
    npb_no         TEXT UNIQUE,
    do_no          TEXT,
    receipt_no     TEXT,

    pickup_method  TEXT NOT NULL DEFAULT 'Pickup' CHECK (pickup_method IN ('Pickup','Delivery')),
    payment_method TEXT NOT NULL DEFAULT 'Cash' CHECK (payment_method IN ('Cash','Transfer')),
    bank_name      TEXT,
    account_holder TEXT,
    account_number TEXT,

    /* totals */
    discount_pct    TEXT NOT NULL DEFAULT '0.00'
                    CHECK (CAST(discount_pct AS REAL) >= 0 AND CAST(discount_pct AS REAL) <= 100),
    tax_enabled     INTEGER NOT NULL DEFAULT 0 CHECK (tax_enabled IN (0,1)),
    total           TEXT NOT NULL CHECK (CAST(total AS REAL) >= 0),
    discount_amount TEXT NOT NULL DEFAULT '0.00' CHECK (CAST(discount_amount AS REAL) >= 0),
    tax_amount      TEXT NOT NULL DEFAULT '0.00' CHECK (CAST(tax_amount AS REAL) >= 0),
    total_after_tax TEXT NOT NULL CHECK (CAST(total_after_tax AS REAL) >= 0),
    amount_paid     TEXT NOT NULL DEFAULT '0.00' CHECK (CAST(amount_paid AS REAL) >= 0),

    status         TEXT NOT NULL CHECK (status IN ('Paid','Unpaid','Cancelled')),
    due_date       DATE,
    notes          TEXT,
    created_by     TEXT,
    created_at     TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at     TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,

    CHECK (status <> 'Unpaid' OR due_date IS NOT NULL),
    CHECK (CAST(amount_paid AS REAL) <= CAST(total_after_tax AS REAL)),
    FOREIGN KEY (customer_id) REFERENCES customers(customer_id)
);
CREATE INDEX IF NOT EXISTS idx_sales_date   ON sales(date);
CREATE INDEX IF NOT EXISTS idx_sales_status ON sales(status);

CREATE TABLE IF NOT EXISTS sale_items (
    item_id             INTEGER PRIMARY KEY AUTOINCREMENT,
    sale_id             INTEGER NOT NULL,
    supplier_product_id INTEGER NOT NULL,
    qty                 INTEGER NOT NULL CHECK (qty > 0),
    price               TEXT NOT NULL CHECK (CAST(price AS REAL) >= 0),
    subtotal            TEXT NOT NULL CHECK (CAST(subtotal AS REAL) >= 0),
    FOREIGN KEY (sale_id)             REFERENCES sales(sale_id) ON DELETE CASCADE,
    FOREIGN KEY (supplier_product_id) REFERENCES supplier_products(supplier_product_id)
);
CREATE INDEX IF NOT EXISTS idx_sale_items_sale ON sale_items(sale_id);

/* receivables ledger: append-only */
CREATE TABLE IF NOT EXISTS sale_payments (
    payment_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    sale_id     INTEGER NOT NULL,
    date        DATE NOT NULL DEFAULT CURRENT_DATE,
    amount      TEXT NOT NULL CHECK (CAST(amount AS REAL) > 0),
    method      TEXT NOT NULL CHECK (method IN ('Cash','Transfer')),
    payer_name  TEXT NOT NULL,
    created_at  TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (sale_id) REFERENCES sales(sale_id)
);
CREATE INDEX IF NOT EXISTS idx_sale_payments_sale ON sale_payments(sale_id);

/* ======================== PURCHASES ======================== */

CREATE TABLE IF NOT EXISTS purchases (
    purchase_id    INTEGER PRIMARY KEY AUTOINCREMENT,
    supplier_id    INTEGER NOT NULL,
    date           DATE NOT NULL,
    invoice_no     TEXT,
    npb_no         TEXT,
    do_no          TEXT,
    payment_method TEXT NOT NULL DEFAULT 'Cash' CHECK (payment_method IN ('Cash','Transfer')),
    bank_name      TEXT,
    account_holder TEXT,
    account_number TEXT,
    total          TEXT NOT NULL CHECK (CAST(total AS REAL) >= 0),
    status         TEXT NOT NULL CHECK (status IN ('Pending','Completed','Decline')),
    notes          TEXT,
    created_at     TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at     TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    CHECK (
        (payment_method = 'Transfer' AND bank_name IS NOT NULL AND account_number IS NOT NULL
                                     AND account_holder IS NOT NULL)
     OR (payment_method = 'Cash' AND bank_name IS NULL AND account_number IS NULL
                                 AND account_holder IS NULL)
    ),
    FOREIGN KEY (supplier_id) REFERENCES suppliers(supplier_id)
);
CREATE INDEX IF NOT EXISTS idx_purchases_date   ON purchases(date);
CREATE INDEX IF NOT EXISTS idx_purchases_status ON purchases(status);

CREATE TABLE IF NOT EXISTS purchase_items (
    item_id             INTEGER PRIMARY KEY AUTOINCREMENT,
    purchase_id         INTEGER NOT NULL,
    supplier_product_id INTEGER NOT NULL,
    qty                 INTEGER NOT NULL CHECK (qty > 0),
    price               TEXT NOT NULL CHECK (CAST(price AS REAL) >= 0),
    subtotal            TEXT NOT NULL CHECK (CAST(subtotal AS REAL) >= 0),
    FOREIGN KEY (purchase_id)         REFERENCES purchases(purchase_id) ON DELETE CASCADE,
    FOREIGN KEY (supplier_product_id) REFERENCES supplier_products(supplier_product_id)
);
CREATE INDEX IF NOT EXISTS idx_purchase_items_purchase ON purchase_items(purchase_id);

/* ======================== DELIVERY ORDERS ======================== */

CREATE TABLE IF NOT EXISTS delivery_orders (
    do_id       INTEGER PRIMARY KEY AUTOINCREMENT,
    sale_id     INTEGER NOT NULL UNIQUE,
    do_no       TEXT,
    receipt_no  TEXT,
    status      TEXT NOT NULL DEFAULT 'Draft'
                CHECK (status IN ('Draft','Shipped','Received','Cancelled')),
    address     TEXT,
    notes       TEXT,
    shipped_at  TIMESTAMP,
    received_at TIMESTAMP,
    created_at  TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at  TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (sale_id) REFERENCES sales(sale_id)
);
CREATE INDEX IF NOT EXISTS idx_delivery_orders_status ON delivery_orders(status);

/* ======================== LEDGERS & COUNTERS ======================== */

CREATE TABLE IF NOT EXISTS stock_movements (
    movement_id         INTEGER PRIMARY KEY AUTOINCREMENT,
    supplier_product_id INTEGER NOT NULL,
    delta               INTEGER NOT NULL CHECK (delta <> 0),
    quantity_after      INTEGER NOT NULL CHECK (quantity_after >= 0),
    reason              TEXT NOT NULL CHECK (reason IN
                          ('sale','sale_edit','sale_cancel','purchase','purchase_receive','adjustment')),
    reference_table     TEXT,
    reference_id        INTEGER,
    created_at          TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (supplier_product_id) REFERENCES supplier_products(supplier_product_id)
);
CREATE INDEX IF NOT EXISTS idx_stock_movements_sp ON stock_movements(supplier_product_id);

/* reserved daily counters for INV/NPB/DO numbers */
CREATE TABLE IF NOT EXISTS document_sequences (
    kind       TEXT NOT NULL CHECK (kind IN ('INV','NPB','DO')),
    seq_date   DATE NOT NULL,
    last_value INTEGER NOT NULL CHECK (last_value > 0),
    PRIMARY KEY (kind, seq_date)
);

/* ======================== APPEND-ONLY GUARDS ======================== */

DROP TRIGGER IF EXISTS trg_sale_payments_no_update;
CREATE TRIGGER trg_sale_payments_no_update
BEFORE UPDATE ON sale_payments
BEGIN
  SELECT RAISE(ABORT, 'sale_payments is append-only');
END;

DROP TRIGGER IF EXISTS trg_sale_payments_no_delete;
CREATE TRIGGER trg_sale_payments_no_delete
BEFORE DELETE ON sale_payments
BEGIN
  SELECT RAISE(ABORT, 'sale_payments is append-only');
END;

DROP TRIGGER IF EXISTS trg_stock_movements_no_update;
CREATE TRIGGER trg_stock_movements_no_update
BEFORE UPDATE ON stock_movements
BEGIN
  SELECT RAISE(ABORT, 'stock_movements is append-only');
END;

DROP TRIGGER IF EXISTS trg_stock_movements_no_delete;
CREATE TRIGGER trg_stock_movements_no_delete
BEFORE DELETE ON stock_movements
BEGIN
  SELECT RAISE(ABORT, 'stock_movements is append-only');
END;

DROP TRIGGER IF EXISTS trg_disallow_payments_on_cancelled_sales;
CREATE TRIGGER trg_disallow_payments_on_cancelled_sales
BEFORE INSERT ON sale_payments
FOR EACH ROW
WHEN (SELECT status FROM sales WHERE sale_id = NEW.sale_id) = 'Cancelled'
BEGIN
  SELECT RAISE(ABORT, 'Payments are not allowed on cancelled sales');
END;

/* ======================== STATUS TRANSITION GUARDS ======================== */

DROP TRIGGER IF EXISTS trg_sales_cancelled_is_terminal;
CREATE TRIGGER trg_sales_cancelled_is_terminal
BEFORE UPDATE OF status ON sales
FOR EACH ROW
WHEN OLD.status = 'Cancelled' AND NEW.status <> 'Cancelled'
BEGIN
  SELECT RAISE(ABORT, 'Cancelled sales cannot change status');
END;

DROP TRIGGER IF EXISTS trg_purchases_status_guard;
CREATE TRIGGER trg_purchases_status_guard
BEFORE UPDATE OF status ON purchases
FOR EACH ROW
WHEN OLD.status <> NEW.status AND OLD.status <> 'Pending'
BEGIN
  SELECT RAISE(ABORT, 'Only pending purchases can change status');
END;

DROP TRIGGER IF EXISTS trg_delivery_orders_status_guard;
CREATE TRIGGER trg_delivery_orders_status_guard
BEFORE UPDATE OF status ON delivery_orders
FOR EACH ROW
WHEN OLD.status <> NEW.status AND NOT (
     (OLD.status = 'Draft'   AND NEW.status IN ('Shipped','Cancelled'))
  OR (OLD.status = 'Shipped' AND NEW.status IN ('Received','Cancelled'))
)
BEGIN
  SELECT RAISE(ABORT, 'Invalid delivery order status transition');
END;
"""


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply the (idempotent) schema on an open connection."""
    conn.executescript(SQL)


def init_schema(db_path: Path | str = "backoffice.db") -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        conn.execute("PRAGMA journal_mode=WAL;")
        apply_schema(conn)
        conn.commit()
    finally:
        conn.close()
    print(f"✓ DB applied to {db_path}")


if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else Path(__file__).resolve().parents[1] / "data" / "backoffice.db"
    init_schema(target)
