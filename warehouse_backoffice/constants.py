from decimal import Decimal

APP_NAME = "Warehouse Back-Office"

# ---- storage ----
DATA_DIR = "data"
DB_FILE_NAME = "backoffice.db"
TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1.0.0"

# ---- money ----
# DECIMAL(14,2) upper bound
MONEY_MAX = Decimal("999999999999.99")
MONEY_PLACES = Decimal("0.01")
TAX_RATE = Decimal("0.11")

# ---- sales ----
SALE_PAID = "Paid"
SALE_UNPAID = "Unpaid"
SALE_CANCELLED = "Cancelled"
SALE_STATUSES = (SALE_PAID, SALE_UNPAID, SALE_CANCELLED)

PICKUP = "Pickup"
DELIVERY = "Delivery"
PICKUP_METHODS = (PICKUP, DELIVERY)

# ---- purchases ----
PURCHASE_PENDING = "Pending"
PURCHASE_COMPLETED = "Completed"
PURCHASE_DECLINE = "Decline"
PURCHASE_STATUSES = (PURCHASE_PENDING, PURCHASE_COMPLETED, PURCHASE_DECLINE)

# ---- payment methods (sales header, purchases header, receivables) ----
PAY_CASH = "Cash"
PAY_TRANSFER = "Transfer"
PAYMENT_METHODS = (PAY_CASH, PAY_TRANSFER)

# ---- delivery orders ----
DO_DRAFT = "Draft"
DO_SHIPPED = "Shipped"
DO_RECEIVED = "Received"
DO_CANCELLED = "Cancelled"
DO_STATUSES = (DO_DRAFT, DO_SHIPPED, DO_RECEIVED, DO_CANCELLED)

# ---- document numbers ----
DOC_INVOICE = "INV"
DOC_NPB = "NPB"
DOC_DELIVERY_ORDER = "DO"
DOC_KINDS = (DOC_INVOICE, DOC_NPB, DOC_DELIVERY_ORDER)

# ---- price tiers ----
TIER_NORMAL = "normal"
TIER_WHOLESALE = "wholesale"
PRICE_TIERS = (TIER_NORMAL, TIER_WHOLESALE)

# ---- stock movement reasons ----
MOVE_SALE = "sale"
MOVE_SALE_EDIT = "sale_edit"
MOVE_SALE_CANCEL = "sale_cancel"
MOVE_PURCHASE = "purchase"
MOVE_PURCHASE_RECEIVE = "purchase_receive"
MOVE_ADJUSTMENT = "adjustment"
MOVE_REASONS = (
    MOVE_SALE,
    MOVE_SALE_EDIT,
    MOVE_SALE_CANCEL,
    MOVE_PURCHASE,
    MOVE_PURCHASE_RECEIVE,
    MOVE_ADJUSTMENT,
)
