# database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from warehouse_backoffice.database.repositories import (
        # Errors
        DomainError, ValidationError, InsufficientStockError, NotFoundError,
        InvalidStatusTransitionError, ConcurrencyConflictError,
        # Stock ledger / document numbers
        StockRepo, DocNumbersRepo,
        # Parties and catalog
        CustomersRepo, Customer, SuppliersRepo, Supplier,
        ProductsRepo, Product, SupplierProduct,
        # Sales
        SalesRepo, SaleHeader, SaleItem, SalePaymentsRepo,
        # Purchases
        PurchasesRepo, PurchaseHeader, PurchaseItem,
        # Delivery orders
        DeliveryOrdersRepo,
        # Documents
        ReportingRepo,
    )
"""

# ---------------- Errors ----------------
from .errors import (
    DomainError,
    ValidationError,
    InsufficientStockError,
    NotFoundError,
    InvalidStatusTransitionError,
    ConcurrencyConflictError,
)

# ---------------- Ledgers ----------------
from .stock_repo import StockRepo
from .doc_numbers_repo import DocNumbersRepo

# ---------------- Parties / catalog ----------------
from .customers_repo import CustomersRepo, Customer
from .suppliers_repo import SuppliersRepo, Supplier
from .products_repo import ProductsRepo, Product, SupplierProduct

# ---------------- Sales ----------------
from .sales_repo import SalesRepo, SaleHeader, SaleItem, SaleTotals, compute_totals
from .sale_payments_repo import SalePaymentsRepo

# ---------------- Purchases ----------------
from .purchases_repo import PurchasesRepo, PurchaseHeader, PurchaseItem

# ---------------- Delivery orders ----------------
from .delivery_orders_repo import DeliveryOrdersRepo, ALLOWED_TRANSITIONS

# ---------------- Reporting ----------------
from .reporting_repo import ReportingRepo

__all__ = [
    # Errors
    "DomainError",
    "ValidationError",
    "InsufficientStockError",
    "NotFoundError",
    "InvalidStatusTransitionError",
    "ConcurrencyConflictError",
    # Ledgers
    "StockRepo",
    "DocNumbersRepo",
    # Parties / catalog
    "CustomersRepo",
    "Customer",
    "SuppliersRepo",
    "Supplier",
    "ProductsRepo",
    "Product",
    "SupplierProduct",
    # Sales
    "SalesRepo",
    "SaleHeader",
    "SaleItem",
    "SaleTotals",
    "compute_totals",
    "SalePaymentsRepo",
    # Purchases
    "PurchasesRepo",
    "PurchaseHeader",
    "PurchaseItem",
    # Delivery orders
    "DeliveryOrdersRepo",
    "ALLOWED_TRANSITIONS",
    # Reporting
    "ReportingRepo",
]
