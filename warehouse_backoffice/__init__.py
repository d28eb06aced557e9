"""Warehouse back-office transaction engine (stock, sales, purchases, receivables, delivery)."""

__version__ = "0.1.0"
