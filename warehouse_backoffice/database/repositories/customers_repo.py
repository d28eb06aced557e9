from __future__ import annotations
from dataclasses import dataclass
import sqlite3

from .. import transaction
from .errors import NotFoundError, ValidationError


@dataclass
class Customer:
    customer_id: int | None
    name: str
    address: str | None
    phone: str | None
    is_active: int = 1


class CustomersRepo:
    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---- Internal helpers -------------------------------------------------

    @staticmethod
    def _normalize_text(s: str | None) -> str | None:
        if s is None:
            return None
        s = s.strip()
        return s or None

    @staticmethod
    def _ensure_non_empty(value: str | None, field_label: str) -> None:
        if value is None or value.strip() == "":
            raise ValidationError(f"{field_label} cannot be empty.")

    # ---- Queries ----------------------------------------------------------

    def list_customers(self, active_only: bool = True) -> list[Customer]:
        """
        Returns customers. By default, only active rows (is_active=1).
        """
        sql = "SELECT customer_id, name, address, phone, is_active FROM customers"
        if active_only:
            sql += " WHERE is_active = 1"
        rows = self.conn.execute(sql + " ORDER BY customer_id DESC").fetchall()
        return [Customer(**r) for r in rows]

    def get(self, customer_id: int) -> Customer | None:
        r = self.conn.execute(
            "SELECT customer_id, name, address, phone, is_active "
            "FROM customers WHERE customer_id=?",
            (customer_id,),
        ).fetchone()
        return Customer(**r) if r else None

    def require(self, customer_id: int) -> Customer:
        c = self.get(customer_id)
        if c is None:
            raise NotFoundError("Customer", customer_id)
        return c

    # ---- Mutations --------------------------------------------------------

    def create(self, name: str, address: str | None = None, phone: str | None = None) -> int:
        self._ensure_non_empty(name, "Name")
        with transaction(self.conn):
            cur = self.conn.execute(
                "INSERT INTO customers(name, address, phone) VALUES (?,?,?)",
                (self._normalize_text(name), self._normalize_text(address), self._normalize_text(phone)),
            )
        return int(cur.lastrowid)

    def update(self, customer_id: int, name: str, address: str | None, phone: str | None) -> None:
        self._ensure_non_empty(name, "Name")
        with transaction(self.conn):
            cur = self.conn.execute(
                "UPDATE customers SET name=?, address=?, phone=? WHERE customer_id=?",
                (self._normalize_text(name), self._normalize_text(address), self._normalize_text(phone), customer_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError("Customer", customer_id)

    def set_active(self, customer_id: int, active: bool) -> None:
        """Soft-delete/restore; customers referenced by sales are never hard-deleted."""
        with transaction(self.conn):
            cur = self.conn.execute(
                "UPDATE customers SET is_active=? WHERE customer_id=?",
                (1 if active else 0, customer_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError("Customer", customer_id)
