from dataclasses import dataclass
import sqlite3

from .. import transaction
from .errors import NotFoundError, ValidationError


@dataclass
class Supplier:
    supplier_id: int | None
    name: str
    address: str | None
    phone: str | None


class SuppliersRepo:
    def __init__(self, conn: sqlite3.Connection):
        # ensure rows behave like dicts/tuples
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def list_suppliers(self) -> list[Supplier]:
        rows = self.conn.execute(
            "SELECT supplier_id, name, address, phone FROM suppliers ORDER BY supplier_id DESC"
        ).fetchall()
        return [Supplier(**dict(r)) for r in rows]

    def get(self, supplier_id: int) -> Supplier | None:
        r = self.conn.execute(
            "SELECT supplier_id, name, address, phone FROM suppliers WHERE supplier_id=?",
            (supplier_id,)
        ).fetchone()
        return Supplier(**dict(r)) if r else None

    def require(self, supplier_id: int) -> Supplier:
        s = self.get(supplier_id)
        if s is None:
            raise NotFoundError("Supplier", supplier_id)
        return s

    def create(self, name: str, address: str | None = None, phone: str | None = None) -> int:
        if not name or not name.strip():
            raise ValidationError("Supplier name cannot be empty.")
        with transaction(self.conn):
            cur = self.conn.execute(
                "INSERT INTO suppliers(name, address, phone) VALUES (?, ?, ?)",
                (name.strip(), address, phone)
            )
        return int(cur.lastrowid)

    def update(self, supplier_id: int, name: str, address: str | None, phone: str | None):
        if not name or not name.strip():
            raise ValidationError("Supplier name cannot be empty.")
        with transaction(self.conn):
            cur = self.conn.execute(
                "UPDATE suppliers SET name=?, address=?, phone=? WHERE supplier_id=?",
                (name.strip(), address, phone, supplier_id)
            )
            if cur.rowcount == 0:
                raise NotFoundError("Supplier", supplier_id)
