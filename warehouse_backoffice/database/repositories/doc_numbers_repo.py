from __future__ import annotations

import re
import sqlite3
from datetime import date as date_cls, datetime
from typing import Optional, Union

from .. import transaction
from ...constants import DOC_KINDS
from ...utils.helpers import to_date
from .errors import ValidationError

SEQ_MAX = 9999

_NUMBER_RE = re.compile(r"^([A-Z]+)/(\d{8})/(\d{4})$")


class DocNumbersRepo:
    """
    Human-readable document numbers: PREFIX/YYYYMMDD/NNNN.

    The daily sequence per kind lives in document_sequences and is reserved
    with a single upsert, so two callers issuing numbers for the same day
    always get different values. A reservation made inside a caller's
    transaction rolls back with it.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    @staticmethod
    def format(kind: str, day: date_cls, seq: int) -> str:
        if not 1 <= seq <= SEQ_MAX:
            raise ValidationError(
                f"No {kind} numbers left for {day:%Y-%m-%d}: the daily sequence stops at {SEQ_MAX}."
            )
        return f"{kind}/{day:%Y%m%d}/{seq:04d}"

    @staticmethod
    def _check(kind: str, date) -> date_cls:
        if kind not in DOC_KINDS:
            raise ValidationError(f"Unknown document kind: {kind}. Allowed: {', '.join(DOC_KINDS)}")
        try:
            return to_date(date)
        except ValueError:
            raise ValidationError(f"Invalid document date: {date!r}") from None

    def next(self, kind: str, date: Optional[Union[date_cls, datetime, str]] = None) -> str:
        day = self._check(kind, date)
        with transaction(self.conn):
            self.conn.execute(
                """
                INSERT INTO document_sequences (kind, seq_date, last_value)
                VALUES (?, ?, 1)
                ON CONFLICT(kind, seq_date) DO UPDATE SET last_value = last_value + 1
                """,
                (kind, day.isoformat()),
            )
            row = self.conn.execute(
                "SELECT last_value FROM document_sequences WHERE kind=? AND seq_date=?",
                (kind, day.isoformat()),
            ).fetchone()
            # raising here undoes the reservation
            return self.format(kind, day, int(row["last_value"]))

    def claim(self, number: Optional[str]) -> bool:
        """
        Advance the daily counter past a number that was typed in by hand.

        Only numbers shaped like our own (known prefix, valid date, four
        digits) move the counter; anything else is left alone. Returns True
        when the counter was touched.
        """
        m = _NUMBER_RE.match((number or "").strip())
        if m is None or m.group(1) not in DOC_KINDS:
            return False
        try:
            day = datetime.strptime(m.group(2), "%Y%m%d").date()
        except ValueError:
            return False
        seq = int(m.group(3))
        if seq < 1:
            return False
        with transaction(self.conn):
            self.conn.execute(
                """
                INSERT INTO document_sequences (kind, seq_date, last_value)
                VALUES (?, ?, ?)
                ON CONFLICT(kind, seq_date) DO UPDATE
                   SET last_value = MAX(last_value, excluded.last_value)
                """,
                (m.group(1), day.isoformat(), seq),
            )
        return True

    def peek(self, kind: str, date: Optional[Union[date_cls, datetime, str]] = None) -> str:
        """Number the next call to next() would issue (display only; reserves nothing)."""
        day = self._check(kind, date)
        row = self.conn.execute(
            "SELECT last_value FROM document_sequences WHERE kind=? AND seq_date=?",
            (kind, day.isoformat()),
        ).fetchone()
        return self.format(kind, day, (int(row["last_value"]) if row else 0) + 1)
