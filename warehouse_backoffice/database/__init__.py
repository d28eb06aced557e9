# database/__init__.py
from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from itertools import count
from pathlib import Path
import logging
import sqlite3
import time
from typing import Iterator

from ..config import DB_PATH, BUSY_TIMEOUT, TX_BEGIN_RETRIES, TX_RETRY_DELAY
from ..constants import TABLE_SCHEMA_VERSION, SCHEMA_VERSION
from . import schema as schema_module

_log = logging.getLogger(__name__)

# Decimals bind as their canonical string ("1000.00"); money columns are TEXT.
sqlite3.register_adapter(Decimal, str)

_savepoints = count(1)


def _ensure_version_table(conn: sqlite3.Connection) -> None:
    conn.execute(f"""
        CREATE TABLE IF NOT EXISTS {TABLE_SCHEMA_VERSION}(
            id INTEGER PRIMARY KEY CHECK (id=1),
            version TEXT NOT NULL
        );
    """)
    row = conn.execute(
        f"SELECT version FROM {TABLE_SCHEMA_VERSION} WHERE id=1;"
    ).fetchone()
    if row is None:
        conn.execute(
            f"INSERT INTO {TABLE_SCHEMA_VERSION}(id, version) VALUES (1, ?);",
            (SCHEMA_VERSION,),
        )


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    """
    Returns a sqlite3.Connection with:
      - WAL mode (file databases)
      - foreign_keys ON
      - row_factory = sqlite3.Row (so rows behave like dicts and tuples)
      - a busy timeout so concurrent writers queue instead of failing
    Ensures the schema is applied idempotently.
    """
    target = DB_PATH if db_path is None else db_path
    in_memory = str(target) == ":memory:"
    if not in_memory:
        Path(target).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(target), timeout=BUSY_TIMEOUT)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    if not in_memory:
        conn.execute("PRAGMA journal_mode = WAL;")

    # CREATE IF NOT EXISTS / DROP TRIGGER IF EXISTS throughout
    schema_module.apply_schema(conn)
    _ensure_version_table(conn)

    conn.commit()
    return conn


def _begin_immediate(conn: sqlite3.Connection) -> None:
    """
    Open a write transaction, taking the writer lock up front.

    A locked/busy database is the one storage error retried here: no write has
    been attempted yet, so trying again cannot double-apply anything.
    """
    attempt = 0
    while True:
        try:
            conn.execute("BEGIN IMMEDIATE")
            return
        except sqlite3.OperationalError as e:
            msg = str(e).lower()
            if ("locked" not in msg and "busy" not in msg) or attempt >= TX_BEGIN_RETRIES:
                raise
            attempt += 1
            _log.warning("BEGIN IMMEDIATE failed (%s); retry %d/%d", e, attempt, TX_BEGIN_RETRIES)
            time.sleep(TX_RETRY_DELAY * attempt)


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """
    One atomic unit of work: commit on success, rollback on any exception.

    Inside an already-open transaction this becomes a SAVEPOINT, so a
    repository method can be composed into a caller's larger transaction and
    still roll back only its own writes on failure.
    """
    if conn.in_transaction:
        name = f"sp_{next(_savepoints)}"
        conn.execute(f"SAVEPOINT {name}")
        try:
            yield conn
        except BaseException:
            conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
            conn.execute(f"RELEASE SAVEPOINT {name}")
            raise
        conn.execute(f"RELEASE SAVEPOINT {name}")
        return

    _begin_immediate(conn)
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    conn.commit()


__all__ = [
    "get_connection",
    "transaction",
]
