# utils/helpers.py
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
import logging
from typing import Union, Optional

NumberLike = Union[Decimal, float, int, str]
DateLike = Union[date, datetime, str]

_log = logging.getLogger(__name__)


def now_str() -> str:
    """Return the current local timestamp as ISO string (seconds precision)."""
    return datetime.now().isoformat(timespec="seconds")


def to_date(value: Optional[DateLike]) -> date:
    """
    Normalize a date/datetime/ISO string to a `date`. None means today.

    Raises ValueError for strings that are not ISO dates.
    """
    if value is None:
        return date.today()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def to_iso_date(value: Optional[DateLike]) -> str:
    return to_date(value).isoformat()


def fmt_money(
    v: NumberLike,
    places: int = 2,
    *,
    strict: bool = False,
    sentinel: Optional[str] = None,
) -> str:
    """
    Format a number as money with thousands separators and a fixed number of decimals.

    Behavior on parse failure:
      - By default (strict=False, sentinel=None), returns str(v).
      - If `sentinel` is provided (e.g., "N/A"), returns that sentinel instead.
      - If `strict=True`, raises ValueError on parse failures.
    """
    try:
        x = Decimal(str(v))
    except (InvalidOperation, ValueError) as e:
        _log.debug("fmt_money: failed to parse %r as decimal: %s", v, e)
        if strict:
            raise ValueError(f"Could not parse {v!r} as a number.") from e
        return str(sentinel) if sentinel is not None else str(v)
    return f"{x:,.{places}f}"
