# utils/validators.py
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from ..constants import MONEY_MAX, MONEY_PLACES


def non_empty(text: str) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


# ---- Money ----

def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def _to_decimal(x):
    # floats go through str() so 0.1 stays 0.1 rather than its binary expansion
    if x is None or isinstance(x, bool):
        return None
    try:
        d = x if isinstance(x, Decimal) else Decimal(str(x).strip())
    except (InvalidOperation, ValueError):
        return None
    return d if d.is_finite() else None


def _exact_cents(d: Decimal):
    """`d` as a 2-place Decimal, or None when that would change its value."""
    try:
        q = quantize_money(d)
    except InvalidOperation:
        return None
    return q if q == d else None


def try_parse_money(x):
    """
    Best-effort parse to a 2-place Decimal.

    Returns:
        (ok: bool, value: Decimal|None)

    Booleans, non-finite values and anything finer than a cent ("600.004")
    are rejected; "600.000" is fine.
    """
    d = _to_decimal(x)
    if d is None:
        return False, None
    q = _exact_cents(d)
    return (q is not None), q


def parse_money(x, label: str = "Amount") -> Decimal:
    """
    Strict parse to a 2-place Decimal; raises ValueError with a clear message on failure.
    """
    d = _to_decimal(x)
    if d is None:
        raise ValueError(f"{label} is not a valid number: {x!r}.")
    if abs(d) > MONEY_MAX:
        raise ValueError(f"{label} is too large. Maximum is {MONEY_MAX:,}.")
    q = _exact_cents(d)
    if q is None:
        raise ValueError(f"{label} cannot have more than two decimal places: {x!r}.")
    return q


def assert_valid_money(x, label: str = "Amount") -> Decimal:
    """
    Parse and range-check a money field: finite, >= 0 and <= 999,999,999,999.99.

    Anything out of range is rejected rather than truncated.
    """
    val = parse_money(x, label)
    if val < 0:
        raise ValueError(f"{label} cannot be negative.")
    if val > MONEY_MAX:
        raise ValueError(f"{label} is too large. Maximum is {MONEY_MAX:,}.")
    return val


# ---- Quantities ----

def parse_qty(x, label: str = "Quantity") -> int:
    """
    Strict parse to a strictly positive integer quantity.
    Accepts ints and integral strings/decimals ("3", "3.0"); rejects fractions.
    """
    if isinstance(x, bool):
        raise ValueError(f"{label} must be a whole number.")
    try:
        d = Decimal(str(x).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"{label} must be a whole number.") from None
    if not d.is_finite() or d != d.to_integral_value():
        raise ValueError(f"{label} must be a whole number.")
    q = int(d)
    if q <= 0:
        raise ValueError(f"{label} must be greater than zero.")
    return q

