"""
Small helpers shared by the sale and purchase repositories.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional

from ...constants import PAY_TRANSFER, PAYMENT_METHODS
from ...utils.validators import non_empty
from .errors import ValidationError


def normalize_payment_details(
    method: str,
    bank_name: Optional[str],
    account_holder: Optional[str],
    account_number: Optional[str],
) -> tuple[str, Optional[str], Optional[str], Optional[str]]:
    """
    Validate a header's payment method and bank fields.

    Transfer requires all three bank fields; Cash must carry none of them
    (blank strings are treated as absent).
    """
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"Unknown payment method: {method}. Allowed: {', '.join(PAYMENT_METHODS)}")

    fields = [f.strip() if non_empty(f) else None for f in (bank_name, account_holder, account_number)]
    if method == PAY_TRANSFER:
        if not all(fields):
            raise ValidationError("Transfer payments require bank name, account holder and account number.")
    elif any(fields):
        raise ValidationError("Bank details are only allowed for Transfer payments.")
    return (method, *fields)


def decimalize(row, keys: Iterable[str]) -> dict:
    """dict(row) with the given TEXT money columns turned into Decimals."""
    d = dict(row)
    for k in keys:
        if d.get(k) is not None:
            d[k] = Decimal(d[k])
    return d
