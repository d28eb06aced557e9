# database/repositories/errors.py
"""
Domain errors raised by the repositories.

Every class derives from DomainError so a controller can catch one type and
surface the message to the user unchanged. None of these are retried.
"""
from __future__ import annotations


class DomainError(Exception):
    """Domain-level error the controller can surface directly."""
    pass


class ValidationError(DomainError):
    """Malformed or missing input (missing due date, overpayment, money overflow, ...)."""
    pass


class InsufficientStockError(DomainError):
    def __init__(self, supplier_product_id: int, available: int, requested: int | None = None):
        self.supplier_product_id = supplier_product_id
        self.available = available
        self.requested = requested
        msg = f"Insufficient stock for supplier product {supplier_product_id}: {available} remaining"
        if requested is not None:
            msg += f", {requested} requested"
        super().__init__(msg + ".")


class NotFoundError(DomainError):
    def __init__(self, entity: str, key):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}")


class InvalidStatusTransitionError(DomainError):
    def __init__(self, entity: str, current: str, requested: str, detail: str | None = None):
        self.entity = entity
        self.current = current
        self.requested = requested
        if detail:
            super().__init__(f"{entity} is {current}; {detail}")
        else:
            super().__init__(f"{entity} cannot move from {current} to {requested}.")


class ConcurrencyConflictError(DomainError):
    """The row changed between read and guarded write (status/amount no longer matches)."""
    pass


def validated(fn, *args, **kwargs):
    """Call a utils.validators parser, re-raising its ValueError as ValidationError."""
    try:
        return fn(*args, **kwargs)
    except ValueError as e:
        raise ValidationError(str(e)) from None
