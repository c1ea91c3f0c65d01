"""
Fixed-point money helpers.

Amounts are computed with Decimal and stored in Numeric columns. JSON
responses render them as plain numbers for the mobile client.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation

ZERO = Decimal("0")


class MoneyError(ValueError):
    """Raised when a value cannot be read as an amount."""


def to_decimal(value, field: str = "amount") -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise MoneyError(f"{field} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        # go through repr so 1.99 stays 1.99 rather than its binary expansion
        result = Decimal(repr(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise MoneyError(f"{field} must be a number")
    # NaN and Infinity parse fine but are not amounts
    if not result.is_finite():
        raise MoneyError(f"{field} must be a number")
    return result


def to_number(value) -> float | None:
    if value is None:
        return None
    return float(value)
