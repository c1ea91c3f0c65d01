from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal
from retailpos.time_utils import parse_iso_datetime, parse_range_bound

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .money import MoneyError, to_decimal


# Maximum price: 9,999,999.99
MAX_PRICE = Decimal("9999999.99")

# Largest value an SQLite INTEGER column holds
MAX_DB_INT = 2**63 - 1


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate barcode)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _bounded_int(field: str, value: int) -> int:
    if abs(value) > MAX_DB_INT:
        raise ValidationError(f"{field} is too large")
    return value


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return _bounded_int(col.key, value)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                number = int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
            return _bounded_int(col.key, number)
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        raise ValidationError(f"{col.key} must be an integer")

    # Fixed-point amounts
    if isinstance(coltype, Numeric):
        try:
            amount = to_decimal(value, field=col.key)
        except MoneyError as e:
            raise ValidationError(str(e))
        if coltype.scale is not None and amount.as_tuple().exponent < -coltype.scale:
            raise ValidationError(f"{col.key} allows at most {coltype.scale} decimal places")
        return amount

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes")
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for field in ("price", "cost"):
        amount = patch.get(field)
        if amount is None:
            continue
        if amount < 0:
            raise ValidationError(f"{field} must be >= 0")
        if amount > MAX_PRICE:
            raise ValidationError(f"{field} cannot exceed {MAX_PRICE}")

    for field in ("stock_quantity", "min_stock_level"):
        if field in patch and patch[field] is not None and patch[field] < 0:
            raise ValidationError(f"{field} must be >= 0")


def require_positive_int(value: Any, field: str) -> int:
    """Quantities on sale lines and restocks: strict positive integers."""
    if isinstance(value, bool) or not isinstance(value, int):
        if isinstance(value, str) and value.strip().isdigit():
            value = int(value.strip())
        else:
            raise ValidationError(f"{field} must be a positive integer")
    if value <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    if value > MAX_DB_INT:
        raise ValidationError(f"{field} is too large")
    return value


def require_non_negative_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        if isinstance(value, str) and value.strip().isdigit():
            value = int(value.strip())
        else:
            raise ValidationError(f"{field} must be a non-negative integer")
    if value < 0:
        raise ValidationError(f"{field} must be a non-negative integer")
    if value > MAX_DB_INT:
        raise ValidationError(f"{field} is too large")
    return value


def parse_date_param(value: str | None, field: str):
    """Query-string date ("YYYY-MM-DD"); None when absent."""
    if value is None or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)")


def parse_datetime_param(value: str | None, field: str, *, end: bool = False) -> datetime | None:
    """Query-string range bound; a bare date as end bound covers that whole day."""
    try:
        return parse_range_bound(value, end=end)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date or datetime")
