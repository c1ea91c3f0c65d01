from __future__ import annotations

from decimal import Decimal
from typing import Any

from ..extensions import db
from ..models import Setting
from ..money import MoneyError, to_decimal


DEFAULT_SETTINGS: dict[str, str] = {
    "tax_rate": "0.10",
    "currency": "USD",
    "currency_symbol": "$",
    "receipt_header": "Retail Store",
    "receipt_footer": "Thank you for your business!",
    "low_stock_threshold": "10",
    "receipt_format": "standard",
}

DEFAULT_TAX_RATE = Decimal("0.10")
DEFAULT_LOW_STOCK_THRESHOLD = 10

MAX_KEY_LENGTH = 64


class SettingsError(ValueError):
    pass


class SettingsValidationError(SettingsError):
    pass


class SettingsNotFoundError(SettingsError):
    pass


def _normalize_value(key: str, value: Any) -> str:
    """Validate a value for its key and return the string to store."""
    if value is None:
        raise SettingsValidationError("Value is required")
    if isinstance(value, (dict, list)):
        raise SettingsValidationError(f"{key} must be a scalar value")
    if isinstance(value, bool):
        value = "true" if value else "false"

    if key == "tax_rate":
        try:
            rate = to_decimal(value, field="tax_rate")
        except MoneyError:
            raise SettingsValidationError("Tax rate must be between 0 and 1")
        if rate < 0 or rate > 1:
            raise SettingsValidationError("Tax rate must be between 0 and 1")
        if rate.as_tuple().exponent < -4:
            raise SettingsValidationError("Tax rate allows at most 4 decimal places")
        return str(value).strip()

    if key == "low_stock_threshold":
        raw = str(value).strip()
        if isinstance(value, float) or not raw.isdigit():
            raise SettingsValidationError("Low stock threshold must be a non-negative integer")
        return str(int(raw))

    return str(value)


def _validate_key(key: str) -> str:
    key = (key or "").strip()
    if not key:
        raise SettingsValidationError("Setting key is required")
    if len(key) > MAX_KEY_LENGTH:
        raise SettingsValidationError(f"Setting key exceeds max length {MAX_KEY_LENGTH}")
    return key


def _upsert(key: str, value: str) -> Setting:
    setting = db.session.get(Setting, key)
    if setting is None:
        setting = Setting(key=key, value=value)
        db.session.add(setting)
    else:
        setting.value = value
    return setting


def ensure_defaults() -> int:
    """Insert any missing default settings without touching existing ones."""
    created = 0
    for key, value in DEFAULT_SETTINGS.items():
        if db.session.get(Setting, key) is None:
            db.session.add(Setting(key=key, value=value))
            created += 1
    db.session.commit()
    return created


def get_all_settings() -> dict[str, dict]:
    rows = db.session.query(Setting).order_by(Setting.key.asc()).all()
    return {
        row.key: {"value": row.value, "updated_at": row.to_dict()["updated_at"]}
        for row in rows
    }


def get_setting(key: str) -> Setting:
    setting = db.session.get(Setting, key)
    if setting is None:
        raise SettingsNotFoundError("Setting not found")
    return setting


def get_value(key: str, default: str | None = None) -> str | None:
    setting = db.session.get(Setting, key)
    return setting.value if setting is not None else default


def get_values() -> dict[str, str]:
    """All settings as a flat dict, defaults filled in for missing keys."""
    values = dict(DEFAULT_SETTINGS)
    for row in db.session.query(Setting).all():
        values[row.key] = row.value
    return values


def get_tax_rate() -> Decimal:
    """Current tax rate; 10% when unset or unreadable."""
    raw = get_value("tax_rate")
    if raw is None:
        return DEFAULT_TAX_RATE
    try:
        return to_decimal(raw, field="tax_rate")
    except MoneyError:
        return DEFAULT_TAX_RATE


def get_low_stock_threshold() -> int:
    raw = get_value("low_stock_threshold")
    if raw is None:
        return DEFAULT_LOW_STOCK_THRESHOLD
    try:
        return int(raw)
    except ValueError:
        return DEFAULT_LOW_STOCK_THRESHOLD


def set_setting(key: str, value: Any) -> Setting:
    key = _validate_key(key)
    normalized = _normalize_value(key, value)
    setting = _upsert(key, normalized)
    db.session.commit()
    return setting


def bulk_update(updates: dict[str, Any]) -> list[str]:
    """
    Apply several settings at once. Every entry is validated before any
    write, and all writes commit together.
    """
    if not isinstance(updates, dict) or not updates:
        raise SettingsValidationError("Settings object is required")

    normalized = {}
    for key, value in updates.items():
        key = _validate_key(key)
        normalized[key] = _normalize_value(key, value)

    try:
        for key, value in normalized.items():
            _upsert(key, value)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return list(normalized.keys())


def reset_to_defaults() -> dict[str, str]:
    for key, value in DEFAULT_SETTINGS.items():
        _upsert(key, value)
    db.session.commit()
    return dict(DEFAULT_SETTINGS)
