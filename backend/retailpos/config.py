# backend/retailpos/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # "development" or "production"
    POS_ENV = os.environ.get("POS_ENV", "development")

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Bearer tokens for the mobile client
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET", SECRET_KEY)
    JWT_ALGORITHM = "HS256"
    JWT_EXPIRES_HOURS = int(os.environ.get("JWT_EXPIRES_HOURS", "24"))

    # SQLite DB stored in backend/instance/pos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///pos.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Generated artifacts
    RECEIPTS_DIR = os.environ.get("RECEIPTS_DIR", os.path.join(os.getcwd(), "receipts"))
    EXPORTS_DIR = os.environ.get("EXPORTS_DIR", os.path.join(os.getcwd(), "exports"))

    BCRYPT_LOG_ROUNDS = int(os.environ.get("BCRYPT_LOG_ROUNDS", "12"))

    # Underlying error text is passed to clients outside production
    EXPOSE_ERROR_DETAILS = _env_flag("EXPOSE_ERROR_DETAILS", POS_ENV != "production")

    CORS_ALLOWED_ORIGINS = [
        o.strip()
        for o in os.environ.get("CORS_ALLOWED_ORIGINS", "*").split(",")
        if o.strip()
    ]

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
