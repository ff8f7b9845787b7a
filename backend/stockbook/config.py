# backend/stockbook/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockbook.sqlite3 unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///stockbook.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Business day used for invoice numbering and sales reports (not UTC)
    BUSINESS_TIMEZONE = os.environ.get("BUSINESS_TIMEZONE", "Asia/Kolkata")

    INVOICE_PREFIX = os.environ.get("INVOICE_PREFIX", "INV")
    INVOICE_SERIAL_WIDTH = 4

    # Applied when a user has not configured a tax rate in shop settings
    DEFAULT_TAX_RATE = float(os.environ.get("DEFAULT_TAX_RATE", "18.0"))

    # Upper bound on waiting for a row lock held by another invoice transaction
    LOCK_TIMEOUT_SECONDS = float(os.environ.get("LOCK_TIMEOUT_SECONDS", "5"))
    TRANSACTION_RETRY_ATTEMPTS = 3

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))
    BCRYPT_ROUNDS = 12

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    CORS_ALLOWED_ORIGINS = tuple(
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    )


def engine_options_for(database_uri: str, lock_timeout_seconds: float) -> dict:
    """SQLAlchemy engine options for the configured database."""
    if database_uri.startswith("sqlite"):
        return {
            "connect_args": {
                "timeout": lock_timeout_seconds,
                "check_same_thread": False,
            },
        }
    return {"pool_pre_ping": True}
