# backend/tillflow/config.py
from __future__ import annotations
import os


def _csv(value: str | None) -> tuple[str, ...] | None:
    if value is None:
        return None
    return tuple(part.strip() for part in value.split(",") if part.strip())


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the backend by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///tillflow.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Staff idle policy (per-shop Shop.idle_timeout_minutes wins when set)
    STAFF_IDLE_TIMEOUT_MINUTES = int(os.environ.get("STAFF_IDLE_TIMEOUT_MINUTES", "15"))
    IDLE_WARNING_SECONDS = int(os.environ.get("IDLE_WARNING_SECONDS", "90"))
    # Unset: role defaults (chef). Empty string: nobody is exempt
    IDLE_TIMEOUT_EXEMPT_ROLES = _csv(os.environ.get("IDLE_TIMEOUT_EXEMPT_ROLES"))

    # PIN login
    PIN_LENGTH = int(os.environ.get("PIN_LENGTH", "4"))
    PIN_HASH_ROUNDS = int(os.environ.get("PIN_HASH_ROUNDS", "10"))
    PIN_MAX_FAILED_ATTEMPTS = int(os.environ.get("PIN_MAX_FAILED_ATTEMPTS", "5"))
    PIN_LOCKOUT_MINUTES = int(os.environ.get("PIN_LOCKOUT_MINUTES", "15"))

    # Cookie carrying {"shop_id": ..., "staff_id": ...} for terminal mode
    STAFF_SESSION_COOKIE = os.environ.get("STAFF_SESSION_COOKIE", "pos_staff_session")
