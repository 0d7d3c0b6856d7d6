# backend/yomo/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/yomo.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///yomo.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Shop details printed on invoices
    STORE_NAME = os.environ.get("STORE_NAME", "Yomo")
    STORE_ADDRESS = os.environ.get("STORE_ADDRESS", "Manshiyet el Bakri, Cairo")
    STORE_PHONE = os.environ.get("STORE_PHONE", "0120 1675335")
    CURRENCY = os.environ.get("CURRENCY", "EGP")
    # IANA zone used for the dates printed on invoices
    STORE_TIMEZONE = os.environ.get("STORE_TIMEZONE", "Africa/Cairo")

    # Camera feed debounce window for repeated detections of the same code
    SCAN_COOLDOWN_MS = _env_int("SCAN_COOLDOWN_MS", 500)

    # Lifetime of user-visible messages and checkout status
    MESSAGE_TTL_SECONDS = _env_int("MESSAGE_TTL_SECONDS", 2)
    CHECKOUT_SUCCESS_RESET_SECONDS = _env_int("CHECKOUT_SUCCESS_RESET_SECONDS", 3)
    CHECKOUT_FAILURE_RESET_SECONDS = _env_int("CHECKOUT_FAILURE_RESET_SECONDS", 5)

    # Cost factor for access-code hashes
    BCRYPT_ROUNDS = _env_int("BCRYPT_ROUNDS", 12)

    # Front-end dev servers allowed to call the API from the browser
    CORS_ORIGINS = {
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:4173",
        "http://127.0.0.1:4173",
    }
