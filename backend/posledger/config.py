# backend/posledger/config.py
from __future__ import annotations
import os


def _csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # In-memory SQLite by default; records live only as long as the process
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite://",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Tender types accepted at checkout
    POS_PAYMENT_METHODS = _csv(os.environ.get("POS_PAYMENT_METHODS", "cash,card,upi"))

    POS_CURRENCY_SYMBOL = os.environ.get("POS_CURRENCY_SYMBOL", "$")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Seed the demo catalog, customers and users on startup
    DEMO_SEED_ENABLED = os.environ.get("POS_DEMO_SEED", "false").lower() == "true"

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Browser origins allowed to call the API (the register UI dev server)
    CORS_ALLOWED_ORIGINS = _csv(os.environ.get(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173",
    ))
