# backend/shoppos/config.py
from __future__ import annotations
import os


def _csv_env(name: str, default: str) -> list[str]:
    raw = os.environ.get(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/shoppos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///shoppos.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Money is stored as integers in the smallest unit of this currency
    CURRENCY_CODE = os.environ.get("CURRENCY_CODE", "MMK")
    CURRENCY_DECIMALS = int(os.environ.get("CURRENCY_DECIMALS", "0"))

    # "reject": refuse the whole sale when stock is short
    # "clamp": floor the product's stock at zero
    CHECKOUT_STOCK_POLICY = os.environ.get("CHECKOUT_STOCK_POLICY", "reject")

    SESSION_ABSOLUTE_HOURS = int(os.environ.get("SESSION_ABSOLUTE_HOURS", "24"))
    SESSION_IDLE_HOURS = int(os.environ.get("SESSION_IDLE_HOURS", "2"))

    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))

    CORS_ORIGINS = _csv_env(
        "CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
    )
