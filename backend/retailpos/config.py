# backend/retailpos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/retailpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///retailpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Sales tax applied on (subtotal - discount); 0 disables tax
    SALES_TAX_PERCENT = os.environ.get("SALES_TAX_PERCENT", "0")

    # Calendar-day boundaries for daily reports are taken in this zone
    STORE_TIMEZONE = os.environ.get("STORE_TIMEZONE", "UTC")

    BILL_NUMBER_PREFIX = os.environ.get("BILL_NUMBER_PREFIX", "INV")
    INVOICE_NUMBER_PREFIX = os.environ.get("INVOICE_NUMBER_PREFIX", "PO")

    # Used by the low-stock report when no threshold is given and a product has no reorder level
    LOW_STOCK_DEFAULT_THRESHOLD = int(os.environ.get("LOW_STOCK_DEFAULT_THRESHOLD", "10"))

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    }
