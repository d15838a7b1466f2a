# backend/cashier/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/cashier.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///cashier.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Absolute counted-vs-expected difference above which a closed shift is flagged
    CASHIER_DISCREPANCY_TOLERANCE = os.environ.get("CASHIER_DISCREPANCY_TOLERANCE", "0.00")

    # Empty = discrepancies never block a day close
    CASHIER_BLOCKING_DISCREPANCY = os.environ.get("CASHIER_BLOCKING_DISCREPANCY", "")

    CASHIER_DEFAULT_INITIAL_FUND = os.environ.get("CASHIER_DEFAULT_INITIAL_FUND", "0.00")
