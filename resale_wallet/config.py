# resale_wallet/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in instance/resale_wallet.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///resale_wallet.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "sql" uses the database above; "memory" serves an in-process demo store
    WALLET_REPOSITORY = os.environ.get("WALLET_REPOSITORY", "sql").strip().lower()

    # Populate the in-memory store with demo data for WALLET_DEMO_USER_ID on startup
    WALLET_SEED_DEMO = _env_flag("WALLET_SEED_DEMO")
    WALLET_DEMO_USER_ID = os.environ.get("WALLET_DEMO_USER_ID", "demo-user")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
