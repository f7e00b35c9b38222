# backend/storeops/config.py
from __future__ import annotations
import os


def _parse_channel_table(raw: str | None) -> dict[str, str]:
    """
    Parse "code=Store Name,code=Store Name" into a channel table.

    Blank entries are ignored. Store names keep their original casing; the
    directory matches them case-insensitively.
    """
    if not raw:
        return dict(DEFAULT_CHANNEL_STORE_NAMES)

    table: dict[str, str] = {}
    for entry in raw.split(","):
        if "=" not in entry:
            continue
        code, name = entry.split("=", 1)
        code, name = code.strip(), name.strip()
        if code and name:
            table[code] = name
    return table


# POS channel codes configured per physical store terminal
DEFAULT_CHANNEL_STORE_NAMES = {
    "lct_21684": "Ticinese",
    "lct_21350": "Lanino",
}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Local SQLite DB stored in backend/instance/storeops.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///storeops.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Entity storage: "sql" uses the local database, "http" the remote service
    ENTITY_STORE_BACKEND = os.environ.get("ENTITY_STORE_BACKEND", "sql")
    ENTITY_STORE_URL = os.environ.get("ENTITY_STORE_URL", "")
    ENTITY_STORE_API_KEY = os.environ.get("ENTITY_STORE_API_KEY")
    ENTITY_STORE_TIMEOUT = float(os.environ.get("ENTITY_STORE_TIMEOUT", "30"))

    # Revenue aggregation
    ORDER_ITEM_FETCH_LIMIT = int(os.environ.get("ORDER_ITEM_FETCH_LIMIT", "10000"))
    CHANNEL_STORE_NAMES = _parse_channel_table(os.environ.get("CHANNEL_STORE_NAMES"))
    BUSINESS_TIMEZONE = os.environ.get("BUSINESS_TIMEZONE") or None  # None = server local time
    REVENUE_WEBHOOK_SECRET = os.environ.get("REVENUE_WEBHOOK_SECRET")
