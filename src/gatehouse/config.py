# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy.engine import URL

from gatehouse.errors import ConfigError

BASE_DIR = Path(__file__).resolve().parents[2]
DEFAULT_SQLITE_URL = f"sqlite:///{BASE_DIR / 'data' / 'gatehouse.db'}"
DEFAULT_EVENTS_URL = "https://app.ticketmaster.com/discovery/v2/events.json"

_TRUE = {"1", "true", "yes", "y"}
LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUE


def resolve_database_url() -> str:
    """DATABASE_URL wins; otherwise POSTGRES_* pieces; otherwise a local SQLite file."""
    url = os.getenv("DATABASE_URL", "").strip()
    if url:
        return url
    db = os.getenv("POSTGRES_DB", "").strip()
    if not db:
        return DEFAULT_SQLITE_URL
    return URL.create(
        "postgresql+psycopg",
        username=os.getenv("POSTGRES_USER") or None,
        password=os.getenv("POSTGRES_PASSWORD") or None,
        host=os.getenv("POSTGRES_HOST", "localhost"),
        port=int(os.getenv("POSTGRES_PORT", "5432")),
        database=db,
    ).render_as_string(hide_password=False)


@dataclass(frozen=True)
class Settings:
    database_url: str
    session_secret: str
    cookie_name: str = "gatehouse_session"
    session_max_age: int = 28800  # 8 hours
    cookie_secure: bool = False
    api_key: str = ""
    events_url: str = DEFAULT_EVENTS_URL
    events_keyword: str = "Los Angeles"
    events_size: int = 10
    http_timeout: float = 10.0
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000
    reload: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        secret = os.getenv("SESSION_SECRET") or os.getenv("GATEHOUSE_SECRET_KEY")
        if not secret:
            raise ConfigError("Missing SESSION_SECRET (or GATEHOUSE_SECRET_KEY) in environment")
        log_level = os.getenv("GATEHOUSE_LOG_LEVEL", "INFO").strip().upper()
        if log_level not in LOG_LEVELS:
            raise ConfigError(f"Invalid GATEHOUSE_LOG_LEVEL {log_level!r}")
        try:
            return cls(
                database_url=resolve_database_url(),
                session_secret=secret,
                cookie_name=os.getenv("GATEHOUSE_COOKIE_NAME", "gatehouse_session"),
                session_max_age=int(os.getenv("GATEHOUSE_SESSION_MAX_AGE", "28800")),
                cookie_secure=_flag("GATEHOUSE_COOKIE_SECURE"),
                api_key=os.getenv("API_KEY", ""),
                events_url=os.getenv("GATEHOUSE_EVENTS_URL", DEFAULT_EVENTS_URL),
                events_keyword=os.getenv("GATEHOUSE_EVENTS_KEYWORD", "Los Angeles"),
                events_size=int(os.getenv("GATEHOUSE_EVENTS_SIZE", "10")),
                http_timeout=float(os.getenv("GATEHOUSE_HTTP_TIMEOUT", "10")),
                log_level=log_level,
                host=os.getenv("GATEHOUSE_HOST", "0.0.0.0"),
                port=int(os.getenv("GATEHOUSE_PORT", "3000")),
                reload=_flag("GATEHOUSE_RELOAD"),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e

    def cookie_settings(self) -> dict:
        return {"httponly": True, "samesite": "lax", "secure": self.cookie_secure}
