from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional
from urllib.parse import quote_plus


_DATABASE_URL_ENV = "DATABASE_URL"
_DB_USER_ENV = "DB_USER"
_DB_PASSWORD_ENV = "DB_PASSWORD"
_DB_HOST_ENV = "DB_HOST"
_DB_PORT_ENV = "DB_PORT"
_DB_NAME_ENV = "DB_NAME"
_DB_CONNECT_TIMEOUT_ENV = "DB_CONNECT_TIMEOUT"
_DB_CREATE_SCHEMA_ENV = "DB_CREATE_SCHEMA"
_HOST_ENV = "HOST"
_PORT_ENV = "PORT"
_TICK_INTERVAL_ENV = "TICK_INTERVAL_SECONDS"
_HISTORY_HOURS_ENV = "HISTORY_DEFAULT_HOURS"
_HISTORY_MAX_HOURS_ENV = "HISTORY_MAX_HOURS"
_PERSISTENCE_WORKERS_ENV = "PERSISTENCE_WORKERS"
_PERSISTENCE_MAX_BACKLOG_ENV = "PERSISTENCE_MAX_BACKLOG"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    database_url: str
    db_connect_timeout: int
    db_create_schema: bool
    host: str
    port: int
    tick_interval: float
    history_default_hours: int
    history_max_hours: int
    persistence_workers: int
    persistence_max_backlog: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if not candidate:
        return default
    return candidate in {"1", "true", "yes", "on"}


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


def _build_database_url() -> str:
    explicit = _read_optional_env(_DATABASE_URL_ENV)
    if explicit:
        return explicit

    user = _read_str_env(_DB_USER_ENV, "postgres")
    password = _read_optional_env(_DB_PASSWORD_ENV)
    host = _read_str_env(_DB_HOST_ENV, "localhost")
    port = _read_positive_int(_DB_PORT_ENV, 5432)
    name = _read_str_env(_DB_NAME_ENV, "environmental_monitoring")

    credentials = quote_plus(user)
    if password:
        credentials = f"{credentials}:{quote_plus(password)}"
    return f"postgresql+psycopg://{credentials}@{host}:{port}/{name}"


@lru_cache
def get_settings() -> Settings:
    return Settings(
        database_url=_build_database_url(),
        db_connect_timeout=_read_positive_int(_DB_CONNECT_TIMEOUT_ENV, 2),
        db_create_schema=_read_flag(_DB_CREATE_SCHEMA_ENV, False),
        host=_read_str_env(_HOST_ENV, "0.0.0.0"),
        port=_read_positive_int(_PORT_ENV, 3000),
        tick_interval=_read_positive_float(_TICK_INTERVAL_ENV, 3.0),
        history_default_hours=_read_positive_int(_HISTORY_HOURS_ENV, 24),
        history_max_hours=_read_positive_int(_HISTORY_MAX_HOURS_ENV, 168),
        persistence_workers=_read_positive_int(_PERSISTENCE_WORKERS_ENV, 4),
        persistence_max_backlog=_read_positive_int(_PERSISTENCE_MAX_BACKLOG_ENV, 1000),
        log_level=_read_log_level("INFO"),
    )
