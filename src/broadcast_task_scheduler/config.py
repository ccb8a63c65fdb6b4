"""Settings loaded from environment variables.

One frozen ``Settings`` object for the whole app; nothing secret is required at
import time. ``get_settings()`` caches the first load.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_optional(name: str) -> Optional[str]:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # ---- Storage ----
    database_url: str

    # ---- Remote compute endpoint ----
    invoke_url: str
    invoke_api_key: Optional[str]
    invoke_timeout: float

    # ---- Trigger ----
    dispatch_interval_seconds: int

    # ---- API basic auth ----
    api_username: str
    api_password: str

    # ---- Logging / error reporting ----
    log_level: str
    logflare_api_key: Optional[str]
    logflare_source: Optional[str]
    sentry_dsn: Optional[str]


def load_settings() -> Settings:
    """Build a fresh Settings from the current environment."""
    return Settings(
        database_url=_env("DATABASE_URL", "sqlite:///./app.db"),
        invoke_url=_env("INVOKE_URL", "http://localhost:9000/invoke/spot-task"),
        invoke_api_key=_env_optional("INVOKE_API_KEY"),
        invoke_timeout=_env_float("INVOKE_TIMEOUT", 60.0),
        dispatch_interval_seconds=_env_int("DISPATCH_INTERVAL_SECONDS", 60),
        api_username=_env("API_USERNAME"),
        api_password=_env("API_PASSWORD"),
        log_level=_env("LOG_LEVEL", "INFO").upper(),
        logflare_api_key=_env_optional("LOGFLARE_API_KEY"),
        logflare_source=_env_optional("LOGFLARE_SOURCE"),
        sentry_dsn=_env_optional("SENTRY_DSN"),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings (loaded once)."""
    return load_settings()
