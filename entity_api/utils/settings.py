"""Environment-sourced service settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple
from urllib.parse import urlparse

_DEFAULT_CORS_ORIGINS = (
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:8000",
)


@dataclass(frozen=True)
class Settings:
    log_level: str
    cors_origins: Tuple[str, ...]
    dev_mode: bool = False
    # Host part of APP_BASE_URL, lower-cased
    app_base_host: Optional[str] = None
    dev_mode_hosts: Tuple[str, ...] = ()
    allow_dev_mode: bool = False


def _split_csv(value: str | None) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(entry.strip() for entry in value.split(",") if entry.strip())


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").strip().lower() == "true"


def _hostname(url: str | None) -> Optional[str]:
    url = (url or "").strip()
    if not url:
        return None
    host = urlparse(url if "://" in url else f"http://{url}").hostname
    return host.lower() if host else None


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return the cached settings sourced from the environment."""
    return Settings(
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        cors_origins=_split_csv(os.getenv("CORS_ORIGINS")) or _DEFAULT_CORS_ORIGINS,
        dev_mode=_env_flag("DEV_MODE"),
        app_base_host=_hostname(os.getenv("APP_BASE_URL")),
        dev_mode_hosts=tuple(h.lower() for h in _split_csv(os.getenv("DEV_MODE_ALLOWED_HOSTS"))),
        allow_dev_mode=_env_flag("ALLOW_DEV_MODE"),
    )


def refresh_settings_cache() -> None:
    """Invalidate cached settings (useful for tests)."""
    get_settings.cache_clear()
