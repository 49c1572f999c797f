"""Centralized environment-driven settings.

Keep this module lightweight: stdlib only, no app imports, to avoid circular deps.
"""

from __future__ import annotations

import os


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# Pagination (limit/offset endpoints)
DEFAULT_PAGE_SIZE: int = _int_env("DEFAULT_PAGE_SIZE", 20)
MAX_PAGE_SIZE: int = _int_env("MAX_PAGE_SIZE", 100)

# Polls attached to stories
MIN_POLL_OPTIONS: int = 2
MAX_POLL_OPTIONS: int = _int_env("MAX_POLL_OPTIONS", 10)

# Read-through cache TTLs (seconds) for aggregate views
TRENDING_CACHE_TTL: int = _int_env("TRENDING_CACHE_TTL", 300)
COMMUNITY_STATS_CACHE_TTL: int = _int_env("COMMUNITY_STATS_CACHE_TTL", 600)
SUGGESTED_USERS_CACHE_TTL: int = _int_env("SUGGESTED_USERS_CACHE_TTL", 900)

# Optional cache backend. Unset means caching is disabled.
REDIS_URL: str | None = os.getenv("REDIS_URL") or None

# Run `alembic upgrade head` during application startup
RUN_MIGRATIONS: bool = _bool_env("RUN_MIGRATIONS", True)
