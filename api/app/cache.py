"""Read-through cache for aggregate views.

The cache is never the source of truth. Callers go through the `Cache`
interface; when Redis is not configured or unreachable a `NullCache` stands
in, so calling code never branches on availability.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import redis

from . import settings

logger = logging.getLogger(__name__)

# Cache keys for aggregate reads
TRENDING_TOPICS_KEY = "trending:topics"
COMMUNITY_STATS_KEY = "stats:community"
SUGGESTED_USERS_KEY = "suggested:users"


class Cache(Protocol):
    """Minimal key-value interface used by services."""

    @property
    def available(self) -> bool: ...

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl: int = 300) -> bool: ...

    def invalidate(self, pattern: str) -> int: ...


class NullCache:
    """Cache that stores nothing. Every read is a miss."""

    @property
    def available(self) -> bool:
        return False

    def get(self, key: str) -> Any | None:
        return None

    def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        return False

    def invalidate(self, pattern: str) -> int:
        return 0


class RedisCache:
    """
    Redis-backed cache with JSON values.

    The first connection error disables the instance for the rest of the
    process; later calls behave like `NullCache`.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._client = client
        self._enabled = True

    @property
    def available(self) -> bool:
        return self._enabled

    def _disable(self, operation: str, key: str, exc: Exception) -> None:
        if isinstance(exc, redis.ConnectionError):
            self._enabled = False
            logger.warning(f"Redis cache disabled after {operation} failure on '{key}': {exc}")
        else:
            logger.warning(f"Cache {operation} error for key '{key}': {exc}")

    def get(self, key: str) -> Any | None:
        """
        Retrieve a cached value by key.

        Returns the JSON-decoded value, the raw string if it is not JSON, or
        None on a miss.
        """
        if not self._enabled:
            return None

        try:
            value = self._client.get(key)
        except redis.RedisError as e:
            self._disable("get", key, e)
            return None

        if value is None:
            return None

        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return value

    def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """Set a cached value with TTL (seconds). Returns True on success."""
        if not self._enabled:
            return False

        try:
            serialized = json.dumps(value, default=str)
            self._client.setex(key, ttl, serialized)
            return True
        except redis.RedisError as e:
            self._disable("set", key, e)
            return False

    def invalidate(self, pattern: str) -> int:
        """
        Invalidate cache entries matching a pattern (e.g. "trending:*").

        Returns the number of keys deleted.
        """
        if not self._enabled:
            return 0

        try:
            keys = self._client.keys(pattern)
            if not keys:
                return 0
            deleted = self._client.delete(*keys)
            logger.info(f"Invalidated {deleted} cache entries matching pattern '{pattern}'")
            return deleted
        except redis.RedisError as e:
            self._disable("invalidate", pattern, e)
            return 0

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError as e:
            self._disable("ping", "-", e)
            return False


_cache: Cache | None = None


def build_cache(redis_url: str | None) -> Cache:
    """Create a RedisCache when the URL is set and reachable, else a NullCache."""
    if not redis_url:
        logger.info("REDIS_URL not set; aggregate caching disabled")
        return NullCache()

    try:
        client = redis.from_url(redis_url, decode_responses=True)
        client.ping()
    except redis.RedisError as e:
        logger.warning(f"Redis cache unavailable: {e}. Continuing without cache.")
        return NullCache()

    logger.info("Redis cache connected successfully")
    return RedisCache(client)


def get_cache() -> Cache:
    """Process-wide cache, built on first use. Also used as a FastAPI dependency."""
    global _cache
    if _cache is None:
        _cache = build_cache(settings.REDIS_URL)
    return _cache
