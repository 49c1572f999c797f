"""System endpoints (health)."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, status

from .. import schemas
from ..cache import Cache, RedisCache
from ..deps import get_cache

router = APIRouter(prefix="", tags=["System"])
logger = logging.getLogger(__name__)

# Global startup time for uptime calculation
_STARTUP_TIME = time.time()


@router.get("/health", response_model=schemas.HealthResponse)
def get_health() -> schemas.HealthResponse:
    """Liveness check."""
    uptime_s = time.time() - _STARTUP_TIME
    return schemas.HealthResponse(status="ok", uptime_s=uptime_s)


@router.get("/health/cache")
def check_cache_health(cache: Cache = Depends(get_cache)) -> dict:
    """
    Cache health check endpoint.

    Returns 200 if the cache backend is available, 503 if not.
    """
    available = cache.available
    if isinstance(cache, RedisCache):
        available = cache.ping()

    if not available:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cache unavailable",
        )
    return {"status": "ok", "message": "Cache is available"}
