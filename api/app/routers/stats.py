"""Cached aggregate statistics."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user_optional
from ..cache import Cache
from ..deps import get_cache, get_db
from ..services.stats import StatsService

router = APIRouter(prefix="/stats", tags=["Stats"])


@router.get("/community", response_model=schemas.CachedResponse[schemas.CommunityStats])
def community_stats(
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
) -> schemas.CachedResponse[schemas.CommunityStats]:
    stats, cached = StatsService(db, cache).community_stats()
    return schemas.CachedResponse(data=stats, cached=cached)


@router.get("/trending", response_model=schemas.CachedResponse[list[schemas.TrendingTopic]])
def trending_topics(
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
) -> schemas.CachedResponse[list[schemas.TrendingTopic]]:
    """Hashtags ranked by published stories over the last 30 days."""
    topics, cached = StatsService(db, cache).trending_topics()
    return schemas.CachedResponse(data=topics, cached=cached)


@router.get("/suggested-users", response_model=schemas.CachedResponse[list[schemas.SuggestedUser]])
def suggested_users(
    limit: int = Query(5, ge=1, le=20),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.CachedResponse[list[schemas.SuggestedUser]]:
    """Users worth following. Only the anonymous list is served from cache."""
    users, cached = StatsService(db, cache).suggested_users(
        current_user.id if current_user else None, limit
    )
    return schemas.CachedResponse(data=users, cached=cached)
