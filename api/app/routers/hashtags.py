"""Hashtag endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user_optional
from ..deps import get_db
from ..pagination import LimitOffset, limit_offset
from ..services.hashtags import HashtagService

router = APIRouter(prefix="/hashtags", tags=["Hashtags"])


@router.get("/trending", response_model=schemas.ApiResponse[list[schemas.Hashtag]])
def trending_hashtags(
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
) -> schemas.ApiResponse[list[schemas.Hashtag]]:
    """Hashtags in use, most used first."""
    hashtags = HashtagService(db).trending(limit)
    return schemas.ApiResponse(data=[schemas.Hashtag.model_validate(h) for h in hashtags])


@router.get("/search", response_model=schemas.ApiResponse[list[schemas.Hashtag]])
def search_hashtags(
    q: str = Query(..., min_length=1, max_length=100),
    limit: int = Query(20, ge=1, le=50),
    db: Session = Depends(get_db),
) -> schemas.ApiResponse[list[schemas.Hashtag]]:
    hashtags = HashtagService(db).search(q, limit)
    return schemas.ApiResponse(data=[schemas.Hashtag.model_validate(h) for h in hashtags])


@router.get("/{name}", response_model=schemas.ApiResponse[schemas.HashtagDetail])
def get_hashtag(
    name: str,
    db: Session = Depends(get_db),
) -> schemas.ApiResponse[schemas.HashtagDetail]:
    hashtag = HashtagService(db).get(name)
    return schemas.ApiResponse(data=schemas.HashtagDetail.model_validate(hashtag))


@router.get("/{name}/stories", response_model=schemas.ApiResponse[list[schemas.Story]])
def hashtag_stories(
    name: str,
    page: LimitOffset = Depends(limit_offset),
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.ApiResponse[list[schemas.Story]]:
    """Published stories tagged with `name`, newest first."""
    stories = HashtagService(db).stories(
        name, page.limit, page.offset, current_user.id if current_user else None
    )
    return schemas.ApiResponse(data=stories)
