"""Story endpoints, including likes."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas, settings
from ..auth import get_current_user, get_current_user_optional
from ..cache import Cache
from ..deps import get_cache, get_db
from ..services.likes import LikeService
from ..services.stories import StoryService

router = APIRouter(prefix="/stories", tags=["Stories"])


@router.get("", response_model=schemas.ApiResponse[schemas.StoryList])
def list_stories(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    category: str | None = None,
    search: str | None = Query(None, max_length=200),
    tag: str | None = Query(None, max_length=100),
    filter: str = Query("recent", pattern="^(recent|following|trending)$"),
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.ApiResponse[schemas.StoryList]:
    """
    List published stories.

    `filter=following` only returns stories from authors the caller follows
    (empty for anonymous callers); `filter=trending` orders by likes.
    """
    stories = StoryService(db).list(
        page=page,
        limit=limit,
        category=category,
        search=search,
        tag=tag,
        filter=filter,
        viewer_id=current_user.id if current_user else None,
    )
    return schemas.ApiResponse(data=stories)


@router.post(
    "",
    response_model=schemas.ApiResponse[schemas.StoryCreated],
    status_code=status.HTTP_201_CREATED,
)
def create_story(
    payload: schemas.StoryCreate,
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.StoryCreated]:
    """Publish a story, optionally with a poll."""
    created = StoryService(db, cache).create(current_user, payload)
    return schemas.ApiResponse(data=created, message="Story published")


@router.get("/{identifier}", response_model=schemas.ApiResponse[schemas.Story])
def get_story(
    identifier: str,
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.ApiResponse[schemas.Story]:
    """Get a story by slug (or id). Counts a view."""
    story = StoryService(db).get(identifier, current_user.id if current_user else None)
    return schemas.ApiResponse(data=story)


@router.delete("/{story_id}", response_model=schemas.ApiResponse[None])
def delete_story(
    story_id: UUID,
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[None]:
    StoryService(db, cache).delete(story_id, current_user)
    return schemas.ApiResponse(message="Story deleted")


# ============================================================================
# LIKES
# ============================================================================


@router.post("/{story_id}/like", response_model=schemas.ApiResponse[schemas.LikeStatus])
def like_story(
    story_id: UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.LikeStatus]:
    """Like a story. Liking an already-liked story succeeds without change."""
    LikeService(db).like(story_id, current_user.id)
    return schemas.ApiResponse(data=schemas.LikeStatus(is_liked=True), message="Story liked")


@router.delete("/{story_id}/like", response_model=schemas.ApiResponse[schemas.LikeStatus])
def unlike_story(
    story_id: UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.LikeStatus]:
    """Remove a like (idempotent)."""
    LikeService(db).unlike(story_id, current_user.id)
    return schemas.ApiResponse(data=schemas.LikeStatus(is_liked=False), message="Story unliked")


@router.get("/{story_id}/like/check", response_model=schemas.ApiResponse[schemas.LikeStatus])
def check_like(
    story_id: UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.LikeStatus]:
    is_liked = LikeService(db).check_liked(story_id, current_user.id)
    return schemas.ApiResponse(data=schemas.LikeStatus(is_liked=is_liked))
