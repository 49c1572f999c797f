"""Bookmark endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user
from ..deps import get_db
from ..pagination import LimitOffset, limit_offset
from ..services.bookmarks import BookmarkService

router = APIRouter(prefix="/bookmarks", tags=["Bookmarks"])


@router.get("", response_model=schemas.ApiResponse[list[schemas.BookmarkedStory]])
def list_bookmarks(
    page: LimitOffset = Depends(limit_offset),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[list[schemas.BookmarkedStory]]:
    bookmarks = BookmarkService(db).list_for_user(current_user.id, page.limit, page.offset)
    return schemas.ApiResponse(data=bookmarks)


@router.post("", response_model=schemas.ApiResponse[None])
def add_bookmark(
    payload: schemas.BookmarkCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[None]:
    """Bookmark a story (idempotent)."""
    BookmarkService(db).add(payload.story_id, current_user.id)
    return schemas.ApiResponse(message="Story bookmarked")


@router.delete("/{story_id}", response_model=schemas.ApiResponse[None])
def remove_bookmark(
    story_id: UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[None]:
    BookmarkService(db).remove(story_id, current_user.id)
    return schemas.ApiResponse(message="Bookmark removed")
