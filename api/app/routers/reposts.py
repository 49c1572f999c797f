"""Repost endpoints. Story identifiers may be an id or a slug."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user
from ..deps import get_db
from ..pagination import LimitOffset, limit_offset
from ..services.reposts import RepostService

router = APIRouter(prefix="/reposts", tags=["Reposts"])


@router.post(
    "",
    response_model=schemas.ApiResponse[schemas.Repost],
    status_code=status.HTTP_201_CREATED,
)
def repost_story(
    payload: schemas.RepostCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.Repost]:
    """
    Repost a story with optional commentary.

    Returns 400 if the caller already reposted it.
    """
    repost = RepostService(db).repost(payload.story_id, current_user, payload.comment)
    return schemas.ApiResponse(data=repost, message="Story reposted")


@router.delete("/{story_id}", response_model=schemas.ApiResponse[None])
def undo_repost(
    story_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[None]:
    """Undo the caller's repost. Returns 404 if there is none."""
    RepostService(db).undo(story_id, current_user)
    return schemas.ApiResponse(message="Repost removed successfully")


@router.get("/{story_id}/reposters", response_model=schemas.ApiResponse[list[schemas.Reposter]])
def list_reposters(
    story_id: str,
    page: LimitOffset = Depends(limit_offset),
    db: Session = Depends(get_db),
) -> schemas.ApiResponse[list[schemas.Reposter]]:
    reposters = RepostService(db).reposters(story_id, page.limit, page.offset)
    return schemas.ApiResponse(data=reposters)


@router.get("/{story_id}/check", response_model=schemas.ApiResponse[schemas.RepostStatus])
def check_repost(
    story_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.RepostStatus]:
    has_reposted = RepostService(db).has_reposted(story_id, current_user.id)
    return schemas.ApiResponse(data=schemas.RepostStatus(has_reposted=has_reposted))
