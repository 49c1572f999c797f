"""Poll endpoints. Polls are created together with their story."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user, get_current_user_optional
from ..deps import get_db
from ..services.polls import PollService

router = APIRouter(prefix="/polls", tags=["Polls"])


@router.get("/story/{story_id}", response_model=schemas.ApiResponse[schemas.Poll])
def get_story_poll(
    story_id: UUID,
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.ApiResponse[schemas.Poll]:
    """Poll for a story, with the caller's vote when authenticated."""
    poll = PollService(db).get_for_story(story_id, current_user.id if current_user else None)
    return schemas.ApiResponse(data=poll)


@router.post("/vote", response_model=schemas.ApiResponse[schemas.Poll])
def vote(
    payload: schemas.VoteCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.Poll]:
    """
    Vote for a poll option.

    Returns 400 if the poll has expired or the caller already voted on it.
    """
    service = PollService(db)
    poll = service.vote(payload.poll_option_id, current_user.id)
    return schemas.ApiResponse(data=service.to_schema(poll, current_user.id), message="Vote recorded")
