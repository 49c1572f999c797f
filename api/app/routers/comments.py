"""Comment endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user
from ..deps import get_db
from ..pagination import LimitOffset, limit_offset
from ..services.comments import CommentService

router = APIRouter(prefix="/comments", tags=["Comments"])


@router.post(
    "",
    response_model=schemas.ApiResponse[schemas.Comment],
    status_code=status.HTTP_201_CREATED,
)
def create_comment(
    payload: schemas.CommentCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.Comment]:
    """
    Comment on a story, or reply to a comment on the same story.

    The story's author is notified unless they wrote the comment.
    """
    comment = CommentService(db).create(
        current_user, payload.story_id, payload.content, payload.parent_id
    )
    return schemas.ApiResponse(data=comment, message="Comment added")


@router.get("/story/{story_id}", response_model=schemas.ApiResponse[list[schemas.Comment]])
def list_story_comments(
    story_id: UUID,
    page: LimitOffset = Depends(limit_offset),
    db: Session = Depends(get_db),
) -> schemas.ApiResponse[list[schemas.Comment]]:
    comments = CommentService(db).list_for_story(story_id, page.limit, page.offset)
    return schemas.ApiResponse(data=comments)


@router.get("/user/{user_id}", response_model=schemas.ApiResponse[list[schemas.UserComment]])
def list_user_comments(
    user_id: UUID,
    page: LimitOffset = Depends(limit_offset),
    db: Session = Depends(get_db),
) -> schemas.ApiResponse[list[schemas.UserComment]]:
    comments = CommentService(db).list_for_user(user_id, page.limit, page.offset)
    return schemas.ApiResponse(data=comments)


@router.delete("/{comment_id}", response_model=schemas.ApiResponse[None])
def delete_comment(
    comment_id: UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[None]:
    """Delete a comment (author or admin). Replies go with it."""
    CommentService(db).delete(comment_id, current_user)
    return schemas.ApiResponse(message="Comment deleted")
