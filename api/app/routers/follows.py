"""Follow endpoints. User identifiers may be an id, username or email."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user
from ..deps import get_db
from ..pagination import LimitOffset, limit_offset
from ..services.follows import FollowService

router = APIRouter(prefix="/follows", tags=["Follows"])


@router.post("/{user_id}/follow", response_model=schemas.ApiResponse[schemas.FollowStatus])
def follow_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.FollowStatus]:
    """
    Follow a user.

    Returns 400 when following yourself or a user you already follow.
    """
    FollowService(db).follow(user_id, current_user)
    return schemas.ApiResponse(
        data=schemas.FollowStatus(is_following=True), message="Successfully followed user"
    )


@router.delete("/{user_id}/follow", response_model=schemas.ApiResponse[schemas.FollowStatus])
def unfollow_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.FollowStatus]:
    """Unfollow a user (idempotent)."""
    FollowService(db).unfollow(user_id, current_user)
    return schemas.ApiResponse(
        data=schemas.FollowStatus(is_following=False), message="Successfully unfollowed user"
    )


@router.get("/{user_id}/check", response_model=schemas.ApiResponse[schemas.FollowStatus])
def check_following(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.FollowStatus]:
    is_following = FollowService(db).is_following(user_id, current_user.id)
    return schemas.ApiResponse(data=schemas.FollowStatus(is_following=is_following))


@router.get("/{user_id}/mutual", response_model=schemas.ApiResponse[schemas.MutualFollowStatus])
def check_mutual(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.MutualFollowStatus]:
    return schemas.ApiResponse(data=FollowService(db).mutual(user_id, current_user.id))


@router.get("/{user_id}/followers", response_model=schemas.ApiResponse[schemas.FollowList])
def list_followers(
    user_id: str,
    page: LimitOffset = Depends(limit_offset),
    db: Session = Depends(get_db),
) -> schemas.ApiResponse[schemas.FollowList]:
    users = FollowService(db).followers(user_id, page.limit, page.offset)
    return schemas.ApiResponse(
        data=schemas.FollowList(users=users, limit=page.limit, offset=page.offset)
    )


@router.get("/{user_id}/following", response_model=schemas.ApiResponse[schemas.FollowList])
def list_following(
    user_id: str,
    page: LimitOffset = Depends(limit_offset),
    db: Session = Depends(get_db),
) -> schemas.ApiResponse[schemas.FollowList]:
    users = FollowService(db).following(user_id, page.limit, page.offset)
    return schemas.ApiResponse(
        data=schemas.FollowList(users=users, limit=page.limit, offset=page.offset)
    )
