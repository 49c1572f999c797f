"""User profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user
from ..cache import Cache
from ..deps import get_cache, get_db
from ..services.users import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.delete("/me", response_model=schemas.ApiResponse[None])
def delete_my_account(
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[None]:
    """
    Delete the caller's account and all of their content.

    Follow, repost, membership, vote and hashtag counters on other rows are
    released before the cascade.
    """
    UserService(db, cache).delete_account(current_user)
    return schemas.ApiResponse(message="Account deleted")


@router.get("/{identifier}", response_model=schemas.ApiResponse[schemas.UserProfile])
def get_user(
    identifier: str,
    db: Session = Depends(get_db),
) -> schemas.ApiResponse[schemas.UserProfile]:
    """Public profile by id, username or email."""
    return schemas.ApiResponse(data=UserService(db).get_profile(identifier))
