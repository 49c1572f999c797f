"""Community endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user, get_current_user_optional
from ..deps import get_db
from ..services.communities import CommunityService

router = APIRouter(prefix="/communities", tags=["Communities"])


@router.get("", response_model=schemas.ApiResponse[list[schemas.Community]])
def list_communities(
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.ApiResponse[list[schemas.Community]]:
    """All communities, largest first, with the caller's membership."""
    communities = CommunityService(db).list(current_user.id if current_user else None)
    return schemas.ApiResponse(data=communities)


@router.get("/{slug}", response_model=schemas.ApiResponse[schemas.Community])
def get_community(
    slug: str,
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.ApiResponse[schemas.Community]:
    community = CommunityService(db).get(slug, current_user.id if current_user else None)
    return schemas.ApiResponse(data=community)


@router.post(
    "",
    response_model=schemas.ApiResponse[schemas.Community],
    status_code=status.HTTP_201_CREATED,
)
def create_community(
    payload: schemas.CommunityCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.Community]:
    """Create a community. The creator becomes its first admin member."""
    community = CommunityService(db).create(current_user, payload)
    return schemas.ApiResponse(data=community, message="Community created")


@router.post("/{community_id}/join", response_model=schemas.ApiResponse[None])
def join_community(
    community_id: UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[None]:
    """Join a public community. Returns 400 if already a member."""
    CommunityService(db).join(community_id, current_user.id)
    return schemas.ApiResponse(message="Successfully joined community")


@router.delete("/{community_id}/leave", response_model=schemas.ApiResponse[None])
def leave_community(
    community_id: UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[None]:
    """Leave a community (idempotent)."""
    CommunityService(db).leave(community_id, current_user.id)
    return schemas.ApiResponse(message="Successfully left community")
