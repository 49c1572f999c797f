"""Notification inbox endpoints. Every route is scoped to the caller."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user
from ..deps import get_db
from ..pagination import LimitOffset, limit_offset
from ..services.notifications import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=schemas.ApiResponse[schemas.NotificationList])
def list_notifications(
    unread_only: bool = Query(False),
    page: LimitOffset = Depends(limit_offset),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.NotificationList]:
    """List the caller's notifications, newest first."""
    notifications = NotificationService(db).list_for_user(
        current_user.id, unread_only=unread_only, limit=page.limit, offset=page.offset
    )
    return schemas.ApiResponse(
        data=schemas.NotificationList(
            notifications=notifications, limit=page.limit, offset=page.offset
        )
    )


@router.get("/unread-count", response_model=schemas.ApiResponse[schemas.UnreadCount])
def get_unread_count(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[schemas.UnreadCount]:
    count = NotificationService(db).unread_count(current_user.id)
    return schemas.ApiResponse(data=schemas.UnreadCount(count=count))


@router.patch("/read-all", response_model=schemas.ApiResponse[None])
def mark_all_read(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[None]:
    NotificationService(db).mark_all_read(current_user.id)
    return schemas.ApiResponse(message="All notifications marked as read")


@router.patch("/{notification_id}/read", response_model=schemas.ApiResponse[None])
def mark_read(
    notification_id: UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[None]:
    """Mark one notification read. Already-read notifications stay read."""
    NotificationService(db).mark_read(current_user.id, notification_id)
    return schemas.ApiResponse(message="Notification marked as read")


@router.delete("/{notification_id}", response_model=schemas.ApiResponse[None])
def delete_notification(
    notification_id: UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ApiResponse[None]:
    NotificationService(db).delete(current_user.id, notification_id)
    return schemas.ApiResponse(message="Notification deleted")
