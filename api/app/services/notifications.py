"""
Notification Service.

Writes one notification per user action, addressed to a single recipient,
and serves the recipient's inbox. Fan-out is best-effort: it runs after the
triggering write has committed and a failure is logged, never raised.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from .. import models, schemas
from ..db import atomic
from ..errors import NotificationNotFound
from ..utils.dates import utcnow

logger = logging.getLogger(__name__)

NOTIFICATION_KINDS = frozenset({"like", "comment", "repost", "follow"})


class NotificationService:
    """Creates and reads notifications for one database session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    def notify(
        self,
        recipient_id: UUID,
        actor_id: UUID,
        kind: str,
        story_id: UUID | None = None,
        comment_id: UUID | None = None,
    ) -> models.Notification | None:
        """
        Record a notification for `recipient_id`.

        Returns None when the actor is the recipient or the insert fails.
        Must only be called after the triggering write has been committed,
        since a failure here rolls the session back.
        """
        if kind not in NOTIFICATION_KINDS:
            raise ValueError(f"Unknown notification kind: {kind}")

        if recipient_id == actor_id:
            logger.debug(f"Skipping self-notification ({kind}) for user {actor_id}")
            return None

        try:
            notification = self._create(recipient_id, actor_id, kind, story_id, comment_id)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(
                f"Failed to create {kind} notification for user {recipient_id} from {actor_id}"
            )
            return None

        logger.info(f"Created {kind} notification {notification.id} for user {recipient_id}")
        return notification

    def notify_story_author(
        self,
        story: models.Story,
        actor_id: UUID,
        kind: str,
        comment_id: UUID | None = None,
    ) -> models.Notification | None:
        return self.notify(story.author_id, actor_id, kind, story_id=story.id, comment_id=comment_id)

    def _create(
        self,
        recipient_id: UUID,
        actor_id: UUID,
        kind: str,
        story_id: UUID | None,
        comment_id: UUID | None,
    ) -> models.Notification:
        notification = models.Notification(
            user_id=recipient_id,
            actor_id=actor_id,
            kind=kind,
            story_id=story_id,
            comment_id=comment_id,
        )
        self.db.add(notification)
        self.db.flush()
        return notification

    # ------------------------------------------------------------------
    # Inbox
    # ------------------------------------------------------------------

    def list_for_user(
        self,
        user_id: UUID,
        unread_only: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> list[schemas.Notification]:
        """Caller's notifications, newest first, with actor, story and comment context."""
        actor = aliased(models.User)
        query = (
            self.db.query(
                models.Notification,
                actor.full_name,
                actor.avatar_url,
                models.Story.title,
                models.Story.slug,
                models.Comment.content,
            )
            .outerjoin(actor, actor.id == models.Notification.actor_id)
            .outerjoin(models.Story, models.Story.id == models.Notification.story_id)
            .outerjoin(models.Comment, models.Comment.id == models.Notification.comment_id)
            .filter(models.Notification.user_id == user_id)
        )
        if unread_only:
            query = query.filter(models.Notification.is_read.is_(False))

        rows = (
            query.order_by(models.Notification.created_at.desc(), models.Notification.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )

        return [
            schemas.Notification(
                id=n.id,
                kind=n.kind,
                actor_id=n.actor_id,
                actor_name=actor_name,
                actor_avatar=actor_avatar,
                story_id=n.story_id,
                story_title=story_title,
                story_slug=story_slug,
                comment_id=n.comment_id,
                comment_content=comment_content,
                is_read=n.is_read,
                read_at=n.read_at,
                created_at=n.created_at,
            )
            for n, actor_name, actor_avatar, story_title, story_slug, comment_content in rows
        ]

    def unread_count(self, user_id: UUID) -> int:
        return (
            self.db.query(models.Notification)
            .filter(
                models.Notification.user_id == user_id,
                models.Notification.is_read.is_(False),
            )
            .count()
        )

    def _get_own(self, user_id: UUID, notification_id: UUID) -> models.Notification:
        notification = (
            self.db.query(models.Notification)
            .filter(
                models.Notification.id == notification_id,
                models.Notification.user_id == user_id,
            )
            .first()
        )
        if notification is None:
            raise NotificationNotFound()
        return notification

    def mark_read(self, user_id: UUID, notification_id: UUID) -> None:
        """Mark one of the caller's notifications read. Already-read is a no-op."""
        notification = self._get_own(user_id, notification_id)
        if notification.is_read:
            return
        with atomic(self.db):
            notification.is_read = True
            notification.read_at = utcnow()

    def mark_all_read(self, user_id: UUID) -> int:
        """Returns the number of notifications that changed state."""
        with atomic(self.db):
            updated = (
                self.db.query(models.Notification)
                .filter(
                    models.Notification.user_id == user_id,
                    models.Notification.is_read.is_(False),
                )
                .update({"is_read": True, "read_at": utcnow()}, synchronize_session=False)
            )
        logger.info(f"Marked {updated} notifications read for user {user_id}")
        return updated

    def delete(self, user_id: UUID, notification_id: UUID) -> None:
        notification = self._get_own(user_id, notification_id)
        with atomic(self.db):
            self.db.delete(notification)
