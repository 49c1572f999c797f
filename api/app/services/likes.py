"""Likes on stories. There is no stored like counter; counts are read-time."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from .. import models
from ..db import atomic, insert_ignore
from ..errors import StoryNotFound
from .notifications import NotificationService

logger = logging.getLogger(__name__)


class LikeService:
    def __init__(self, db: Session, notifications: NotificationService | None = None) -> None:
        self.db = db
        self.notifications = notifications or NotificationService(db)

    def like(self, story_id: UUID, user_id: UUID) -> bool:
        """
        Like a story (idempotent).

        Returns True when a new like was recorded. Only a new like notifies
        the story's author.
        """
        story = self.db.get(models.Story, story_id)
        if story is None:
            raise StoryNotFound()

        with atomic(self.db):
            created = insert_ignore(
                self.db,
                models.Like,
                {"user_id": user_id, "story_id": story_id},
                conflict_columns=("user_id", "story_id"),
            )

        if created:
            logger.info(f"User {user_id} liked story {story_id}")
            self.notifications.notify_story_author(story, user_id, "like")
        return created

    def unlike(self, story_id: UUID, user_id: UUID) -> bool:
        """Remove a like if present. Returns True when a row was deleted."""
        with atomic(self.db):
            deleted = (
                self.db.query(models.Like)
                .filter(models.Like.story_id == story_id, models.Like.user_id == user_id)
                .delete(synchronize_session=False)
            )
        return bool(deleted)

    def check_liked(self, story_id: UUID, user_id: UUID) -> bool:
        return (
            self.db.query(models.Like.id)
            .filter(models.Like.story_id == story_id, models.Like.user_id == user_id)
            .first()
            is not None
        )
