"""
Repost Service.

A repost is a published copy of the original story owned by the reposting
user, plus a tracking row (user, original, copy). Per (user, story):

    NONE --repost--> REPOSTED --undo--> NONE
    REPOSTED --repost--> AlreadyReposted (400)
    NONE --undo--> RepostNotFound (404)

Reposting a repost targets the root original, so original_story_id never
points at another copy.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import atomic
from ..errors import AlreadyReposted, RepostNotFound, StoryNotFound
from ..utils.dates import utcnow
from ..utils.identifiers import find_story
from .counters import decrement, increment
from .notifications import NotificationService
from .story_views import build_story_view

logger = logging.getLogger(__name__)


class RepostService:
    def __init__(self, db: Session, notifications: NotificationService | None = None) -> None:
        self.db = db
        self.notifications = notifications or NotificationService(db)

    def resolve_original(self, identifier: str | UUID) -> models.Story:
        """Resolve an id or slug to the root original story."""
        story = find_story(self.db, identifier)
        if story is None:
            raise StoryNotFound()
        if story.is_repost and story.original_story_id is not None:
            original = self.db.get(models.Story, story.original_story_id)
            if original is not None:
                return original
        return story

    def _tracking_row(self, user_id: UUID, story_id: UUID) -> models.Repost | None:
        return (
            self.db.query(models.Repost)
            .filter(models.Repost.user_id == user_id, models.Repost.story_id == story_id)
            .first()
        )

    def _story_exists(self, story_id: UUID) -> bool:
        return (
            self.db.query(models.Story.id).filter(models.Story.id == story_id).first()
            is not None
        )

    def repost(
        self, identifier: str | UUID, user: models.User, comment: str | None = None
    ) -> schemas.Repost:
        original = self.resolve_original(identifier)
        original_id = original.id

        if self._tracking_row(user.id, original_id) is not None:
            raise AlreadyReposted()

        comment = comment.strip() if comment and comment.strip() else None

        try:
            with atomic(self.db):
                copy = models.Story(
                    author_id=user.id,
                    title=original.title,
                    slug=None,
                    content=original.content,
                    excerpt=original.excerpt,
                    category=original.category,
                    status="published",
                    is_repost=True,
                    original_story_id=original.id,
                    repost_comment=comment,
                    published_at=utcnow(),
                )
                self.db.add(copy)
                self.db.flush()

                self.db.add(
                    models.Repost(
                        user_id=user.id,
                        story_id=original.id,
                        repost_story_id=copy.id,
                        comment=comment,
                    )
                )
                self.db.flush()

                increment(self.db, models.Story.reposts_count, models.Story.id == original.id)
        except IntegrityError:
            # A vanished original fails its foreign key, not the unique pair
            if not self._story_exists(original_id):
                raise StoryNotFound() from None
            raise AlreadyReposted() from None

        logger.info(f"User {user.id} reposted story {original.id} as {copy.id}")
        self.notifications.notify_story_author(original, user.id, "repost")

        return self._to_schema(copy, user.id)

    def undo(self, identifier: str | UUID, user: models.User) -> None:
        original = self.resolve_original(identifier)

        tracking = self._tracking_row(user.id, original.id)
        if tracking is None:
            raise RepostNotFound()

        tracking_id, copy_id = tracking.id, tracking.repost_story_id
        with atomic(self.db):
            self.db.query(models.Repost).filter(models.Repost.id == tracking_id).delete(
                synchronize_session=False
            )
            self.db.query(models.Story).filter(models.Story.id == copy_id).delete(
                synchronize_session=False
            )
            decrement(self.db, models.Story.reposts_count, models.Story.id == original.id)

        logger.info(f"User {user.id} removed repost {copy_id} of story {original.id}")

    def reposters(self, identifier: str | UUID, limit: int = 50, offset: int = 0) -> list[schemas.Reposter]:
        original = self.resolve_original(identifier)
        rows = (
            self.db.query(models.User, models.Repost.comment, models.Repost.created_at)
            .join(models.Repost, models.Repost.user_id == models.User.id)
            .filter(models.Repost.story_id == original.id)
            .order_by(models.Repost.created_at.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return [
            schemas.Reposter(
                id=user.id,
                full_name=user.full_name,
                username=user.username,
                avatar_url=user.avatar_url,
                bio=user.bio,
                comment=comment,
                reposted_at=created_at,
            )
            for user, comment, created_at in rows
        ]

    def has_reposted(self, identifier: str | UUID, user_id: UUID) -> bool:
        original = self.resolve_original(identifier)
        return self._tracking_row(user_id, original.id) is not None

    def _to_schema(self, copy: models.Story, viewer_id: UUID) -> schemas.Repost:
        view = build_story_view(self.db, copy, viewer_id)
        original = copy.original_story
        original_author = original.author if original is not None else None
        return schemas.Repost(
            **view.model_dump(),
            original_title=original.title if original else None,
            original_author_id=original.author_id if original else None,
            original_author_name=original_author.full_name if original_author else None,
            original_author_avatar=original_author.avatar_url if original_author else None,
        )
