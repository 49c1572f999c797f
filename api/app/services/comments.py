"""Story comments and replies."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import require_ownership
from ..db import atomic
from ..errors import CommentNotFound, InvalidInputError, StoryNotFound
from .notifications import NotificationService

logger = logging.getLogger(__name__)


class CommentService:
    def __init__(self, db: Session, notifications: NotificationService | None = None) -> None:
        self.db = db
        self.notifications = notifications or NotificationService(db)

    def create(
        self,
        user: models.User,
        story_id: UUID,
        content: str,
        parent_id: UUID | None = None,
    ) -> schemas.Comment:
        """
        Add a comment or reply.

        Only the story's author is notified; replies do not notify the
        parent comment's author.
        """
        story = self.db.get(models.Story, story_id)
        if story is None:
            raise StoryNotFound()

        if parent_id is not None:
            parent = self.db.get(models.Comment, parent_id)
            if parent is None:
                raise CommentNotFound("Parent comment not found")
            if parent.story_id != story_id:
                raise InvalidInputError("Parent comment belongs to a different story")

        with atomic(self.db):
            comment = models.Comment(
                story_id=story_id,
                user_id=user.id,
                parent_id=parent_id,
                content=content,
            )
            self.db.add(comment)

        logger.info(f"User {user.id} commented {comment.id} on story {story_id}")
        self.notifications.notify_story_author(story, user.id, "comment", comment_id=comment.id)

        return self._to_schema(comment, user)

    def list_for_story(self, story_id: UUID, limit: int = 50, offset: int = 0) -> list[schemas.Comment]:
        rows = (
            self.db.query(models.Comment, models.User)
            .join(models.User, models.User.id == models.Comment.user_id)
            .filter(
                models.Comment.story_id == story_id,
                models.Comment.is_approved.is_(True),
            )
            .order_by(models.Comment.created_at.desc(), models.Comment.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return [self._to_schema(comment, author) for comment, author in rows]

    def list_for_user(self, user_id: UUID, limit: int = 50, offset: int = 0) -> list[schemas.UserComment]:
        rows = (
            self.db.query(models.Comment, models.Story.title, models.Story.slug)
            .join(models.Story, models.Story.id == models.Comment.story_id)
            .filter(models.Comment.user_id == user_id)
            .order_by(models.Comment.created_at.desc(), models.Comment.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return [
            schemas.UserComment(
                id=comment.id,
                content=comment.content,
                created_at=comment.created_at,
                story_id=comment.story_id,
                parent_id=comment.parent_id,
                story_slug=slug,
                story_title=title,
            )
            for comment, title, slug in rows
        ]

    def delete(self, comment_id: UUID, user: models.User) -> None:
        """Delete a comment (author or admin). Replies are removed by cascade."""
        comment = self.db.get(models.Comment, comment_id)
        if comment is None:
            raise CommentNotFound()
        require_ownership(comment.user_id, user, "You can only delete your own comments")

        with atomic(self.db):
            self.db.query(models.Comment).filter(models.Comment.id == comment_id).delete(
                synchronize_session=False
            )
        logger.info(f"Comment {comment_id} deleted by {user.id}")

    @staticmethod
    def _to_schema(comment: models.Comment, author: models.User) -> schemas.Comment:
        return schemas.Comment(
            id=comment.id,
            story_id=comment.story_id,
            user_id=comment.user_id,
            parent_id=comment.parent_id,
            content=comment.content,
            created_at=comment.created_at,
            user_name=author.full_name,
            user_avatar=author.avatar_url,
        )
