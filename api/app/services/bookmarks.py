"""Saved stories. Adding and removing are both idempotent."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import atomic, insert_ignore
from ..errors import StoryNotFound


class BookmarkService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def add(self, story_id: UUID, user_id: UUID) -> bool:
        if self.db.get(models.Story, story_id) is None:
            raise StoryNotFound()
        with atomic(self.db):
            return insert_ignore(
                self.db,
                models.Bookmark,
                {"user_id": user_id, "story_id": story_id},
                conflict_columns=("user_id", "story_id"),
            )

    def remove(self, story_id: UUID, user_id: UUID) -> bool:
        with atomic(self.db):
            deleted = (
                self.db.query(models.Bookmark)
                .filter(models.Bookmark.story_id == story_id, models.Bookmark.user_id == user_id)
                .delete(synchronize_session=False)
            )
        return bool(deleted)

    def list_for_user(self, user_id: UUID, limit: int = 20, offset: int = 0) -> list[schemas.BookmarkedStory]:
        rows = (
            self.db.query(models.Story, models.User.full_name, models.Bookmark.created_at)
            .join(models.Bookmark, models.Bookmark.story_id == models.Story.id)
            .join(models.User, models.User.id == models.Story.author_id)
            .filter(models.Bookmark.user_id == user_id)
            .order_by(models.Bookmark.created_at.desc(), models.Bookmark.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return [
            schemas.BookmarkedStory(
                id=story.id,
                title=story.title,
                slug=story.slug,
                excerpt=story.excerpt,
                author_id=story.author_id,
                author_name=author_name,
                bookmarked_at=bookmarked_at,
            )
            for story, author_name, bookmarked_at in rows
        ]
