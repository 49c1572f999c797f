"""Hashtag links and usage counters."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import insert_ignore
from ..errors import HashtagNotFound
from ..utils.hashtags import extract_hashtags, normalize_hashtag
from .counters import decrement, increment
from .story_views import build_story_views

logger = logging.getLogger(__name__)


class HashtagService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def link_story(self, story_id: UUID, *texts: str | None) -> list[str]:
        """
        Link every hashtag found in `texts` to the story.

        Each newly created link bumps the hashtag's usage_count by one. Runs
        inside the caller's transaction.
        """
        names = extract_hashtags(*texts)
        for name in names:
            insert_ignore(self.db, models.Hashtag, {"name": name}, conflict_columns=("name",))
            hashtag_id = (
                self.db.query(models.Hashtag.id).filter(models.Hashtag.name == name).scalar()
            )
            linked = insert_ignore(
                self.db,
                models.StoryHashtag,
                {"story_id": story_id, "hashtag_id": hashtag_id},
                conflict_columns=("story_id", "hashtag_id"),
            )
            if linked:
                increment(self.db, models.Hashtag.usage_count, models.Hashtag.id == hashtag_id)

        if names:
            logger.debug(f"Linked hashtags {names} to story {story_id}")
        return names

    def release_story(self, story_id: UUID) -> int:
        """
        Decrement usage for every hashtag linked to the story.

        The links themselves are removed by the story delete cascade.
        """
        hashtag_ids = [
            row[0]
            for row in self.db.query(models.StoryHashtag.hashtag_id)
            .filter(models.StoryHashtag.story_id == story_id)
            .all()
        ]
        if hashtag_ids:
            decrement(self.db, models.Hashtag.usage_count, models.Hashtag.id.in_(hashtag_ids))
        return len(hashtag_ids)

    def trending(self, limit: int = 10) -> list[models.Hashtag]:
        return (
            self.db.query(models.Hashtag)
            .filter(models.Hashtag.usage_count > 0)
            .order_by(models.Hashtag.usage_count.desc(), models.Hashtag.name)
            .limit(limit)
            .all()
        )

    def search(self, q: str, limit: int = 20) -> list[models.Hashtag]:
        term = normalize_hashtag(q)
        if not term:
            return []
        # Escape LIKE wildcards so they match literally
        pattern = "%" + term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"
        return (
            self.db.query(models.Hashtag)
            .filter(models.Hashtag.name.like(pattern, escape="\\"))
            .order_by(models.Hashtag.usage_count.desc(), models.Hashtag.name)
            .limit(limit)
            .all()
        )

    def get(self, name: str) -> models.Hashtag:
        hashtag = (
            self.db.query(models.Hashtag)
            .filter(models.Hashtag.name == normalize_hashtag(name))
            .first()
        )
        if hashtag is None:
            raise HashtagNotFound()
        return hashtag

    def stories(
        self,
        name: str,
        limit: int = 20,
        offset: int = 0,
        viewer_id: UUID | None = None,
    ) -> list[schemas.Story]:
        """Published stories tagged with `name`, newest first."""
        hashtag = self.get(name)
        stories = (
            self.db.query(models.Story)
            .join(models.StoryHashtag, models.StoryHashtag.story_id == models.Story.id)
            .filter(
                models.StoryHashtag.hashtag_id == hashtag.id,
                models.Story.status == "published",
            )
            .order_by(models.Story.published_at.desc(), models.Story.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return build_story_views(self.db, stories, viewer_id)
