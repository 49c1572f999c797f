"""Story publishing, reads and deletion."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import require_ownership
from ..cache import Cache, NullCache
from ..db import atomic
from ..errors import CommunityNotFound, InvalidInputError, StoryNotFound
from ..pagination import page_info, page_to_offset
from ..utils.dates import utcnow
from ..utils.hashtags import normalize_hashtag
from ..utils.identifiers import find_story
from ..utils.slugs import unique_slug
from .counters import decrement, increment
from .hashtags import HashtagService
from .polls import PollService
from .story_views import build_story_view, build_story_views

logger = logging.getLogger(__name__)

STORY_FILTERS = ("recent", "following", "trending")

# Aggregates derived from story hashtags
TRENDING_CACHE_PATTERN = "trending:*"


class StoryService:
    def __init__(self, db: Session, cache: Cache | None = None) -> None:
        self.db = db
        self.cache = cache or NullCache()
        self.hashtags = HashtagService(db)
        self.polls = PollService(db)

    def create(self, author: models.User, payload: schemas.StoryCreate) -> schemas.StoryCreated:
        """
        Publish a story with its hashtag links and optional poll in one
        transaction.
        """
        if payload.community_id is not None:
            if self.db.get(models.Community, payload.community_id) is None:
                raise CommunityNotFound()

        with atomic(self.db):
            story = models.Story(
                author_id=author.id,
                title=payload.title,
                slug=unique_slug(self.db, models.Story.slug, payload.title),
                content=payload.content,
                excerpt=payload.excerpt,
                category=payload.category,
                community_id=payload.community_id,
                status="published",
                published_at=utcnow(),
            )
            self.db.add(story)
            self.db.flush()

            hashtags = self.hashtags.link_story(story.id, payload.title, payload.content)

            poll = None
            if payload.poll is not None:
                poll = self.polls.create_poll(
                    story.id,
                    payload.poll.question,
                    payload.poll.options,
                    payload.poll.expires_at,
                )

            if payload.community_id is not None:
                increment(
                    self.db,
                    models.Community.post_count,
                    models.Community.id == payload.community_id,
                )

        logger.info(f"User {author.id} published story {story.id} ({story.slug})")
        if hashtags:
            self.cache.invalidate(TRENDING_CACHE_PATTERN)

        return schemas.StoryCreated(
            story=build_story_view(self.db, story, author.id),
            poll=self.polls.to_schema(poll, author.id) if poll is not None else None,
            hashtags=hashtags,
        )

    def get(self, identifier: str, viewer_id: UUID | None = None) -> schemas.Story:
        """Read a story by slug or id and count the view."""
        story = find_story(self.db, identifier)
        if story is None or (story.status != "published" and story.author_id != viewer_id):
            raise StoryNotFound()

        with atomic(self.db):
            increment(self.db, models.Story.views_count, models.Story.id == story.id)
        self.db.refresh(story)

        return build_story_view(self.db, story, viewer_id)

    def list(
        self,
        page: int = 1,
        limit: int = 20,
        category: str | None = None,
        search: str | None = None,
        tag: str | None = None,
        filter: str = "recent",
        viewer_id: UUID | None = None,
    ) -> schemas.StoryList:
        if filter not in STORY_FILTERS:
            raise InvalidInputError(f"filter must be one of: {', '.join(STORY_FILTERS)}")

        query = self.db.query(models.Story).filter(models.Story.status == "published")

        if category:
            query = query.filter(models.Story.category == category)

        if search:
            term = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(models.Story.title).like(term),
                    func.lower(models.Story.content).like(term),
                )
            )

        if tag:
            query = (
                query.join(models.StoryHashtag, models.StoryHashtag.story_id == models.Story.id)
                .join(models.Hashtag, models.Hashtag.id == models.StoryHashtag.hashtag_id)
                .filter(models.Hashtag.name == normalize_hashtag(tag))
            )

        if filter == "following":
            if viewer_id is None:
                return schemas.StoryList(stories=[], pagination=page_info(page, limit, 0))
            followed = select(models.Follow.following_id).where(
                models.Follow.follower_id == viewer_id
            )
            query = query.filter(models.Story.author_id.in_(followed))

        total = query.count()

        if filter == "trending":
            likes = (
                select(func.count(models.Like.id))
                .where(models.Like.story_id == models.Story.id)
                .correlate(models.Story)
                .scalar_subquery()
            )
            query = query.order_by(likes.desc(), models.Story.published_at.desc())
        else:
            query = query.order_by(models.Story.published_at.desc(), models.Story.id.desc())

        stories = query.offset(page_to_offset(page, limit)).limit(limit).all()

        return schemas.StoryList(
            stories=build_story_views(self.db, stories, viewer_id),
            pagination=page_info(page, limit, total),
        )

    def delete(self, story_id: UUID, user: models.User) -> None:
        """
        Delete a story (author or admin).

        Counters the story contributed to are released first; likes,
        comments, polls, hashtag links, notifications and repost copies of
        this story go with it by cascade.
        """
        story = self.db.get(models.Story, story_id)
        if story is None:
            raise StoryNotFound()
        require_ownership(story.author_id, user, "You can only delete your own stories")

        with atomic(self.db):
            released = self.hashtags.release_story(story_id)

            if story.community_id is not None:
                decrement(
                    self.db,
                    models.Community.post_count,
                    models.Community.id == story.community_id,
                )

            if story.is_repost:
                tracking = (
                    self.db.query(models.Repost)
                    .filter(models.Repost.repost_story_id == story_id)
                    .first()
                )
                if tracking is not None:
                    decrement(
                        self.db,
                        models.Story.reposts_count,
                        models.Story.id == tracking.story_id,
                    )
                    self.db.query(models.Repost).filter(models.Repost.id == tracking.id).delete(
                        synchronize_session=False
                    )

            self.db.query(models.Story).filter(models.Story.id == story_id).delete(
                synchronize_session=False
            )

        logger.info(f"Story {story_id} deleted by {user.id}")
        if released:
            self.cache.invalidate(TRENDING_CACHE_PATTERN)
