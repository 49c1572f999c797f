"""
Aggregate statistics for the home page widgets.

Each read goes through the cache first. Values may be stale for up to their
TTL; nothing here is used by a mutation path.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID

from sqlalchemy import func, literal, select, union
from sqlalchemy.orm import Session, aliased

from .. import models, schemas, settings
from ..cache import COMMUNITY_STATS_KEY, SUGGESTED_USERS_KEY, TRENDING_TOPICS_KEY, Cache
from ..utils.dates import utcnow

logger = logging.getLogger(__name__)

TRENDING_WINDOW = timedelta(days=30)
ACTIVE_WINDOW = timedelta(hours=24)
TRENDING_LIMIT = 10
SUGGESTED_POOL_SIZE = 20


class StatsService:
    def __init__(self, db: Session, cache: Cache) -> None:
        self.db = db
        self.cache = cache

    def community_stats(self) -> tuple[schemas.CommunityStats, bool]:
        """Returns (stats, served_from_cache)."""
        cached = self.cache.get(COMMUNITY_STATS_KEY)
        if cached is not None:
            return schemas.CommunityStats.model_validate(cached), True

        since = utcnow() - ACTIVE_WINDOW
        active = union(
            select(models.Story.author_id.label("user_id")).where(models.Story.created_at > since),
            select(models.Comment.user_id.label("user_id")).where(models.Comment.created_at > since),
        ).subquery()

        stats = schemas.CommunityStats(
            total_members=self.db.query(models.User)
            .filter(models.User.is_active.is_(True))
            .count(),
            total_stories=self.db.query(models.Story)
            .filter(models.Story.status == "published")
            .count(),
            active_now=self.db.execute(select(func.count()).select_from(active)).scalar_one(),
            countries=self.db.query(func.count(func.distinct(models.User.country_of_origin)))
            .filter(models.User.country_of_origin.isnot(None))
            .scalar(),
        )

        self.cache.set(COMMUNITY_STATS_KEY, stats.model_dump(mode="json"), settings.COMMUNITY_STATS_CACHE_TTL)
        return stats, False

    def trending_topics(self) -> tuple[list[schemas.TrendingTopic], bool]:
        """Hashtags ranked by published stories in the last 30 days."""
        cached = self.cache.get(TRENDING_TOPICS_KEY)
        if cached is not None:
            return [schemas.TrendingTopic.model_validate(item) for item in cached], True

        post_count = func.count(models.Story.id).label("post_count")
        total_views = func.coalesce(func.sum(models.Story.views_count), 0).label("total_views")
        rows = (
            self.db.query(models.Hashtag.name, post_count, total_views)
            .join(models.StoryHashtag, models.StoryHashtag.hashtag_id == models.Hashtag.id)
            .join(models.Story, models.Story.id == models.StoryHashtag.story_id)
            .filter(
                models.Story.status == "published",
                models.Story.published_at > utcnow() - TRENDING_WINDOW,
            )
            .group_by(models.Hashtag.name)
            .order_by(post_count.desc(), total_views.desc(), models.Hashtag.name)
            .limit(TRENDING_LIMIT)
            .all()
        )

        topics = [
            schemas.TrendingTopic(tag=name, post_count=count, rank=index + 1)
            for index, (name, count, _views) in enumerate(rows)
        ]

        self.cache.set(
            TRENDING_TOPICS_KEY,
            [topic.model_dump(mode="json") for topic in topics],
            settings.TRENDING_CACHE_TTL,
        )
        return topics, False

    def suggested_users(
        self, viewer_id: UUID | None = None, limit: int = 5
    ) -> tuple[list[schemas.SuggestedUser], bool]:
        """
        Users ranked by likes received, then story count.

        Only the anonymous list is cached; an authenticated caller's list
        excludes the caller and carries mutual-follow counts.
        """
        use_cache = viewer_id is None
        if use_cache:
            cached = self.cache.get(SUGGESTED_USERS_KEY)
            if cached is not None:
                return [schemas.SuggestedUser.model_validate(u) for u in cached][:limit], True

        User, Story = models.User, models.Story
        story_count = (
            select(func.count(Story.id))
            .where(Story.author_id == User.id, Story.status == "published")
            .scalar_subquery()
        )
        total_likes = (
            select(func.count(models.Like.id))
            .join(Story, Story.id == models.Like.story_id)
            .where(Story.author_id == User.id, Story.status == "published")
            .scalar_subquery()
        )
        if viewer_id is not None:
            mine, theirs = aliased(models.Follow), aliased(models.Follow)
            mutual = (
                select(func.count())
                .select_from(mine)
                .join(theirs, theirs.following_id == mine.following_id)
                .where(mine.follower_id == viewer_id, theirs.follower_id == User.id)
                .scalar_subquery()
            )
        else:
            mutual = literal(0)

        query = self.db.query(User, story_count, mutual).filter(User.is_active.is_(True))
        if viewer_id is not None:
            query = query.filter(User.id != viewer_id)

        rows = (
            query.order_by(total_likes.desc(), story_count.desc(), User.created_at.desc())
            .limit(SUGGESTED_POOL_SIZE)
            .all()
        )
        users = [
            schemas.SuggestedUser(
                id=user.id,
                name=user.full_name,
                bio=user.bio,
                avatar=user.avatar_url,
                mutual=mutual_count or 0,
                story_count=stories or 0,
            )
            for user, stories, mutual_count in rows
        ]

        if use_cache:
            self.cache.set(
                SUGGESTED_USERS_KEY,
                [u.model_dump(mode="json") for u in users],
                settings.SUGGESTED_USERS_CACHE_TTL,
            )
        return users[:limit], False
