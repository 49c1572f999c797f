"""Public profiles and account deletion."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .. import models, schemas
from ..cache import Cache, NullCache
from ..db import atomic
from ..errors import UserNotFound
from ..utils.identifiers import find_user
from .counters import decrement

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: Session, cache: Cache | None = None) -> None:
        self.db = db
        self.cache = cache or NullCache()

    def get_profile(self, identifier: str | UUID) -> schemas.UserProfile:
        user = find_user(self.db, identifier)
        if user is None:
            raise UserNotFound()
        return schemas.UserProfile.model_validate(user)

    def delete_account(self, user: models.User) -> None:
        """
        Delete a user and everything they own.

        Cascades remove the user's rows; before that, every counter the user
        contributed to on other rows is released in the same transaction.
        """
        user_id = user.id
        Follow, Story = models.Follow, models.Story

        with atomic(self.db):
            # Counterparts of the user's follow edges
            decrement(
                self.db,
                models.User.followers_count,
                models.User.id.in_(select(Follow.following_id).where(Follow.follower_id == user_id)),
            )
            decrement(
                self.db,
                models.User.following_count,
                models.User.id.in_(select(Follow.follower_id).where(Follow.following_id == user_id)),
            )

            # Other people's stories the user reposted
            decrement(
                self.db,
                Story.reposts_count,
                Story.id.in_(
                    select(models.Repost.story_id).where(models.Repost.user_id == user_id)
                ),
                Story.author_id != user_id,
            )

            decrement(
                self.db,
                models.Community.member_count,
                models.Community.id.in_(
                    select(models.CommunityMember.community_id).where(
                        models.CommunityMember.user_id == user_id
                    )
                ),
            )

            decrement(
                self.db,
                models.PollOption.votes_count,
                models.PollOption.id.in_(
                    select(models.PollVote.poll_option_id).where(models.PollVote.user_id == user_id)
                ),
            )

            # Hashtag usage and community post counts from the user's stories
            tag_usage = (
                self.db.query(models.StoryHashtag.hashtag_id, func.count())
                .join(Story, Story.id == models.StoryHashtag.story_id)
                .filter(Story.author_id == user_id)
                .group_by(models.StoryHashtag.hashtag_id)
                .all()
            )
            for hashtag_id, uses in tag_usage:
                decrement(self.db, models.Hashtag.usage_count, models.Hashtag.id == hashtag_id, by=uses)

            community_posts = (
                self.db.query(Story.community_id, func.count())
                .filter(Story.author_id == user_id, Story.community_id.isnot(None))
                .group_by(Story.community_id)
                .all()
            )
            for community_id, posts in community_posts:
                decrement(
                    self.db, models.Community.post_count, models.Community.id == community_id, by=posts
                )

            self.db.query(models.User).filter(models.User.id == user_id).delete(
                synchronize_session=False
            )

        logger.info(f"Deleted account {user_id}")
        self.cache.invalidate("suggested:*")
        if tag_usage:
            self.cache.invalidate("trending:*")
