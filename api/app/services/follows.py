"""
Follow Service.

Following is exclusive (a repeated follow is AlreadyFollowing); unfollowing
is idempotent. The follow row and both users' counters always commit
together.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import atomic
from ..errors import AlreadyFollowing, SelfFollow, UserNotFound
from ..utils.identifiers import find_user
from .counters import decrement, increment
from .notifications import NotificationService

logger = logging.getLogger(__name__)


class FollowService:
    def __init__(self, db: Session, notifications: NotificationService | None = None) -> None:
        self.db = db
        self.notifications = notifications or NotificationService(db)

    def resolve_user(self, identifier: str | UUID) -> models.User:
        user = find_user(self.db, identifier)
        if user is None:
            raise UserNotFound()
        return user

    def _exists(self, follower_id: UUID, following_id: UUID) -> bool:
        return (
            self.db.query(models.Follow.id)
            .filter(
                models.Follow.follower_id == follower_id,
                models.Follow.following_id == following_id,
            )
            .first()
            is not None
        )

    def follow(self, identifier: str | UUID, follower: models.User) -> models.User:
        """Follow the user named by `identifier`. Returns the followed user."""
        target = self.resolve_user(identifier)
        if target.id == follower.id:
            raise SelfFollow()

        if self._exists(follower.id, target.id):
            raise AlreadyFollowing()

        try:
            with atomic(self.db):
                self.db.add(models.Follow(follower_id=follower.id, following_id=target.id))
                self.db.flush()
                increment(self.db, models.User.following_count, models.User.id == follower.id)
                increment(self.db, models.User.followers_count, models.User.id == target.id)
        except IntegrityError:
            raise AlreadyFollowing() from None

        logger.info(f"User {follower.id} followed {target.id}")
        self.notifications.notify(target.id, follower.id, "follow")
        return target

    def unfollow(self, identifier: str | UUID, follower: models.User) -> bool:
        """Returns True when a follow row was removed."""
        target = self.resolve_user(identifier)

        with atomic(self.db):
            deleted = (
                self.db.query(models.Follow)
                .filter(
                    models.Follow.follower_id == follower.id,
                    models.Follow.following_id == target.id,
                )
                .delete(synchronize_session=False)
            )
            if deleted:
                decrement(self.db, models.User.following_count, models.User.id == follower.id)
                decrement(self.db, models.User.followers_count, models.User.id == target.id)

        if deleted:
            logger.info(f"User {follower.id} unfollowed {target.id}")
        return bool(deleted)

    def is_following(self, identifier: str | UUID, follower_id: UUID) -> bool:
        target = self.resolve_user(identifier)
        return self._exists(follower_id, target.id)

    def mutual(self, identifier: str | UUID, user_id: UUID) -> schemas.MutualFollowStatus:
        target = self.resolve_user(identifier)
        is_following = self._exists(user_id, target.id)
        is_follower = self._exists(target.id, user_id)
        return schemas.MutualFollowStatus(
            is_following=is_following,
            is_follower=is_follower,
            is_mutual=is_following and is_follower,
        )

    def followers(self, identifier: str | UUID, limit: int = 20, offset: int = 0) -> list[schemas.FollowEntry]:
        """Users following `identifier`, most recent follow first."""
        target = self.resolve_user(identifier)
        return self._list(
            models.Follow.follower_id, models.Follow.following_id == target.id, limit, offset
        )

    def following(self, identifier: str | UUID, limit: int = 20, offset: int = 0) -> list[schemas.FollowEntry]:
        """Users `identifier` follows, most recent follow first."""
        target = self.resolve_user(identifier)
        return self._list(
            models.Follow.following_id, models.Follow.follower_id == target.id, limit, offset
        )

    def _list(self, join_column, condition, limit: int, offset: int) -> list[schemas.FollowEntry]:
        rows = (
            self.db.query(models.User, models.Follow.created_at)
            .join(models.Follow, join_column == models.User.id)
            .filter(condition)
            .order_by(models.Follow.created_at.desc(), models.Follow.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return [
            schemas.FollowEntry(
                id=user.id,
                full_name=user.full_name,
                username=user.username,
                avatar_url=user.avatar_url,
                bio=user.bio,
                followed_at=followed_at,
            )
            for user, followed_at in rows
        ]
