"""Communities and their memberships."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import String, literal, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import atomic
from ..errors import (
    AlreadyMember,
    CommunityNotFound,
    DuplicateCommunity,
    ForbiddenError,
    InvalidInputError,
)
from ..utils.slugs import slugify
from .counters import decrement, increment

logger = logging.getLogger(__name__)


class CommunityService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _membership(self, community_id: UUID, user_id: UUID) -> models.CommunityMember | None:
        return (
            self.db.query(models.CommunityMember)
            .filter(
                models.CommunityMember.community_id == community_id,
                models.CommunityMember.user_id == user_id,
            )
            .first()
        )

    def _to_schema(
        self,
        community: models.Community,
        creator_name: str | None,
        role: str | None,
    ) -> schemas.Community:
        return schemas.Community(
            id=community.id,
            name=community.name,
            slug=community.slug,
            description=community.description,
            created_by=community.created_by,
            creator_name=creator_name,
            member_count=community.member_count,
            post_count=community.post_count,
            is_private=community.is_private,
            rules=community.rules,
            created_at=community.created_at,
            is_member=role is not None,
            user_role=role,
        )

    def _query(self, viewer_id: UUID | None):
        query = self.db.query(models.Community, models.User.full_name).outerjoin(
            models.User, models.User.id == models.Community.created_by
        )
        if viewer_id is None:
            return query.add_columns(literal(None, type_=String).label("role"))
        return query.outerjoin(
            models.CommunityMember,
            (models.CommunityMember.community_id == models.Community.id)
            & (models.CommunityMember.user_id == viewer_id),
        ).add_columns(models.CommunityMember.role)

    def list(self, viewer_id: UUID | None = None) -> list[schemas.Community]:
        rows = (
            self._query(viewer_id)
            .order_by(models.Community.member_count.desc(), models.Community.name)
            .all()
        )
        return [self._to_schema(c, creator, role) for c, creator, role in rows]

    def get(self, slug: str, viewer_id: UUID | None = None) -> schemas.Community:
        row = self._query(viewer_id).filter(models.Community.slug == slug).first()
        if row is None:
            raise CommunityNotFound()
        community, creator, role = row
        return self._to_schema(community, creator, role)

    def create(self, creator: models.User, payload: schemas.CommunityCreate) -> schemas.Community:
        """Create a community; the creator joins as its admin."""
        slug = slugify(payload.name, max_length=255)
        if not slug:
            raise InvalidInputError("Community name must contain letters or digits")

        exists = (
            self.db.query(models.Community.id)
            .filter(or_(models.Community.slug == slug, models.Community.name == payload.name))
            .first()
        )
        if exists is not None:
            raise DuplicateCommunity()

        try:
            with atomic(self.db):
                community = models.Community(
                    name=payload.name,
                    slug=slug,
                    description=payload.description,
                    created_by=creator.id,
                    is_private=payload.is_private,
                    rules=payload.rules,
                    member_count=1,
                )
                self.db.add(community)
                self.db.flush()
                self.db.add(
                    models.CommunityMember(
                        community_id=community.id, user_id=creator.id, role="admin"
                    )
                )
        except IntegrityError:
            raise DuplicateCommunity() from None

        logger.info(f"User {creator.id} created community {community.id} ({slug})")
        return self._to_schema(community, creator.full_name, "admin")

    def join(self, community_id: UUID, user_id: UUID) -> None:
        community = self.db.get(models.Community, community_id)
        if community is None:
            raise CommunityNotFound()
        if community.is_private:
            raise ForbiddenError("This is a private community")
        if self._membership(community_id, user_id) is not None:
            raise AlreadyMember()

        try:
            with atomic(self.db):
                self.db.add(models.CommunityMember(community_id=community_id, user_id=user_id))
                self.db.flush()
                increment(
                    self.db, models.Community.member_count, models.Community.id == community_id
                )
        except IntegrityError:
            raise AlreadyMember() from None

        logger.info(f"User {user_id} joined community {community_id}")

    def leave(self, community_id: UUID, user_id: UUID) -> bool:
        """Returns True when a membership was removed."""
        with atomic(self.db):
            deleted = (
                self.db.query(models.CommunityMember)
                .filter(
                    models.CommunityMember.community_id == community_id,
                    models.CommunityMember.user_id == user_id,
                )
                .delete(synchronize_session=False)
            )
            if deleted:
                decrement(
                    self.db, models.Community.member_count, models.Community.id == community_id
                )

        if deleted:
            logger.info(f"User {user_id} left community {community_id}")
        return bool(deleted)
