"""Resolve path identifiers that may be a UUID or a human-readable key."""

from __future__ import annotations

import uuid

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from .. import models


def parse_uuid(value: str | uuid.UUID | None) -> uuid.UUID | None:
    """Return the UUID for a UUID-shaped value, otherwise None."""
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value).strip())
    except ValueError:
        return None


def find_story(db: Session, identifier: str | uuid.UUID) -> models.Story | None:
    """
    Look a story up by id, falling back to slug.

    An identifier that parses as a UUID but matches no id is still tried as a
    slug.
    """
    story_id = parse_uuid(identifier)
    if story_id is not None:
        story = db.get(models.Story, story_id)
        if story is not None:
            return story
    return db.query(models.Story).filter(models.Story.slug == str(identifier)).first()


def find_user(db: Session, identifier: str | uuid.UUID) -> models.User | None:
    """Look an active user up by id, then by username or email (case-insensitive)."""
    user_id = parse_uuid(identifier)
    if user_id is not None:
        user = db.get(models.User, user_id)
        if user is not None and user.is_active:
            return user

    key = str(identifier).strip().lower()
    return (
        db.query(models.User)
        .filter(
            models.User.is_active.is_(True),
            or_(func.lower(models.User.username) == key, func.lower(models.User.email) == key),
        )
        .first()
    )
