"""Slug generation for stories and communities."""

from __future__ import annotations

import re
import uuid

from sqlalchemy.orm import InstrumentedAttribute, Session

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

MAX_SLUG_ATTEMPTS = 20


def slugify(text: str, max_length: int = 200) -> str:
    """
    Lowercase `text` and collapse every run of non-alphanumerics into one hyphen.

    Returns "" when nothing alphanumeric remains (e.g. titles in other scripts).
    """
    slug = _NON_ALNUM.sub("-", text.lower()).strip("-")
    return slug[:max_length].rstrip("-")


def is_slug_taken(db: Session, column: InstrumentedAttribute, slug: str) -> bool:
    return db.query(column).filter(column == slug).first() is not None


def unique_slug(db: Session, column: InstrumentedAttribute, text: str, fallback: str = "story") -> str:
    """
    Derive a slug from `text` that is not yet used in `column`.

    Taken slugs get a numeric suffix ("my-title-2", "my-title-3"...); after
    MAX_SLUG_ATTEMPTS a random suffix is used instead.
    """
    base = slugify(text) or fallback
    if not is_slug_taken(db, column, base):
        return base

    for n in range(2, MAX_SLUG_ATTEMPTS + 2):
        candidate = f"{base}-{n}"
        if not is_slug_taken(db, column, candidate):
            return candidate

    return f"{base}-{uuid.uuid4().hex[:8]}"
