"""
Story read models.

Like and comment counts are computed from source rows on every read; the
viewer flags are resolved with one query per flag for the whole page.
"""

from __future__ import annotations

from typing import Iterable
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models, schemas


def _counts_by_story(db: Session, column, story_ids: list[UUID], *filters) -> dict[UUID, int]:
    rows = (
        db.query(column, func.count())
        .filter(column.in_(story_ids), *filters)
        .group_by(column)
        .all()
    )
    return {story_id: count for story_id, count in rows}


def _viewer_story_ids(db: Session, model, viewer_id: UUID, story_ids: list[UUID]) -> set[UUID]:
    rows = (
        db.query(model.story_id)
        .filter(model.user_id == viewer_id, model.story_id.in_(story_ids))
        .all()
    )
    return {row[0] for row in rows}


def build_story_views(
    db: Session,
    stories: Iterable[models.Story],
    viewer_id: UUID | None = None,
) -> list[schemas.Story]:
    """Attach counts, author details and viewer flags to `stories`, keeping order."""
    stories = list(stories)
    if not stories:
        return []

    story_ids = [s.id for s in stories]
    likes = _counts_by_story(db, models.Like.story_id, story_ids)
    comments = _counts_by_story(
        db, models.Comment.story_id, story_ids, models.Comment.is_approved.is_(True)
    )

    author_ids = {s.author_id for s in stories}
    authors = {
        u.id: u for u in db.query(models.User).filter(models.User.id.in_(author_ids)).all()
    }

    liked: set[UUID] = set()
    bookmarked: set[UUID] = set()
    reposted: set[UUID] = set()
    if viewer_id is not None:
        liked = _viewer_story_ids(db, models.Like, viewer_id, story_ids)
        bookmarked = _viewer_story_ids(db, models.Bookmark, viewer_id, story_ids)
        reposted = _viewer_story_ids(db, models.Repost, viewer_id, story_ids)

    views = []
    for story in stories:
        author = authors.get(story.author_id)
        views.append(
            schemas.Story(
                id=story.id,
                author_id=story.author_id,
                title=story.title,
                slug=story.slug,
                content=story.content,
                excerpt=story.excerpt,
                category=story.category,
                status=story.status,
                views_count=story.views_count,
                is_repost=story.is_repost,
                original_story_id=story.original_story_id,
                repost_comment=story.repost_comment,
                community_id=story.community_id,
                published_at=story.published_at,
                created_at=story.created_at,
                author_name=author.full_name if author else None,
                author_avatar=author.avatar_url if author else None,
                likes_count=likes.get(story.id, 0),
                comments_count=comments.get(story.id, 0),
                reposts_count=story.reposts_count,
                is_liked_by_user=story.id in liked,
                is_bookmarked_by_user=story.id in bookmarked,
                is_reposted_by_user=story.id in reposted,
            )
        )
    return views


def build_story_view(
    db: Session, story: models.Story, viewer_id: UUID | None = None
) -> schemas.Story:
    return build_story_views(db, [story], viewer_id)[0]
