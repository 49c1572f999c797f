"""
Denormalized counters.

Counters move by explicit UPDATE statements inside the caller's transaction,
so the row they mirror and the counter commit together. `CounterService`
recomputes every counter from source rows; it is the only path that
overwrites a counter instead of moving it by one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import case, func, select, update
from sqlalchemy.orm import InstrumentedAttribute, Session

from .. import models
from ..db import atomic

logger = logging.getLogger(__name__)


def increment(db: Session, column: InstrumentedAttribute, *where, by: int = 1) -> int:
    """`column += by` for the rows matching `where`. Returns affected row count."""
    stmt = (
        update(column.class_)
        .where(*where)
        .values({column.key: column + by})
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).rowcount


def decrement(db: Session, column: InstrumentedAttribute, *where, by: int = 1) -> int:
    """`column -= by` for the rows matching `where`, never going below zero."""
    stmt = (
        update(column.class_)
        .where(*where)
        .values({column.key: case((column > by, column - by), else_=0)})
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).rowcount


@dataclass
class RepairReport:
    """Rows whose stored counter differed from the recomputed value, per counter."""

    drifted: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.drifted.values())


class CounterService:
    """Recomputes denormalized counters from their source rows."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _sync(
        self,
        name: str,
        column: InstrumentedAttribute,
        actual,
        apply: bool,
    ) -> int:
        """Overwrite `column` with the correlated `actual` value where they differ."""
        actual = func.coalesce(actual.scalar_subquery(), 0)
        where = column != actual
        drifted = self.db.execute(
            select(func.count()).select_from(column.class_).where(where)
        ).scalar_one()
        if drifted and apply:
            self.db.execute(
                update(column.class_)
                .where(where)
                .values({column.key: actual})
                .execution_options(synchronize_session=False)
            )
        if drifted:
            logger.warning(f"{name}: {drifted} rows drifted from source")
        return drifted

    def repair(self, dry_run: bool = False) -> RepairReport:
        """
        Recompute follow, repost, community, vote and hashtag counters.

        With `dry_run` the drift is only counted; nothing is written.
        """
        User, Story, Follow = models.User, models.Story, models.Follow
        report = RepairReport()

        checks = [
            (
                "users.followers_count",
                User.followers_count,
                select(func.count(Follow.id)).where(Follow.following_id == User.id),
            ),
            (
                "users.following_count",
                User.following_count,
                select(func.count(Follow.id)).where(Follow.follower_id == User.id),
            ),
            (
                "stories.reposts_count",
                Story.reposts_count,
                select(func.count(models.Repost.id)).where(models.Repost.story_id == Story.id),
            ),
            (
                "communities.member_count",
                models.Community.member_count,
                select(func.count(models.CommunityMember.id)).where(
                    models.CommunityMember.community_id == models.Community.id
                ),
            ),
            (
                "communities.post_count",
                models.Community.post_count,
                select(func.count(Story.id)).where(Story.community_id == models.Community.id),
            ),
            (
                "poll_options.votes_count",
                models.PollOption.votes_count,
                select(func.count(models.PollVote.id)).where(
                    models.PollVote.poll_option_id == models.PollOption.id
                ),
            ),
            (
                "hashtags.usage_count",
                models.Hashtag.usage_count,
                select(func.count(models.StoryHashtag.id)).where(
                    models.StoryHashtag.hashtag_id == models.Hashtag.id
                ),
            ),
        ]

        with atomic(self.db):
            for name, column, actual in checks:
                drifted = self._sync(name, column, actual.correlate(column.class_), not dry_run)
                if drifted:
                    report.drifted[name] = drifted

        if report.total:
            action = "found" if dry_run else "repaired"
            logger.info(f"Counter repair {action} {report.total} drifted rows")
        else:
            logger.info("Counter repair: all counters consistent")
        return report
