"""
Poll Service.

A poll belongs to one story and is created with it. A user holds at most
one vote per poll: the explicit check walks option -> poll, and the
(poll_id, user_id) unique constraint on poll_votes catches concurrent
double submissions that pass the check together.
"""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas, settings
from ..db import atomic
from ..errors import AlreadyVoted, InvalidInputError, PollExpired, PollNotFound, PollOptionNotFound
from ..utils.dates import is_past
from .counters import increment

logger = logging.getLogger(__name__)


class PollService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def create_poll(
        self,
        story_id: UUID,
        question: str,
        options: list[str],
        expires_at: datetime | None = None,
    ) -> models.Poll:
        """
        Insert a poll and its options in display order.

        Runs inside the caller's transaction (story creation).
        """
        options = [option.strip() for option in options]
        if not settings.MIN_POLL_OPTIONS <= len(options) <= settings.MAX_POLL_OPTIONS:
            raise InvalidInputError(
                f"A poll needs between {settings.MIN_POLL_OPTIONS} and "
                f"{settings.MAX_POLL_OPTIONS} options"
            )
        if any(not option for option in options):
            raise InvalidInputError("Poll options cannot be empty")
        if len({option.lower() for option in options}) != len(options):
            raise InvalidInputError("Poll options must be distinct")

        poll = models.Poll(story_id=story_id, question=question.strip(), expires_at=expires_at)
        self.db.add(poll)
        self.db.flush()

        for order, text in enumerate(options):
            self.db.add(models.PollOption(poll_id=poll.id, option_text=text, option_order=order))
        self.db.flush()

        logger.info(f"Created poll {poll.id} with {len(options)} options on story {story_id}")
        return poll

    def _existing_vote(self, poll_id: UUID, user_id: UUID) -> models.PollVote | None:
        return (
            self.db.query(models.PollVote)
            .join(models.PollOption, models.PollOption.id == models.PollVote.poll_option_id)
            .filter(models.PollOption.poll_id == poll_id, models.PollVote.user_id == user_id)
            .first()
        )

    def vote(self, option_id: UUID, user_id: UUID) -> models.Poll:
        """
        Record a vote for `option_id`.

        Raises PollOptionNotFound, PollExpired or AlreadyVoted; on success
        the option's votes_count moves by one in the same transaction.
        """
        option = self.db.get(models.PollOption, option_id)
        if option is None:
            raise PollOptionNotFound()

        poll = option.poll
        if is_past(poll.expires_at):
            raise PollExpired()

        if self._existing_vote(poll.id, user_id) is not None:
            raise AlreadyVoted()

        try:
            with atomic(self.db):
                self.db.add(
                    models.PollVote(user_id=user_id, poll_option_id=option.id, poll_id=poll.id)
                )
                self.db.flush()
                increment(self.db, models.PollOption.votes_count, models.PollOption.id == option.id)
        except IntegrityError:
            logger.info(f"Concurrent duplicate vote by user {user_id} on poll {poll.id} rejected")
            raise AlreadyVoted() from None

        logger.info(f"User {user_id} voted for option {option.id} on poll {poll.id}")
        return poll

    def get_for_story(self, story_id: UUID, viewer_id: UUID | None = None) -> schemas.Poll:
        """
        Poll with vote counts recomputed from poll_votes.

        total_votes is the sum of the per-option counts, independent of the
        stored votes_count.
        """
        poll = self.db.query(models.Poll).filter(models.Poll.story_id == story_id).first()
        if poll is None:
            raise PollNotFound()
        return self.to_schema(poll, viewer_id)

    def to_schema(self, poll: models.Poll, viewer_id: UUID | None = None) -> schemas.Poll:
        counts = dict(
            self.db.query(models.PollVote.poll_option_id, func.count(models.PollVote.id))
            .join(models.PollOption, models.PollOption.id == models.PollVote.poll_option_id)
            .filter(models.PollOption.poll_id == poll.id)
            .group_by(models.PollVote.poll_option_id)
            .all()
        )

        voted_option_id = None
        if viewer_id is not None:
            vote = self._existing_vote(poll.id, viewer_id)
            voted_option_id = vote.poll_option_id if vote else None

        options = [
            schemas.PollOption(
                id=option.id,
                option_text=option.option_text,
                option_order=option.option_order,
                votes_count=counts.get(option.id, 0),
                has_voted=option.id == voted_option_id,
            )
            for option in poll.options
        ]

        return schemas.Poll(
            id=poll.id,
            story_id=poll.story_id,
            question=poll.question,
            expires_at=poll.expires_at,
            is_expired=is_past(poll.expires_at),
            created_at=poll.created_at,
            options=options,
            total_votes=sum(option.votes_count for option in options),
            user_voted_option_id=voted_option_id,
        )
