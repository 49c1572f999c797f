"""
Messaging Service.

Private conversations between users. A direct conversation is unique per
pair of users, so opening it again returns the existing one. Only
participants may read or post in a conversation and only the sender may
delete a message. Unread state is per participant: messages from others
created after the participant's `last_read_at` are unread.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from uuid import UUID

from sqlalchemy import distinct, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import atomic
from ..errors import (
    ConversationNotFound,
    ForbiddenError,
    InvalidInputError,
    MessageNotFound,
    NotParticipant,
    UserNotFound,
)
from ..utils.dates import utcnow
from ..utils.identifiers import find_user

logger = logging.getLogger(__name__)


def direct_key(user_a: UUID, user_b: UUID) -> str:
    """Order-independent key identifying the direct conversation of two users."""
    first, second = sorted((str(user_a), str(user_b)))
    return f"{first}:{second}"


class MessageService:
    def __init__(self, db: Session) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    def _by_direct_key(self, key: str) -> models.Conversation | None:
        return (
            self.db.query(models.Conversation)
            .filter(models.Conversation.direct_key == key)
            .first()
        )

    def open_direct(
        self, user: models.User, other_id: UUID
    ) -> tuple[schemas.Conversation, bool]:
        """
        Get or create the direct conversation between `user` and `other_id`.

        Returns the conversation and whether it was created by this call.
        """
        user_id = user.id
        if other_id == user_id:
            raise InvalidInputError("Cannot start a conversation with yourself")

        other = find_user(self.db, other_id)
        if other is None:
            raise UserNotFound()

        key = direct_key(user_id, other.id)
        existing = self._by_direct_key(key)
        if existing is not None:
            return self._to_schema(existing, user_id), False

        try:
            with atomic(self.db):
                conversation = models.Conversation(
                    created_by=user_id, is_group=False, direct_key=key
                )
                self.db.add(conversation)
                self.db.flush()
                self.db.add_all(
                    [
                        models.ConversationParticipant(
                            conversation_id=conversation.id, user_id=participant_id
                        )
                        for participant_id in (user_id, other.id)
                    ]
                )
        except IntegrityError:
            # The other side opened it concurrently
            existing = self._by_direct_key(key)
            if existing is None:
                raise
            return self._to_schema(existing, user_id), False

        logger.info(f"User {user_id} opened conversation {conversation.id} with {other_id}")
        return self._to_schema(conversation, user_id), True

    def list_for_user(self, user_id: UUID) -> list[schemas.Conversation]:
        """The user's conversations, most recently active first."""
        conversations = (
            self.db.query(models.Conversation)
            .join(
                models.ConversationParticipant,
                models.ConversationParticipant.conversation_id == models.Conversation.id,
            )
            .filter(models.ConversationParticipant.user_id == user_id)
            .order_by(models.Conversation.updated_at.desc(), models.Conversation.id.desc())
            .all()
        )
        return self._summaries(conversations, user_id)

    def _to_schema(self, conversation: models.Conversation, viewer_id: UUID) -> schemas.Conversation:
        return self._summaries([conversation], viewer_id)[0]

    def _summaries(
        self, conversations: list[models.Conversation], viewer_id: UUID
    ) -> list[schemas.Conversation]:
        """Attach other participants, the last visible message and the unread count."""
        if not conversations:
            return []
        ids = [c.id for c in conversations]
        Participant, Message = models.ConversationParticipant, models.Message

        participants: dict[UUID, list[schemas.UserSummary]] = defaultdict(list)
        rows = (
            self.db.query(Participant.conversation_id, models.User)
            .join(models.User, models.User.id == Participant.user_id)
            .filter(Participant.conversation_id.in_(ids), Participant.user_id != viewer_id)
            .order_by(Participant.joined_at, models.User.full_name)
            .all()
        )
        for conversation_id, user in rows:
            participants[conversation_id].append(schemas.UserSummary.model_validate(user))

        ranked = (
            select(
                Message.id,
                func.row_number()
                .over(
                    partition_by=Message.conversation_id,
                    order_by=(Message.created_at.desc(), Message.id.desc()),
                )
                .label("position"),
            )
            .where(Message.conversation_id.in_(ids), Message.is_deleted.is_(False))
            .subquery()
        )
        last_messages = {
            message.conversation_id: self._message_schema(message, name, avatar)
            for message, name, avatar in self._messages_query()
            .join(ranked, ranked.c.id == Message.id)
            .filter(ranked.c.position == 1)
            .all()
        }

        unread = dict(
            self._unread_messages(viewer_id)
            .filter(Message.conversation_id.in_(ids))
            .with_entities(Message.conversation_id, func.count(Message.id))
            .group_by(Message.conversation_id)
            .all()
        )

        return [
            schemas.Conversation(
                id=c.id,
                title=c.title,
                is_group=c.is_group,
                participants=participants[c.id],
                last_message=last_messages.get(c.id),
                unread_count=unread.get(c.id, 0),
                created_at=c.created_at,
                updated_at=c.updated_at,
            )
            for c in conversations
        ]

    def _participant(self, conversation_id: UUID, user_id: UUID) -> models.ConversationParticipant:
        participant = (
            self.db.query(models.ConversationParticipant)
            .filter(
                models.ConversationParticipant.conversation_id == conversation_id,
                models.ConversationParticipant.user_id == user_id,
            )
            .first()
        )
        if participant is None:
            if self.db.get(models.Conversation, conversation_id) is None:
                raise ConversationNotFound()
            raise NotParticipant()
        return participant

    def mark_read(self, conversation_id: UUID, user_id: UUID) -> None:
        participant = self._participant(conversation_id, user_id)
        with atomic(self.db):
            participant.last_read_at = utcnow()

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def _messages_query(self):
        return self.db.query(
            models.Message, models.User.full_name, models.User.avatar_url
        ).outerjoin(models.User, models.User.id == models.Message.sender_id)

    @staticmethod
    def _message_schema(
        message: models.Message, sender_name: str | None, sender_avatar: str | None
    ) -> schemas.Message:
        return schemas.Message(
            id=message.id,
            conversation_id=message.conversation_id,
            sender_id=message.sender_id,
            sender_name=sender_name,
            sender_avatar=sender_avatar,
            content=message.content,
            message_type=message.message_type,
            attachment_url=message.attachment_url,
            created_at=message.created_at,
        )

    def messages(
        self, conversation_id: UUID, user_id: UUID, limit: int = 50, offset: int = 0
    ) -> list[schemas.Message]:
        """
        A window of the conversation's messages in chronological order.

        The window is counted from the newest message. Reading it marks the
        conversation read for the caller.
        """
        participant = self._participant(conversation_id, user_id)
        rows = (
            self._messages_query()
            .filter(
                models.Message.conversation_id == conversation_id,
                models.Message.is_deleted.is_(False),
            )
            .order_by(models.Message.created_at.desc(), models.Message.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        messages = [self._message_schema(*row) for row in rows]

        with atomic(self.db):
            participant.last_read_at = utcnow()

        messages.reverse()
        return messages

    def send(self, user: models.User, payload: schemas.MessageCreate) -> schemas.Message:
        user_id = user.id
        self._participant(payload.conversation_id, user_id)

        with atomic(self.db):
            message = models.Message(
                conversation_id=payload.conversation_id,
                sender_id=user_id,
                content=payload.content,
                message_type=payload.message_type,
                attachment_url=payload.attachment_url,
            )
            self.db.add(message)
            self.db.flush()
            message_id = message.id
            self.db.query(models.Conversation).filter(
                models.Conversation.id == payload.conversation_id
            ).update({"updated_at": utcnow()}, synchronize_session=False)

        logger.info(f"User {user_id} sent message {message_id} to {payload.conversation_id}")
        row = self._messages_query().filter(models.Message.id == message_id).one()
        return self._message_schema(*row)

    def delete(self, message_id: UUID, user_id: UUID) -> None:
        """Hide a message. Only its sender may delete it."""
        message = self.db.get(models.Message, message_id)
        if message is None or message.is_deleted:
            raise MessageNotFound()
        if message.sender_id != user_id:
            raise ForbiddenError("You can only delete your own messages")

        with atomic(self.db):
            message.is_deleted = True
        logger.info(f"User {user_id} deleted message {message_id}")

    # ------------------------------------------------------------------
    # Unread
    # ------------------------------------------------------------------

    def _unread_messages(self, user_id: UUID):
        Participant, Message = models.ConversationParticipant, models.Message
        return (
            self.db.query(Message)
            .join(
                Participant,
                (Participant.conversation_id == Message.conversation_id)
                & (Participant.user_id == user_id),
            )
            .filter(
                Message.is_deleted.is_(False),
                or_(Message.sender_id != user_id, Message.sender_id.is_(None)),
                Message.created_at > Participant.last_read_at,
            )
        )

    def unread_count(self, user_id: UUID) -> int:
        """Number of conversations holding at least one unread message."""
        return (
            self._unread_messages(user_id)
            .with_entities(func.count(distinct(models.Message.conversation_id)))
            .scalar()
        )
