from __future__ import annotations

import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import relationship

from .db import Base
from .utils.dates import utcnow


def _created_at(**kwargs) -> Column:
    return Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        **kwargs,
    )


# ============================================================================
# CORE ENTITIES
# ============================================================================


class User(Base):
    """Member account with denormalized follow counters."""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(50), unique=True, nullable=True, index=True)
    full_name = Column(String(255), nullable=False)
    avatar_url = Column(String(500), nullable=True)
    bio = Column(Text, nullable=True)
    country_of_origin = Column(String(100), nullable=True)

    role = Column(String(20), nullable=False, default="user")  # "user" | "admin"
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    # Maintained incrementally by follow/unfollow; only recomputed by the repair path
    followers_count = Column(Integer, nullable=False, default=0)
    following_count = Column(Integer, nullable=False, default=0)

    created_at = _created_at(index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)


class Story(Base):
    """Published content item; reposts are full copies flagged with is_repost."""

    __tablename__ = "stories"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    author_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Content
    title = Column(String(500), nullable=False)
    slug = Column(String(600), unique=True, nullable=True, index=True)  # NULL for reposts
    content = Column(Text, nullable=False)
    excerpt = Column(Text, nullable=True)
    category = Column(String(100), nullable=True, index=True)
    status = Column(String(20), nullable=False, default="published", index=True)
    views_count = Column(Integer, nullable=False, default=0)

    # Reposts
    is_repost = Column(Boolean, nullable=False, default=False)
    original_story_id = Column(
        Uuid, ForeignKey("stories.id", ondelete="CASCADE"), nullable=True, index=True
    )
    repost_comment = Column(Text, nullable=True)
    reposts_count = Column(Integer, nullable=False, default=0)

    community_id = Column(
        Uuid, ForeignKey("communities.id", ondelete="SET NULL"), nullable=True, index=True
    )

    published_at = Column(DateTime(timezone=True), nullable=True, index=True)
    created_at = _created_at()
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    author = relationship("User", foreign_keys=[author_id])
    original_story = relationship("Story", remote_side=[id], foreign_keys=[original_story_id])

    __table_args__ = (Index("ix_stories_status_published", status, published_at.desc()),)


class Like(Base):
    """A user's like on a story; at most one per pair."""

    __tablename__ = "likes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    story_id = Column(
        Uuid, ForeignKey("stories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = _created_at()

    __table_args__ = (UniqueConstraint("user_id", "story_id", name="uq_likes_user_story"),)


class Bookmark(Base):
    """A story saved by a user for later."""

    __tablename__ = "bookmarks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    story_id = Column(
        Uuid, ForeignKey("stories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = _created_at()

    __table_args__ = (UniqueConstraint("user_id", "story_id", name="uq_bookmarks_user_story"),)


class Comment(Base):
    """Comment on a story. Replies reference a parent; depth is unbounded."""

    __tablename__ = "comments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    story_id = Column(
        Uuid, ForeignKey("stories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_id = Column(
        Uuid, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True
    )
    content = Column(Text, nullable=False)
    is_approved = Column(Boolean, nullable=False, default=True)

    created_at = _created_at()

    author = relationship("User", foreign_keys=[user_id])

    __table_args__ = (Index("ix_comments_story_created", story_id, created_at.desc()),)


class Repost(Base):
    """Tracking row linking an original story to the user's repost copy."""

    __tablename__ = "reposts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    story_id = Column(
        Uuid, ForeignKey("stories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    repost_story_id = Column(
        Uuid, ForeignKey("stories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    comment = Column(Text, nullable=True)
    created_at = _created_at()

    __table_args__ = (UniqueConstraint("user_id", "story_id", name="uq_reposts_user_story"),)


class Follow(Base):
    """User following relationship."""

    __tablename__ = "follows"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    follower_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    following_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    created_at = _created_at(index=True)

    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follow_follower_following"),
        CheckConstraint("follower_id <> following_id", name="ck_follows_not_self"),
        Index("ix_follows_following_created", following_id, created_at.desc()),
    )


class Notification(Base):
    """Notification addressed to exactly one recipient."""

    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    actor_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)

    kind = Column(String(20), nullable=False)  # like, comment, repost, follow
    story_id = Column(Uuid, ForeignKey("stories.id", ondelete="CASCADE"), nullable=True)
    comment_id = Column(Uuid, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True)

    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(timezone=True), nullable=True)

    created_at = _created_at()

    actor = relationship("User", foreign_keys=[actor_id])

    __table_args__ = (
        Index("ix_notifications_user_created", user_id, created_at.desc()),
        Index("ix_notifications_user_unread", user_id, is_read),
    )


# ============================================================================
# POLLS
# ============================================================================


class Poll(Base):
    """Poll attached to a single story."""

    __tablename__ = "polls"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    story_id = Column(
        Uuid, ForeignKey("stories.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    question = Column(Text, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = _created_at()

    options = relationship(
        "PollOption",
        back_populates="poll",
        order_by="PollOption.option_order",
        passive_deletes=True,
    )


class PollOption(Base):
    """Answer option; votes_count mirrors the poll_votes rows pointing at it."""

    __tablename__ = "poll_options"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    poll_id = Column(Uuid, ForeignKey("polls.id", ondelete="CASCADE"), nullable=False, index=True)
    option_text = Column(String(500), nullable=False)
    option_order = Column(Integer, nullable=False, default=0)
    votes_count = Column(Integer, nullable=False, default=0)

    poll = relationship("Poll", back_populates="options")


class PollVote(Base):
    """
    A user's vote. poll_id is denormalized from the option so the database
    can enforce one vote per user per poll.
    """

    __tablename__ = "poll_votes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    poll_option_id = Column(
        Uuid, ForeignKey("poll_options.id", ondelete="CASCADE"), nullable=False, index=True
    )
    poll_id = Column(Uuid, ForeignKey("polls.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = _created_at()

    __table_args__ = (UniqueConstraint("poll_id", "user_id", name="uq_poll_votes_poll_user"),)


# ============================================================================
# HASHTAGS
# ============================================================================


class Hashtag(Base):
    """Normalized hashtag with a running usage counter."""

    __tablename__ = "hashtags"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), unique=True, nullable=False, index=True)
    usage_count = Column(Integer, nullable=False, default=0)
    created_at = _created_at()


class StoryHashtag(Base):
    __tablename__ = "story_hashtags"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    story_id = Column(
        Uuid, ForeignKey("stories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    hashtag_id = Column(
        Uuid, ForeignKey("hashtags.id", ondelete="CASCADE"), nullable=False, index=True
    )

    __table_args__ = (
        UniqueConstraint("story_id", "hashtag_id", name="uq_story_hashtags_story_hashtag"),
    )


# ============================================================================
# COMMUNITIES
# ============================================================================


class Community(Base):
    """Topic group users can join."""

    __tablename__ = "communities"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), unique=True, nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    member_count = Column(Integer, nullable=False, default=0)
    post_count = Column(Integer, nullable=False, default=0)
    is_private = Column(Boolean, nullable=False, default=False)
    rules = Column(Text, nullable=True)

    created_at = _created_at()
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)


class CommunityMember(Base):
    __tablename__ = "community_members"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    community_id = Column(
        Uuid, ForeignKey("communities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(50), nullable=False, default="member")  # "admin" | "member"
    joined_at = _created_at()

    __table_args__ = (
        UniqueConstraint("community_id", "user_id", name="uq_community_members_community_user"),
    )


# ============================================================================
# MESSAGING
# ============================================================================


class Conversation(Base):
    """
    Private conversation between participants.

    Direct (two-person) conversations carry `direct_key`, the sorted pair of
    participant ids, so each pair has at most one.
    """

    __tablename__ = "conversations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=True)
    is_group = Column(Boolean, nullable=False, default=False)
    direct_key = Column(String(80), unique=True, nullable=True)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = _created_at()
    # Bumped whenever a message is sent
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)


class ConversationParticipant(Base):
    __tablename__ = "conversation_participants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id = Column(
        Uuid, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    joined_at = _created_at()
    # Messages from others created after this are unread
    last_read_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    is_muted = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint(
            "conversation_id", "user_id", name="uq_conversation_participants_conversation_user"
        ),
    )


class Message(Base):
    """Message in a conversation. Deletion is soft; deleted messages are hidden."""

    __tablename__ = "messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id = Column(
        Uuid, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    sender_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    content = Column(Text, nullable=False)
    message_type = Column(String(20), nullable=False, default="text")  # text, image, file
    attachment_url = Column(String(1000), nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)

    created_at = _created_at()
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    __table_args__ = (
        Index("ix_messages_conversation_created", conversation_id, created_at.desc()),
    )
