from __future__ import annotations

from datetime import datetime
from typing import Annotated, Generic, Literal, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

from . import settings

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


# ============================================================================
# BASE SCHEMAS
# ============================================================================


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope returned by every endpoint."""

    success: bool = True
    data: T | None = None
    error: str | None = None
    message: str | None = None


class CachedResponse(ApiResponse[T], Generic[T]):
    """Envelope for aggregate reads that may be served from cache."""

    cached: bool = False


class PageInfo(BaseModel):
    """Page-number pagination metadata."""

    page: int
    limit: int
    total: int
    total_pages: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok"] = "ok"
    uptime_s: float | None = None


# ============================================================================
# USER SCHEMAS
# ============================================================================


class UserSummary(BaseModel):
    """Compact user representation embedded in lists."""

    id: UUID
    full_name: str
    username: str | None = None
    avatar_url: str | None = None
    bio: str | None = None

    model_config = ConfigDict(from_attributes=True)


class UserProfile(UserSummary):
    """Public profile with stored follow counters."""

    country_of_origin: str | None = None
    followers_count: int
    following_count: int
    created_at: datetime


class FollowEntry(UserSummary):
    followed_at: datetime


class FollowList(BaseModel):
    users: list[FollowEntry]
    limit: int
    offset: int


class FollowStatus(BaseModel):
    is_following: bool


class MutualFollowStatus(BaseModel):
    is_following: bool
    is_follower: bool
    is_mutual: bool


# ============================================================================
# POLL SCHEMAS
# ============================================================================


class PollCreate(BaseModel):
    """Poll payload accepted while creating a story."""

    question: NonEmptyStr
    options: list[NonEmptyStr] = Field(
        ..., min_length=settings.MIN_POLL_OPTIONS, max_length=settings.MAX_POLL_OPTIONS
    )
    expires_at: datetime | None = None

    @field_validator("options")
    @classmethod
    def options_distinct(cls, value: list[str]) -> list[str]:
        if len({option.lower() for option in value}) != len(value):
            raise ValueError("Poll options must be distinct")
        return value


class PollOption(BaseModel):
    id: UUID
    option_text: str
    option_order: int
    votes_count: int
    has_voted: bool = False


class Poll(BaseModel):
    id: UUID
    story_id: UUID
    question: str
    expires_at: datetime | None = None
    is_expired: bool = False
    created_at: datetime
    options: list[PollOption]
    total_votes: int
    user_voted_option_id: UUID | None = None


class VoteCreate(BaseModel):
    poll_option_id: UUID


# ============================================================================
# STORY SCHEMAS
# ============================================================================


class StoryCreate(BaseModel):
    """Create story request."""

    title: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=500)]
    content: NonEmptyStr
    excerpt: str | None = Field(None, max_length=1000)
    category: str | None = Field(None, max_length=100)
    community_id: UUID | None = None
    poll: PollCreate | None = None


class Story(BaseModel):
    """Story with read-time interaction counts and viewer flags."""

    id: UUID
    author_id: UUID
    title: str
    slug: str | None = None
    content: str
    excerpt: str | None = None
    category: str | None = None
    status: str
    views_count: int
    is_repost: bool
    original_story_id: UUID | None = None
    repost_comment: str | None = None
    community_id: UUID | None = None
    published_at: datetime | None = None
    created_at: datetime

    author_name: str | None = None
    author_avatar: str | None = None

    likes_count: int = 0
    comments_count: int = 0
    reposts_count: int = 0

    is_liked_by_user: bool = False
    is_bookmarked_by_user: bool = False
    is_reposted_by_user: bool = False

    model_config = ConfigDict(from_attributes=True)


class StoryList(BaseModel):
    stories: list[Story]
    pagination: PageInfo


class StoryCreated(BaseModel):
    story: Story
    poll: Poll | None = None
    hashtags: list[str] = []


class LikeStatus(BaseModel):
    is_liked: bool


# ============================================================================
# COMMENT SCHEMAS
# ============================================================================


class CommentCreate(BaseModel):
    """Create comment request."""

    story_id: UUID
    content: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=5000)]
    parent_id: UUID | None = None


class Comment(BaseModel):
    id: UUID
    story_id: UUID
    user_id: UUID
    parent_id: UUID | None = None
    content: str
    created_at: datetime
    user_name: str | None = None
    user_avatar: str | None = None


class UserComment(BaseModel):
    """Comment listed on its author's profile."""

    id: UUID
    content: str
    created_at: datetime
    story_id: UUID
    parent_id: UUID | None = None
    story_slug: str | None = None
    story_title: str


# ============================================================================
# REPOST SCHEMAS
# ============================================================================


class RepostCreate(BaseModel):
    """Story id or slug, with optional commentary."""

    story_id: NonEmptyStr
    comment: str | None = Field(None, max_length=2000)


class Repost(Story):
    original_title: str | None = None
    original_author_id: UUID | None = None
    original_author_name: str | None = None
    original_author_avatar: str | None = None


class Reposter(UserSummary):
    comment: str | None = None
    reposted_at: datetime


class RepostStatus(BaseModel):
    has_reposted: bool


# ============================================================================
# NOTIFICATION SCHEMAS
# ============================================================================


class Notification(BaseModel):
    id: UUID
    kind: Literal["like", "comment", "repost", "follow"]
    actor_id: UUID | None = None
    actor_name: str | None = None
    actor_avatar: str | None = None
    story_id: UUID | None = None
    story_title: str | None = None
    story_slug: str | None = None
    comment_id: UUID | None = None
    comment_content: str | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime


class NotificationList(BaseModel):
    notifications: list[Notification]
    limit: int
    offset: int


class UnreadCount(BaseModel):
    count: int


# ============================================================================
# BOOKMARK SCHEMAS
# ============================================================================


class BookmarkCreate(BaseModel):
    story_id: UUID


class BookmarkedStory(BaseModel):
    id: UUID
    title: str
    slug: str | None = None
    excerpt: str | None = None
    author_id: UUID
    author_name: str | None = None
    bookmarked_at: datetime


# ============================================================================
# HASHTAG SCHEMAS
# ============================================================================


class Hashtag(BaseModel):
    name: str
    usage_count: int

    model_config = ConfigDict(from_attributes=True)


class HashtagDetail(Hashtag):
    id: UUID
    created_at: datetime


# ============================================================================
# COMMUNITY SCHEMAS
# ============================================================================


class CommunityCreate(BaseModel):
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=255)]
    description: str | None = Field(None, max_length=5000)
    is_private: bool = False
    rules: str | None = Field(None, max_length=5000)


class Community(BaseModel):
    id: UUID
    name: str
    slug: str
    description: str | None = None
    created_by: UUID | None = None
    creator_name: str | None = None
    member_count: int
    post_count: int
    is_private: bool
    rules: str | None = None
    created_at: datetime
    is_member: bool = False
    user_role: str | None = None


# ============================================================================
# MESSAGING SCHEMAS
# ============================================================================


class ConversationCreate(BaseModel):
    """Open (or reopen) a direct conversation with another user."""

    user_id: UUID


class MessageCreate(BaseModel):
    conversation_id: UUID
    content: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=5000)]
    message_type: Literal["text", "image", "file"] = "text"
    attachment_url: str | None = Field(None, max_length=1000)


class Message(BaseModel):
    id: UUID
    conversation_id: UUID
    sender_id: UUID | None = None
    sender_name: str | None = None
    sender_avatar: str | None = None
    content: str
    message_type: str
    attachment_url: str | None = None
    created_at: datetime


class MessageList(BaseModel):
    messages: list[Message]
    limit: int
    offset: int


class Conversation(BaseModel):
    """Conversation as seen by one participant; `participants` excludes the viewer."""

    id: UUID
    title: str | None = None
    is_group: bool
    participants: list[UserSummary]
    last_message: Message | None = None
    unread_count: int = 0
    created_at: datetime
    updated_at: datetime


class ConversationList(BaseModel):
    conversations: list[Conversation]


# ============================================================================
# STATS SCHEMAS
# ============================================================================


class CommunityStats(BaseModel):
    total_members: int
    total_stories: int
    active_now: int
    countries: int


class TrendingTopic(BaseModel):
    tag: str
    post_count: int
    rank: int


class SuggestedUser(BaseModel):
    id: UUID
    name: str
    bio: str | None = None
    avatar: str | None = None
    mutual: int = 0
    story_count: int = 0
