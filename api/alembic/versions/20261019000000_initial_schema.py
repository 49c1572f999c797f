"""Initial schema: users, stories, interactions, notifications, polls, hashtags, communities

Revision ID: 20261019000000
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "20261019000000"
down_revision = None
branch_labels = None
depends_on = None


def _id() -> sa.Column:
    return sa.Column("id", sa.Uuid(), primary_key=True)


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name, sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
    )


def _fk(name: str, target: str, ondelete: str = "CASCADE", nullable: bool = False) -> sa.Column:
    return sa.Column(
        name, sa.Uuid(), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable
    )


def upgrade() -> None:
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("username", sa.String(50), nullable=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("country_of_origin", sa.String(100), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("followers_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("following_count", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_is_active", "users", ["is_active"])
    op.create_index("ix_users_created_at", "users", ["created_at"])

    op.create_table(
        "communities",
        _id(),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _fk("created_by", "users.id", ondelete="SET NULL", nullable=True),
        sa.Column("member_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("post_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("rules", sa.Text(), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_communities_slug", "communities", ["slug"], unique=True)

    op.create_table(
        "stories",
        _id(),
        _fk("author_id", "users.id"),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("slug", sa.String(600), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("excerpt", sa.Text(), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="published"),
        sa.Column("views_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_repost", sa.Boolean(), nullable=False, server_default=sa.false()),
        _fk("original_story_id", "stories.id", nullable=True),
        sa.Column("repost_comment", sa.Text(), nullable=True),
        sa.Column("reposts_count", sa.Integer(), nullable=False, server_default="0"),
        _fk("community_id", "communities.id", ondelete="SET NULL", nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_stories_author_id", "stories", ["author_id"])
    op.create_index("ix_stories_slug", "stories", ["slug"], unique=True)
    op.create_index("ix_stories_category", "stories", ["category"])
    op.create_index("ix_stories_status", "stories", ["status"])
    op.create_index("ix_stories_original_story_id", "stories", ["original_story_id"])
    op.create_index("ix_stories_community_id", "stories", ["community_id"])
    op.create_index("ix_stories_published_at", "stories", ["published_at"])
    op.create_index(
        "ix_stories_status_published", "stories", ["status", sa.text("published_at DESC")]
    )

    for table in ("likes", "bookmarks"):
        op.create_table(
            table,
            _id(),
            _fk("user_id", "users.id"),
            _fk("story_id", "stories.id"),
            _created_at(),
            sa.UniqueConstraint("user_id", "story_id", name=f"uq_{table}_user_story"),
        )
        op.create_index(f"ix_{table}_user_id", table, ["user_id"])
        op.create_index(f"ix_{table}_story_id", table, ["story_id"])

    op.create_table(
        "comments",
        _id(),
        _fk("story_id", "stories.id"),
        _fk("user_id", "users.id"),
        _fk("parent_id", "comments.id", nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_approved", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
    )
    op.create_index("ix_comments_story_id", "comments", ["story_id"])
    op.create_index("ix_comments_user_id", "comments", ["user_id"])
    op.create_index("ix_comments_parent_id", "comments", ["parent_id"])
    op.create_index(
        "ix_comments_story_created", "comments", ["story_id", sa.text("created_at DESC")]
    )

    op.create_table(
        "reposts",
        _id(),
        _fk("user_id", "users.id"),
        _fk("story_id", "stories.id"),
        _fk("repost_story_id", "stories.id"),
        sa.Column("comment", sa.Text(), nullable=True),
        _created_at(),
        sa.UniqueConstraint("user_id", "story_id", name="uq_reposts_user_story"),
    )
    op.create_index("ix_reposts_user_id", "reposts", ["user_id"])
    op.create_index("ix_reposts_story_id", "reposts", ["story_id"])
    op.create_index("ix_reposts_repost_story_id", "reposts", ["repost_story_id"])

    op.create_table(
        "follows",
        _id(),
        _fk("follower_id", "users.id"),
        _fk("following_id", "users.id"),
        _created_at(),
        sa.UniqueConstraint("follower_id", "following_id", name="uq_follow_follower_following"),
        sa.CheckConstraint("follower_id <> following_id", name="ck_follows_not_self"),
    )
    op.create_index("ix_follows_follower_id", "follows", ["follower_id"])
    op.create_index("ix_follows_following_id", "follows", ["following_id"])
    op.create_index("ix_follows_created_at", "follows", ["created_at"])
    op.create_index(
        "ix_follows_following_created", "follows", ["following_id", sa.text("created_at DESC")]
    )

    op.create_table(
        "notifications",
        _id(),
        _fk("user_id", "users.id"),
        _fk("actor_id", "users.id", nullable=True),
        sa.Column("kind", sa.String(20), nullable=False),
        _fk("story_id", "stories.id", nullable=True),
        _fk("comment_id", "comments.id", nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_actor_id", "notifications", ["actor_id"])
    op.create_index(
        "ix_notifications_user_created",
        "notifications",
        ["user_id", sa.text("created_at DESC")],
    )
    op.create_index("ix_notifications_user_unread", "notifications", ["user_id", "is_read"])

    op.create_table(
        "polls",
        _id(),
        sa.Column(
            "story_id",
            sa.Uuid(),
            sa.ForeignKey("stories.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )

    op.create_table(
        "poll_options",
        _id(),
        _fk("poll_id", "polls.id"),
        sa.Column("option_text", sa.String(500), nullable=False),
        sa.Column("option_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("votes_count", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_poll_options_poll_id", "poll_options", ["poll_id"])

    op.create_table(
        "poll_votes",
        _id(),
        _fk("user_id", "users.id"),
        _fk("poll_option_id", "poll_options.id"),
        _fk("poll_id", "polls.id"),
        _created_at(),
        sa.UniqueConstraint("poll_id", "user_id", name="uq_poll_votes_poll_user"),
    )
    op.create_index("ix_poll_votes_user_id", "poll_votes", ["user_id"])
    op.create_index("ix_poll_votes_poll_option_id", "poll_votes", ["poll_option_id"])
    op.create_index("ix_poll_votes_poll_id", "poll_votes", ["poll_id"])

    op.create_table(
        "hashtags",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
    )
    op.create_index("ix_hashtags_name", "hashtags", ["name"], unique=True)

    op.create_table(
        "story_hashtags",
        _id(),
        _fk("story_id", "stories.id"),
        _fk("hashtag_id", "hashtags.id"),
        sa.UniqueConstraint("story_id", "hashtag_id", name="uq_story_hashtags_story_hashtag"),
    )
    op.create_index("ix_story_hashtags_story_id", "story_hashtags", ["story_id"])
    op.create_index("ix_story_hashtags_hashtag_id", "story_hashtags", ["hashtag_id"])

    op.create_table(
        "community_members",
        _id(),
        _fk("community_id", "communities.id"),
        _fk("user_id", "users.id"),
        sa.Column("role", sa.String(50), nullable=False, server_default="member"),
        _created_at("joined_at"),
        sa.UniqueConstraint(
            "community_id", "user_id", name="uq_community_members_community_user"
        ),
    )
    op.create_index("ix_community_members_community_id", "community_members", ["community_id"])
    op.create_index("ix_community_members_user_id", "community_members", ["user_id"])


def downgrade() -> None:
    for table in (
        "community_members",
        "story_hashtags",
        "hashtags",
        "poll_votes",
        "poll_options",
        "polls",
        "notifications",
        "follows",
        "reposts",
        "comments",
        "bookmarks",
        "likes",
        "stories",
        "communities",
        "users",
    ):
        op.drop_table(table)
