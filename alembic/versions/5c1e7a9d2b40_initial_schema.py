"""Initial schema: events, posts, social, DMs, profiles, upload log

Revision ID: 5c1e7a9d2b40
Revises:
Create Date: 2026-10-19 10:12:03.418207

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5c1e7a9d2b40'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps(*, updated: bool = True) -> list[sa.Column]:
    cols = [
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        )
    ]
    if updated:
        cols.append(
            sa.Column(
                "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
            )
        )
    return cols


def _event_fk() -> sa.Column:
    return sa.Column(
        "event_id", sa.String(36),
        sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False,
    )


def _post_fk() -> sa.Column:
    return sa.Column(
        "post_id", sa.String(36),
        sa.ForeignKey("event_posts.id", ondelete="CASCADE"), nullable=False,
    )


def upgrade() -> None:
    # --- events ---
    op.create_table(
        "events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("token", sa.String(64), nullable=False, unique=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("date", sa.Date, nullable=True),
        sa.Column("time", sa.String(5), nullable=True),
        sa.Column("location", sa.String(500), nullable=True),
        sa.Column("max_attendees", sa.Integer, nullable=True),
        sa.Column("current_attendees", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_public", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("host_id", sa.String(100), nullable=False, server_default="anonymous"),
        sa.Column("host_name", sa.String(100), nullable=True),
        sa.Column("host_email", sa.String(320), nullable=True),
        sa.Column("tags", JSONType, nullable=True),
        sa.Column("image_url", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_events_date", "events", ["date"])
    op.create_index("ix_events_host_id", "events", ["host_id"])

    op.create_table(
        "event_attendees",
        sa.Column("id", sa.String(36), primary_key=True),
        _event_fk(),
        sa.Column("user_id", sa.String(100), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="going"),
        *_timestamps(),
        sa.UniqueConstraint("event_id", "user_id", name="uq_event_attendees_event_user"),
    )

    # --- posts ---
    op.create_table(
        "event_posts",
        sa.Column("id", sa.String(36), primary_key=True),
        _event_fk(),
        sa.Column("type", sa.String(10), nullable=False, server_default="text"),
        sa.Column("content", sa.Text, nullable=True),
        sa.Column("image_url", sa.Text, nullable=True),
        sa.Column("file_key", sa.String(500), nullable=True),
        sa.Column("original_filename", sa.String(255), nullable=True),
        sa.Column("author_id", sa.String(100), nullable=False, server_default="anonymous"),
        sa.Column("author_name", sa.String(100), nullable=False, server_default="Anonymous"),
        sa.Column("author_avatar", sa.String(500), nullable=True),
        sa.Column("likes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("comments", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint("type IN ('text', 'image')", name="ck_event_posts_type"),
    )
    op.create_index("ix_event_posts_event_created", "event_posts", ["event_id", "created_at"])
    op.create_index("ix_event_posts_created_at", "event_posts", ["created_at"])

    op.create_table(
        "event_post_media",
        sa.Column("id", sa.String(36), primary_key=True),
        _post_fk(),
        sa.Column("media_type", sa.String(20), nullable=False, server_default="image"),
        sa.Column("media_url", sa.Text, nullable=False),
        sa.Column("file_key", sa.String(500), nullable=True),
        sa.Column("thumbnail_url", sa.Text, nullable=True),
        sa.Column("original_filename", sa.String(255), nullable=True),
        sa.Column("display_order", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(updated=False),
    )
    op.create_index(
        "ix_event_post_media_post_order", "event_post_media", ["post_id", "display_order"]
    )

    op.create_table(
        "event_post_likes",
        sa.Column("id", sa.String(36), primary_key=True),
        _post_fk(),
        sa.Column("user_id", sa.String(100), nullable=False),
        sa.Column("user_name", sa.String(100), nullable=True),
        sa.Column("user_avatar", sa.String(500), nullable=True),
        *_timestamps(updated=False),
        sa.UniqueConstraint("post_id", "user_id", name="uq_event_post_likes_post_user"),
    )
    op.create_index("ix_event_post_likes_user_id", "event_post_likes", ["user_id"])

    op.create_table(
        "event_post_comments",
        sa.Column("id", sa.String(36), primary_key=True),
        _post_fk(),
        sa.Column("author_id", sa.String(100), nullable=False),
        sa.Column("author_name", sa.String(100), nullable=False, server_default="Anonymous"),
        sa.Column("author_avatar", sa.String(500), nullable=True),
        sa.Column("content", sa.Text, nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_event_post_comments_post_created", "event_post_comments", ["post_id", "created_at"]
    )

    # --- direct messages ---
    op.create_table(
        "event_dm_threads",
        sa.Column("id", sa.String(36), primary_key=True),
        _event_fk(),
        sa.Column("participant1_id", sa.String(100), nullable=False),
        sa.Column("participant1_name", sa.String(100), nullable=False),
        sa.Column("participant1_avatar", sa.String(500), nullable=True),
        sa.Column("participant2_id", sa.String(100), nullable=False),
        sa.Column("participant2_name", sa.String(100), nullable=False),
        sa.Column("participant2_avatar", sa.String(500), nullable=True),
        sa.Column("message_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "event_id", "participant1_id", "participant2_id", name="uq_event_dm_threads_pair"
        ),
        sa.CheckConstraint(
            "participant1_id < participant2_id", name="ck_event_dm_threads_ordered"
        ),
    )
    op.create_index("ix_event_dm_threads_participant1", "event_dm_threads", ["participant1_id"])
    op.create_index("ix_event_dm_threads_participant2", "event_dm_threads", ["participant2_id"])

    op.create_table(
        "event_dm_messages",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "thread_id", sa.String(36),
            sa.ForeignKey("event_dm_threads.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("sender_id", sa.String(100), nullable=False),
        sa.Column("sender_name", sa.String(100), nullable=False),
        sa.Column("sender_avatar", sa.String(500), nullable=True),
        sa.Column("content", sa.Text, nullable=False),
        *_timestamps(updated=False),
        sa.CheckConstraint("length(content) <= 1000", name="ck_event_dm_messages_length"),
    )
    op.create_index(
        "ix_event_dm_messages_thread_created", "event_dm_messages", ["thread_id", "created_at"]
    )

    # --- profiles & upload journal ---
    op.create_table(
        "user_profiles",
        sa.Column("id", sa.String(100), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("avatar", sa.String(500), nullable=True),
        sa.Column("generation", sa.String(50), nullable=True),
        sa.Column("is_anonymous", sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        "upload_logs",
        sa.Column(
            "id", sa.BigInteger().with_variant(sa.Integer, "sqlite"),
            primary_key=True, autoincrement=True,
        ),
        sa.Column("event_id", sa.String(36), nullable=False),
        sa.Column("storage_path", sa.String(500), nullable=False),
        sa.Column("file_type", sa.String(50), nullable=False),
        sa.Column("file_size", sa.BigInteger, nullable=True),
        sa.Column("upload_type", sa.String(20), nullable=False, server_default="post"),
        sa.Column("user_id", sa.String(100), nullable=True),
        sa.Column(
            "requested_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("ix_upload_logs_event_id", "upload_logs", ["event_id"])


def downgrade() -> None:
    op.drop_table("upload_logs")
    op.drop_table("user_profiles")
    op.drop_table("event_dm_messages")
    op.drop_table("event_dm_threads")
    op.drop_table("event_post_comments")
    op.drop_table("event_post_likes")
    op.drop_table("event_post_media")
    op.drop_table("event_posts")
    op.drop_table("event_attendees")
    op.drop_table("events")
