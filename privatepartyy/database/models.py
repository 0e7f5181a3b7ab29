"""
privatepartyy.database.models — SQLAlchemy 2.0 Data Models
===========================================================

Tables:
- events               — Time-boxed gatherings with a unique join token
- event_attendees      — "Going" RSVPs, one per user per event
- event_user_preferences — Per-event user settings (DM opt-out)
- event_posts          — Text / image posts scoped to one event
- event_post_media     — Ordered media items of multi-media posts
- event_post_likes     — At most one like per user per post
- event_post_comments  — Comments, editable only by their author
- event_dm_threads     — Capped two-party conversations inside an event
- event_dm_messages    — Append-only DM messages
- user_profiles        — Lightweight profiles keyed by email
- upload_logs          — Signed-upload request journal

Uniqueness invariants (join token, like per user, thread per pair) are
declared here as constraints; the read-then-write pre-checks in the
services are conveniences only.
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime
from datetime import date as calendar_date

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    true,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# JSONB on PostgreSQL, plain JSON everywhere else (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all PrivatePartyy ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class PostType(enum.StrEnum):
    """Stored post types.  Multi-media posts are stored as IMAGE and
    reported as ``media`` when they carry media items."""
    TEXT = "text"
    IMAGE = "image"


class AttendeeStatus(enum.StrEnum):
    GOING = "going"


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
class Event(Base):
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    date: Mapped[calendar_date | None] = mapped_column(Date, default=None)
    time: Mapped[str | None] = mapped_column(String(5), default=None)  # HH:MM
    location: Mapped[str | None] = mapped_column(String(500), default=None)
    max_attendees: Mapped[int | None] = mapped_column(Integer, default=None)
    current_attendees: Mapped[int] = mapped_column(Integer, default=0)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True)
    host_id: Mapped[str] = mapped_column(String(100), nullable=False, default="anonymous")
    host_name: Mapped[str | None] = mapped_column(String(100), default=None)
    host_email: Mapped[str | None] = mapped_column(String(320), default=None)
    tags: Mapped[list | None] = mapped_column(JSONType, default=None)
    image_url: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow
    )

    posts: Mapped[list[Post]] = relationship(
        back_populates="event", cascade="all, delete-orphan", passive_deletes=True
    )
    attendees: Mapped[list[EventAttendee]] = relationship(
        back_populates="event", cascade="all, delete-orphan", passive_deletes=True
    )
    dm_threads: Mapped[list[DMThread]] = relationship(
        back_populates="event", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("ix_events_date", "date"),
        Index("ix_events_host_id", "host_id"),
    )

    def __repr__(self) -> str:
        return f"<Event id={self.id} token={self.token!r} title={self.title!r}>"


class EventAttendee(Base):
    __tablename__ = "event_attendees"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    event_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=AttendeeStatus.GOING)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow
    )

    event: Mapped[Event] = relationship(back_populates="attendees")

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_attendees_event_user"),
    )


class EventUserPreference(Base):
    """Per-event settings of one user; a missing row means the defaults."""

    __tablename__ = "event_user_preferences"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    event_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    user_email: Mapped[str | None] = mapped_column(String(320), default=None)
    allow_dms: Mapped[bool] = mapped_column(Boolean, default=True, server_default=true())
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow
    )

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_user_preferences_event_user"),
        Index("ix_event_user_preferences_user_id", "user_id"),
    )


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------
class Post(Base):
    __tablename__ = "event_posts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    event_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(10), nullable=False, default=PostType.TEXT)
    content: Mapped[str | None] = mapped_column(Text, default=None)
    image_url: Mapped[str | None] = mapped_column(Text, default=None)
    file_key: Mapped[str | None] = mapped_column(String(500), default=None)
    original_filename: Mapped[str | None] = mapped_column(String(255), default=None)
    author_id: Mapped[str] = mapped_column(String(100), nullable=False, default="anonymous")
    author_name: Mapped[str] = mapped_column(String(100), nullable=False, default="Anonymous")
    author_avatar: Mapped[str | None] = mapped_column(String(500), default=None)
    likes: Mapped[int] = mapped_column(Integer, default=0)
    comments: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow
    )

    event: Mapped[Event] = relationship(back_populates="posts")
    media_items: Mapped[list[PostMedia]] = relationship(
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PostMedia.display_order",
    )

    __table_args__ = (
        CheckConstraint("type IN ('text', 'image')", name="ck_event_posts_type"),
        Index("ix_event_posts_event_created", "event_id", "created_at"),
        Index("ix_event_posts_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Post id={self.id} event={self.event_id} type={self.type}>"


class PostMedia(Base):
    __tablename__ = "event_post_media"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("event_posts.id", ondelete="CASCADE"), nullable=False
    )
    media_type: Mapped[str] = mapped_column(String(20), nullable=False, default="image")
    media_url: Mapped[str] = mapped_column(Text, nullable=False)
    file_key: Mapped[str | None] = mapped_column(String(500), default=None)
    thumbnail_url: Mapped[str | None] = mapped_column(Text, default=None)
    original_filename: Mapped[str | None] = mapped_column(String(255), default=None)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    post: Mapped[Post] = relationship(back_populates="media_items")

    __table_args__ = (
        Index("ix_event_post_media_post_order", "post_id", "display_order"),
    )


class PostLike(Base):
    __tablename__ = "event_post_likes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("event_posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    user_name: Mapped[str | None] = mapped_column(String(100), default=None)
    user_avatar: Mapped[str | None] = mapped_column(String(500), default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_event_post_likes_post_user"),
        Index("ix_event_post_likes_user_id", "user_id"),
    )


class PostComment(Base):
    __tablename__ = "event_post_comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("event_posts.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[str] = mapped_column(String(100), nullable=False)
    author_name: Mapped[str] = mapped_column(String(100), nullable=False, default="Anonymous")
    author_avatar: Mapped[str | None] = mapped_column(String(500), default=None)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow
    )

    __table_args__ = (
        Index("ix_event_post_comments_post_created", "post_id", "created_at"),
    )


# ---------------------------------------------------------------------------
# Direct messages
# ---------------------------------------------------------------------------
class DMThread(Base):
    """Two-party conversation inside an event.

    ``participant1_id < participant2_id`` always holds, so the unique
    constraint on ``(event_id, participant1_id, participant2_id)`` admits one
    thread per pair.
    """
    __tablename__ = "event_dm_threads"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    event_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    participant1_id: Mapped[str] = mapped_column(String(100), nullable=False)
    participant1_name: Mapped[str] = mapped_column(String(100), nullable=False)
    participant1_avatar: Mapped[str | None] = mapped_column(String(500), default=None)
    participant2_id: Mapped[str] = mapped_column(String(100), nullable=False)
    participant2_name: Mapped[str] = mapped_column(String(100), nullable=False)
    participant2_avatar: Mapped[str | None] = mapped_column(String(500), default=None)
    message_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_message_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow
    )

    event: Mapped[Event] = relationship(back_populates="dm_threads")
    messages: Mapped[list[DMMessage]] = relationship(
        back_populates="thread", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        UniqueConstraint(
            "event_id", "participant1_id", "participant2_id",
            name="uq_event_dm_threads_pair",
        ),
        CheckConstraint("participant1_id < participant2_id", name="ck_event_dm_threads_ordered"),
        Index("ix_event_dm_threads_participant1", "participant1_id"),
        Index("ix_event_dm_threads_participant2", "participant2_id"),
    )

    def has_participant(self, user_id: str) -> bool:
        return user_id in (self.participant1_id, self.participant2_id)

    def __repr__(self) -> str:
        return (
            f"<DMThread id={self.id} {self.participant1_id}↔{self.participant2_id} "
            f"count={self.message_count}>"
        )


class DMMessage(Base):
    __tablename__ = "event_dm_messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    thread_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("event_dm_threads.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[str] = mapped_column(String(100), nullable=False)
    sender_name: Mapped[str] = mapped_column(String(100), nullable=False)
    sender_avatar: Mapped[str | None] = mapped_column(String(500), default=None)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    thread: Mapped[DMThread] = relationship(back_populates="messages")

    __table_args__ = (
        CheckConstraint("length(content) <= 1000", name="ck_event_dm_messages_length"),
        Index("ix_event_dm_messages_thread_created", "thread_id", "created_at"),
    )


# ---------------------------------------------------------------------------
# Profiles & upload journal
# ---------------------------------------------------------------------------
class UserProfile(Base):
    __tablename__ = "user_profiles"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    avatar: Mapped[str | None] = mapped_column(String(500), default=None)
    generation: Mapped[str | None] = mapped_column(String(50), default=None)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<UserProfile id={self.id} email={self.email!r}>"


class UploadLog(Base):
    __tablename__ = "upload_logs"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(String(36), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False)
    file_type: Mapped[str] = mapped_column(String(50), nullable=False)
    file_size: Mapped[int | None] = mapped_column(BigInteger, default=None)
    upload_type: Mapped[str] = mapped_column(String(20), nullable=False, default="post")
    user_id: Mapped[str | None] = mapped_column(String(100), default=None)
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_upload_logs_event_id", "event_id"),
    )
