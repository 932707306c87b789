"""SQLAlchemy 2.0 ORM models.

This module contains all SQLAlchemy models for the learning tracker.
All models use the Mapped[type] annotation pattern required by SQLAlchemy 2.0.

Ledger Invariants:
    Videos of one playlist are ordered by an integer position that is unique
    per playlist. The sync reconciler only appends: it never reassigns a
    position once written. Both (playlist_id, position) and
    (playlist_id, external_id) are unique constraints so that a losing
    concurrent writer fails instead of corrupting the order.

    Progress rows are unique per (user_id, video_id) and are overwritten in
    place (last write wins).
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, validates


def utcnow() -> datetime:
    """Get current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def normalize_tags(tags: list[str] | None) -> list[str]:
    """Collapse a tag list into a sorted set of non-empty, stripped tags."""
    if not tags:
        return []
    return sorted({tag.strip() for tag in tags if tag and tag.strip()})


class PlaylistVisibility(enum.Enum):
    """Who can see a playlist."""

    PRIVATE = "private"
    PUBLIC = "public"


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class User(Base):
    """Local mirror of an identity-provider user.

    Authentication is delegated; this row exists so playlists and progress
    can reference a user by foreign key and so unknown users resolve to
    not_found instead of dangling rows.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    playlists: Mapped[list["Playlist"]] = relationship("Playlist", back_populates="owner")

    def __repr__(self) -> str:
        return f"<User(id={self.id!s:.8}, email={self.email!r})>"


class Category(Base):
    """Optional classification for playlists (e.g. "Programming")."""

    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Category(name={self.name!r})>"


class Playlist(Base):
    """Ordered collection of videos owned by one user.

    A playlist is either imported from YouTube (youtube_playlist_id set) or
    custom (youtube_playlist_id NULL). Imported playlists can be re-synced;
    sync only touches title, description, thumbnail and last_synced_at.

    Attributes:
        id: Internal UUID primary key.
        user_id: Owner (FK users.id).
        title: Display title (refreshed from YouTube on every sync).
        description: Display description (refreshed on sync).
        thumbnail: Thumbnail URL (refreshed on sync).
        visibility: private or public.
        tags: Unordered tag set, stored sorted with duplicates collapsed.
        category_id: Optional FK to categories.id.
        youtube_playlist_id: External playlist id, unique when present.
        auto_sync: Whether an external scheduler should re-sync this playlist.
        last_synced_at: Timestamp of the last successful sync.
        videos: Videos ordered by position.
    """

    __tablename__ = "playlists"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    thumbnail: Mapped[str | None] = mapped_column(
        String(1000),
        nullable=True,
    )
    visibility: Mapped[PlaylistVisibility] = mapped_column(
        Enum(
            PlaylistVisibility,
            native_enum=True,
            name="playlistvisibility",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        default=PlaylistVisibility.PUBLIC,
    )
    tags: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    )
    youtube_playlist_id: Mapped[str | None] = mapped_column(
        String(100),
        unique=True,
        nullable=True,
        index=True,
    )
    auto_sync: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    owner: Mapped["User"] = relationship("User", back_populates="playlists")
    category: Mapped["Category"] = relationship("Category")
    videos: Mapped[list["Video"]] = relationship(
        "Video",
        back_populates="playlist",
        order_by="Video.position",
        cascade="all, delete-orphan",
    )

    @validates("tags")
    def validate_tags(self, key: str, value: list[str] | None) -> list[str]:
        """Store tags as a set: stripped, deduplicated, sorted."""
        return normalize_tags(value)

    def __repr__(self) -> str:
        return (
            f"<Playlist(id={self.id!s:.8}, title={self.title!r}, "
            f"youtube_playlist_id={self.youtube_playlist_id!r}, auto_sync={self.auto_sync})>"
        )


class Video(Base):
    """One entry of a playlist's video ledger.

    Attributes:
        id: Internal UUID primary key.
        playlist_id: Owning playlist (FK playlists.id).
        external_id: YouTube video id; NULL for manually added videos.
            Dedup key for sync, unique per playlist when present.
        title: Video title as first seen (never rewritten by sync).
        description: Video description (may be empty).
        thumbnail: Thumbnail URL (nullable).
        duration: Length in seconds, 0 when unknown.
        url: Playable URL.
        position: 1-based display order, unique per playlist.
    """

    __tablename__ = "videos"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    playlist_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("playlists.id", ondelete="CASCADE"),
        nullable=False,
    )
    external_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )
    title: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )
    thumbnail: Mapped[str | None] = mapped_column(
        String(1000),
        nullable=True,
    )
    duration: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )
    url: Mapped[str] = mapped_column(
        String(1000),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    playlist: Mapped["Playlist"] = relationship("Playlist", back_populates="videos")
    progress: Mapped[list["Progress"]] = relationship("Progress", back_populates="video")

    __table_args__ = (
        UniqueConstraint("playlist_id", "position", name="uq_videos_playlist_position"),
        UniqueConstraint("playlist_id", "external_id", name="uq_videos_playlist_external_id"),
        CheckConstraint("position > 0", name="ck_videos_position_positive"),
        CheckConstraint("duration >= 0", name="ck_videos_duration_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<Video(id={self.id!s:.8}, position={self.position}, "
            f"external_id={self.external_id!r}, title={self.title!r})>"
        )


class Progress(Base):
    """A user's watch state for one video.

    Composite identity (user_id, video_id). Rows are created on the first
    playback event and overwritten by every later event; watched_seconds is
    not forced to be monotonic (rewinds are legal writes).
    """

    __tablename__ = "user_video_progress"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    video_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("videos.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    watched_seconds: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )
    completed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    last_watched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    video: Mapped["Video"] = relationship("Video", back_populates="progress")

    __table_args__ = (
        UniqueConstraint("user_id", "video_id", name="uq_progress_user_video"),
        # Weekly dashboard statistics filter on (user_id, updated_at)
        Index("ix_progress_user_updated_at", "user_id", "updated_at"),
        CheckConstraint("watched_seconds >= 0", name="ck_progress_watched_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<Progress(user_id={self.user_id!s:.8}, video_id={self.video_id!s:.8}, "
            f"watched_seconds={self.watched_seconds}, completed={self.completed})>"
        )
