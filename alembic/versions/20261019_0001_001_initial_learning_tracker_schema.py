"""001 initial learning tracker schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

Creates users, categories, playlists, the videos ledger and per-user
progress. Ledger ordering relies on uq_videos_playlist_position and
uq_videos_playlist_external_id; progress upserts rely on
uq_progress_user_video.
"""

from typing import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "categories",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_categories_name"),
    )

    playlist_visibility = postgresql.ENUM("private", "public", name="playlistvisibility")
    playlist_visibility.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "playlists",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("thumbnail", sa.String(1000), nullable=True),
        sa.Column(
            "visibility",
            postgresql.ENUM("private", "public", name="playlistvisibility", create_type=False),
            nullable=False,
        ),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("category_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("youtube_playlist_id", sa.String(100), nullable=True),
        sa.Column("auto_sync", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_playlists_user_id", "playlists", ["user_id"])
    op.create_index(
        "ix_playlists_youtube_playlist_id", "playlists", ["youtube_playlist_id"], unique=True
    )

    op.create_table(
        "videos",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("playlist_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("external_id", sa.String(64), nullable=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("thumbnail", sa.String(1000), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("url", sa.String(1000), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["playlist_id"], ["playlists.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("playlist_id", "position", name="uq_videos_playlist_position"),
        sa.UniqueConstraint(
            "playlist_id", "external_id", name="uq_videos_playlist_external_id"
        ),
        sa.CheckConstraint("position > 0", name="ck_videos_position_positive"),
        sa.CheckConstraint("duration >= 0", name="ck_videos_duration_non_negative"),
    )

    op.create_table(
        "user_video_progress",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("video_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("watched_seconds", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_watched_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["video_id"], ["videos.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "video_id", name="uq_progress_user_video"),
        sa.CheckConstraint("watched_seconds >= 0", name="ck_progress_watched_non_negative"),
    )
    op.create_index(
        "ix_user_video_progress_video_id", "user_video_progress", ["video_id"]
    )
    op.create_index(
        "ix_progress_user_updated_at", "user_video_progress", ["user_id", "updated_at"]
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("ix_progress_user_updated_at", table_name="user_video_progress")
    op.drop_index("ix_user_video_progress_video_id", table_name="user_video_progress")
    op.drop_table("user_video_progress")
    op.drop_table("videos")
    op.drop_index("ix_playlists_youtube_playlist_id", table_name="playlists")
    op.drop_index("ix_playlists_user_id", table_name="playlists")
    op.drop_table("playlists")
    sa.Enum(name="playlistvisibility").drop(op.get_bind(), checkfirst=True)
    op.drop_table("categories")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
