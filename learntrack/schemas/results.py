"""Tagged result types returned by the service entry points.

Every public operation returns one of these instead of raising on expected
failures. success=False results carry a human-readable error and an
ErrorReason so callers can decide whether to retry.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from learntrack.exceptions import ErrorReason, LearnTrackError


class OperationResult(BaseModel):
    """Outcome of an operation with no payload (e.g. auto-sync toggle)."""

    success: bool
    error: str | None = None
    reason: ErrorReason | None = None

    @classmethod
    def failure(cls, exc: LearnTrackError) -> "OperationResult":
        return cls(success=False, error=exc.message, reason=exc.reason)


class SyncResult(OperationResult):
    """Outcome of synchronize().

    Attributes:
        added_count: Videos appended to the ledger by this sync.
        total_videos: Videos in the fetched snapshot.
    """

    added_count: int = 0
    total_videos: int = 0

    @classmethod
    def failure(cls, exc: LearnTrackError) -> "SyncResult":
        return cls(success=False, error=exc.message, reason=exc.reason)


class ImportResult(OperationResult):
    """Outcome of importing a YouTube playlist."""

    playlist_id: uuid.UUID | None = None
    video_count: int = 0

    @classmethod
    def failure(cls, exc: LearnTrackError) -> "ImportResult":
        return cls(success=False, error=exc.message, reason=exc.reason)


class ProgressResult(OperationResult):
    """Outcome of record_progress()/mark_completed()."""

    progress_id: uuid.UUID | None = None

    @classmethod
    def failure(cls, exc: LearnTrackError) -> "ProgressResult":
        return cls(success=False, error=exc.message, reason=exc.reason)


class ProgressState(BaseModel):
    """Stored watch state of one video, or the default when none exists."""

    model_config = ConfigDict(frozen=True)

    video_id: uuid.UUID
    watched_seconds: int = 0
    completed: bool = False
    last_watched_at: datetime | None = None


class PlaylistCompletion(BaseModel):
    """Derived completion of one playlist for one user. Never persisted."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    completed: int = 0
    percentage: int = 0


class PlaylistSummary(BaseModel):
    """Playlist card on the dashboard with its completion."""

    id: uuid.UUID
    title: str
    description: str | None = None
    thumbnail: str | None = None
    category: str | None = None
    completed_count: int
    total_count: int
    progress: int


class DashboardStats(BaseModel):
    """Multi-playlist statistics for one user."""

    total_playlists: int = 0
    total_videos: int = 0
    completed_videos: int = 0
    total_watch_time: int = 0
    active_playlists_count: int = 0
    weekly_watch_time: int = 0
    weekly_completed_videos: int = 0
    continue_learning: list[PlaylistSummary] = []
