"""Pydantic schemas for validation and serialization."""

from learntrack.schemas.results import (
    DashboardStats,
    ImportResult,
    OperationResult,
    PlaylistCompletion,
    PlaylistSummary,
    ProgressResult,
    ProgressState,
    SyncResult,
)
from learntrack.schemas.snapshot import PlaylistSnapshot, SnapshotVideo

__all__ = [
    "DashboardStats",
    "ImportResult",
    "OperationResult",
    "PlaylistCompletion",
    "PlaylistSnapshot",
    "PlaylistSummary",
    "ProgressResult",
    "ProgressState",
    "SnapshotVideo",
    "SyncResult",
]
