"""Learning tracker core.

This package turns YouTube playlists into structured courses: it keeps a
local, append-only ledger of each playlist's videos in sync with YouTube,
records per-user watch progress, and aggregates completion statistics.
"""

from learntrack.database import async_session_factory, get_session_factory
from learntrack.models import Base, Playlist, Progress, Video

__all__ = [
    "Base",
    "Playlist",
    "Progress",
    "Video",
    "async_session_factory",
    "get_session_factory",
]
