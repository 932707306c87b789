"""Video ledger data access.

The ledger is the ordered, append-only list of videos of one playlist.
These helpers run inside a caller-owned session/transaction; none of them
commit.

Ordering contract:
- position is 1-based and unique per playlist
- new videos go to max(position) + 1 onwards
- existing rows are never repositioned
"""

import uuid
from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from learntrack.models import Video
from learntrack.schemas.snapshot import SnapshotVideo


async def get_existing_external_ids(playlist_id: uuid.UUID, session: AsyncSession) -> set[str]:
    """Return the external ids already present in the playlist's ledger."""
    result = await session.execute(
        select(Video.external_id).where(
            Video.playlist_id == playlist_id,
            Video.external_id.isnot(None),
        )
    )
    return {external_id for external_id in result.scalars().all() if external_id}


async def get_max_position(playlist_id: uuid.UUID, session: AsyncSession) -> int:
    """Return the highest position in the playlist, or 0 if it has no videos."""
    result = await session.execute(
        select(func.max(Video.position)).where(Video.playlist_id == playlist_id)
    )
    return result.scalar_one_or_none() or 0


def select_new_videos(
    snapshot_videos: Sequence[SnapshotVideo],
    existing_external_ids: set[str],
) -> list[SnapshotVideo]:
    """Set difference snapshot \\ ledger, preserving snapshot order."""
    return [video for video in snapshot_videos if video.external_id not in existing_external_ids]


def build_video_rows(
    playlist_id: uuid.UUID,
    new_videos: Sequence[SnapshotVideo],
    start_position: int,
) -> list[Video]:
    """Create Video rows with consecutive positions starting at start_position."""
    return [
        Video(
            playlist_id=playlist_id,
            external_id=video.external_id,
            title=video.title,
            description=video.description,
            thumbnail=video.thumbnail,
            duration=video.duration,
            url=video.url,
            position=start_position + offset,
        )
        for offset, video in enumerate(new_videos)
    ]


async def append_videos(
    playlist_id: uuid.UUID,
    new_videos: Sequence[SnapshotVideo],
    session: AsyncSession,
) -> list[Video]:
    """Append snapshot videos after the current maximum position.

    The rows are added to the session only; the caller's transaction decides
    whether the whole batch commits.
    """
    if not new_videos:
        return []

    start_position = await get_max_position(playlist_id, session) + 1
    rows = build_video_rows(playlist_id, new_videos, start_position)
    session.add_all(rows)
    return rows


async def get_total_duration(playlist_id: uuid.UUID, session: AsyncSession) -> int:
    """Sum of known video durations in seconds (unknown durations count as 0)."""
    result = await session.execute(
        select(func.coalesce(func.sum(Video.duration), 0)).where(
            Video.playlist_id == playlist_id
        )
    )
    return int(result.scalar_one())
