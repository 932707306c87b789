"""Progress aggregator - derived completion statistics.

Completion is never stored. It is recomputed from the video ledger and the
progress rows on every read (or served from a ReadCache entry that the write
paths invalidate). All functions here are read-only and safe to call
concurrently.

Percentage rounding is round-half-up on 100 * completed / total, computed
with Decimal so identical inputs always round identically.
"""

import uuid
from collections.abc import Sequence
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

import structlog
from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from learntrack.cache import ReadCache, completion_key
from learntrack.models import Category, Playlist, Progress, Video, utcnow
from learntrack.schemas.results import DashboardStats, PlaylistCompletion, PlaylistSummary
from learntrack.services.video_ledger import get_total_duration

log = structlog.get_logger()

CONTINUE_LEARNING_LIMIT = 3
WEEKLY_WINDOW = timedelta(days=7)


def completion_percentage(completed: int, total: int) -> int:
    """Round-half-up percentage of completed over total; 0 when total is 0.

    Example:
        >>> completion_percentage(1, 8)  # 12.5
        13
        >>> completion_percentage(1, 3)  # 33.33
        33
    """
    if total <= 0:
        return 0
    ratio = Decimal(100 * completed) / Decimal(total)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _completion_counts_query(user_id: uuid.UUID):  # type: ignore[no-untyped-def]
    """SELECT playlist_id, total, completed over videos LEFT JOIN the user's progress."""
    completed_case = case((Progress.completed.is_(True), 1), else_=0)
    return (
        select(
            Video.playlist_id,
            func.count(Video.id).label("total"),
            func.coalesce(func.sum(completed_case), 0).label("completed"),
        )
        .select_from(Video)
        .outerjoin(
            Progress,
            and_(Progress.video_id == Video.id, Progress.user_id == user_id),
        )
        .group_by(Video.playlist_id)
    )


async def playlist_completion(
    playlist_id: uuid.UUID,
    user_id: uuid.UUID,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    cache: ReadCache | None = None,
) -> PlaylistCompletion:
    """Compute total, completed and percentage of a playlist for a user.

    Videos without a progress row count as not completed. An unknown
    playlist (or one with no videos) yields {0, 0, 0}.
    """
    key = completion_key(playlist_id, user_id)
    if cache is not None:
        cached = cache.get(key)
        if cached is not None:
            return cached
        token = cache.begin_read()

    async with session_factory() as session:
        result = await session.execute(
            _completion_counts_query(user_id).where(Video.playlist_id == playlist_id)
        )
        row = result.one_or_none()

    total = int(row.total) if row else 0
    completed = int(row.completed) if row else 0
    completion = PlaylistCompletion(
        total=total,
        completed=completed,
        percentage=completion_percentage(completed, total),
    )

    if cache is not None:
        cache.set_if_current(key, completion, token)
    return completion


async def completions_for_playlists(
    playlist_ids: Sequence[uuid.UUID],
    user_id: uuid.UUID,
    *,
    session_factory: async_sessionmaker[AsyncSession],
) -> dict[uuid.UUID, PlaylistCompletion]:
    """Batch completion for many playlists in one query.

    Every requested id is present in the result; playlists without videos
    map to {0, 0, 0}.
    """
    if not playlist_ids:
        return {}

    async with session_factory() as session:
        result = await session.execute(
            _completion_counts_query(user_id).where(Video.playlist_id.in_(list(playlist_ids)))
        )
        counts = {row.playlist_id: (int(row.total), int(row.completed)) for row in result.all()}

    completions = {}
    for playlist_id in playlist_ids:
        total, completed = counts.get(playlist_id, (0, 0))
        completions[playlist_id] = PlaylistCompletion(
            total=total,
            completed=completed,
            percentage=completion_percentage(completed, total),
        )
    return completions


async def playlist_total_duration(
    playlist_id: uuid.UUID,
    *,
    session_factory: async_sessionmaker[AsyncSession],
) -> int:
    """Total length of a playlist in seconds."""
    async with session_factory() as session:
        return await get_total_duration(playlist_id, session)


async def dashboard_stats(
    user_id: uuid.UUID,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    now: datetime | None = None,
) -> DashboardStats:
    """Statistics across every playlist the user owns.

    Attributes computed:
        total_playlists, total_videos, completed_videos: ledger/progress counts
        total_watch_time: sum of watched_seconds on the user's playlists
        active_playlists_count: playlists with at least one progress row
        weekly_watch_time, weekly_completed_videos: progress rows updated in
            the last 7 days (any playlist)
        continue_learning: up to 3 playlists strictly between 0% and 100%,
            most recently updated first
    """
    window_start = (now or utcnow()) - WEEKLY_WINDOW

    async with session_factory() as session:
        playlists_result = await session.execute(
            select(Playlist, Category.name)
            .outerjoin(Category, Category.id == Playlist.category_id)
            .where(Playlist.user_id == user_id)
            .order_by(Playlist.updated_at.desc())
        )
        playlists = playlists_result.all()
        playlist_ids = [row.Playlist.id for row in playlists]

        per_playlist: dict[uuid.UUID, tuple[int, int, int, int]] = {}
        if playlist_ids:
            completed_case = case((Progress.completed.is_(True), 1), else_=0)
            counts_result = await session.execute(
                select(
                    Video.playlist_id,
                    func.count(Video.id).label("total"),
                    func.coalesce(func.sum(completed_case), 0).label("completed"),
                    func.count(Progress.id).label("started"),
                    func.coalesce(func.sum(Progress.watched_seconds), 0).label("watched"),
                )
                .select_from(Video)
                .outerjoin(
                    Progress,
                    and_(Progress.video_id == Video.id, Progress.user_id == user_id),
                )
                .where(Video.playlist_id.in_(playlist_ids))
                .group_by(Video.playlist_id)
            )
            per_playlist = {
                row.playlist_id: (
                    int(row.total),
                    int(row.completed),
                    int(row.started),
                    int(row.watched),
                )
                for row in counts_result.all()
            }

        weekly_result = await session.execute(
            select(
                func.coalesce(func.sum(Progress.watched_seconds), 0).label("watched"),
                func.coalesce(
                    func.sum(case((Progress.completed.is_(True), 1), else_=0)), 0
                ).label("completed"),
            ).where(
                Progress.user_id == user_id,
                Progress.updated_at >= window_start,
            )
        )
        weekly = weekly_result.one()

    stats = DashboardStats(
        total_playlists=len(playlists),
        weekly_watch_time=int(weekly.watched),
        weekly_completed_videos=int(weekly.completed),
    )

    for row in playlists:
        playlist = row.Playlist
        total, completed, started, watched = per_playlist.get(playlist.id, (0, 0, 0, 0))
        stats.total_videos += total
        stats.completed_videos += completed
        stats.total_watch_time += watched
        if started > 0:
            stats.active_playlists_count += 1

        percentage = completion_percentage(completed, total)
        if 0 < percentage < 100 and len(stats.continue_learning) < CONTINUE_LEARNING_LIMIT:
            stats.continue_learning.append(
                PlaylistSummary(
                    id=playlist.id,
                    title=playlist.title,
                    description=playlist.description,
                    thumbnail=playlist.thumbnail,
                    category=row.name,
                    completed_count=completed,
                    total_count=total,
                    progress=percentage,
                )
            )

    log.debug(
        "dashboard_stats_computed",
        user_id=str(user_id),
        total_playlists=stats.total_playlists,
        total_videos=stats.total_videos,
    )
    return stats
