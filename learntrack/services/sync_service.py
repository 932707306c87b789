"""Playlist sync service - reconcile YouTube playlists into the video ledger.

This service implements:
- synchronize(): fetch a snapshot and append videos the ledger does not have
- set_auto_sync(): flip the flag an external scheduler reads
- list_auto_sync_playlists(): what that scheduler should sync
- sync_auto_playlists(): run synchronize() over every flagged playlist
- import_playlist(): create a playlist (and its ledger) from a YouTube URL

Architecture Compliance:
- Short transactions ONLY (read → close → fetch → reopen → write)
- NEVER hold a DB connection during YouTube API calls
- Sync is strictly additive: existing videos are never updated, reordered
  or removed, so a user's position in a playlist stays valid
- New rows and the metadata update commit in one transaction
- Every expected failure is returned as a tagged result, never raised
- Structured logging with correlation IDs
"""

import asyncio
import uuid
from dataclasses import dataclass

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from learntrack.cache import ReadCache, playlist_completion_prefix
from learntrack.config import get_youtube_fetch_timeout
from learntrack.exceptions import (
    ConflictError,
    InvalidInputError,
    LearnTrackError,
    NotFoundError,
    SourceEmptyError,
    SourceUnavailableError,
    UnauthorizedError,
)
from learntrack.models import Playlist, User, utcnow
from learntrack.schemas.results import ImportResult, OperationResult, SyncResult
from learntrack.schemas.snapshot import PlaylistSnapshot
from learntrack.services.playlist_source import PlaylistSource
from learntrack.services.video_ledger import (
    append_videos,
    build_video_rows,
    get_existing_external_ids,
    select_new_videos,
)
from learntrack.utils.youtube_urls import extract_playlist_id

log = structlog.get_logger()


@dataclass
class AutoSyncTarget:
    """Playlist an external scheduler should pass to synchronize()."""

    playlist_id: uuid.UUID
    external_playlist_id: str


def _ensure_owner(playlist: Playlist, acting_user_id: uuid.UUID | None) -> None:
    """Raise UnauthorizedError when acting_user_id is set and is not the owner."""
    if acting_user_id is not None and playlist.user_id != acting_user_id:
        raise UnauthorizedError("Not allowed to modify this playlist")


async def _load_playlist(playlist_id: uuid.UUID, session: AsyncSession) -> Playlist:
    playlist = await session.get(Playlist, playlist_id)
    if playlist is None:
        raise NotFoundError(f"Playlist not found: {playlist_id}")
    return playlist


async def fetch_snapshot(
    source: PlaylistSource,
    external_playlist_id: str,
    timeout: float | None = None,
) -> PlaylistSnapshot:
    """Fetch a snapshot bounded by a timeout.

    Args:
        source: Playlist source adapter.
        external_playlist_id: Remote playlist id.
        timeout: Seconds before giving up (defaults to YOUTUBE_FETCH_TIMEOUT_SECONDS).

    Returns:
        Snapshot with at least one video.

    Raises:
        SourceUnavailableError: On timeout or fetch failure.
        SourceEmptyError: When the snapshot has no videos.
    """
    limit = get_youtube_fetch_timeout() if timeout is None else timeout

    try:
        snapshot = await asyncio.wait_for(source.fetch_playlist(external_playlist_id), limit)
    except asyncio.TimeoutError as e:
        raise SourceUnavailableError(f"Timed out fetching playlist after {limit:g}s") from e

    # An empty response is treated as suspicious, never as "playlist cleared"
    if not snapshot.videos:
        raise SourceEmptyError("No videos found in YouTube playlist")

    return snapshot


async def synchronize(
    playlist_id: uuid.UUID,
    external_playlist_id: str | None,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    source: PlaylistSource,
    cache: ReadCache | None = None,
    acting_user_id: uuid.UUID | None = None,
    timeout: float | None = None,
) -> SyncResult:
    """Append videos that appeared upstream and refresh playlist metadata.

    Steps:
        1. Load the playlist (not_found / unauthorized checks), close session
        2. Fetch snapshot with timeout (source_unavailable / source_empty)
        3. In one transaction: diff external ids, append new videos after the
           current maximum position, update title/description/thumbnail and
           last_synced_at
        4. Invalidate cached completions of the playlist

    A unique-constraint violation means a concurrent sync won the race; the
    transaction is rolled back and conflict is returned. Re-running
    synchronize() converges because the diff is recomputed against the
    updated ledger.

    Args:
        playlist_id: Local playlist id.
        external_playlist_id: YouTube playlist id; None uses the id stored
            on the playlist at import time.
        session_factory: Factory for short-lived sessions.
        source: Playlist source adapter.
        cache: Read cache to invalidate after the write.
        acting_user_id: When set, must be the playlist owner.
        timeout: Fetch timeout in seconds.

    Returns:
        SyncResult with added_count and total_videos, or a tagged failure.
    """
    correlation_id = str(uuid.uuid4())
    log.info(
        "playlist_sync_started",
        correlation_id=correlation_id,
        playlist_id=str(playlist_id),
        external_playlist_id=external_playlist_id,
    )

    try:
        async with session_factory() as session:
            playlist = await _load_playlist(playlist_id, session)
            _ensure_owner(playlist, acting_user_id)
            external_playlist_id = external_playlist_id or playlist.youtube_playlist_id
            if not external_playlist_id:
                raise InvalidInputError("Playlist is not linked to a YouTube playlist")

        # No DB connection held during the YouTube call
        snapshot = await fetch_snapshot(source, external_playlist_id, timeout)

        try:
            async with session_factory() as session, session.begin():
                playlist = await _load_playlist(playlist_id, session)

                existing_ids = await get_existing_external_ids(playlist_id, session)
                new_videos = select_new_videos(snapshot.videos, existing_ids)
                await append_videos(playlist_id, new_videos, session)

                playlist.title = snapshot.title
                playlist.description = snapshot.description
                playlist.thumbnail = snapshot.thumbnail
                playlist.last_synced_at = utcnow()
        except IntegrityError as e:
            log.warning(
                "playlist_sync_conflict",
                correlation_id=correlation_id,
                playlist_id=str(playlist_id),
                error=str(e.orig),
            )
            raise ConflictError("Playlist was modified concurrently, retry the sync") from e

    except LearnTrackError as e:
        log.warning(
            "playlist_sync_failed",
            correlation_id=correlation_id,
            playlist_id=str(playlist_id),
            reason=e.reason.value,
            error=e.message,
        )
        return SyncResult.failure(e)
    except SQLAlchemyError as e:
        log.error(
            "playlist_sync_storage_error",
            correlation_id=correlation_id,
            playlist_id=str(playlist_id),
            error=str(e),
            exc_info=True,
        )
        raise

    if cache is not None:
        cache.invalidate_prefix(playlist_completion_prefix(playlist_id))

    log.info(
        "playlist_sync_completed",
        correlation_id=correlation_id,
        playlist_id=str(playlist_id),
        added_count=len(new_videos),
        total_videos=len(snapshot.videos),
    )
    return SyncResult(
        success=True,
        added_count=len(new_videos),
        total_videos=len(snapshot.videos),
    )


async def set_auto_sync(
    playlist_id: uuid.UUID,
    enabled: bool,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    acting_user_id: uuid.UUID | None = None,
) -> OperationResult:
    """Store the auto-sync flag of a playlist.

    When auto-sync fires is decided by an external scheduler; this only
    persists the flag it reads.
    """
    try:
        async with session_factory() as session, session.begin():
            playlist = await _load_playlist(playlist_id, session)
            _ensure_owner(playlist, acting_user_id)
            playlist.auto_sync = enabled
    except LearnTrackError as e:
        log.warning(
            "auto_sync_update_failed",
            playlist_id=str(playlist_id),
            reason=e.reason.value,
            error=e.message,
        )
        return OperationResult.failure(e)

    log.info("auto_sync_updated", playlist_id=str(playlist_id), enabled=enabled)
    return OperationResult(success=True)


async def list_auto_sync_playlists(
    session_factory: async_sessionmaker[AsyncSession],
) -> list[AutoSyncTarget]:
    """Return imported playlists whose auto-sync flag is set."""
    async with session_factory() as session:
        result = await session.execute(
            select(Playlist.id, Playlist.youtube_playlist_id)
            .where(
                Playlist.auto_sync.is_(True),
                Playlist.youtube_playlist_id.isnot(None),
            )
            .order_by(Playlist.last_synced_at.asc())
        )
        return [
            AutoSyncTarget(playlist_id=row.id, external_playlist_id=row.youtube_playlist_id)
            for row in result.all()
        ]


@dataclass
class AutoSyncReport:
    """Totals of one sync_auto_playlists() run."""

    succeeded: int = 0
    failed: int = 0
    added_count: int = 0


async def sync_auto_playlists(
    *,
    session_factory: async_sessionmaker[AsyncSession],
    source: PlaylistSource,
    cache: ReadCache | None = None,
    timeout: float | None = None,
) -> AutoSyncReport:
    """Synchronize every auto-sync playlist, one after another.

    A failed playlist is counted and skipped; it does not stop the run.
    """
    report = AutoSyncReport()
    targets = await list_auto_sync_playlists(session_factory)

    for target in targets:
        result = await synchronize(
            target.playlist_id,
            target.external_playlist_id,
            session_factory=session_factory,
            source=source,
            cache=cache,
            timeout=timeout,
        )
        if result.success:
            report.succeeded += 1
            report.added_count += result.added_count
        else:
            report.failed += 1

    log.info(
        "auto_sync_run_completed",
        playlists=len(targets),
        succeeded=report.succeeded,
        failed=report.failed,
        added_count=report.added_count,
    )
    return report


async def import_playlist(
    user_id: uuid.UUID,
    youtube_url: str,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    source: PlaylistSource,
    timeout: float | None = None,
) -> ImportResult:
    """Create a playlist and its ledger from a YouTube playlist URL.

    Videos are stored at positions 1..N in YouTube order. A playlist id that
    was already imported is rejected with conflict.

    Returns:
        ImportResult with the new playlist id, or a tagged failure.
    """
    correlation_id = str(uuid.uuid4())

    try:
        external_id = extract_playlist_id(youtube_url)
        if not external_id:
            raise InvalidInputError("Invalid YouTube playlist URL")

        async with session_factory() as session:
            if await session.get(User, user_id) is None:
                raise NotFoundError(f"User not found: {user_id}")

            result = await session.execute(
                select(Playlist.id).where(Playlist.youtube_playlist_id == external_id)
            )
            if result.scalar_one_or_none() is not None:
                raise ConflictError("Playlist already imported")

        snapshot = await fetch_snapshot(source, external_id, timeout)

        playlist_id = uuid.uuid4()
        try:
            async with session_factory() as session, session.begin():
                session.add(
                    Playlist(
                        id=playlist_id,
                        user_id=user_id,
                        title=snapshot.title,
                        description=snapshot.description,
                        thumbnail=snapshot.thumbnail,
                        youtube_playlist_id=external_id,
                        last_synced_at=utcnow(),
                    )
                )
                # Playlist row must exist before its videos reference it
                await session.flush()
                session.add_all(build_video_rows(playlist_id, snapshot.videos, start_position=1))
        except IntegrityError as e:
            raise ConflictError("Playlist already imported") from e

    except LearnTrackError as e:
        log.warning(
            "playlist_import_failed",
            correlation_id=correlation_id,
            user_id=str(user_id),
            reason=e.reason.value,
            error=e.message,
        )
        return ImportResult.failure(e)

    log.info(
        "playlist_imported",
        correlation_id=correlation_id,
        user_id=str(user_id),
        playlist_id=str(playlist_id),
        external_playlist_id=external_id,
        video_count=len(snapshot.videos),
    )
    return ImportResult(success=True, playlist_id=playlist_id, video_count=len(snapshot.videos))
