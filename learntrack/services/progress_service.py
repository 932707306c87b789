"""Progress store - per-user, per-video watch state.

Playback instrumentation reports (watched_seconds, completed) samples for a
video. Each report overwrites the stored row for (user, video):
- The write is a single INSERT ... ON CONFLICT DO UPDATE statement, so two
  concurrent reports reorder (last write wins) but never drop each other
- watched_seconds is not forced to grow; a rewind is a legal write
- Cached completions of the video's playlist are invalidated for the user
"""

import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from learntrack.cache import ReadCache, completion_key
from learntrack.exceptions import (
    ConfigurationError,
    ConflictError,
    InvalidInputError,
    LearnTrackError,
    NotFoundError,
)
from learntrack.models import Progress, User, Video, utcnow
from learntrack.schemas.results import ProgressResult, ProgressState

log = structlog.get_logger()


def _upsert_statement(session: AsyncSession):  # type: ignore[no-untyped-def]
    """Pick the dialect-specific INSERT that supports ON CONFLICT."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(Progress)
    if dialect == "sqlite":
        return sqlite_insert(Progress)
    raise ConfigurationError(f"Progress upsert not supported on dialect: {dialect}")


async def record_progress(
    user_id: uuid.UUID,
    video_id: uuid.UUID,
    watched_seconds: int,
    completed: bool,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    cache: ReadCache | None = None,
) -> ProgressResult:
    """Create or overwrite the (user, video) progress row.

    Args:
        user_id: Watching user.
        video_id: Watched video.
        watched_seconds: Elapsed time in seconds (>= 0).
        completed: Whether the video counts as finished.
        session_factory: Factory for short-lived sessions.
        cache: Read cache to invalidate after the write.

    Returns:
        ProgressResult with the progress row id, or a tagged failure
        (invalid_input, not_found).
    """
    try:
        if watched_seconds < 0:
            raise InvalidInputError("watched_seconds must be non-negative")

        async with session_factory() as session, session.begin():
            video = await session.get(Video, video_id)
            if video is None:
                raise NotFoundError(f"Video not found: {video_id}")
            if await session.get(User, user_id) is None:
                raise NotFoundError(f"User not found: {user_id}")
            playlist_id = video.playlist_id

            now = utcnow()
            stmt = _upsert_statement(session).values(
                id=uuid.uuid4(),
                user_id=user_id,
                video_id=video_id,
                watched_seconds=watched_seconds,
                completed=completed,
                last_watched_at=now,
                created_at=now,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[Progress.user_id, Progress.video_id],
                set_={
                    "watched_seconds": stmt.excluded.watched_seconds,
                    "completed": stmt.excluded.completed,
                    "last_watched_at": stmt.excluded.last_watched_at,
                    "updated_at": stmt.excluded.updated_at,
                },
            ).returning(Progress.id)

            result = await session.execute(stmt)
            progress_id = result.scalar_one()
    except IntegrityError as e:
        # Video or user deleted between the existence check and the write
        log.warning(
            "progress_write_conflict",
            user_id=str(user_id),
            video_id=str(video_id),
            error=str(e.orig),
        )
        return ProgressResult.failure(ConflictError("Progress could not be stored, retry"))
    except LearnTrackError as e:
        log.warning(
            "progress_update_failed",
            user_id=str(user_id),
            video_id=str(video_id),
            reason=e.reason.value,
            error=e.message,
        )
        return ProgressResult.failure(e)
    except ConfigurationError as e:
        log.error(
            "progress_upsert_unsupported",
            user_id=str(user_id),
            video_id=str(video_id),
            error=str(e),
        )
        raise
    except SQLAlchemyError as e:
        log.error(
            "progress_storage_error",
            user_id=str(user_id),
            video_id=str(video_id),
            error=str(e),
            exc_info=True,
        )
        raise

    if cache is not None:
        cache.invalidate(completion_key(playlist_id, user_id))

    log.debug(
        "progress_recorded",
        user_id=str(user_id),
        video_id=str(video_id),
        watched_seconds=watched_seconds,
        completed=completed,
    )
    return ProgressResult(success=True, progress_id=progress_id)


async def mark_completed(
    video_id: uuid.UUID,
    user_id: uuid.UUID,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    cache: ReadCache | None = None,
) -> ProgressResult:
    """Mark a video completed.

    Same as record_progress(user_id, video_id, 0, True): the stored
    watched_seconds is reset to 0.
    """
    return await record_progress(
        user_id,
        video_id,
        0,
        True,
        session_factory=session_factory,
        cache=cache,
    )


async def get_progress(
    user_id: uuid.UUID,
    video_id: uuid.UUID,
    *,
    session_factory: async_sessionmaker[AsyncSession],
) -> ProgressState:
    """Return stored progress, or the default state when none exists."""
    async with session_factory() as session:
        result = await session.execute(
            select(Progress).where(
                Progress.user_id == user_id,
                Progress.video_id == video_id,
            )
        )
        progress = result.scalar_one_or_none()

    if progress is None:
        return ProgressState(video_id=video_id)

    return ProgressState(
        video_id=video_id,
        watched_seconds=progress.watched_seconds,
        completed=progress.completed,
        last_watched_at=progress.last_watched_at,
    )


async def get_playlist_progress_map(
    playlist_id: uuid.UUID,
    user_id: uuid.UUID,
    *,
    session_factory: async_sessionmaker[AsyncSession],
) -> dict[uuid.UUID, bool]:
    """Map video id to completed flag for the user's rows in a playlist.

    Videos without a progress row are absent from the map.
    """
    async with session_factory() as session:
        result = await session.execute(
            select(Progress.video_id, Progress.completed)
            .join(Video, Video.id == Progress.video_id)
            .where(
                Progress.user_id == user_id,
                Video.playlist_id == playlist_id,
            )
        )
        return {row.video_id: row.completed for row in result.all()}
