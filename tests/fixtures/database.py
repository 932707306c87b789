"""
Model factories for tests that need rows in the test database.

Each helper opens its own short transaction through the session factory and
returns the committed instance (expire_on_commit=False keeps attributes
readable after the session closes).

Usage:
    user = await create_user(session_factory)
    playlist = await create_playlist(session_factory, user, external_ids=["a", "b"])
"""

import uuid
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from learntrack.models import Category, Playlist, Progress, User, Video
from learntrack.utils.youtube_urls import watch_url


async def create_user(
    session_factory: async_sessionmaker[AsyncSession],
    email: str = "user@example.com",
) -> User:
    user = User(email=email, name=email.split("@")[0])
    async with session_factory() as session, session.begin():
        session.add(user)
    return user


async def create_category(
    session_factory: async_sessionmaker[AsyncSession],
    name: str = "Programming",
) -> Category:
    category = Category(name=name)
    async with session_factory() as session, session.begin():
        session.add(category)
    return category


async def create_playlist(
    session_factory: async_sessionmaker[AsyncSession],
    owner: User,
    youtube_playlist_id: str | None = None,
    external_ids: list[str] | None = None,
    title: str = "Course",
    durations: list[int] | None = None,
    category: Category | None = None,
    updated_at: datetime | None = None,
    auto_sync: bool = False,
) -> Playlist:
    """Create a playlist whose videos sit at positions 1..N in the given order."""
    playlist = Playlist(
        id=uuid.uuid4(),
        user_id=owner.id,
        title=title,
        description="",
        youtube_playlist_id=youtube_playlist_id,
        category_id=category.id if category else None,
        auto_sync=auto_sync,
    )
    if updated_at is not None:
        playlist.updated_at = updated_at

    async with session_factory() as session, session.begin():
        session.add(playlist)
        await session.flush()
        for position, external_id in enumerate(external_ids or [], start=1):
            session.add(
                Video(
                    playlist_id=playlist.id,
                    external_id=external_id,
                    title=f"Video {external_id}",
                    url=watch_url(external_id),
                    duration=durations[position - 1] if durations else 0,
                    position=position,
                )
            )
    return playlist


async def add_progress(
    session_factory: async_sessionmaker[AsyncSession],
    user: User,
    video: Video,
    watched_seconds: int = 0,
    completed: bool = False,
    updated_at: datetime | None = None,
) -> Progress:
    """Insert a progress row directly, bypassing the upsert path."""
    progress = Progress(
        user_id=user.id,
        video_id=video.id,
        watched_seconds=watched_seconds,
        completed=completed,
    )
    if updated_at is not None:
        progress.updated_at = updated_at
        progress.last_watched_at = updated_at

    async with session_factory() as session, session.begin():
        session.add(progress)
    return progress


async def get_ledger(
    session_factory: async_sessionmaker[AsyncSession],
    playlist_id: uuid.UUID,
) -> list[tuple[int, str | None]]:
    """Return (position, external_id) pairs of a playlist ordered by position."""
    async with session_factory() as session:
        result = await session.execute(
            select(Video.position, Video.external_id)
            .where(Video.playlist_id == playlist_id)
            .order_by(Video.position)
        )
        return [(row.position, row.external_id) for row in result.all()]


async def get_videos(
    session_factory: async_sessionmaker[AsyncSession],
    playlist_id: uuid.UUID,
) -> list[Video]:
    async with session_factory() as session:
        result = await session.execute(
            select(Video).where(Video.playlist_id == playlist_id).order_by(Video.position)
        )
        return list(result.scalars().all())


async def count_progress_rows(
    session_factory: async_sessionmaker[AsyncSession],
    user_id: uuid.UUID,
    video_id: uuid.UUID,
) -> int:
    async with session_factory() as session:
        result = await session.execute(
            select(func.count(Progress.id)).where(
                Progress.user_id == user_id,
                Progress.video_id == video_id,
            )
        )
        return int(result.scalar_one())
