"""Shared pytest fixtures for async database testing.

Every test gets a fresh in-memory SQLite database (aiosqlite + StaticPool,
so all sessions share one connection) with the full schema created.
Services are called with the session factory, exactly as in production.
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from learntrack.cache import ReadCache
from learntrack.database import create_test_engine
from learntrack.models import Base
from tests.fixtures.database import create_playlist, create_user


@pytest_asyncio.fixture
async def async_engine():
    """Create an async SQLite engine with all tables.

    Yields:
        AsyncEngine: Configured test database engine.
    """
    engine, _ = create_test_engine()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine (expire_on_commit=False)."""
    return async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def async_session(session_factory):
    """Session for arranging and asserting test data directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def read_cache() -> ReadCache:
    return ReadCache(default_ttl_seconds=300)


@pytest_asyncio.fixture
async def user(session_factory):
    return await create_user(session_factory, email="learner@example.com")


@pytest_asyncio.fixture
async def other_user(session_factory):
    return await create_user(session_factory, email="someone-else@example.com")


@pytest_asyncio.fixture
async def course_playlist(session_factory, user):
    """Imported playlist with videos a, b, c at positions 1, 2, 3."""
    return await create_playlist(
        session_factory,
        user,
        youtube_playlist_id="PLcourse",
        external_ids=["a", "b", "c"],
    )
