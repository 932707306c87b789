"""Tests for progress_service.py - per-user watch state."""

import uuid
from unittest.mock import MagicMock

import pytest

from learntrack.cache import completion_key
from learntrack.exceptions import ConfigurationError, ErrorReason
from learntrack.schemas.results import PlaylistCompletion
from learntrack.services.progress_aggregator import playlist_completion
from learntrack.services.progress_service import (
    _upsert_statement,
    get_playlist_progress_map,
    get_progress,
    mark_completed,
    record_progress,
)
from tests.fixtures.database import count_progress_rows, get_videos


@pytest.fixture
async def course_videos(session_factory, course_playlist):
    return await get_videos(session_factory, course_playlist.id)


# Test record_progress()


@pytest.mark.asyncio
async def test_record_progress_creates_row(session_factory, user, course_videos):
    video = course_videos[0]

    result = await record_progress(user.id, video.id, 42, False, session_factory=session_factory)

    assert result.success is True
    assert result.progress_id is not None
    state = await get_progress(user.id, video.id, session_factory=session_factory)
    assert state.watched_seconds == 42
    assert state.completed is False
    assert state.last_watched_at is not None


@pytest.mark.asyncio
async def test_record_progress_overwrites_existing_row(session_factory, user, course_videos):
    """record(U,X,42) then record(U,X,57) → exactly one row with 57."""
    video = course_videos[0]

    first = await record_progress(user.id, video.id, 42, False, session_factory=session_factory)
    second = await record_progress(user.id, video.id, 57, False, session_factory=session_factory)

    assert second.progress_id == first.progress_id
    assert await count_progress_rows(session_factory, user.id, video.id) == 1
    state = await get_progress(user.id, video.id, session_factory=session_factory)
    assert state.watched_seconds == 57


@pytest.mark.asyncio
async def test_record_progress_allows_rewind(session_factory, user, course_videos):
    """watched_seconds is not forced to grow."""
    video = course_videos[0]

    await record_progress(user.id, video.id, 300, False, session_factory=session_factory)
    await record_progress(user.id, video.id, 10, False, session_factory=session_factory)

    state = await get_progress(user.id, video.id, session_factory=session_factory)
    assert state.watched_seconds == 10


@pytest.mark.asyncio
async def test_record_progress_rows_are_per_user(
    session_factory, user, other_user, course_videos
):
    video = course_videos[0]

    await record_progress(user.id, video.id, 42, True, session_factory=session_factory)
    await record_progress(other_user.id, video.id, 5, False, session_factory=session_factory)

    mine = await get_progress(user.id, video.id, session_factory=session_factory)
    theirs = await get_progress(other_user.id, video.id, session_factory=session_factory)
    assert (mine.watched_seconds, mine.completed) == (42, True)
    assert (theirs.watched_seconds, theirs.completed) == (5, False)


@pytest.mark.asyncio
async def test_record_progress_negative_seconds_returns_invalid_input(
    session_factory, user, course_videos
):
    video = course_videos[0]

    result = await record_progress(user.id, video.id, -1, False, session_factory=session_factory)

    assert result.success is False
    assert result.reason == ErrorReason.INVALID_INPUT
    assert await count_progress_rows(session_factory, user.id, video.id) == 0


@pytest.mark.asyncio
async def test_record_progress_unknown_video_returns_not_found(session_factory, user):
    result = await record_progress(
        user.id, uuid.uuid4(), 10, False, session_factory=session_factory
    )

    assert result.success is False
    assert result.reason == ErrorReason.NOT_FOUND


@pytest.mark.asyncio
async def test_record_progress_unknown_user_returns_not_found(session_factory, course_videos):
    result = await record_progress(
        uuid.uuid4(), course_videos[0].id, 10, False, session_factory=session_factory
    )

    assert result.success is False
    assert result.reason == ErrorReason.NOT_FOUND


@pytest.mark.asyncio
async def test_record_progress_invalidates_cached_completion(
    session_factory, user, course_playlist, course_videos, read_cache
):
    """A completion read after a progress write reflects the write."""
    before = await playlist_completion(
        course_playlist.id, user.id, session_factory=session_factory, cache=read_cache
    )
    assert before == PlaylistCompletion(total=3, completed=0, percentage=0)

    await record_progress(
        user.id, course_videos[0].id, 0, True, session_factory=session_factory, cache=read_cache
    )
    after = await playlist_completion(
        course_playlist.id, user.id, session_factory=session_factory, cache=read_cache
    )

    assert after == PlaylistCompletion(total=3, completed=1, percentage=33)


@pytest.mark.asyncio
async def test_record_progress_leaves_other_users_cache(
    session_factory, user, other_user, course_playlist, course_videos, read_cache
):
    cached = PlaylistCompletion(total=3)
    read_cache.set(completion_key(course_playlist.id, other_user.id), cached)

    await record_progress(
        user.id, course_videos[0].id, 0, True, session_factory=session_factory, cache=read_cache
    )

    assert read_cache.get(completion_key(course_playlist.id, other_user.id)) == cached


@pytest.mark.asyncio
async def test_failed_record_progress_keeps_cache(
    session_factory, user, course_playlist, course_videos, read_cache
):
    cached = PlaylistCompletion(total=3)
    read_cache.set(completion_key(course_playlist.id, user.id), cached)

    await record_progress(
        user.id, course_videos[0].id, -5, True, session_factory=session_factory, cache=read_cache
    )

    assert read_cache.get(completion_key(course_playlist.id, user.id)) == cached


# Test mark_completed()


@pytest.mark.asyncio
async def test_mark_completed_sets_completed_and_zeroes_seconds(
    session_factory, user, course_videos
):
    video = course_videos[1]
    await record_progress(user.id, video.id, 120, False, session_factory=session_factory)

    result = await mark_completed(video.id, user.id, session_factory=session_factory)

    assert result.success is True
    state = await get_progress(user.id, video.id, session_factory=session_factory)
    assert state.completed is True
    assert state.watched_seconds == 0
    assert await count_progress_rows(session_factory, user.id, video.id) == 1


@pytest.mark.asyncio
async def test_mark_completed_unknown_video_returns_not_found(session_factory, user):
    result = await mark_completed(uuid.uuid4(), user.id, session_factory=session_factory)

    assert result.success is False
    assert result.reason == ErrorReason.NOT_FOUND


# Test get_progress() / get_playlist_progress_map()


@pytest.mark.asyncio
async def test_get_progress_returns_default_when_absent(session_factory, user, course_videos):
    video = course_videos[2]

    state = await get_progress(user.id, video.id, session_factory=session_factory)

    assert state.video_id == video.id
    assert state.watched_seconds == 0
    assert state.completed is False
    assert state.last_watched_at is None


@pytest.mark.asyncio
async def test_get_playlist_progress_map_contains_only_users_rows(
    session_factory, user, other_user, course_playlist, course_videos
):
    first, second, third = course_videos
    await record_progress(user.id, first.id, 0, True, session_factory=session_factory)
    await record_progress(user.id, second.id, 30, False, session_factory=session_factory)
    await record_progress(other_user.id, third.id, 0, True, session_factory=session_factory)

    progress_map = await get_playlist_progress_map(
        course_playlist.id, user.id, session_factory=session_factory
    )

    assert progress_map == {first.id: True, second.id: False}


# Test dialect support


def test_upsert_statement_rejects_unsupported_dialect():
    session = MagicMock()
    session.get_bind.return_value.dialect.name = "mysql"

    with pytest.raises(ConfigurationError, match="mysql"):
        _upsert_statement(session)


@pytest.mark.asyncio
async def test_record_progress_propagates_unsupported_dialect(
    session_factory, user, course_videos, mocker
):
    mocker.patch(
        "learntrack.services.progress_service._upsert_statement",
        side_effect=ConfigurationError("Progress upsert not supported on dialect: mysql"),
    )

    with pytest.raises(ConfigurationError):
        await record_progress(
            user.id, course_videos[0].id, 10, False, session_factory=session_factory
        )

    assert await count_progress_rows(session_factory, user.id, course_videos[0].id) == 0
