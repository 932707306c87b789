"""Tests for playlist_source.py - YouTube responses to validated snapshots."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from learntrack.clients.youtube import (
    YouTubeAPIError,
    YouTubeClient,
    YouTubePlaylistNotFoundError,
)
from learntrack.exceptions import ErrorReason, SourceEmptyError, SourceUnavailableError
from learntrack.services.playlist_source import (
    UnconfiguredPlaylistSource,
    YouTubePlaylistSource,
)
from learntrack.services.sync_service import synchronize
from tests.fixtures.database import get_ledger


def playlist_item(video_id: str | None, title: str = "", description: str | None = "") -> dict:
    content = {"videoId": video_id} if video_id else {}
    return {
        "snippet": {
            "title": title or f"Video {video_id}",
            "description": description,
            "thumbnails": {"default": {"url": f"https://i.ytimg.com/vi/{video_id}/default.jpg"}},
        },
        "contentDetails": content,
    }


@pytest.fixture
def mock_client():
    client = MagicMock(spec=YouTubeClient)
    client.get_playlist = AsyncMock(
        return_value={"title": "Course", "description": "About", "thumbnail": "https://t/p.jpg"}
    )
    client.list_playlist_items = AsyncMock(return_value=[])
    client.get_video_durations = AsyncMock(return_value={})
    return client


@pytest.mark.asyncio
async def test_fetch_playlist_builds_snapshot_in_order(mock_client):
    mock_client.list_playlist_items.return_value = [
        playlist_item("v1", description=None),
        playlist_item("v2"),
    ]
    mock_client.get_video_durations.return_value = {"v1": 61, "v2": 3600}

    snapshot = await YouTubePlaylistSource(mock_client).fetch_playlist("PL1")

    assert snapshot.title == "Course"
    assert snapshot.description == "About"
    assert snapshot.thumbnail == "https://t/p.jpg"
    assert snapshot.external_ids == ["v1", "v2"]
    first = snapshot.videos[0]
    assert first.duration == 61
    assert first.description == ""
    assert first.url == "https://www.youtube.com/watch?v=v1"
    assert first.thumbnail == "https://i.ytimg.com/vi/v1/default.jpg"
    mock_client.get_video_durations.assert_awaited_once_with(["v1", "v2"])


@pytest.mark.asyncio
async def test_fetch_playlist_drops_items_without_video_id(mock_client):
    mock_client.list_playlist_items.return_value = [
        playlist_item("v1"),
        playlist_item(None, title="Deleted video"),
    ]

    snapshot = await YouTubePlaylistSource(mock_client).fetch_playlist("PL1")

    assert snapshot.external_ids == ["v1"]
    assert snapshot.videos[0].duration == 0


@pytest.mark.asyncio
async def test_fetch_playlist_with_no_valid_items_raises_source_empty(mock_client):
    mock_client.list_playlist_items.return_value = [playlist_item(None)]

    with pytest.raises(SourceEmptyError):
        await YouTubePlaylistSource(mock_client).fetch_playlist("PL1")


@pytest.mark.asyncio
async def test_missing_playlist_maps_to_source_unavailable(mock_client):
    mock_client.get_playlist.side_effect = YouTubePlaylistNotFoundError("PLgone")

    with pytest.raises(SourceUnavailableError, match="PLgone"):
        await YouTubePlaylistSource(mock_client).fetch_playlist("PLgone")


@pytest.mark.asyncio
async def test_api_error_maps_to_source_unavailable(mock_client):
    response = httpx.Response(403, request=httpx.Request("GET", "https://youtube.test"))
    mock_client.list_playlist_items.side_effect = YouTubeAPIError("quota", response)

    with pytest.raises(SourceUnavailableError, match="YouTube API error: 403"):
        await YouTubePlaylistSource(mock_client).fetch_playlist("PL1")


@pytest.mark.asyncio
async def test_network_error_maps_to_source_unavailable(mock_client):
    mock_client.get_playlist.side_effect = httpx.ConnectError("connection refused")

    with pytest.raises(SourceUnavailableError, match="Failed to fetch YouTube playlist"):
        await YouTubePlaylistSource(mock_client).fetch_playlist("PL1")


@pytest.mark.asyncio
async def test_unconfigured_source_always_unavailable():
    with pytest.raises(SourceUnavailableError, match="not configured"):
        await UnconfiguredPlaylistSource().fetch_playlist("PL1")


@pytest.mark.asyncio
async def test_metadata_without_title_maps_to_source_unavailable(mock_client):
    mock_client.get_playlist.return_value = {"description": "About"}
    mock_client.list_playlist_items.return_value = [playlist_item("v1")]

    with pytest.raises(SourceUnavailableError, match="Malformed YouTube playlist data"):
        await YouTubePlaylistSource(mock_client).fetch_playlist("PL1")


@pytest.mark.asyncio
async def test_metadata_failing_validation_maps_to_source_unavailable(mock_client):
    mock_client.get_playlist.return_value = {
        "title": None,
        "description": "About",
        "thumbnail": None,
    }
    mock_client.list_playlist_items.return_value = [playlist_item("v1")]

    with pytest.raises(SourceUnavailableError, match="Malformed YouTube playlist data"):
        await YouTubePlaylistSource(mock_client).fetch_playlist("PL1")


@pytest.mark.asyncio
async def test_non_object_items_map_to_source_unavailable(mock_client):
    mock_client.list_playlist_items.return_value = ["not-an-item"]

    with pytest.raises(SourceUnavailableError, match="Malformed YouTube playlist data"):
        await YouTubePlaylistSource(mock_client).fetch_playlist("PL1")


@pytest.mark.asyncio
async def test_html_reply_fails_sync_with_source_unavailable(session_factory, course_playlist):
    """A 200 reply that is not JSON ends as a tagged result, not an exception."""
    client = YouTubeClient("test_key", base_url="https://youtube.test/v3")
    await client.client.aclose()
    html_reply = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>oops</html>"))
    client.client = httpx.AsyncClient(transport=html_reply)

    async with client:
        result = await synchronize(
            course_playlist.id,
            "PLcourse",
            session_factory=session_factory,
            source=YouTubePlaylistSource(client),
        )

    assert result.success is False
    assert result.reason == ErrorReason.SOURCE_UNAVAILABLE
    assert await get_ledger(session_factory, course_playlist.id) == [(1, "a"), (2, "b"), (3, "c")]
