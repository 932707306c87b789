"""YouTube Data API v3 client with rate limiting and retries.

This module provides a rate-limited, retry-enabled client for reading public
playlists. It implements:
- Client-side request rate limit via AsyncLimiter
- Automatic retry with exponential backoff for transient errors (429, 5xx, timeouts)
- Error classification (retriable vs non-retriable)
- Pagination of playlistItems and batched duration lookups (50 ids per call)

Usage:
    client = YouTubeClient(api_key)
    playlist = await client.get_playlist("PL123")
    items = await client.list_playlist_items("PL123")
"""

from typing import Any

import httpx
import structlog
from aiolimiter import AsyncLimiter
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from learntrack.config import get_youtube_api_base_url, get_youtube_max_requests_per_second
from learntrack.exceptions import ConfigurationError
from learntrack.utils.youtube_urls import parse_iso8601_duration

log = structlog.get_logger()

# YouTube caps maxResults and the id list of videos.list at 50
PAGE_SIZE = 50
RETRIABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class YouTubeAPIError(Exception):
    """Raised for non-retriable YouTube API errors (400, 401, 403, 404) and malformed replies."""

    def __init__(self, message: str, response: httpx.Response):
        self.message = message
        self.status_code = response.status_code
        self.response_body = response.text
        super().__init__(f"{message} - Status: {response.status_code}")


class YouTubePlaylistNotFoundError(Exception):
    """Raised when the playlist does not exist or is private."""

    def __init__(self, playlist_id: str):
        self.playlist_id = playlist_id
        super().__init__(f"Playlist not found or private: {playlist_id}")


def _is_retriable_error(exception: BaseException) -> bool:
    """Determine if an error should trigger retry logic.

    Returns:
        True for 429/5xx responses and network timeouts/connect errors.
    """
    if isinstance(exception, httpx.HTTPStatusError):
        return exception.response.status_code in RETRIABLE_STATUS_CODES
    return isinstance(exception, (httpx.TimeoutException, httpx.ConnectError))


def best_thumbnail(snippet: dict[str, Any]) -> str | None:
    """Pick the high-resolution thumbnail URL, falling back to default."""
    thumbnails = snippet.get("thumbnails") or {}
    for size in ("high", "default"):
        url = (thumbnails.get(size) or {}).get("url")
        if url:
            return str(url)
    return None


class YouTubeClient:
    """YouTube Data API v3 read client.

    Implements:
    - Request rate limit via AsyncLimiter (YOUTUBE_MAX_REQUESTS_PER_SECOND)
    - Automatic retry with exponential backoff for transient errors
    - API key authentication (query parameter)

    Usage:
        async with YouTubeClient(api_key) as client:
            playlist = await client.get_playlist("PL123")
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str | None = None,
        max_rate: int | None = None,
        timeout: float = 15.0,
    ):
        """Initialize YouTube client.

        Args:
            api_key: YouTube Data API key.
            base_url: API root (defaults to YOUTUBE_API_BASE_URL).
            max_rate: Requests per second (defaults to YOUTUBE_MAX_REQUESTS_PER_SECOND).
            timeout: Per-request HTTP timeout in seconds.

        Raises:
            ConfigurationError: If api_key is empty.
        """
        if not api_key:
            raise ConfigurationError("YouTube API key not configured")

        self.api_key = api_key
        self.base_url = (base_url or get_youtube_api_base_url()).rstrip("/")
        self.client = httpx.AsyncClient(timeout=timeout)
        self.rate_limiter = AsyncLimiter(
            max_rate=max_rate or get_youtube_max_requests_per_second(),
            time_period=1,
        )

    @retry(
        retry=retry_if_exception(_is_retriable_error),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def _get(self, resource: str, params: dict[str, Any]) -> dict[str, Any]:
        """GET one API resource (rate limited, auto-retry).

        Raises:
            YouTubeAPIError: On non-retriable errors (400, 401, 403, 404) and
                on a body that is not a JSON object.
            httpx.HTTPStatusError: On 429/5xx after retries are exhausted.
            httpx.TimeoutException: On timeouts after retries are exhausted.
        """
        async with self.rate_limiter:
            response = await self.client.get(
                f"{self.base_url}/{resource}",
                params={**params, "key": self.api_key},
            )

        if response.status_code in (400, 401, 403, 404):
            raise YouTubeAPIError(f"Non-retriable error from {resource}", response)

        response.raise_for_status()

        try:
            data = response.json()
        except ValueError as e:
            raise YouTubeAPIError(f"Malformed JSON from {resource}", response) from e
        if not isinstance(data, dict):
            raise YouTubeAPIError(f"Unexpected payload from {resource}", response)
        return data

    async def get_playlist(self, playlist_id: str) -> dict[str, Any]:
        """Fetch playlist metadata.

        Returns:
            Dict with title, description and thumbnail.

        Raises:
            YouTubePlaylistNotFoundError: If the API returns no items.
        """
        data = await self._get("playlists", {"part": "snippet", "id": playlist_id})
        items = data.get("items") or []
        if not items:
            raise YouTubePlaylistNotFoundError(playlist_id)

        snippet = items[0].get("snippet") or {}
        return {
            "title": snippet.get("title") or "",
            "description": snippet.get("description") or "",
            "thumbnail": best_thumbnail(snippet),
        }

    async def list_playlist_items(self, playlist_id: str) -> list[dict[str, Any]]:
        """Fetch every item of a playlist, following nextPageToken.

        Returns:
            Raw playlistItem resources in playlist order.
        """
        items: list[dict[str, Any]] = []
        page_token: str | None = None

        while True:
            params: dict[str, Any] = {
                "part": "snippet,contentDetails",
                "maxResults": PAGE_SIZE,
                "playlistId": playlist_id,
            }
            if page_token:
                params["pageToken"] = page_token

            data = await self._get("playlistItems", params)
            items.extend(data.get("items") or [])

            page_token = data.get("nextPageToken")
            if not page_token:
                break

        log.debug("youtube_playlist_items_fetched", playlist_id=playlist_id, count=len(items))
        return items

    async def get_video_durations(self, video_ids: list[str]) -> dict[str, int]:
        """Look up durations in seconds, 50 ids per request.

        Returns:
            Mapping of video id to duration. Ids the API does not return
            (deleted or private videos) are absent.
        """
        durations: dict[str, int] = {}

        for start in range(0, len(video_ids), PAGE_SIZE):
            batch = video_ids[start : start + PAGE_SIZE]
            data = await self._get(
                "videos",
                {"part": "contentDetails", "id": ",".join(batch)},
            )
            for item in data.get("items") or []:
                video_id = item.get("id")
                if not video_id:
                    continue
                content = item.get("contentDetails") or {}
                durations[video_id] = parse_iso8601_duration(content.get("duration"))

        return durations

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> "YouTubeClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
