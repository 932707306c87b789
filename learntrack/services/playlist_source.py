"""External playlist source adapter.

Turns the YouTube API into a single call, fetch_playlist(external_id), that
either returns a validated PlaylistSnapshot or raises one of:
- SourceUnavailableError: the API failed, timed out, or the playlist is
  missing/private/unconfigured
- SourceEmptyError: the fetch succeeded but no valid videos remain

Rate limits, retries and API keys stay inside YouTubeClient; the reconciler
only sees snapshots and these two errors.
"""

from typing import Any, Protocol

import httpx
import structlog

from learntrack.clients.youtube import (
    YouTubeAPIError,
    YouTubeClient,
    YouTubePlaylistNotFoundError,
    best_thumbnail,
)
from learntrack.exceptions import SourceEmptyError, SourceUnavailableError
from learntrack.schemas.snapshot import PlaylistSnapshot, build_snapshot_videos
from learntrack.utils.youtube_urls import watch_url

log = structlog.get_logger()


class PlaylistSource(Protocol):
    """Anything that can produce a snapshot of a remote playlist."""

    async def fetch_playlist(self, external_id: str) -> PlaylistSnapshot: ...


class YouTubePlaylistSource:
    """PlaylistSource backed by the YouTube Data API."""

    def __init__(self, client: YouTubeClient):
        self.client = client

    async def fetch_playlist(self, external_id: str) -> PlaylistSnapshot:
        """Fetch metadata, all items and durations of a YouTube playlist.

        Args:
            external_id: YouTube playlist id (e.g. "PLxyz").

        Returns:
            Validated snapshot; videos in YouTube order.

        Raises:
            SourceUnavailableError: On API/network failure, missing playlist
                or a reply that cannot be parsed.
            SourceEmptyError: When no valid videos are returned.
        """
        try:
            metadata = await self.client.get_playlist(external_id)
            items = await self.client.list_playlist_items(external_id)
            video_ids = [
                (item.get("contentDetails") or {}).get("videoId")
                for item in items
            ]
            durations = await self.client.get_video_durations(
                [video_id for video_id in video_ids if video_id]
            )
            snapshot = self._build_snapshot(metadata, items, video_ids, durations)
        except YouTubePlaylistNotFoundError as e:
            raise SourceUnavailableError(str(e)) from e
        except YouTubeAPIError as e:
            log.warning(
                "youtube_api_error",
                external_id=external_id,
                status_code=e.status_code,
                error=e.message,
            )
            raise SourceUnavailableError(f"YouTube API error: {e.status_code}") from e
        except httpx.HTTPError as e:
            log.warning(
                "youtube_fetch_failed",
                external_id=external_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise SourceUnavailableError("Failed to fetch YouTube playlist") from e
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            # ValueError covers pydantic.ValidationError
            log.warning(
                "youtube_payload_malformed",
                external_id=external_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise SourceUnavailableError("Malformed YouTube playlist data") from e

        if not snapshot.videos:
            raise SourceEmptyError("No videos found in YouTube playlist")

        log.info(
            "youtube_playlist_fetched",
            external_id=external_id,
            video_count=len(snapshot.videos),
            raw_item_count=len(items),
        )
        return snapshot

    @staticmethod
    def _build_snapshot(
        metadata: dict[str, Any],
        items: list[dict[str, Any]],
        video_ids: list[str | None],
        durations: dict[str, int],
    ) -> PlaylistSnapshot:
        entries = []
        for item, video_id in zip(items, video_ids):
            snippet = item.get("snippet") or {}
            entries.append(
                {
                    "external_id": video_id,
                    "title": snippet.get("title") or "",
                    "description": snippet.get("description"),
                    "thumbnail": best_thumbnail(snippet),
                    "duration": durations.get(video_id, 0) if video_id else 0,
                    "url": watch_url(video_id) if video_id else "",
                }
            )

        return PlaylistSnapshot(
            title=metadata["title"],
            description=metadata["description"],
            thumbnail=metadata["thumbnail"],
            videos=build_snapshot_videos(entries),
        )


class UnconfiguredPlaylistSource:
    """Stand-in used when YOUTUBE_API_KEY is not set.

    Every fetch fails with source_unavailable so import/sync return a tagged
    failure instead of crashing the request.
    """

    async def fetch_playlist(self, external_id: str) -> PlaylistSnapshot:
        raise SourceUnavailableError("YouTube API key not configured")
