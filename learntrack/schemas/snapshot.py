"""Validated playlist snapshot returned by the playlist source adapter.

The YouTube API returns loosely shaped JSON. Everything crossing into the
sync reconciler goes through these models first: entries without an external
id or with a negative duration never reach the ledger.
"""

from collections.abc import Iterable
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

log = structlog.get_logger()


class SnapshotVideo(BaseModel):
    """One video of a remote playlist, as first seen by the source."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    external_id: str = Field(..., min_length=1, max_length=64)
    title: str = ""
    description: str = ""
    thumbnail: str | None = None
    duration: int = Field(default=0, ge=0)
    url: str = Field(..., min_length=1)

    @field_validator("description", mode="before")
    @classmethod
    def none_description_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class PlaylistSnapshot(BaseModel):
    """Point-in-time read of a remote playlist.

    Attributes:
        title: Remote playlist title.
        description: Remote playlist description (may be empty).
        thumbnail: Remote playlist thumbnail URL.
        videos: Valid videos in remote display order, external ids unique.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
    thumbnail: str | None = None
    videos: list[SnapshotVideo] = []

    @field_validator("description", mode="before")
    @classmethod
    def none_description_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("videos")
    @classmethod
    def drop_duplicate_external_ids(cls, videos: list[SnapshotVideo]) -> list[SnapshotVideo]:
        """Keep the first occurrence of each external id, preserving order."""
        seen: set[str] = set()
        unique: list[SnapshotVideo] = []
        for video in videos:
            if video.external_id in seen:
                continue
            seen.add(video.external_id)
            unique.append(video)
        return unique

    @property
    def external_ids(self) -> list[str]:
        return [video.external_id for video in self.videos]


def build_snapshot_videos(entries: Iterable[dict[str, Any]]) -> list[SnapshotVideo]:
    """Validate raw video entries, dropping malformed ones.

    Args:
        entries: Dicts with external_id, title, description, thumbnail,
            duration and url keys.

    Returns:
        Valid SnapshotVideo instances in input order.
    """
    videos: list[SnapshotVideo] = []
    rejected = 0

    for entry in entries:
        try:
            videos.append(SnapshotVideo.model_validate(entry))
        except ValidationError as e:
            rejected += 1
            log.warning(
                "snapshot_entry_rejected",
                external_id=entry.get("external_id"),
                errors=[err["loc"] for err in e.errors()],
            )

    if rejected:
        log.info("snapshot_entries_filtered", accepted=len(videos), rejected=rejected)

    return videos
