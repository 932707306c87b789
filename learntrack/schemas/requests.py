"""Request bodies accepted by the HTTP API."""

from pydantic import BaseModel, Field


class ImportPlaylistRequest(BaseModel):
    youtube_url: str = Field(..., min_length=1, max_length=2000)


class SyncPlaylistRequest(BaseModel):
    """Body of a sync request.

    external_playlist_id defaults to the playlist's stored YouTube id.
    """

    external_playlist_id: str | None = Field(default=None, min_length=1, max_length=100)


class AutoSyncRequest(BaseModel):
    enabled: bool


class RecordProgressRequest(BaseModel):
    watched_seconds: int
    completed: bool = False
