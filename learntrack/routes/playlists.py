"""Playlist routes.

This module provides FastAPI routes for playlist sync and completion:
- POST  /api/v1/playlists/import - Import a YouTube playlist
- POST  /api/v1/playlists/{playlist_id}/sync - Append new upstream videos
- PATCH /api/v1/playlists/{playlist_id}/auto-sync - Toggle the auto-sync flag
- GET   /api/v1/playlists/{playlist_id}/completion - Completion for the caller
- GET   /api/v1/playlists/{playlist_id}/progress - video_id -> completed map
- GET   /api/v1/playlists/{playlist_id}/duration - Total length
"""

import uuid

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from learntrack.cache import ReadCache
from learntrack.database import get_session_factory
from learntrack.dependencies import get_current_user_id, get_playlist_source, get_read_cache
from learntrack.routes.responses import result_response
from learntrack.schemas.requests import AutoSyncRequest, ImportPlaylistRequest, SyncPlaylistRequest
from learntrack.schemas.results import PlaylistCompletion
from learntrack.services.playlist_source import PlaylistSource
from learntrack.services.progress_aggregator import playlist_completion, playlist_total_duration
from learntrack.services.progress_service import get_playlist_progress_map
from learntrack.services.sync_service import import_playlist, set_auto_sync, synchronize
from learntrack.utils.youtube_urls import format_duration

log = structlog.get_logger()
router = APIRouter(prefix="/api/v1/playlists", tags=["playlists"])


@router.post("/import")
async def import_youtube_playlist(
    body: ImportPlaylistRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    source: PlaylistSource = Depends(get_playlist_source),
) -> JSONResponse:
    """Create a playlist from a YouTube playlist URL.

    Returns:
        201 Created: {success, playlist_id, video_count}
        400/404/409/422/502: {success: false, error, reason}
    """
    result = await import_playlist(
        user_id,
        body.youtube_url,
        session_factory=session_factory,
        source=source,
    )
    return result_response(result, success_status=status.HTTP_201_CREATED)


@router.post("/{playlist_id}/sync")
async def sync_playlist(
    playlist_id: uuid.UUID,
    body: SyncPlaylistRequest | None = None,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    source: PlaylistSource = Depends(get_playlist_source),
    cache: ReadCache = Depends(get_read_cache),
) -> JSONResponse:
    """Append videos added upstream since the last sync.

    Returns:
        200 OK: {success, added_count, total_videos}
        403/404/409/422/502: {success: false, error, reason}
    """
    result = await synchronize(
        playlist_id,
        body.external_playlist_id if body else None,
        session_factory=session_factory,
        source=source,
        cache=cache,
        acting_user_id=user_id,
    )
    return result_response(result)


@router.patch("/{playlist_id}/auto-sync")
async def update_auto_sync(
    playlist_id: uuid.UUID,
    body: AutoSyncRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> JSONResponse:
    result = await set_auto_sync(
        playlist_id,
        body.enabled,
        session_factory=session_factory,
        acting_user_id=user_id,
    )
    return result_response(result)


@router.get("/{playlist_id}/completion", response_model=PlaylistCompletion)
async def get_playlist_completion(
    playlist_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    cache: ReadCache = Depends(get_read_cache),
) -> PlaylistCompletion:
    return await playlist_completion(
        playlist_id,
        user_id,
        session_factory=session_factory,
        cache=cache,
    )


@router.get("/{playlist_id}/progress")
async def get_playlist_progress(
    playlist_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict[str, bool]:
    progress_map = await get_playlist_progress_map(
        playlist_id,
        user_id,
        session_factory=session_factory,
    )
    return {str(video_id): completed for video_id, completed in progress_map.items()}


@router.get("/{playlist_id}/duration")
async def get_playlist_duration(
    playlist_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict[str, int | str]:
    seconds = await playlist_total_duration(playlist_id, session_factory=session_factory)
    return {"seconds": seconds, "formatted": format_duration(seconds)}
