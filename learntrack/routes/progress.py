"""Progress routes.

Playback events from the player and the dashboard summary:
- PUT  /api/v1/videos/{video_id}/progress - Record watch state
- GET  /api/v1/videos/{video_id}/progress - Read watch state (default if none)
- POST /api/v1/videos/{video_id}/complete - Mark a video completed
- GET  /api/v1/dashboard - Multi-playlist statistics for the caller
"""

import uuid

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from learntrack.cache import ReadCache
from learntrack.database import get_session_factory
from learntrack.dependencies import get_current_user_id, get_read_cache
from learntrack.routes.responses import result_response
from learntrack.schemas.requests import RecordProgressRequest
from learntrack.schemas.results import DashboardStats, ProgressState
from learntrack.services.progress_aggregator import dashboard_stats
from learntrack.services.progress_service import get_progress, mark_completed, record_progress

router = APIRouter(prefix="/api/v1", tags=["progress"])


@router.put("/videos/{video_id}/progress")
async def update_video_progress(
    video_id: uuid.UUID,
    body: RecordProgressRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    cache: ReadCache = Depends(get_read_cache),
) -> JSONResponse:
    """Overwrite the caller's progress for a video.

    Returns:
        200 OK: {success, progress_id}
        400/404/409: {success: false, error, reason}
    """
    result = await record_progress(
        user_id,
        video_id,
        body.watched_seconds,
        body.completed,
        session_factory=session_factory,
        cache=cache,
    )
    return result_response(result)


@router.get("/videos/{video_id}/progress", response_model=ProgressState)
async def read_video_progress(
    video_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> ProgressState:
    return await get_progress(user_id, video_id, session_factory=session_factory)


@router.post("/videos/{video_id}/complete")
async def complete_video(
    video_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    cache: ReadCache = Depends(get_read_cache),
) -> JSONResponse:
    result = await mark_completed(
        video_id,
        user_id,
        session_factory=session_factory,
        cache=cache,
    )
    return result_response(result)


@router.get("/dashboard", response_model=DashboardStats)
async def get_dashboard(
    user_id: uuid.UUID = Depends(get_current_user_id),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> DashboardStats:
    return await dashboard_stats(user_id, session_factory=session_factory)
