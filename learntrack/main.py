"""FastAPI application for the learning tracker.

This is the web service entry point. It wires the playlist and progress
routers to the services and owns the process-wide resources:
- ReadCache for completion reads
- YouTube playlist source (only when YOUTUBE_API_KEY is set)

Auto-sync is driven by an external scheduler (scripts/sync_auto_playlists.py);
the web process starts no background loops.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, status
from fastapi.responses import JSONResponse

from learntrack.cache import ReadCache
from learntrack.clients.youtube import YouTubeClient
from learntrack.config import get_cache_ttl_seconds, get_youtube_api_key
from learntrack.routes import playlists, progress
from learntrack.services.playlist_source import YouTubePlaylistSource
from learntrack.utils.logging import configure_logging

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup/shutdown of shared resources.

    Startup:
    - Configure structlog
    - Create the ReadCache
    - Initialize YouTubeClient if YOUTUBE_API_KEY is set

    Shutdown:
    - Close YouTubeClient HTTP connections
    """
    # Startup
    configure_logging()
    app.state.read_cache = ReadCache(default_ttl_seconds=get_cache_ttl_seconds())

    youtube_client = None
    api_key = get_youtube_api_key()
    if api_key:
        log.info("initializing_youtube_source", message="YouTube API key found")
        youtube_client = YouTubeClient(api_key=api_key)
        app.state.playlist_source = YouTubePlaylistSource(youtube_client)
    else:
        app.state.playlist_source = None
        log.warning(
            "youtube_source_disabled",
            message="YOUTUBE_API_KEY not set, import and sync will report source_unavailable",
        )

    yield  # Application runs here

    # Shutdown
    app.state.read_cache.clear()
    if youtube_client:
        await youtube_client.close()


app = FastAPI(
    title="Learning Tracker",
    description="Track progress through YouTube playlists as structured courses",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(playlists.router)
app.include_router(progress.router)


@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> JSONResponse:
    """Health check endpoint for deployment validation.

    Returns:
        JSONResponse: Status and basic service information
    """
    return JSONResponse(
        content={
            "status": "healthy",
            "service": "learntrack",
        }
    )


@app.get("/", status_code=status.HTTP_200_OK)
async def root() -> JSONResponse:
    """Root endpoint with API information."""
    return JSONResponse(
        content={
            "service": "Learning Tracker",
            "version": "0.1.0",
            "docs": "/docs",
            "health": "/health",
        }
    )


if __name__ == "__main__":
    import uvicorn

    # Binding to 0.0.0.0 is intentional for container deployments
    uvicorn.run(
        "learntrack.main:app",
        host="0.0.0.0",  # noqa: S104
        port=8000,
        reload=True,
    )
