"""FastAPI dependencies shared by the routers.

The read cache and playlist source are created once in the application
lifespan and stored on app.state; routes receive them through these
dependencies so tests can override them.
"""

import uuid

from fastapi import Header, HTTPException, Request, status

from learntrack.cache import ReadCache
from learntrack.services.playlist_source import PlaylistSource, UnconfiguredPlaylistSource


def get_read_cache(request: Request) -> ReadCache:
    cache = getattr(request.app.state, "read_cache", None)
    if cache is None:
        raise RuntimeError("Read cache not initialized")
    return cache


def get_playlist_source(request: Request) -> PlaylistSource:
    """Return the configured source, or one that always reports unavailable."""
    source = getattr(request.app.state, "playlist_source", None)
    return source if source is not None else UnconfiguredPlaylistSource()


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> uuid.UUID:
    """Acting user id, set by the identity proxy in the X-User-Id header.

    Raises:
        HTTPException: 401 when the header is missing or not a UUID.
    """
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    try:
        return uuid.UUID(x_user_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized"
        ) from e
