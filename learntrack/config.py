"""Configuration management for the learning tracker service.

This module provides centralized configuration loading from environment variables.
Required values are cached after the first successful read.

Environment Variables:
    DATABASE_URL: PostgreSQL connection URL (required for production)
    YOUTUBE_API_KEY: YouTube Data API v3 key (optional, sync disabled without it)
    YOUTUBE_API_BASE_URL: Override for the YouTube Data API endpoint
    YOUTUBE_FETCH_TIMEOUT_SECONDS: Upper bound for one playlist fetch (default: 30)
    YOUTUBE_MAX_REQUESTS_PER_SECOND: Client-side rate limit (default: 10)
    CACHE_TTL_SECONDS: Lifetime of cached completion reads (default: 300)
    LOG_LEVEL: Minimum log level (default: INFO)
    LOG_FORMAT: "json" (default) or "console"

Usage:
    from learntrack.config import get_database_url, get_youtube_api_key

    api_key = get_youtube_api_key()  # Returns None if not set
    db_url = get_database_url()  # Raises if DATABASE_URL not set
"""

import os
from functools import lru_cache

import structlog

log = structlog.get_logger(__name__)

DEFAULT_YOUTUBE_API_BASE_URL = "https://www.googleapis.com/youtube/v3"
DEFAULT_FETCH_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_REQUESTS_PER_SECOND = 10
DEFAULT_CACHE_TTL_SECONDS = 300


@lru_cache
def get_database_url() -> str:
    """Get database URL from environment.

    Converts postgresql:// to postgresql+asyncpg:// for async SQLAlchemy.

    Returns:
        Database URL with asyncpg driver.

    Raises:
        ValueError: If DATABASE_URL not set.
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        raise ValueError("DATABASE_URL environment variable is required")

    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

    return url


def get_database_echo() -> bool:
    """Whether SQL statements should be echoed (DATABASE_ECHO=true)."""
    return os.getenv("DATABASE_ECHO", "").lower() == "true"


def get_youtube_api_key() -> str | None:
    """Get YouTube Data API key from environment.

    Returns:
        API key string, or None if not set.

    Note:
        Returns None when YOUTUBE_API_KEY is not set, allowing the service
        to start without YouTube integration. Import and sync requests then
        fail with a source_unavailable result instead of crashing.
    """
    return os.getenv("YOUTUBE_API_KEY")


def get_youtube_api_base_url() -> str:
    """Get YouTube Data API base URL (default: public Google endpoint)."""
    return os.getenv("YOUTUBE_API_BASE_URL", DEFAULT_YOUTUBE_API_BASE_URL).rstrip("/")


def get_youtube_fetch_timeout() -> float:
    """Get the timeout applied to one full playlist fetch.

    Environment Variable:
        YOUTUBE_FETCH_TIMEOUT_SECONDS: Seconds (default: 30)

    Returns:
        Timeout in seconds (minimum 1, maximum 300).
    """
    raw = os.getenv("YOUTUBE_FETCH_TIMEOUT_SECONDS", str(DEFAULT_FETCH_TIMEOUT_SECONDS))
    try:
        timeout = float(raw)
    except ValueError:
        log.warning(
            "invalid_fetch_timeout",
            value=raw,
            using_default=DEFAULT_FETCH_TIMEOUT_SECONDS,
        )
        return DEFAULT_FETCH_TIMEOUT_SECONDS
    return max(1.0, min(300.0, timeout))


def get_youtube_max_requests_per_second() -> int:
    """Get the client-side request rate limit for the YouTube API."""
    raw = os.getenv("YOUTUBE_MAX_REQUESTS_PER_SECOND", str(DEFAULT_MAX_REQUESTS_PER_SECOND))
    try:
        return max(1, int(raw))
    except ValueError:
        log.warning(
            "invalid_youtube_rate_limit",
            value=raw,
            using_default=DEFAULT_MAX_REQUESTS_PER_SECOND,
        )
        return DEFAULT_MAX_REQUESTS_PER_SECOND


def get_cache_ttl_seconds() -> int:
    """Get TTL for cached completion reads.

    Environment Variable:
        CACHE_TTL_SECONDS: Seconds (default: 300)

    Returns:
        TTL in seconds (minimum 0, maximum 3600). Zero disables caching.
    """
    raw = os.getenv("CACHE_TTL_SECONDS", str(DEFAULT_CACHE_TTL_SECONDS))
    try:
        ttl = int(raw)
    except ValueError:
        log.warning("invalid_cache_ttl", value=raw, using_default=DEFAULT_CACHE_TTL_SECONDS)
        return DEFAULT_CACHE_TTL_SECONDS
    return max(0, min(3600, ttl))


def get_log_level() -> str:
    """Get log level name (default: INFO)."""
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_log_format() -> str:
    """Get log output format: "json" (default) or "console"."""
    value = os.getenv("LOG_FORMAT", "json").lower()
    return value if value in ("json", "console") else "json"
