"""Tests for learntrack/config.py configuration module.

This module tests:
- Environment variable loading functions
- Default value handling and clamping
- Error cases for missing required configuration

Priority: P1 - Configuration is critical for all services.
"""

import pytest

from learntrack.config import (
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_MAX_REQUESTS_PER_SECOND,
    DEFAULT_YOUTUBE_API_BASE_URL,
    get_cache_ttl_seconds,
    get_database_url,
    get_log_format,
    get_log_level,
    get_youtube_api_base_url,
    get_youtube_api_key,
    get_youtube_fetch_timeout,
    get_youtube_max_requests_per_second,
)


class TestGetDatabaseUrl:
    """Tests for get_database_url function."""

    @pytest.fixture(autouse=True)
    def clear_cache(self):
        get_database_url.cache_clear()
        yield
        get_database_url.cache_clear()

    def test_p0_converts_postgresql_to_asyncpg(self, monkeypatch: pytest.MonkeyPatch):
        """[P0] Should rewrite postgresql:// to postgresql+asyncpg://."""
        # GIVEN: A plain postgresql URL
        monkeypatch.setenv("DATABASE_URL", "postgresql://user:pw@localhost/learn")

        # WHEN: Reading the database URL
        result = get_database_url()

        # THEN: The async driver is selected
        assert result == "postgresql+asyncpg://user:pw@localhost/learn"

    def test_p1_keeps_explicit_driver(self, monkeypatch: pytest.MonkeyPatch):
        """[P1] Should leave URLs with an explicit driver untouched."""
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///learn.db")

        assert get_database_url() == "sqlite+aiosqlite:///learn.db"

    def test_p0_raises_when_not_set(self, monkeypatch: pytest.MonkeyPatch):
        """[P0] Should raise ValueError when DATABASE_URL is missing."""
        monkeypatch.delenv("DATABASE_URL", raising=False)

        with pytest.raises(ValueError, match="DATABASE_URL"):
            get_database_url()


class TestYouTubeSettings:
    """Tests for YouTube API configuration."""

    def test_p1_api_key_none_when_not_set(self, monkeypatch: pytest.MonkeyPatch):
        """[P1] Missing YOUTUBE_API_KEY disables the source instead of failing."""
        monkeypatch.delenv("YOUTUBE_API_KEY", raising=False)

        assert get_youtube_api_key() is None

    def test_p1_base_url_default_and_override(self, monkeypatch: pytest.MonkeyPatch):
        """[P1] Base URL defaults to Google and strips trailing slashes."""
        monkeypatch.delenv("YOUTUBE_API_BASE_URL", raising=False)
        assert get_youtube_api_base_url() == DEFAULT_YOUTUBE_API_BASE_URL

        monkeypatch.setenv("YOUTUBE_API_BASE_URL", "http://localhost:9000/v3/")
        assert get_youtube_api_base_url() == "http://localhost:9000/v3"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("12.5", 12.5), ("0", 1.0), ("9999", 300.0), ("soon", DEFAULT_FETCH_TIMEOUT_SECONDS)],
    )
    def test_p1_fetch_timeout_clamped(self, monkeypatch: pytest.MonkeyPatch, raw, expected):
        """[P1] Fetch timeout is clamped to 1..300 and falls back on bad input."""
        monkeypatch.setenv("YOUTUBE_FETCH_TIMEOUT_SECONDS", raw)

        assert get_youtube_fetch_timeout() == expected

    def test_p2_rate_limit_default(self, monkeypatch: pytest.MonkeyPatch):
        """[P2] Rate limit falls back to default on invalid values."""
        monkeypatch.setenv("YOUTUBE_MAX_REQUESTS_PER_SECOND", "fast")

        assert get_youtube_max_requests_per_second() == DEFAULT_MAX_REQUESTS_PER_SECOND


class TestCacheAndLogging:
    """Tests for cache TTL and logging settings."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("60", 60), ("-1", 0), ("100000", 3600), ("abc", DEFAULT_CACHE_TTL_SECONDS)],
    )
    def test_p1_cache_ttl_clamped(self, monkeypatch: pytest.MonkeyPatch, raw, expected):
        """[P1] Cache TTL is clamped to 0..3600."""
        monkeypatch.setenv("CACHE_TTL_SECONDS", raw)

        assert get_cache_ttl_seconds() == expected

    def test_p2_log_settings(self, monkeypatch: pytest.MonkeyPatch):
        """[P2] Log level is upper-cased; unknown formats fall back to json."""
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("LOG_FORMAT", "xml")

        assert get_log_level() == "DEBUG"
        assert get_log_format() == "json"
