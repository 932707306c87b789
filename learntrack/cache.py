"""Explicit in-process read cache with write-through invalidation.

Completion aggregates are cheap to recompute but are read for every playlist
card on a dashboard. ReadCache holds them for a short TTL, and every write
path (sync, progress updates) invalidates the affected keys synchronously, so
correctness never depends on the TTL expiring.

The cache is an object, not module state: one instance is created in the
FastAPI lifespan and passed into the services that read or invalidate it.

Usage:
    cache = ReadCache(default_ttl_seconds=300)
    token = cache.begin_read()
    completion = ...  # query the database
    cache.set_if_current(completion_key(playlist_id, user_id), completion, token)
    cache.invalidate_prefix(playlist_completion_prefix(playlist_id))
"""

import time
import uuid
from collections.abc import Callable
from typing import Any, NamedTuple

import structlog

log = structlog.get_logger()

_MISSING = object()


class ReadToken(NamedTuple):
    """Cache state captured before a read; see ReadCache.begin_read()."""

    epoch: int
    started_at: float


def completion_key(playlist_id: uuid.UUID, user_id: uuid.UUID) -> str:
    """Cache key for one user's completion of one playlist."""
    return f"completion:{playlist_id}:{user_id}"


def playlist_completion_prefix(playlist_id: uuid.UUID) -> str:
    """Key prefix covering every user's completion of a playlist."""
    return f"completion:{playlist_id}:"


class ReadCache:
    """Key/value cache with per-entry expiry.

    Readers that compute a value from the database take a token with
    begin_read() before querying and store the result with
    set_if_current(). If the key (or a prefix covering it) was invalidated
    in between, the value is dropped instead of cached, so a write that
    lands while a read is in flight cannot be shadowed by the older value.

    Attributes:
        default_ttl_seconds: TTL used when set() is called without one.
            A TTL of 0 disables storage entirely.
        max_read_seconds: Tokens older than this are refused by
            set_if_current(); invalidation records are kept this long.
    """

    def __init__(
        self,
        default_ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
        max_read_seconds: float = 60,
    ):
        self.default_ttl_seconds = default_ttl_seconds
        self.max_read_seconds = max_read_seconds
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}
        self._epoch = 0
        self._key_invalidations: dict[str, tuple[int, float]] = {}
        self._prefix_invalidations: dict[str, tuple[int, float]] = {}
        self._next_sweep_at = clock() + self._sweep_interval()

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value, or default when absent or expired."""
        entry = self._entries.get(key, _MISSING)
        if entry is _MISSING:
            return default

        value, expires_at = entry  # type: ignore[misc]
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return default
        return value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """Store value under key for ttl_seconds (default TTL if None)."""
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            return
        now = self._clock()
        if now >= self._next_sweep_at:
            self._sweep(now)
        self._entries[key] = (value, now + ttl)

    def begin_read(self) -> ReadToken:
        """Token to pass to set_if_current() once the value is computed."""
        return ReadToken(epoch=self._epoch, started_at=self._clock())

    def set_if_current(
        self,
        key: str,
        value: Any,
        token: ReadToken,
        ttl_seconds: float | None = None,
    ) -> bool:
        """Store value unless key was invalidated after token was taken.

        Returns:
            True when the value was stored.
        """
        if self._clock() - token.started_at >= self.max_read_seconds:
            return False
        if self._invalidated_since(key, token.epoch):
            log.debug("cache_write_skipped", key=key)
            return False
        self.set(key, value, ttl_seconds)
        return True

    def invalidate(self, key: str) -> None:
        """Drop a single key."""
        self._entries.pop(key, None)
        self._epoch += 1
        self._key_invalidations[key] = (self._epoch, self._clock())

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every key starting with prefix.

        Returns:
            Number of entries removed.
        """
        self._epoch += 1
        self._prefix_invalidations[prefix] = (self._epoch, self._clock())

        stale = [key for key in self._entries if key.startswith(prefix)]
        for key in stale:
            del self._entries[key]

        if stale:
            log.debug("cache_invalidated", prefix=prefix, removed=len(stale))
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
        self._epoch += 1
        self._key_invalidations.clear()
        self._prefix_invalidations.clear()
        # Empty prefix covers every key
        self._prefix_invalidations[""] = (self._epoch, self._clock())

    def __len__(self) -> int:
        return len(self._entries)

    def _invalidated_since(self, key: str, epoch: int) -> bool:
        record = self._key_invalidations.get(key)
        if record is not None and record[0] > epoch:
            return True
        return any(
            record[0] > epoch
            for prefix, record in self._prefix_invalidations.items()
            if key.startswith(prefix)
        )

    def _sweep_interval(self) -> float:
        return max(self.default_ttl_seconds, self.max_read_seconds, 1)

    def _sweep(self, now: float) -> None:
        """Drop expired entries and invalidation records no token can outlive."""
        expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]

        horizon = now - self.max_read_seconds
        for records in (self._key_invalidations, self._prefix_invalidations):
            for name in [name for name, (_, at) in records.items() if at < horizon]:
                del records[name]

        self._next_sweep_at = now + self._sweep_interval()
        if expired:
            log.debug("cache_swept", removed=len(expired), remaining=len(self._entries))
