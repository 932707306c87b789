"""Shared exceptions for the application.

This module contains the error taxonomy used across the sync and progress
services. Each domain exception carries an ErrorReason so that service entry
points can convert it into a tagged result without inspecting types.
"""

import enum


class ErrorReason(str, enum.Enum):
    """Failure reasons surfaced in service results.

    Retryable by the caller:
        source_unavailable: Third-party fetch failed or timed out.
        conflict: Concurrent write collided on a uniqueness constraint.

    Not retryable:
        source_empty: Fetch succeeded but returned no videos (not applied).
        not_found: Referenced playlist/video/user does not exist.
        unauthorized: Caller lacks rights to the target playlist or user scope.
        invalid_input: Caller supplied a malformed value (bad URL, negative time).
    """

    SOURCE_UNAVAILABLE = "source_unavailable"
    SOURCE_EMPTY = "source_empty"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    INVALID_INPUT = "invalid_input"

    @property
    def retryable(self) -> bool:
        return self in (ErrorReason.SOURCE_UNAVAILABLE, ErrorReason.CONFLICT)


class ConfigurationError(Exception):
    """Raised when required configuration is missing.

    For example, constructing a YouTube client without YOUTUBE_API_KEY.
    """

    pass


class LearnTrackError(Exception):
    """Base class for expected, taggable failures.

    Attributes:
        reason: ErrorReason reported to callers.
    """

    reason: ErrorReason = ErrorReason.INVALID_INPUT

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class SourceUnavailableError(LearnTrackError):
    """Raised when the external playlist source cannot be read."""

    reason = ErrorReason.SOURCE_UNAVAILABLE


class SourceEmptyError(LearnTrackError):
    """Raised when the external playlist source returned zero usable videos."""

    reason = ErrorReason.SOURCE_EMPTY


class ConflictError(LearnTrackError):
    """Raised when a write collides with existing or concurrently written rows."""

    reason = ErrorReason.CONFLICT


class NotFoundError(LearnTrackError):
    """Raised when a referenced playlist, video or user does not exist."""

    reason = ErrorReason.NOT_FOUND


class UnauthorizedError(LearnTrackError):
    """Raised when the acting user does not own the target playlist."""

    reason = ErrorReason.UNAUTHORIZED


class InvalidInputError(LearnTrackError):
    """Raised for malformed caller input."""

    reason = ErrorReason.INVALID_INPUT
