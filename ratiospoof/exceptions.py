"""Exception hierarchy for ratiospoof.

Startup problems (bad torrent, unknown client, invalid input) are
configuration errors; tracker failures are network errors and are fatal
once they reach the session; session errors signal a broken invariant.
"""

from __future__ import annotations

from typing import Any


class RatioSpoofError(Exception):
    """Base exception for all ratiospoof errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize ratiospoof error."""
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class ConfigurationError(RatioSpoofError):
    """Configuration validation errors."""


class InvalidInputError(ConfigurationError):
    """User supplied input could not be validated."""


class UnknownProfileError(ConfigurationError):
    """No client emulation profile matches the requested code."""


class MalformedTorrentError(ConfigurationError):
    """Torrent file could not be decoded or is missing required fields."""


class BencodeError(MalformedTorrentError):
    """Bencode encoding/decoding errors."""


class BencodeDecodeError(BencodeError):
    """Raised when bencoded data is malformed."""


class BencodeEncodeError(BencodeError):
    """Raised when a value has no bencode representation."""


class NetworkError(RatioSpoofError):
    """Network-related errors."""


class TrackerError(NetworkError):
    """Tracker communication errors."""


class TrackerUnreachableError(TrackerError):
    """Every tracker URL failed and no retry is left."""


class SessionError(RatioSpoofError):
    """Announce session errors."""


class EmptyHistoryError(SessionError):
    """The announce history was read before the first announce."""


class SessionClosedError(SessionError):
    """An announce was requested after the session was stopped."""
