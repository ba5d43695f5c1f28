"""Pydantic models for ratiospoof.

Provides validated data models for type safety and runtime validation.
"""

from __future__ import annotations

import time
import urllib.parse
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


def is_http_tracker(url: str) -> bool:
    """Whether a tracker URL is announced to over HTTP(S)."""
    return url.lower().startswith(("http://", "https://"))


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class AnnounceStatus(str, Enum):
    """Lifecycle status reported as the tracker ``event``."""

    STARTED = "started"
    STOPPED = "stopped"


class TorrentInfo(BaseModel):
    """Torrent information needed to announce."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Torrent name")
    info_hash: bytes = Field(..., min_length=20, max_length=20, description="Info hash")
    total_size: int = Field(..., gt=0, description="Total length in bytes")
    piece_size: int = Field(..., gt=0, description="Piece length in bytes")
    trackers: list[str] = Field(default_factory=list, description="Tracker URLs")
    comment: str | None = Field(None, description="Torrent comment")
    created_by: str | None = Field(None, description="Created by")

    @property
    def info_hash_hex(self) -> str:
        """Info hash as lowercase hex."""
        return self.info_hash.hex()

    @property
    def info_hash_urlencoded(self) -> str:
        """Info hash escaped for use in an announce query."""
        return urllib.parse.quote(self.info_hash, safe="")

    @property
    def main_tracker(self) -> str | None:
        """First tracker URL, if any."""
        return self.trackers[0] if self.trackers else None

    @property
    def http_trackers(self) -> list[str]:
        """Tracker URLs that can be announced to over HTTP(S)."""
        return [url for url in self.trackers if is_http_tracker(url)]


class TrackerResponse(BaseModel):
    """Tracker response data."""

    interval: int = Field(..., ge=0, description="Announce interval in seconds")
    min_interval: int | None = Field(None, ge=0, description="Minimum announce interval")
    seeders: int = Field(default=0, ge=0, description="Number of seeders (complete)")
    leechers: int = Field(default=0, ge=0, description="Number of leechers (incomplete)")
    tracker_id: str | None = Field(None, description="Tracker ID")
    warning_message: str | None = Field(None, description="Warning message")


class AnnounceSnapshot(BaseModel):
    """One reported set of byte counts.

    Immutable once created. ``downloaded + left`` must equal the torrent size
    and no count may be negative; a snapshot that breaks either rule is a bug
    in the traffic computation and fails validation.
    """

    model_config = ConfigDict(frozen=True)

    count: int = Field(..., ge=1, description="1-based announce sequence number")
    downloaded: int = Field(..., ge=0, description="Downloaded bytes")
    uploaded: int = Field(..., ge=0, description="Uploaded bytes")
    left: int = Field(..., ge=0, description="Bytes left")
    total_size: int = Field(..., gt=0, description="Torrent size in bytes")
    event: AnnounceStatus = Field(default=AnnounceStatus.STARTED, description="Event")
    created_at: float = Field(default_factory=time.time, description="Creation time")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def percent_downloaded(self) -> float:
        """Downloaded share of the torrent in percent."""
        return self.downloaded / self.total_size * 100

    @model_validator(mode="after")
    def _check_totals(self) -> AnnounceSnapshot:
        if self.downloaded + self.left != self.total_size:
            msg = (
                f"downloaded ({self.downloaded}) + left ({self.left}) "
                f"!= total size ({self.total_size})"
            )
            raise ValueError(msg)
        return self


class TrackerConfig(BaseModel):
    """Tracker transport configuration."""

    timeout: float = Field(default=30.0, gt=0, le=600.0, description="Request timeout in seconds")
    max_retries: int = Field(
        default=0,
        ge=0,
        description="Announce passes before giving up on a retrying announce (0 = forever)",
    )
    retry_base_delay: float = Field(default=30.0, ge=0.0, description="First retry delay in seconds")
    retry_max_delay: float = Field(default=900.0, ge=0.0, description="Retry delay cap in seconds")
    retry_jitter: float = Field(default=0.1, ge=0.0, le=1.0, description="Retry delay jitter fraction")


class SessionConfig(BaseModel):
    """Announce session defaults."""

    numwant: int = Field(default=200, ge=0, description="Peers requested per announce")
    history_size: int = Field(default=10, ge=1, le=1000, description="Announce history capacity")
    default_port: int = Field(default=8999, ge=1, le=65535, description="Default announced port")
    default_client: str = Field(default="qbit-4.0.3", description="Default emulated client")


class DisplayConfig(BaseModel):
    """Status display configuration."""

    enabled: bool = Field(default=True, description="Show the live status display")
    refresh_interval: float = Field(default=1.0, gt=0, le=60.0, description="Refresh period in seconds")


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Log level")
    log_file: str | None = Field(None, description="Log file path")
    structured_logging: bool = Field(default=False, description="Use structured logging")
    log_correlation_id: bool = Field(default=True, description="Include correlation IDs")


class Config(BaseModel):
    """Main configuration model."""

    tracker: TrackerConfig = Field(
        default_factory=TrackerConfig,
        description="Tracker configuration",
    )
    session: SessionConfig = Field(
        default_factory=SessionConfig,
        description="Session configuration",
    )
    display: DisplayConfig = Field(
        default_factory=DisplayConfig,
        description="Display configuration",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )
