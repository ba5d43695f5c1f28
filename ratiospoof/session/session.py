"""Announce session: the start, update and stop lifecycle of one torrent.

The session owns the announce history and is the only thing that mutates
it. Every operation that appends a snapshot and announces it runs under one
``asyncio.Lock`` so a periodic announce and the final ``stopped`` announce
can never interleave.
"""

from __future__ import annotations

import asyncio
import random
import re
import time
from dataclasses import dataclass
from typing import Callable

from ratiospoof.exceptions import SessionClosedError, SessionError, TrackerError
from ratiospoof.input import InputParsed
from ratiospoof.logging_config import get_logger, log_exception
from ratiospoof.models import AnnounceSnapshot, AnnounceStatus, TorrentInfo
from ratiospoof.session.history import DEFAULT_CAPACITY, AnnounceHistory
from ratiospoof.session.traffic import bytes_left, next_byte_count
from ratiospoof.session.types import EmulationProtocol, TrackerTransportProtocol

DEFAULT_NUMWANT = 200

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


@dataclass(frozen=True)
class SessionStats:
    """Read-only view of the session for the status display."""

    status: AnnounceStatus
    announce_count: int
    announce_interval: int
    numwant: int
    seeders: int
    leechers: int
    last_announce_at: float | None
    next_announce_at: float | None
    history: tuple[AnnounceSnapshot, ...]

    def seconds_to_next_announce(self, now: float | None = None) -> int | None:
        """Whole seconds until the next periodic announce, if one is scheduled."""
        if self.next_announce_at is None or self.status is AnnounceStatus.STOPPED:
            return None
        now = time.time() if now is None else now
        return max(0, int(self.next_announce_at - now))


class AnnounceSession:
    """Drives the announces of one simulated seeding session."""

    def __init__(
        self,
        torrent: TorrentInfo,
        tracker: TrackerTransportProtocol,
        emulation: EmulationProtocol,
        settings: InputParsed,
        *,
        rng: random.Random | None = None,
        numwant: int = DEFAULT_NUMWANT,
        history_size: int = DEFAULT_CAPACITY,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the session.

        Args:
            torrent: Metadata of the torrent being reported
            tracker: Transport that delivers announce queries
            emulation: Client whose query format and rounding are used
            settings: Validated user input
            rng: Random source for the traffic jitter
            numwant: Peers requested while the session is running
            history_size: Number of snapshots kept for display
            clock: Wall clock used to schedule the next announce

        """
        self.torrent = torrent
        self.tracker = tracker
        self.emulation = emulation
        self.settings = settings
        self.rng = rng or random.Random()
        self._clock = clock

        self.status = AnnounceStatus.STARTED
        self.announce_interval = 0
        self.numwant = numwant
        self.seeders = 0
        self.leechers = 0
        self.announce_count = 0
        self.history = AnnounceHistory(history_size)
        self.last_announce_at: float | None = None
        self.next_announce_at: float | None = None

        self._lock = asyncio.Lock()
        self._closed = False
        self.logger = get_logger(__name__)

    @property
    def closed(self) -> bool:
        """Whether the final announce was already attempted."""
        return self._closed

    async def initialize_and_fire_first(self) -> AnnounceSnapshot:
        """Record the user supplied starting point and send ``started``.

        The transport gets a single attempt.

        Raises:
            TrackerUnreachableError: If the tracker could not be reached
            SessionError: If the session was already started

        """
        async with self._lock:
            if self._closed or self.history:
                msg = "Session already started"
                raise SessionError(msg)

            downloaded = self.settings.initial_downloaded
            self.status = AnnounceStatus.STARTED
            snapshot = self._add_announce(
                downloaded,
                self.settings.initial_uploaded,
                bytes_left(downloaded, self.torrent.total_size),
            )
            await self._announce(allow_retry=False)
            return snapshot

    async def advance_and_fire_next(self) -> AnnounceSnapshot:
        """Simulate the traffic since the last announce and report it.

        The transport may retry.

        Raises:
            SessionClosedError: If the session was shut down
            TrackerUnreachableError: If the tracker could not be reached

        """
        async with self._lock:
            if self._closed:
                msg = "Session is stopped; no further announces"
                raise SessionClosedError(msg)

            last = self.history.last()
            total = self.torrent.total_size
            piece_size = self.torrent.piece_size
            elapsed = self.announce_interval

            if last.downloaded < total:
                download_candidate = next_byte_count(
                    self.settings.download_speed,
                    last.downloaded,
                    piece_size,
                    elapsed,
                    total,
                    self.rng,
                )
            else:
                download_candidate = total

            upload_candidate = next_byte_count(
                self.settings.upload_speed,
                last.uploaded,
                piece_size,
                elapsed,
                0,
                self.rng,
            )
            left_candidate = bytes_left(download_candidate, total)

            downloaded, uploaded, left = self.emulation.round(
                download_candidate, upload_candidate, left_candidate, piece_size
            )
            snapshot = self._add_announce(downloaded, uploaded, left)
            await self._announce(allow_retry=True)
            return snapshot

    async def shutdown(self) -> AnnounceSnapshot | None:
        """Send the final ``stopped`` announce with ``numwant=0``.

        Only the first call announces; later calls return ``None``. The
        final snapshot repeats the last reported counts.

        Raises:
            EmptyHistoryError: If the session never announced
            TrackerUnreachableError: If the tracker could not be reached

        """
        async with self._lock:
            if self._closed:
                return None

            last = self.history.last()
            self._closed = True
            self.status = AnnounceStatus.STOPPED
            self.numwant = 0
            self.next_announce_at = None
            snapshot = self._add_announce(last.downloaded, last.uploaded, last.left)
            await self._announce(allow_retry=False)
            return snapshot

    def cancel_retries(self) -> None:
        """Make a periodic announce stuck in tracker retries fail fast."""
        self.tracker.cancel_retries()

    def build_query(self) -> str:
        """Render the client's query template for the latest snapshot."""
        last = self.history.last()
        values = {
            "infohash": self.torrent.info_hash_urlencoded,
            "port": str(self.settings.port),
            "peerid": self.emulation.peer_id(),
            "uploaded": str(last.uploaded),
            "downloaded": str(last.downloaded),
            "left": str(last.left),
            "key": self.emulation.key(),
            "event": self.status.value,
            "numwant": str(self.numwant),
        }
        return _PLACEHOLDER_RE.sub(
            lambda m: values.get(m.group(1), m.group(0)), self.emulation.query
        )

    def stats(self) -> SessionStats:
        """Take a consistent read-only view of the session."""
        return SessionStats(
            status=self.status,
            announce_count=self.announce_count,
            announce_interval=self.announce_interval,
            numwant=self.numwant,
            seeders=self.seeders,
            leechers=self.leechers,
            last_announce_at=self.last_announce_at,
            next_announce_at=self.next_announce_at,
            history=tuple(self.history.iterate()),
        )

    def _add_announce(self, downloaded: int, uploaded: int, left: int) -> AnnounceSnapshot:
        snapshot = AnnounceSnapshot(
            count=self.announce_count + 1,
            downloaded=downloaded,
            uploaded=uploaded,
            left=left,
            total_size=self.torrent.total_size,
            event=self.status,
            created_at=self._clock(),
        )
        self.announce_count = snapshot.count
        self.history.append(snapshot)
        return snapshot

    async def _announce(self, allow_retry: bool) -> None:
        last = self.history.last()
        query = self.build_query()
        try:
            response = await self.tracker.announce(
                query, self.emulation.headers, allow_retry
            )
        except TrackerError as e:
            log_exception(
                self.logger, e, f"Announce #{last.count} ({self.status.value}) failed"
            )
            raise

        self.seeders = response.seeders
        self.leechers = response.leechers
        self.announce_interval = response.interval
        self.last_announce_at = self._clock()
        if self.status is AnnounceStatus.STARTED:
            self.next_announce_at = self.last_announce_at + response.interval

        self.logger.info(
            "Announce #%d (%s): downloaded=%d uploaded=%d left=%d seeders=%d leechers=%d interval=%ds",
            last.count,
            self.status.value,
            last.downloaded,
            last.uploaded,
            last.left,
            self.seeders,
            self.leechers,
            self.announce_interval,
        )
