"""Async HTTP tracker transport.

Sends a pre-rendered announce query to the torrent's HTTP trackers and
decodes the bencoded reply. The query string is sent byte for byte as the
emulated client would send it; it is never re-encoded.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import aiohttp
import yarl

from ratiospoof.core.bencode import decode
from ratiospoof.exceptions import BencodeError, TrackerError, TrackerUnreachableError
from ratiospoof.logging_config import get_logger
from ratiospoof.models import TorrentInfo, TrackerConfig, TrackerResponse, is_http_tracker
from ratiospoof.utils.backoff import ExponentialBackoff


def _to_text(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def parse_announce_response(body: bytes) -> tuple[TrackerResponse, dict[str, Any]]:
    """Decode a tracker announce reply.

    Returns the parsed response and a printable copy of the raw dictionary.

    Raises:
        TrackerError: If the reply is malformed or reports a failure

    """
    try:
        decoded = decode(body)
    except BencodeError as e:
        msg = f"Failed to parse tracker response: {e.message}"
        raise TrackerError(msg) from e

    if not isinstance(decoded, dict):
        msg = "Tracker response is not a dictionary"
        raise TrackerError(msg)

    printable: dict[str, Any] = {}
    for key, value in decoded.items():
        name = _to_text(key)
        if key in (b"peers", b"peers6") and isinstance(value, bytes):
            printable[name] = f"<{len(value)} bytes>"
        elif isinstance(value, list):
            printable[name] = f"<{len(value)} entries>"
        else:
            printable[name] = _to_text(value)

    if b"failure reason" in decoded:
        reason = _to_text(decoded[b"failure reason"])
        msg = f"Tracker failure: {reason}"
        raise TrackerError(msg, {"failure_reason": reason})

    interval = decoded.get(b"interval")
    if not isinstance(interval, int) or interval < 0:
        msg = "Missing interval in tracker response"
        raise TrackerError(msg)

    def _count(key: bytes) -> int:
        value = decoded.get(key, 0)
        return value if isinstance(value, int) and value >= 0 else 0

    min_interval = decoded.get(b"min interval")
    response = TrackerResponse(
        interval=interval,
        min_interval=min_interval if isinstance(min_interval, int) and min_interval >= 0 else None,
        seeders=_count(b"complete"),
        leechers=_count(b"incomplete"),
        tracker_id=_to_text(decoded[b"tracker id"]) if b"tracker id" in decoded else None,
        warning_message=(
            _to_text(decoded[b"warning message"]) if b"warning message" in decoded else None
        ),
    )
    return response, printable


class HttpTracker:
    """Announces to a torrent's HTTP trackers, in order, until one answers."""

    def __init__(
        self,
        urls: list[str],
        config: TrackerConfig | None = None,
        *,
        backoff: ExponentialBackoff | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize the tracker transport.

        Args:
            urls: Tracker announce URLs; only http(s) ones are kept
            config: Tracker configuration
            backoff: Retry delay policy (defaults to the configured one)
            sleep: Coroutine used to wait between retries

        Raises:
            TrackerError: If no HTTP tracker is available

        """
        self.urls = [url for url in urls if is_http_tracker(url)]
        if not self.urls:
            msg = "No HTTP or HTTPS tracker found in the torrent"
            raise TrackerError(msg, {"trackers": list(urls)})

        self.config = config or TrackerConfig()
        self.backoff = backoff or ExponentialBackoff.from_config(self.config)
        self._sleep = sleep

        self.session: aiohttp.ClientSession | None = None
        self._retries_cancelled = asyncio.Event()
        self.retry_attempt = 0
        self.last_request: str | None = None
        self.last_response: dict[str, Any] | None = None

        self.logger = get_logger(__name__)

    @classmethod
    def from_torrent(
        cls, torrent: TorrentInfo, config: TrackerConfig | None = None
    ) -> HttpTracker:
        """Build a transport for every tracker listed in the torrent."""
        return cls(torrent.trackers, config)

    @property
    def main_url(self) -> str:
        """Tracker currently tried first."""
        return self.urls[0]

    async def start(self) -> None:
        """Open the HTTP session."""
        if self.session is not None:
            return
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        self.session = aiohttp.ClientSession(timeout=timeout)
        self.logger.debug("Tracker client started for %d URL(s)", len(self.urls))

    async def stop(self) -> None:
        """Close the HTTP session."""
        if self.session is not None:
            await self.session.close()
            self.session = None
            self.logger.debug("Tracker client stopped")

    async def __aenter__(self) -> HttpTracker:
        """Start the client when entering the context."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        """Stop the client when leaving the context."""
        await self.stop()

    async def announce(
        self,
        query: str,
        headers: dict[str, str],
        allow_retry: bool,
    ) -> TrackerResponse:
        """Send an announce query.

        Args:
            query: Encoded query string, without the leading ``?``
            headers: Request headers
            allow_retry: Keep retrying with backoff instead of failing after
                one pass over the tracker URLs; ignored once
                :meth:`cancel_retries` was called

        Raises:
            TrackerUnreachableError: If no tracker accepted the announce

        """
        if self.session is None:
            msg = "Tracker client not started"
            raise TrackerError(msg)

        passes = 0
        while True:
            try:
                response = await self._announce_once(query, headers)
            except TrackerError as e:
                passes += 1
                max_passes = self.config.max_retries
                if (
                    not allow_retry
                    or self.retries_cancelled
                    or (max_passes and passes >= max_passes)
                ):
                    msg = f"Failed to reach the tracker: {e.message}"
                    raise TrackerUnreachableError(
                        msg, {"attempts": passes, "urls": list(self.urls)}
                    ) from e
                delay = self.backoff.next_delay(passes - 1)
                self.retry_attempt = passes
                self.logger.warning(
                    "Announce failed (attempt %d): %s; retrying in %.0fs",
                    passes,
                    e.message,
                    delay,
                )
                if await self._wait_before_retry(delay):
                    msg = f"Announce retries cancelled: {e.message}"
                    raise TrackerUnreachableError(
                        msg, {"attempts": passes, "urls": list(self.urls)}
                    ) from e
                continue

            self.retry_attempt = 0
            if response.warning_message:
                self.logger.warning("Tracker warning: %s", response.warning_message)
            return response

    @property
    def retries_cancelled(self) -> bool:
        """Whether failed announces are no longer retried."""
        return self._retries_cancelled.is_set()

    def cancel_retries(self) -> None:
        """Stop retrying failed announces.

        A retry wait in progress ends at once and its announce fails with
        :class:`TrackerUnreachableError`. Requests already sent are left to
        finish.
        """
        self._retries_cancelled.set()

    async def _wait_before_retry(self, delay: float) -> bool:
        """Sleep for ``delay``; return True if retries were cancelled meanwhile."""
        sleeper = asyncio.ensure_future(self._sleep(delay))
        cancelled = asyncio.ensure_future(self._retries_cancelled.wait())
        try:
            await asyncio.wait({sleeper, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            sleeper.cancel()
            cancelled.cancel()
        return self.retries_cancelled

    async def _announce_once(self, query: str, headers: dict[str, str]) -> TrackerResponse:
        """Try every URL once; the first that answers moves to the front."""
        last_error: TrackerError | None = None
        for url in list(self.urls):
            try:
                response = await self._request(url, query, headers)
            except TrackerError as e:
                self.logger.debug("Announce to %s failed: %s", url, e.message)
                last_error = e
                continue
            if url != self.urls[0]:
                self.urls.remove(url)
                self.urls.insert(0, url)
            return response

        assert last_error is not None
        raise last_error

    async def _request(self, url: str, query: str, headers: dict[str, str]) -> TrackerResponse:
        """Make one HTTP GET announce request."""
        if self.session is None:
            msg = "HTTP session not initialized"
            raise TrackerError(msg)

        separator = "&" if "?" in url else "?"
        full_url = f"{url}{separator}{query}"
        self.last_request = full_url
        self.logger.debug("GET %s", full_url)

        try:
            async with self.session.get(
                yarl.URL(full_url, encoded=True), headers=headers
            ) as resp:
                if resp.status != 200:
                    msg = f"HTTP {resp.status}: {resp.reason}"
                    raise TrackerError(msg, {"url": url})
                body = await resp.read()
        except aiohttp.ClientError as e:
            msg = f"Network error: {e}"
            raise TrackerError(msg, {"url": url}) from e
        except asyncio.TimeoutError as e:
            msg = f"Timed out after {self.config.timeout:.0f}s"
            raise TrackerError(msg, {"url": url}) from e

        response, printable = parse_announce_response(body)
        self.last_response = printable
        return response
