from __future__ import annotations

from typing import Protocol, runtime_checkable

from ratiospoof.models import TrackerResponse


@runtime_checkable
class TrackerTransportProtocol(Protocol):
    """Protocol for the tracker transport used by the announce session."""

    async def announce(  # pragma: no cover - protocol definition only
        self,
        query: str,
        headers: dict[str, str],
        allow_retry: bool,
    ) -> TrackerResponse: ...

    def cancel_retries(self) -> None: ...


@runtime_checkable
class EmulationProtocol(Protocol):
    """Protocol for the emulated client the session reports as."""

    @property
    def name(self) -> str: ...

    @property
    def query(self) -> str: ...

    @property
    def headers(self) -> dict[str, str]: ...

    def peer_id(self) -> str: ...

    def key(self) -> str: ...

    def round(
        self,
        downloaded: int,
        uploaded: int,
        left: int,
        piece_size: int,
    ) -> tuple[int, int, int]: ...


@runtime_checkable
class DisplayProtocol(Protocol):
    """Protocol for the live status display driven by the runner."""

    def start(self) -> None: ...

    async def stop(self) -> None: ...
