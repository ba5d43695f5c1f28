"""Pytest configuration and shared fixtures for ratiospoof tests."""

from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Any

import pytest

from ratiospoof.config import reset_config
from ratiospoof.core.bencode import encode
from ratiospoof.exceptions import TrackerUnreachableError
from ratiospoof.input import InputParsed
from ratiospoof.models import TorrentInfo, TrackerResponse


def pytest_configure(config):
    """Register all project markers to avoid warnings when ini isn't loaded."""
    markers = [
        ("unit", "marks tests as unit tests"),
        ("core", "marks tests as core functionality tests"),
        ("tracker", "marks tests as tracker tests"),
        ("session", "marks tests as session management tests"),
        ("cli", "marks tests as CLI tests"),
        ("config", "marks tests as configuration tests"),
        ("emulation", "marks tests as client emulation tests"),
    ]
    for name, desc in markers:
        config.addinivalue_line("markers", f"{name}: {desc}")


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path):
    """Keep user config files and RATIOSPOOF_* variables out of tests."""
    import os

    for name in list(os.environ):
        if name.startswith("RATIOSPOOF_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    yield
    reset_config()


@pytest.fixture(autouse=True)
def cleanup_logging():
    """Clean up logging handlers after each test to prevent closed file errors."""
    yield
    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source."""
    return random.Random(1234)


def make_torrent_bytes(
    *,
    name: bytes = b"sample.iso",
    length: int = 1000,
    piece_length: int = 10,
    announce: bytes | None = b"http://tracker.example.com/announce",
    announce_list: list[list[bytes]] | None = None,
    **extra: Any,
) -> bytes:
    """Build a bencoded single-file torrent."""
    data: dict[bytes, Any] = {
        b"info": {
            b"name": name,
            b"length": length,
            b"piece length": piece_length,
            b"pieces": b"x" * 20 * max(1, -(-length // piece_length)),
        },
    }
    if announce is not None:
        data[b"announce"] = announce
    if announce_list is not None:
        data[b"announce-list"] = announce_list
    data.update(extra)
    return encode(data)


@pytest.fixture
def torrent_info() -> TorrentInfo:
    """1000 byte torrent with 10 byte pieces."""
    return TorrentInfo(
        name="sample.iso",
        info_hash=bytes(range(20)),
        total_size=1000,
        piece_size=10,
        trackers=["http://tracker.example.com/announce"],
    )


@pytest.fixture
def torrent_file(tmp_path: Path) -> Path:
    """Write a small torrent file to disk."""
    path = tmp_path / "sample.torrent"
    path.write_bytes(make_torrent_bytes(length=1_048_576, piece_length=16_384))
    return path


def make_settings(**overrides: Any) -> InputParsed:
    """Build validated input with sensible defaults."""
    values: dict[str, Any] = {
        "torrent_path": Path("sample.torrent"),
        "initial_downloaded": 0,
        "download_speed": 100,
        "initial_uploaded": 0,
        "upload_speed": 0,
        "client": "qbit-4.0.3",
        "port": 8999,
        "debug": False,
    }
    values.update(overrides)
    return InputParsed(**values)


class FakeTracker:
    """Records announce queries and replays canned responses."""

    def __init__(
        self,
        *,
        interval: int = 10,
        seeders: int = 5,
        leechers: int = 3,
        fail_on: set[int] | None = None,
    ) -> None:
        self.interval = interval
        self.seeders = seeders
        self.leechers = leechers
        self.fail_on = fail_on or set()
        self.calls: list[tuple[str, dict[str, str], bool]] = []
        self.retry_attempt = 0
        self.retries_cancelled = False
        self.last_request: str | None = None
        self.last_response: dict[str, Any] | None = None

    @property
    def main_url(self) -> str:
        return "http://tracker.example.com/announce"

    @property
    def queries(self) -> list[dict[str, str]]:
        """Decoded query parameters of every announce, in order."""
        parsed = []
        for query, _headers, _retry in self.calls:
            parsed.append(dict(part.split("=", 1) for part in query.split("&")))
        return parsed

    def cancel_retries(self) -> None:
        self.retries_cancelled = True

    async def announce(
        self, query: str, headers: dict[str, str], allow_retry: bool
    ) -> TrackerResponse:
        self.calls.append((query, headers, allow_retry))
        self.last_request = f"{self.main_url}?{query}"
        if len(self.calls) in self.fail_on:
            msg = "Failed to reach the tracker: connection refused"
            raise TrackerUnreachableError(msg)
        self.last_response = {"interval": self.interval}
        return TrackerResponse(
            interval=self.interval, seeders=self.seeders, leechers=self.leechers
        )


class IdentityEmulation:
    """Emulation that reports candidate counts unchanged."""

    name = "Test Client 1.0"
    query = (
        "info_hash={infohash}&peer_id={peerid}&port={port}&uploaded={uploaded}"
        "&downloaded={downloaded}&left={left}&key={key}&event={event}&numwant={numwant}"
    )

    def __init__(self) -> None:
        self.round_calls: list[tuple[int, int, int, int]] = []

    @property
    def headers(self) -> dict[str, str]:
        return {"User-Agent": "TestClient/1.0"}

    def peer_id(self) -> str:
        return "-TC1000-abcdefghijkl"

    def key(self) -> str:
        return "DEADBEEF"

    def round(
        self, downloaded: int, uploaded: int, left: int, piece_size: int
    ) -> tuple[int, int, int]:
        self.round_calls.append((downloaded, uploaded, left, piece_size))
        return downloaded, uploaded, left


@pytest.fixture
def fake_tracker() -> FakeTracker:
    return FakeTracker()


@pytest.fixture
def emulation() -> IdentityEmulation:
    return IdentityEmulation()
