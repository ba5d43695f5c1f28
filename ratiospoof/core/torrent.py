"""Torrent file parsing for ratiospoof.

This module extracts the metadata an announce needs from a torrent file:
the info hash, the total size, the piece size and the tracker list.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ratiospoof.core.bencode import decode, encode
from ratiospoof.exceptions import BencodeError, MalformedTorrentError
from ratiospoof.models import TorrentInfo


def _text(value: Any, field: str) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    msg = f"Field {field!r} must be a string"
    raise MalformedTorrentError(msg)


class TorrentParser:
    """Parser for BitTorrent torrent files."""

    def parse(self, torrent_path: str | Path) -> TorrentInfo:
        """Parse a torrent file from a local path.

        Raises:
            MalformedTorrentError: If the file cannot be read or parsed

        """
        path = Path(torrent_path)
        try:
            raw = path.read_bytes()
        except OSError as e:
            msg = f"Failed to read torrent file {path}: {e}"
            raise MalformedTorrentError(msg) from e
        return self.parse_bytes(raw)

    def parse_bytes(self, raw: bytes) -> TorrentInfo:
        """Parse raw torrent bytes.

        Raises:
            MalformedTorrentError: If parsing fails

        """
        try:
            data = decode(raw)
        except BencodeError as e:
            msg = f"Failed to parse torrent: {e.message}"
            raise MalformedTorrentError(msg) from e

        self._validate_torrent(data)
        info = data[b"info"]

        try:
            return TorrentInfo(
                name=_text(info[b"name"], "name"),
                info_hash=hashlib.sha1(encode(info)).digest(),  # nosec B324 - protocol hash
                total_size=self._total_size(info),
                piece_size=info[b"piece length"],
                trackers=self._extract_trackers(data),
                comment=_text(data[b"comment"], "comment") if b"comment" in data else None,
                created_by=(
                    _text(data[b"created by"], "created by")
                    if b"created by" in data
                    else None
                ),
            )
        except ValidationError as e:
            msg = f"Invalid torrent metadata: {e}"
            raise MalformedTorrentError(msg) from e

    def _validate_torrent(self, data: Any) -> None:
        """Validate that the data is a valid torrent file."""
        if not isinstance(data, dict):
            msg = "Torrent root must be a dictionary"
            raise MalformedTorrentError(msg)

        info = data.get(b"info")
        if not isinstance(info, dict):
            msg = "Missing or invalid info dictionary in torrent"
            raise MalformedTorrentError(msg)

        if b"name" not in info:
            msg = "Missing name in torrent info"
            raise MalformedTorrentError(msg)

        piece_length = info.get(b"piece length")
        if not isinstance(piece_length, int) or piece_length <= 0:
            msg = "Missing or invalid piece length in torrent info"
            raise MalformedTorrentError(msg)

        if b"length" not in info and b"files" not in info:
            msg = "Torrent must specify either length (single file) or files (multi-file)"
            raise MalformedTorrentError(msg)

    def _total_size(self, info: dict[bytes, Any]) -> int:
        if b"length" in info:
            length = info[b"length"]
            if not isinstance(length, int):
                msg = "Invalid length in torrent info"
                raise MalformedTorrentError(msg)
            return length

        files = info[b"files"]
        if not isinstance(files, list):
            msg = "Invalid files list in torrent info"
            raise MalformedTorrentError(msg)
        total = 0
        for entry in files:
            if not isinstance(entry, dict) or not isinstance(entry.get(b"length"), int):
                msg = "Invalid file entry in torrent info"
                raise MalformedTorrentError(msg)
            total += entry[b"length"]
        return total

    def _extract_trackers(self, data: dict[bytes, Any]) -> list[str]:
        """Collect the main announce URL then every announce-list URL."""
        trackers: list[str] = []
        if b"announce" in data:
            trackers.append(_text(data[b"announce"], "announce"))

        for tier in data.get(b"announce-list", []) or []:
            if not isinstance(tier, list):
                continue
            for url in tier:
                if isinstance(url, bytes):
                    trackers.append(url.decode("utf-8", errors="replace"))

        seen: set[str] = set()
        unique = []
        for url in trackers:
            url = url.strip()
            if url and url not in seen:
                seen.add(url)
                unique.append(url)
        return unique
