"""Torrent metadata handling.

- Bencoding (encoding/decoding)
- Torrent file parsing
"""

from __future__ import annotations

from ratiospoof.core.bencode import (
    BencodeDecoder,
    BencodeEncoder,
    decode,
    encode,
)
from ratiospoof.core.torrent import TorrentParser

__all__ = [
    "BencodeDecoder",
    "BencodeEncoder",
    "TorrentParser",
    "decode",
    "encode",
]
