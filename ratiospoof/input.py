"""User input parsing and validation.

Sizes are given either as a percentage of the torrent (``"25%"``) or as an
amount with a binary unit (``"1.5gb"``); speeds are amounts per second
(``"300kbps"``). Everything is converted to integer bytes up front so the
session only ever works with validated integers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path

from ratiospoof.exceptions import InvalidInputError
from ratiospoof.models import TorrentInfo

SIZE_UNITS: dict[str, int] = {
    "b": 1,
    "kb": 1024,
    "mb": 1024**2,
    "gb": 1024**3,
    "tb": 1024**4,
}

SPEED_UNITS: dict[str, int] = {
    "bps": 1,
    "kbps": 1024,
    "mbps": 1024**2,
    "gbps": 1024**3,
}

_AMOUNT_RE = re.compile(r"^\s*(?P<number>\d+(?:\.\d+)?)\s*(?P<unit>%|[a-z]+)\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class InputArgs:
    """Raw user input as typed on the command line."""

    torrent_path: str | Path
    initial_downloaded: str
    download_speed: str
    initial_uploaded: str
    upload_speed: str
    client: str
    port: int | str
    debug: bool = False


@dataclass(frozen=True)
class InputParsed:
    """Validated input, all values in bytes or bytes per second."""

    torrent_path: Path
    initial_downloaded: int
    download_speed: int
    initial_uploaded: int
    upload_speed: int
    client: str
    port: int
    debug: bool = False


def _split_amount(raw: str, field: str) -> tuple[Decimal, str]:
    match = _AMOUNT_RE.match(raw or "")
    if match is None:
        msg = f"Invalid {field}: {raw!r}"
        raise InvalidInputError(msg, {"field": field})
    try:
        number = Decimal(match.group("number"))
    except InvalidOperation as e:
        msg = f"Invalid {field}: {raw!r}"
        raise InvalidInputError(msg, {"field": field}) from e
    return number, match.group("unit").lower()


def parse_size(raw: str, total_size: int, field: str = "size") -> int:
    """Convert a size expression to bytes.

    Raises:
        InvalidInputError: If the expression is malformed or out of range

    """
    number, unit = _split_amount(raw, field)
    if unit == "%":
        if number > 100:
            msg = f"Invalid {field}: percentage must be between 0 and 100, got {raw!r}"
            raise InvalidInputError(msg, {"field": field})
        return int(number * total_size / 100)
    if unit not in SIZE_UNITS:
        msg = f"Invalid {field}: unknown unit {unit!r} (use %, {', '.join(SIZE_UNITS)})"
        raise InvalidInputError(msg, {"field": field})
    return int(number * SIZE_UNITS[unit])


def parse_speed(raw: str, field: str = "speed") -> int:
    """Convert a speed expression to bytes per second.

    Raises:
        InvalidInputError: If the expression is malformed

    """
    number, unit = _split_amount(raw, field)
    if unit not in SPEED_UNITS:
        msg = f"Invalid {field}: unknown unit {unit!r} (use {', '.join(SPEED_UNITS)})"
        raise InvalidInputError(msg, {"field": field})
    return int(number * SPEED_UNITS[unit])


def parse_port(raw: int | str) -> int:
    """Validate a TCP port number."""
    try:
        port = int(raw)
    except (TypeError, ValueError) as e:
        msg = f"Invalid port: {raw!r}"
        raise InvalidInputError(msg, {"field": "port"}) from e
    if not 1 <= port <= 65535:
        msg = f"Invalid port: {port} is outside 1-65535"
        raise InvalidInputError(msg, {"field": "port"})
    return port


def parse_input(args: InputArgs, torrent: TorrentInfo) -> InputParsed:
    """Validate raw input against the torrent it will be used with.

    The initial downloaded amount may not exceed the torrent size and, unless
    complete, is floored to a piece boundary so later rounding never moves it
    backwards. Uploaded has no upper bound.

    Raises:
        InvalidInputError: If any value is invalid

    """
    downloaded = parse_size(args.initial_downloaded, torrent.total_size, "initial downloaded")
    if downloaded > torrent.total_size:
        msg = (
            f"Invalid initial downloaded: {args.initial_downloaded!r} is larger "
            f"than the torrent ({torrent.total_size} bytes)"
        )
        raise InvalidInputError(msg, {"field": "initial downloaded"})
    if downloaded < torrent.total_size:
        downloaded -= downloaded % torrent.piece_size

    return InputParsed(
        torrent_path=Path(args.torrent_path),
        initial_downloaded=downloaded,
        download_speed=parse_speed(args.download_speed, "download speed"),
        initial_uploaded=parse_size(args.initial_uploaded, torrent.total_size, "initial uploaded"),
        upload_speed=parse_speed(args.upload_speed, "upload speed"),
        client=args.client,
        port=parse_port(args.port),
        debug=args.debug,
    )
