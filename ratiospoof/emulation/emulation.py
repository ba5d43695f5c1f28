"""Runtime emulation of a BitTorrent client.

An :class:`Emulation` is built once per process from a
:class:`~ratiospoof.emulation.profiles.ClientProfile`. It fixes the peer id
and session key for the whole session and applies the client's rounding
to every set of byte counts before they are reported.
"""

from __future__ import annotations

import random
import urllib.parse

from ratiospoof.emulation.profiles import (
    ClientProfile,
    KeyStyle,
    PeerIdStyle,
    RoundingStyle,
    get_profile,
)
from ratiospoof.logging_config import get_logger

logger = get_logger(__name__)

PEER_ID_LENGTH = 20
BLOCK_SIZE = 16 * 1024


def generate_peer_id(profile: ClientProfile, rng: random.Random) -> str:
    """Generate a 20 character peer id in the profile's style."""
    remaining = PEER_ID_LENGTH - len(profile.peer_id_prefix)
    charset = profile.peer_id_charset

    if profile.peer_id_style is PeerIdStyle.BASE36_CHECKSUM:
        # Last character makes the sum of the random part a multiple of len(charset)
        indexes = [rng.randrange(len(charset)) for _ in range(remaining - 1)]
        checksum = sum(indexes) % len(charset)
        indexes.append(0 if checksum == 0 else len(charset) - checksum)
        suffix = "".join(charset[i] for i in indexes)
    else:
        suffix = "".join(rng.choice(charset) for _ in range(remaining))

    peer_id = profile.peer_id_prefix + suffix
    assert len(peer_id) == PEER_ID_LENGTH
    return peer_id


def generate_key(profile: ClientProfile, rng: random.Random) -> str:
    """Generate the per-session announce key."""
    value = rng.getrandbits(profile.key_length * 4)
    key = f"{value:0{profile.key_length}x}"
    if profile.key_style is KeyStyle.HEX_UPPER:
        return key.upper()
    return key


def rounding_unit(style: RoundingStyle, piece_size: int) -> int:
    """Return the granularity a rounding style reports downloaded bytes in."""
    if style is RoundingStyle.PIECE:
        return piece_size
    if style is RoundingStyle.BLOCK:
        return BLOCK_SIZE if piece_size % BLOCK_SIZE == 0 else piece_size
    return 1


def round_counts(
    style: RoundingStyle,
    downloaded: int,
    uploaded: int,
    left: int,
    piece_size: int,
) -> tuple[int, int, int]:
    """Apply a client's rounding to a candidate triple.

    Downloaded is floored to the style's unit and the remainder moves to
    ``left``, so ``downloaded + left`` is unchanged. A complete download
    (``left == 0``) is reported as is. Uploaded is never rounded.
    """
    if left == 0 or style is RoundingStyle.NONE:
        return downloaded, uploaded, left
    unit = rounding_unit(style, piece_size)
    remainder = downloaded % unit
    return downloaded - remainder, uploaded, left + remainder


class Emulation:
    """A client profile bound to a generated peer id and key."""

    def __init__(self, profile: ClientProfile, rng: random.Random | None = None):
        """Initialize the emulation and generate identifiers."""
        self.profile = profile
        rng = rng or random.Random()
        self._peer_id = generate_peer_id(profile, rng)
        self._key = generate_key(profile, rng)
        logger.debug(
            "Emulating %s with peer id %s and key %s",
            profile.name,
            self._peer_id,
            self._key,
        )

    @classmethod
    def from_code(cls, code: str, rng: random.Random | None = None) -> Emulation:
        """Build an emulation from a profile code.

        Raises:
            UnknownProfileError: If the code is unknown

        """
        return cls(get_profile(code), rng)

    @property
    def name(self) -> str:
        """Display name of the emulated client."""
        return self.profile.name

    @property
    def query(self) -> str:
        """Announce query template."""
        return self.profile.query

    @property
    def headers(self) -> dict[str, str]:
        """HTTP headers sent with every announce."""
        return dict(self.profile.headers)

    def peer_id(self) -> str:
        """Peer id escaped for the announce query."""
        return urllib.parse.quote(self._peer_id, safe="")

    def key(self) -> str:
        """Session key."""
        return self._key

    def round(
        self,
        downloaded: int,
        uploaded: int,
        left: int,
        piece_size: int,
    ) -> tuple[int, int, int]:
        """Reconcile candidate byte counts the way this client reports them."""
        return round_counts(self.profile.rounding, downloaded, uploaded, left, piece_size)
