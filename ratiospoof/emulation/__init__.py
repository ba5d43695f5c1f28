"""BitTorrent client emulation profiles."""

from __future__ import annotations

from ratiospoof.emulation.emulation import (
    BLOCK_SIZE,
    Emulation,
    generate_key,
    generate_peer_id,
    round_counts,
    rounding_unit,
)
from ratiospoof.emulation.profiles import (
    PROFILES,
    ClientProfile,
    KeyStyle,
    PeerIdStyle,
    RoundingStyle,
    available_clients,
    get_profile,
)

__all__ = [
    "BLOCK_SIZE",
    "PROFILES",
    "ClientProfile",
    "Emulation",
    "KeyStyle",
    "PeerIdStyle",
    "RoundingStyle",
    "available_clients",
    "generate_key",
    "generate_peer_id",
    "get_profile",
    "round_counts",
    "rounding_unit",
]
