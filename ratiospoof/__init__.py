"""ratiospoof: report simulated seeding traffic to BitTorrent HTTP trackers."""

from __future__ import annotations

__version__ = "0.1.0"
