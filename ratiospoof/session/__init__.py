"""Announce session, history, traffic model and runner."""

from __future__ import annotations

from ratiospoof.session.history import AnnounceHistory
from ratiospoof.session.runner import SessionRunner
from ratiospoof.session.session import AnnounceSession, SessionStats
from ratiospoof.session.traffic import bytes_left, next_byte_count, percent_downloaded

__all__ = [
    "AnnounceHistory",
    "AnnounceSession",
    "SessionRunner",
    "SessionStats",
    "bytes_left",
    "next_byte_count",
    "percent_downloaded",
]
