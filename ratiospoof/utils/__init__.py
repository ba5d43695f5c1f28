"""Shared helpers."""

from __future__ import annotations

from ratiospoof.utils.backoff import ExponentialBackoff
from ratiospoof.utils.tasks import BackgroundTaskGroup

__all__ = ["BackgroundTaskGroup", "ExponentialBackoff"]
