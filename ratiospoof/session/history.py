"""Bounded history of announce snapshots."""

from __future__ import annotations

from collections import deque
from typing import Iterator

from ratiospoof.exceptions import EmptyHistoryError
from ratiospoof.models import AnnounceSnapshot

DEFAULT_CAPACITY = 10


class AnnounceHistory:
    """Fixed-capacity FIFO of the most recent announce snapshots."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        """Initialize an empty history."""
        if capacity < 1:
            msg = f"History capacity must be positive, got {capacity}"
            raise ValueError(msg)
        self._entries: deque[AnnounceSnapshot] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        """Maximum number of retained snapshots."""
        return self._entries.maxlen or 0

    def append(self, snapshot: AnnounceSnapshot) -> None:
        """Add a snapshot, evicting the oldest one when full."""
        self._entries.append(snapshot)

    def last(self) -> AnnounceSnapshot:
        """Return the most recent snapshot.

        Raises:
            EmptyHistoryError: If nothing was announced yet

        """
        if not self._entries:
            msg = "Announce history is empty"
            raise EmptyHistoryError(msg)
        return self._entries[-1]

    def size(self) -> int:
        """Number of retained snapshots."""
        return len(self._entries)

    def iterate(self) -> Iterator[AnnounceSnapshot]:
        """Iterate oldest to newest over a copy of the current entries."""
        return iter(tuple(self._entries))

    def __len__(self) -> int:
        return self.size()

    def __iter__(self) -> Iterator[AnnounceSnapshot]:
        return self.iterate()

    def __bool__(self) -> bool:
        return bool(self._entries)
