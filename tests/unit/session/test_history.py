"""Tests for the bounded announce history."""

from __future__ import annotations

import pytest

pytestmark = [pytest.mark.unit, pytest.mark.session]

from pydantic import ValidationError

from ratiospoof.exceptions import EmptyHistoryError
from ratiospoof.models import AnnounceSnapshot, AnnounceStatus
from ratiospoof.session.history import DEFAULT_CAPACITY, AnnounceHistory


def _snapshot(count: int, downloaded: int = 0, total: int = 1000) -> AnnounceSnapshot:
    return AnnounceSnapshot(
        count=count,
        downloaded=downloaded,
        uploaded=0,
        left=total - downloaded,
        total_size=total,
    )


class TestAnnounceHistory:
    def test_default_capacity(self):
        history = AnnounceHistory()
        assert history.capacity == DEFAULT_CAPACITY == 10

    def test_empty_history(self):
        history = AnnounceHistory()
        assert history.size() == 0
        assert len(history) == 0
        assert not history
        assert list(history.iterate()) == []
        with pytest.raises(EmptyHistoryError):
            history.last()

    def test_append_and_last(self):
        history = AnnounceHistory()
        history.append(_snapshot(1))
        history.append(_snapshot(2, downloaded=100))
        assert history.last().count == 2
        assert history.last().downloaded == 100
        assert history.size() == 2

    def test_evicts_oldest_when_full(self):
        history = AnnounceHistory(capacity=10)
        for count in range(1, 16):
            history.append(_snapshot(count))

        assert history.size() == 10
        assert [s.count for s in history.iterate()] == list(range(6, 16))
        assert history.last().count == 15

    def test_iterate_is_a_stable_copy(self):
        history = AnnounceHistory(capacity=3)
        for count in range(1, 4):
            history.append(_snapshot(count))
        iterator = history.iterate()
        history.append(_snapshot(4))
        assert [s.count for s in iterator] == [1, 2, 3]
        assert [s.count for s in history] == [2, 3, 4]

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            AnnounceHistory(capacity=0)


class TestAnnounceSnapshot:
    def test_percent_downloaded(self):
        snapshot = _snapshot(1, downloaded=250)
        assert snapshot.percent_downloaded == 25.0
        assert snapshot.event is AnnounceStatus.STARTED

    def test_totals_must_match(self):
        with pytest.raises(ValidationError):
            AnnounceSnapshot(count=1, downloaded=10, uploaded=0, left=10, total_size=1000)

    def test_negative_counts_rejected(self):
        with pytest.raises(ValidationError):
            AnnounceSnapshot(count=1, downloaded=-1, uploaded=0, left=1001, total_size=1000)

    def test_snapshot_is_frozen(self):
        snapshot = _snapshot(1)
        with pytest.raises(ValidationError):
            snapshot.downloaded = 5  # type: ignore[misc]
