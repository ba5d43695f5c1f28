"""Tests for the traffic model."""

from __future__ import annotations

import random

import pytest

pytestmark = [pytest.mark.unit, pytest.mark.session]

from ratiospoof.session.traffic import bytes_left, next_byte_count, percent_downloaded


class TestNextByteCount:
    def test_zero_speed_returns_current(self, rng):
        assert next_byte_count(0, 500, 10, 1800, 1000, rng) == 500
        assert next_byte_count(0, 500, 10, 1800, 0, rng) == 500

    def test_growth_within_jitter_bounds(self):
        rng = random.Random(5)
        for _ in range(500):
            value = next_byte_count(100, 1000, 16, 30, 0, rng)
            assert 1000 + 3000 + 16 <= value <= 1000 + 3000 + 16 * 9

    def test_jitter_uses_one_to_nine_pieces(self):
        rng = random.Random(9)
        seen = {
            (next_byte_count(1, 0, 10, 0, 0, rng)) // 10 for _ in range(1000)
        }
        assert seen == set(range(1, 10))

    def test_clamped_to_upper_bound(self, rng):
        assert next_byte_count(100, 0, 10, 10, 1000, rng) == 1000

    def test_zero_upper_bound_is_unbounded(self, rng):
        value = next_byte_count(10**9, 0, 10, 3600, 0, rng)
        assert value > 10**12

    def test_monotonic(self):
        rng = random.Random(1)
        current = 0
        for _ in range(100):
            nxt = next_byte_count(1024, current, 16384, 60, 5 * 1024 * 1024, rng)
            assert nxt >= current
            current = nxt
        assert current == 5 * 1024 * 1024


class TestBytesLeft:
    def test_bytes_left(self):
        assert bytes_left(0, 1000) == 1000
        assert bytes_left(400, 1000) == 600
        assert bytes_left(1000, 1000) == 0

    def test_negative_left_is_an_error(self):
        with pytest.raises(ValueError):
            bytes_left(1001, 1000)


def test_percent_downloaded():
    assert percent_downloaded(250, 1000) == 25.0
    assert percent_downloaded(1000, 1000) == 100.0
