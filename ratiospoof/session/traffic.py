"""Traffic model: the next believable byte counts for an announce.

Growth is ``speed * elapsed`` plus a jitter of one to nine pieces, so the
reported totals move irregularly and roughly in piece-sized steps the way a
real client's counters do.
"""

from __future__ import annotations

import random

MIN_JITTER_PIECES = 1
MAX_JITTER_PIECES = 9


def next_byte_count(
    speed: int,
    current: int,
    piece_size: int,
    elapsed: int,
    upper_bound: int,
    rng: random.Random,
) -> int:
    """Return the byte count to report after ``elapsed`` seconds.

    Args:
        speed: Simulated speed in bytes per second; 0 freezes the count
        current: Last reported count
        piece_size: Torrent piece size, the unit of the random jitter
        elapsed: Seconds since the last report
        upper_bound: Maximum value to report; 0 means unbounded
        rng: Random source for the jitter

    """
    if speed == 0:
        return current

    candidate = current + speed * elapsed
    candidate += piece_size * rng.randint(MIN_JITTER_PIECES, MAX_JITTER_PIECES)

    if upper_bound != 0 and candidate > upper_bound:
        return upper_bound
    return candidate


def bytes_left(downloaded: int, total: int) -> int:
    """Bytes still missing from a torrent of ``total`` bytes."""
    left = total - downloaded
    if left < 0:
        msg = f"downloaded ({downloaded}) exceeds total size ({total})"
        raise ValueError(msg)
    return left


def percent_downloaded(downloaded: int, total: int) -> float:
    """Downloaded share of the torrent in percent."""
    return downloaded / total * 100
