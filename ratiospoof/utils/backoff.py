"""Retry delay policy for tracker announces."""

from __future__ import annotations

import random
from dataclasses import dataclass, field

from ratiospoof.models import TrackerConfig


@dataclass
class ExponentialBackoff:
    """Exponential backoff with optional jitter.

    ``next_delay(0)`` is the base delay; each further retry multiplies it
    until ``max_delay`` is reached.
    """

    base_delay: float = 30.0
    multiplier: float = 2.0
    max_delay: float = 900.0
    jitter: float = 0.1
    rng: random.Random = field(default_factory=random.Random, repr=False)

    @classmethod
    def from_config(cls, config: TrackerConfig) -> ExponentialBackoff:
        """Build the policy configured for tracker retries."""
        return cls(
            base_delay=config.retry_base_delay,
            max_delay=config.retry_max_delay,
            jitter=config.retry_jitter,
        )

    def next_delay(self, retries: int) -> float:
        """Calculate the delay before retry number ``retries`` (0-based)."""
        delay = self.base_delay * (self.multiplier ** max(0, retries))
        delay = min(delay, self.max_delay)
        if self.jitter > 0 and delay > 0:
            jitter_amt = delay * self.jitter
            delay = max(0.0, delay - jitter_amt) + self.rng.random() * (2 * jitter_amt)
        return delay
