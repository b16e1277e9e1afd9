"""
Uniform jitter between retry rounds.

Capacity exhaustion does not ease with elapsed time in a way exponential
backoff would exploit, so every round draws independently from the same
closed interval. This spreads retries across clients without drifting
toward longer waits as attempts accumulate.
"""

import random
from dataclasses import dataclass, field

from capacity_hunter.config import Settings


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Integer delay drawn uniformly from [min_delay, max_delay].

    Attributes:
        min_delay: Lower bound in seconds (inclusive)
        max_delay: Upper bound in seconds (inclusive)
        rng: Random source (injectable for deterministic tests)
    """

    min_delay: int
    max_delay: int
    rng: random.Random = field(default_factory=random.Random, compare=False, repr=False)

    def __post_init__(self) -> None:
        """Validate bounds."""
        if self.min_delay < 0:
            raise ValueError("min_delay must be >= 0")

        if self.min_delay > self.max_delay:
            raise ValueError(
                f"min_delay ({self.min_delay}) must be <= max_delay ({self.max_delay})"
            )

    @classmethod
    def from_settings(cls, settings: Settings) -> "BackoffPolicy":
        return cls(min_delay=settings.MIN_RETRY_DELAY, max_delay=settings.MAX_RETRY_DELAY)

    def next_delay(self) -> int:
        return self.rng.randint(self.min_delay, self.max_delay)
