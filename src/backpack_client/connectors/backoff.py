"""
Exponential backoff with jitter.

Used by the streaming session for reconnects and, optionally, by the
cancel-all controller between attempts. Jitter accepts a seeded RNG so
tests can assert exact delays.
"""

from __future__ import annotations

import random
from dataclasses import dataclass


@dataclass
class BackoffConfig:
    """Configuration for exponential backoff."""

    base_delay_ms: int = 1000
    max_delay_ms: int = 30000
    multiplier: float = 2.0
    jitter_factor: float = 0.5  # 0.5 = ±50% jitter

    def __post_init__(self) -> None:
        if self.base_delay_ms < 0:
            raise ValueError(f"base_delay_ms must be >= 0, got {self.base_delay_ms}")
        if self.max_delay_ms < self.base_delay_ms:
            raise ValueError(
                f"max_delay_ms must be >= base_delay_ms, got {self.max_delay_ms}"
            )
        if self.multiplier < 1.0:
            raise ValueError(f"multiplier must be >= 1.0, got {self.multiplier}")
        if not 0.0 <= self.jitter_factor < 1.0:
            raise ValueError(f"jitter_factor must be in [0, 1), got {self.jitter_factor}")

    def worst_case_total_ms(self, retries: int) -> int:
        """Upper bound of the summed delays for `retries` consecutive retries."""
        total = 0.0
        for attempt in range(1, retries + 1):
            delay = self.base_delay_ms * (self.multiplier ** (attempt - 1))
            total += min(delay * (1.0 + self.jitter_factor), self.max_delay_ms)
        return int(total)


@dataclass
class BackoffState:
    """Mutable state for backoff tracking."""

    attempt: int = 0

    def reset(self) -> None:
        """Reset backoff state after successful operation."""
        self.attempt = 0

    def record_error(self) -> None:
        """Record an error occurrence."""
        self.attempt += 1


def compute_backoff_delay(
    config: BackoffConfig,
    state: BackoffState,
    *,
    rng: random.Random | None = None,
) -> int:
    """
    Compute backoff delay with exponential increase and jitter.

    Args:
        config: Backoff configuration.
        state: Current backoff state.
        rng: Optional seeded Random instance for deterministic jitter.

    Returns:
        Delay in milliseconds before next retry (0 before the first error).
    """
    if state.attempt == 0:
        return 0

    delay = config.base_delay_ms * (config.multiplier ** (state.attempt - 1))

    jitter_min = 1.0 - config.jitter_factor
    jitter_max = 1.0 + config.jitter_factor
    if rng is not None:
        jitter_multiplier = rng.uniform(jitter_min, jitter_max)
    else:
        jitter_multiplier = random.uniform(jitter_min, jitter_max)
    delay = delay * jitter_multiplier

    return int(min(delay, config.max_delay_ms))
