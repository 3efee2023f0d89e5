"""
Tests for exponential backoff.

Covers:
- Config validation and the worst-case delay bound used against the signature window
- Exponential growth, cap and jitter range
- Seeded jitter (deterministic reconnect delays)
"""

from __future__ import annotations

import random

import pytest

from backpack_client.connectors import BackoffConfig, BackoffState, compute_backoff_delay


class TestBackoffConfig:
    """Tests for BackoffConfig."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        config = BackoffConfig()
        assert config.base_delay_ms == 1000
        assert config.max_delay_ms == 30000
        assert config.multiplier == 2.0
        assert config.jitter_factor == 0.5

    @pytest.mark.parametrize(
        ("kwargs", "match"),
        [
            ({"base_delay_ms": -1}, "base_delay_ms"),
            ({"base_delay_ms": 100, "max_delay_ms": 50}, "max_delay_ms"),
            ({"multiplier": 0.5}, "multiplier"),
            ({"jitter_factor": 1.0}, "jitter_factor"),
        ],
    )
    def test_invalid_values(self, kwargs: dict[str, float], match: str) -> None:
        with pytest.raises(ValueError, match=match):
            BackoffConfig(**kwargs)  # type: ignore[arg-type]

    def test_worst_case_total(self) -> None:
        """Sum of upper-jitter delays, each capped at max_delay_ms."""
        config = BackoffConfig(base_delay_ms=100, max_delay_ms=250, jitter_factor=0.5)
        # 150 + min(300, 250) + min(600, 250)
        assert config.worst_case_total_ms(3) == 650
        assert config.worst_case_total_ms(0) == 0


class TestBackoffState:
    """Tests for BackoffState."""

    def test_initial_state(self) -> None:
        state = BackoffState()
        assert state.attempt == 0

    def test_record_error(self) -> None:
        state = BackoffState()
        state.record_error()
        assert state.attempt == 1

    def test_reset(self) -> None:
        state = BackoffState()
        state.record_error()
        state.record_error()
        state.reset()
        assert state.attempt == 0

    def test_reset_restarts_delay_sequence(self) -> None:
        """After reset the next delay is the base delay again."""
        config = BackoffConfig(base_delay_ms=100, jitter_factor=0.0)
        state = BackoffState()
        for _ in range(3):
            state.record_error()
        assert compute_backoff_delay(config, state) == 400

        state.reset()
        state.record_error()
        assert compute_backoff_delay(config, state) == 100


class TestComputeBackoffDelay:
    """Tests for compute_backoff_delay function."""

    def test_zero_delay_before_first_error(self) -> None:
        assert compute_backoff_delay(BackoffConfig(), BackoffState()) == 0

    def test_exponential_increase(self) -> None:
        """Delays double with multiplier=2 and no jitter."""
        config = BackoffConfig(base_delay_ms=1000, multiplier=2.0, jitter_factor=0.0)
        state = BackoffState()

        delays = []
        for _ in range(3):
            state.record_error()
            delays.append(compute_backoff_delay(config, state))

        assert delays == [1000, 2000, 4000]

    def test_max_delay_cap(self) -> None:
        config = BackoffConfig(base_delay_ms=1000, max_delay_ms=5000, jitter_factor=0.0)
        state = BackoffState()
        for _ in range(10):
            state.record_error()

        assert compute_backoff_delay(config, state) == 5000

    def test_jitter_range(self) -> None:
        """Delays vary within ±jitter_factor of the base."""
        config = BackoffConfig(base_delay_ms=1000, jitter_factor=0.5)
        state = BackoffState()
        state.record_error()

        delays = {compute_backoff_delay(config, state) for _ in range(100)}

        assert len(delays) > 1
        assert all(500 <= d <= 1500 for d in delays)


class TestSeededJitter:
    """Tests for deterministic backoff with a seeded RNG."""

    def test_seeded_sequence_is_reproducible(self) -> None:
        config = BackoffConfig(base_delay_ms=1000, jitter_factor=0.5)

        def compute_sequence(seed: int) -> list[int]:
            rng = random.Random(seed)
            state = BackoffState()
            delays = []
            for _ in range(5):
                state.record_error()
                delays.append(compute_backoff_delay(config, state, rng=rng))
            return delays

        assert compute_sequence(42) == compute_sequence(42)
