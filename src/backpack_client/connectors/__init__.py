"""Connectors for the Backpack exchange."""

from backpack_client.connectors.backoff import (
    BackoffConfig,
    BackoffState,
    compute_backoff_delay,
)

__all__ = [
    "BackoffConfig",
    "BackoffState",
    "compute_backoff_delay",
]
