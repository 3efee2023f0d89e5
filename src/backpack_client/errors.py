"""
Error taxonomy for the Backpack client.

Exceptions are raised for faults the caller cannot branch around
(bad configuration, broken transport, undecodable payloads). Exchange-level
failures are values: see ExchangeFailure and ApiResult in
backpack_client.connectors.backpack.types.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from backpack_client.connectors.backpack.types import ExchangeFailure


class BackpackError(Exception):
    """Base class for all client errors."""


class ConfigurationError(BackpackError):
    """Raised for invalid credentials or configuration. Never retried."""


class TransportError(BackpackError):
    """Raised on network failure, timeout or malformed HTTP/WS exchange."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class DecodeError(BackpackError):
    """Raised when a payload does not match the expected record shape."""


class StreamDecodeError(DecodeError):
    """Raised when an inbound stream frame cannot be decoded."""

    def __init__(self, message: str, frame: str | bytes | None = None) -> None:
        super().__init__(message)
        self.frame = frame


class ExchangeApplicationError(BackpackError):
    """Raised by ApiResult.unwrap() when the exchange reported a failure."""

    def __init__(self, failure: ExchangeFailure) -> None:
        super().__init__(str(failure))
        self.failure = failure


class RetryExhaustedError(BackpackError):
    """Raised by ApiResult.unwrap() when retries ran out with unknown outcome."""

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts
