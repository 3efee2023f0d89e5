"""
Types and configuration for the Backpack REST and WebSocket connectors.

Defaults follow the exchange's documented behavior:
- REST calls are bounded by a 6s client timeout
- Signed requests are accepted within a 10000ms window
- WebSocket control frames must be written within 3s
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from backpack_client.connectors.backoff import BackoffConfig
from backpack_client.errors import ExchangeApplicationError, RetryExhaustedError

T = TypeVar("T")

# Marker the exchange places in the top-level "status" field of a failed call
FAILURE_STATUS = "fail"


class HttpMethod(str, Enum):
    """HTTP methods used by the REST API."""

    GET = "GET"
    POST = "POST"
    DELETE = "DELETE"


class SessionState(str, Enum):
    """Streaming session state."""

    DISCONNECTED = "DISCONNECTED"
    CONNECTED = "CONNECTED"
    SUBSCRIBED = "SUBSCRIBED"
    RECONNECTING = "RECONNECTING"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"


class ResultStatus(str, Enum):
    """Outcome of a facade operation."""

    OK = "OK"
    FAILED = "FAILED"  # Exchange reported a definitive failure
    UNKNOWN = "UNKNOWN"  # Retries exhausted, final state not known


@dataclass
class ClientConfig:
    """
    Configuration for the REST client.

    Attributes:
        base_rest_url: REST API base URL.
        request_timeout_ms: Total timeout for one HTTP call.
        window_ms: Validity window sent with every signed request.
        cancel_all_max_attempts: Total attempts (initial + retries) for cancel-all.
        cancel_all_backoff: Optional delay policy between cancel-all attempts.
    """

    base_rest_url: str = "https://api.backpack.exchange"
    request_timeout_ms: int = 6000
    window_ms: int = 10000
    cancel_all_max_attempts: int = 4
    cancel_all_backoff: BackoffConfig | None = None

    def __post_init__(self) -> None:
        if self.request_timeout_ms <= 0:
            raise ValueError(f"request_timeout_ms must be > 0, got {self.request_timeout_ms}")
        if not 0 < self.window_ms <= 60000:
            raise ValueError(f"window_ms must be 1..60000, got {self.window_ms}")
        if self.cancel_all_max_attempts < 1:
            raise ValueError(
                f"cancel_all_max_attempts must be >= 1, got {self.cancel_all_max_attempts}"
            )
        if self.cancel_all_backoff is not None:
            # Retries replay one signed request, so every retry must land inside its window
            worst_ms = self.cancel_all_backoff.worst_case_total_ms(self.cancel_all_max_attempts - 1)
            if worst_ms >= self.window_ms:
                raise ValueError(
                    f"cancel_all_backoff worst case {worst_ms}ms exceeds signature window "
                    f"{self.window_ms}ms"
                )


@dataclass
class StreamConfig:
    """
    Configuration for the streaming session.

    Attributes:
        ws_url: WebSocket endpoint.
        write_timeout_ms: Deadline for sending one control frame.
        heartbeat_ms: aiohttp ping interval for the socket.
        max_reconnect_attempts: Reconnects allowed after an unintended disconnect.
        reconnect_backoff: Delay policy between reconnect attempts.
        strict_decode: Tear down the session on an undecodable frame.
    """

    ws_url: str = "wss://ws.backpack.exchange"
    write_timeout_ms: int = 3000
    heartbeat_ms: int = 30000
    max_reconnect_attempts: int = 5
    reconnect_backoff: BackoffConfig = field(default_factory=BackoffConfig)
    strict_decode: bool = False

    def __post_init__(self) -> None:
        if self.write_timeout_ms <= 0:
            raise ValueError(f"write_timeout_ms must be > 0, got {self.write_timeout_ms}")
        if self.heartbeat_ms <= 0:
            raise ValueError(f"heartbeat_ms must be > 0, got {self.heartbeat_ms}")
        if self.max_reconnect_attempts < 0:
            raise ValueError(
                f"max_reconnect_attempts must be >= 0, got {self.max_reconnect_attempts}"
            )


@dataclass(frozen=True)
class ExchangeFailure:
    """
    Failure reported by the exchange in an otherwise delivered response.

    Attributes:
        http_status: HTTP status code of the response.
        code: Exchange error code, if any.
        message: Exchange error message, if any.
        body: Decoded response body.
    """

    http_status: int
    code: str | None = None
    message: str | None = None
    body: Any = None

    def __str__(self) -> str:
        code = self.code or "fail"
        return f"Exchange failure (HTTP {self.http_status}, {code}): {self.message or ''}".rstrip()

    @classmethod
    def from_body(cls, http_status: int, body: Any) -> ExchangeFailure:
        """Build from a decoded error body."""
        if isinstance(body, dict):
            code = body.get("code")
            message = body.get("message") or body.get("msg")
            return cls(
                http_status=http_status,
                code=str(code) if code is not None else None,
                message=str(message) if message is not None else None,
                body=body,
            )
        return cls(http_status=http_status, body=body)


@dataclass
class ExchangeResponse:
    """
    Decoded response from the REST transport.

    Attributes:
        data: Decoded JSON body (None for an empty body).
        http_status: HTTP status code.
        failure: Set when the exchange reported a failure.
    """

    data: Any
    http_status: int = 200
    failure: ExchangeFailure | None = None

    @property
    def ok(self) -> bool:
        """True when the exchange did not report a failure."""
        return self.failure is None


@dataclass
class ApiResult(Generic[T]):
    """
    Result of a facade operation.

    Exactly one of `value` (status OK) or `failure` (status FAILED) is set.
    Status UNKNOWN carries neither: the operation may or may not have
    taken effect on the exchange.
    """

    status: ResultStatus
    value: T | None = None
    failure: ExchangeFailure | None = None
    attempts: int = 1

    @classmethod
    def success(cls, value: T, attempts: int = 1) -> ApiResult[T]:
        return cls(status=ResultStatus.OK, value=value, attempts=attempts)

    @classmethod
    def failed(cls, failure: ExchangeFailure, attempts: int = 1) -> ApiResult[T]:
        return cls(status=ResultStatus.FAILED, failure=failure, attempts=attempts)

    @classmethod
    def unknown(cls, attempts: int) -> ApiResult[T]:
        return cls(status=ResultStatus.UNKNOWN, attempts=attempts)

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.OK

    def unwrap(self) -> T:
        """
        Return the value or raise.

        Raises:
            ExchangeApplicationError: If the exchange reported a failure.
            RetryExhaustedError: If the outcome is unknown.
        """
        if self.status == ResultStatus.FAILED:
            assert self.failure is not None
            raise ExchangeApplicationError(self.failure)
        if self.status == ResultStatus.UNKNOWN:
            raise RetryExhaustedError(
                f"No result after {self.attempts} attempts, final state unknown",
                attempts=self.attempts,
            )
        return self.value  # type: ignore[return-value]
