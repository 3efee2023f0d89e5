"""
Prometheus metrics for the Backpack client.

Only low-cardinality labels are used: HTTP method and outcome. No symbol,
path, stream name or order id labels.

Usage:
    registry = CollectorRegistry()
    metrics = ClientMetrics(registry=registry)
    client = BackpackRestClient(credentials, metrics=metrics)
    # generate_latest(registry) -> bytes for a /metrics endpoint
"""

from __future__ import annotations

from typing import Literal

from prometheus_client import Counter
from prometheus_client.registry import CollectorRegistry

RequestOutcome = Literal["ok", "failed", "error"]

# Labels that would cause cardinality explosion
FORBIDDEN_LABELS = frozenset({"symbol", "path", "endpoint", "stream", "order_id", "api_key"})


class ClientMetrics:
    """Counters for REST outcomes, cancel-all retries and stream activity."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

        self._rest_requests = Counter(
            "backpack_rest_requests",
            "REST requests by method and outcome (ok, failed, error)",
            ["method", "outcome"],
            registry=self._registry,
        )
        self._cancel_all_attempts = Counter(
            "backpack_cancel_all_attempts",
            "Cancel-all DELETE attempts, including retries",
            registry=self._registry,
        )
        self._cancel_all_exhausted = Counter(
            "backpack_cancel_all_exhausted",
            "Cancel-all calls that ran out of attempts with unknown outcome",
            registry=self._registry,
        )
        self._ws_frames = Counter(
            "backpack_ws_frames_received",
            "Inbound WebSocket text frames",
            registry=self._registry,
        )
        self._ws_decode_errors = Counter(
            "backpack_ws_decode_errors",
            "Inbound frames that could not be decoded",
            registry=self._registry,
        )
        self._ws_reconnects = Counter(
            "backpack_ws_reconnects",
            "WebSocket reconnect attempts after unintended disconnects",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record_request(self, method: str, outcome: RequestOutcome) -> None:
        self._rest_requests.labels(method=method, outcome=outcome).inc()

    def record_cancel_all_attempt(self) -> None:
        self._cancel_all_attempts.inc()

    def record_cancel_all_exhausted(self) -> None:
        self._cancel_all_exhausted.inc()

    def record_frame(self) -> None:
        self._ws_frames.inc()

    def record_decode_error(self) -> None:
        self._ws_decode_errors.inc()

    def record_reconnect(self) -> None:
        self._ws_reconnects.inc()
