"""
Bounded retry for "cancel all open orders".

The request is signed once and the identical signed DELETE is replayed on
each attempt. An exchange-reported failure is retried; after
max_attempts without success the result is UNKNOWN, not FAILED: some
orders may already have been cancelled. Transport errors are not retried.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

from backpack_client.connectors.backoff import BackoffConfig, BackoffState, compute_backoff_delay
from backpack_client.connectors.backpack.types import ApiResult, HttpMethod
from backpack_client.contracts.models import Order, decode_list

if TYPE_CHECKING:
    from backpack_client.connectors.backpack.transport import RestTransport
    from backpack_client.metrics import ClientMetrics

logger = logging.getLogger(__name__)

CANCEL_ALL_PATH = "/api/v1/orders"
DEFAULT_MAX_ATTEMPTS = 4


class CancelAllController:
    """Replays a signed cancel-all request until it succeeds or attempts run out."""

    def __init__(
        self,
        transport: RestTransport,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff: BackoffConfig | None = None,
        metrics: ClientMetrics | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        """
        Initialize the controller.

        Args:
            transport: REST transport used for each attempt.
            max_attempts: Total attempts, initial one included.
            backoff: Optional delay policy between attempts (no delay if None).
            metrics: Optional metrics sink.
            sleep: Awaitable sleep, injectable for tests.
            rng: Optional seeded RNG for backoff jitter.
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self._transport = transport
        self._max_attempts = max_attempts
        self._backoff = backoff
        self._metrics = metrics
        self._sleep = sleep
        self._rng = rng

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    async def cancel_all(
        self,
        headers: Mapping[str, str],
        params: Mapping[str, Any],
    ) -> ApiResult[list[Order]]:
        """
        Run the cancel-all policy.

        Args:
            headers: Signature headers computed once for this request.
            params: Request body ({"symbol": ...}).

        Returns:
            OK with the cancelled orders, or UNKNOWN after max_attempts failures.

        Raises:
            TransportError: On the first transport-level failure.
        """
        state = BackoffState()

        for attempt in range(1, self._max_attempts + 1):
            if self._metrics is not None:
                self._metrics.record_cancel_all_attempt()

            response = await self._transport.execute(
                HttpMethod.DELETE, CANCEL_ALL_PATH, headers, params
            )
            if response.ok:
                orders = decode_list(Order, response.data or [])
                logger.info(
                    "Cancelled open orders",
                    extra={"attempt": attempt, "cancelled": len(orders)},
                )
                return ApiResult.success(orders, attempts=attempt)

            logger.warning(
                "Cancel-all attempt failed",
                extra={
                    "attempt": attempt,
                    "max_attempts": self._max_attempts,
                    "code": response.failure.code if response.failure else None,
                },
            )
            state.record_error()

            if attempt < self._max_attempts and self._backoff is not None:
                delay_ms = compute_backoff_delay(self._backoff, state, rng=self._rng)
                if delay_ms > 0:
                    await self._sleep(delay_ms / 1000)

        if self._metrics is not None:
            self._metrics.record_cancel_all_exhausted()
        logger.error(
            "Cancel-all attempts exhausted, final state unknown",
            extra={"attempts": self._max_attempts},
        )
        return ApiResult.unknown(attempts=self._max_attempts)
