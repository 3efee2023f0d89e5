"""Tests for the cancel-all retry controller."""

from __future__ import annotations

import random
from unittest.mock import AsyncMock, MagicMock

import pytest
from prometheus_client.registry import CollectorRegistry

from backpack_client.connectors.backoff import BackoffConfig
from backpack_client.connectors.backpack.cancel_all import (
    CANCEL_ALL_PATH,
    DEFAULT_MAX_ATTEMPTS,
    CancelAllController,
)
from backpack_client.connectors.backpack.types import (
    ExchangeFailure,
    ExchangeResponse,
    HttpMethod,
    ResultStatus,
)
from backpack_client.errors import RetryExhaustedError, TransportError
from backpack_client.metrics import ClientMetrics

HEADERS = {
    "X-API-Key": "k",
    "X-Signature": "sig",
    "X-Timestamp": "1700000000000",
    "X-Window": "10000",
}
PARAMS = {"symbol": "SOL_USDC"}

ORDER = {"id": "1", "orderType": "Limit", "symbol": "SOL_USDC", "side": "Ask", "status": "Cancelled"}


def _failed() -> ExchangeResponse:
    body = {"status": "fail", "code": "SERVICE_UNAVAILABLE"}
    return ExchangeResponse(data=body, failure=ExchangeFailure.from_body(200, body))


def _transport(*responses: ExchangeResponse | Exception) -> MagicMock:
    transport = MagicMock()
    transport.execute = AsyncMock(side_effect=list(responses))
    return transport


class TestCancelAllController:
    """Tests for CancelAllController.cancel_all."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self) -> None:
        transport = _transport(ExchangeResponse(data=[ORDER]))
        controller = CancelAllController(transport)

        result = await controller.cancel_all(HEADERS, PARAMS)

        assert result.status == ResultStatus.OK
        assert result.attempts == 1
        assert result.value is not None
        assert result.value[0].status == "Cancelled"
        transport.execute.assert_awaited_once_with(
            HttpMethod.DELETE, CANCEL_ALL_PATH, HEADERS, PARAMS
        )

    @pytest.mark.asyncio
    async def test_always_failing_stops_after_four_attempts(self) -> None:
        """Persistent failure yields UNKNOWN after exactly four attempts."""
        transport = _transport(*[_failed() for _ in range(10)])
        controller = CancelAllController(transport)

        result = await controller.cancel_all(HEADERS, PARAMS)

        assert DEFAULT_MAX_ATTEMPTS == 4
        assert transport.execute.await_count == 4
        assert result.status == ResultStatus.UNKNOWN
        assert result.attempts == 4
        assert result.value is None
        assert result.failure is None
        with pytest.raises(RetryExhaustedError) as exc_info:
            result.unwrap()
        assert exc_info.value.attempts == 4

    @pytest.mark.asyncio
    async def test_fail_then_succeed(self) -> None:
        transport = _transport(_failed(), ExchangeResponse(data=[]))
        controller = CancelAllController(transport)

        result = await controller.cancel_all(HEADERS, PARAMS)

        assert result.ok
        assert result.attempts == 2
        assert result.value == []
        assert transport.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_succeeds_on_last_attempt(self) -> None:
        transport = _transport(_failed(), _failed(), _failed(), ExchangeResponse(data=[ORDER]))
        controller = CancelAllController(transport)

        result = await controller.cancel_all(HEADERS, PARAMS)

        assert result.ok
        assert result.attempts == 4

    @pytest.mark.asyncio
    async def test_identical_request_each_attempt(self) -> None:
        """Every attempt replays the same signed headers and body."""
        transport = _transport(*[_failed() for _ in range(4)])
        controller = CancelAllController(transport)

        await controller.cancel_all(HEADERS, PARAMS)

        calls = transport.execute.await_args_list
        assert len(calls) == 4
        assert all(call.args == (HttpMethod.DELETE, CANCEL_ALL_PATH, HEADERS, PARAMS) for call in calls)

    @pytest.mark.asyncio
    async def test_empty_body_means_nothing_cancelled(self) -> None:
        controller = CancelAllController(_transport(ExchangeResponse(data=None)))
        result = await controller.cancel_all(HEADERS, PARAMS)
        assert result.value == []

    @pytest.mark.asyncio
    async def test_transport_error_not_retried(self) -> None:
        transport = _transport(_failed(), TransportError("connection reset"))
        controller = CancelAllController(transport)

        with pytest.raises(TransportError, match="connection reset"):
            await controller.cancel_all(HEADERS, PARAMS)

        assert transport.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_no_sleep_without_backoff(self) -> None:
        sleep = AsyncMock()
        controller = CancelAllController(_transport(*[_failed() for _ in range(4)]), sleep=sleep)

        await controller.cancel_all(HEADERS, PARAMS)

        sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_backoff_sleeps_between_attempts_only(self) -> None:
        """With backoff, delays grow and there is no sleep after the last attempt."""
        sleep = AsyncMock()
        backoff = BackoffConfig(base_delay_ms=100, max_delay_ms=1000, jitter_factor=0.0)
        controller = CancelAllController(
            _transport(*[_failed() for _ in range(4)]),
            backoff=backoff,
            sleep=sleep,
            rng=random.Random(42),
        )

        await controller.cancel_all(HEADERS, PARAMS)

        delays = [call.args[0] for call in sleep.await_args_list]
        assert delays == [0.1, 0.2, 0.4]

    @pytest.mark.asyncio
    async def test_custom_max_attempts(self) -> None:
        transport = _transport(*[_failed() for _ in range(3)])
        controller = CancelAllController(transport, max_attempts=2)

        result = await controller.cancel_all(HEADERS, PARAMS)

        assert result.status == ResultStatus.UNKNOWN
        assert transport.execute.await_count == 2

    def test_invalid_max_attempts(self) -> None:
        with pytest.raises(ValueError, match="max_attempts"):
            CancelAllController(MagicMock(), max_attempts=0)

    @pytest.mark.asyncio
    async def test_metrics(self) -> None:
        registry = CollectorRegistry()
        controller = CancelAllController(
            _transport(*[_failed() for _ in range(4)]),
            metrics=ClientMetrics(registry=registry),
        )

        await controller.cancel_all(HEADERS, PARAMS)

        assert registry.get_sample_value("backpack_cancel_all_attempts_total") == 4.0
        assert registry.get_sample_value("backpack_cancel_all_exhausted_total") == 1.0
