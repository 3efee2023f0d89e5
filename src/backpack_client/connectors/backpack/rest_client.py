"""
REST client for the Backpack exchange API.

One coroutine per endpoint. Public market-data endpoints need no
credentials; private endpoints sign their parameters with the endpoint's
instruction tag. Every call returns an ApiResult: OK with a typed record,
or FAILED with the exchange's failure left unreshaped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, TypeVar

from backpack_client.connectors.backpack.cancel_all import CancelAllController
from backpack_client.connectors.backpack.signer import sign
from backpack_client.connectors.backpack.transport import RestTransport
from backpack_client.connectors.backpack.types import ApiResult, ClientConfig, HttpMethod
from backpack_client.contracts.models import (
    Asset,
    Balance,
    Deposit,
    DepositAddress,
    Depth,
    Fill,
    Kline,
    Market,
    Order,
    OrderHistoryEntry,
    SystemStatus,
    Ticker,
    Trade,
    Withdrawal,
    decode_list,
    decode_mapping,
    decode_record,
)
from backpack_client.errors import ConfigurationError, DecodeError

if TYPE_CHECKING:
    from types import TracebackType

    from backpack_client.config import Credentials
    from backpack_client.contracts.params import (
        FillHistoryQuery,
        HistoricalTradesQuery,
        KlineQuery,
        OrderHistoryQuery,
        OrderRef,
        OrderRequest,
        PageQuery,
        RecentTradesQuery,
        WithdrawalRequest,
    )
    from backpack_client.metrics import ClientMetrics

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _as_int(data: Any) -> int:
    try:
        return int(data)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"Expected an integer, got {type(data).__name__}") from e


def _as_str(data: Any) -> str:
    if not isinstance(data, str):
        raise DecodeError(f"Expected a string, got {type(data).__name__}")
    return data


class BackpackRestClient:
    """
    Async client for the Backpack REST API.

    Usage:
        async with BackpackRestClient(credentials) as client:
            result = await client.get_balances()
            if result.ok:
                print(result.value)
    """

    def __init__(
        self,
        credentials: Credentials | None = None,
        config: ClientConfig | None = None,
        transport: RestTransport | None = None,
        metrics: ClientMetrics | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            credentials: Required for private endpoints only.
            config: Client configuration.
            transport: Injected transport (a new one is created if None).
            metrics: Optional metrics sink.
        """
        self._credentials = credentials
        self._config = config or ClientConfig()
        self._transport = transport or RestTransport(self._config, metrics=metrics)
        self._cancel_all = CancelAllController(
            self._transport,
            max_attempts=self._config.cancel_all_max_attempts,
            backoff=self._config.cancel_all_backoff,
            metrics=metrics,
        )

    async def __aenter__(self) -> BackpackRestClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying transport."""
        await self._transport.close()

    def _signed_headers(self, instruction: str, params: Mapping[str, Any] | None) -> dict[str, str]:
        if self._credentials is None:
            raise ConfigurationError(f"Credentials required for '{instruction}'")
        headers = sign(
            instruction,
            self._credentials.api_key,
            self._credentials.secret_key,
            params,
            window_ms=self._config.window_ms,
        )
        return headers.as_dict()

    async def _call(
        self,
        method: HttpMethod,
        path: str,
        decode: Callable[[Any], T],
        *,
        params: Mapping[str, Any] | None = None,
        instruction: str | None = None,
    ) -> ApiResult[T]:
        headers = self._signed_headers(instruction, params) if instruction else None
        response = await self._transport.execute(method, path, headers, params)
        if response.failure is not None:
            return ApiResult.failed(response.failure)
        return ApiResult.success(decode(response.data))

    # =========================================================================
    # System
    # =========================================================================

    async def get_status(self) -> ApiResult[SystemStatus]:
        """Get system status."""
        return await self._call(
            HttpMethod.GET, "/api/v1/status", lambda d: decode_record(SystemStatus, d)
        )

    async def ping(self) -> ApiResult[str]:
        """Ping the API; the exchange answers "pong"."""
        return await self._call(HttpMethod.GET, "/api/v1/ping", _as_str)

    async def get_system_time(self) -> ApiResult[int]:
        """Get server time in milliseconds."""
        return await self._call(HttpMethod.GET, "/api/v1/time", _as_int)

    # =========================================================================
    # Markets
    # =========================================================================

    async def get_assets(self) -> ApiResult[list[Asset]]:
        """Get all assets and the blockchains they can be moved on."""
        return await self._call(HttpMethod.GET, "/api/v1/assets", lambda d: decode_list(Asset, d))

    async def get_markets(self) -> ApiResult[list[Market]]:
        """Get all markets with their price/quantity/leverage filters."""
        return await self._call(
            HttpMethod.GET, "/api/v1/markets", lambda d: decode_list(Market, d)
        )

    async def get_ticker(self, symbol: str) -> ApiResult[Ticker]:
        """Get 24h statistics for one market."""
        return await self._call(
            HttpMethod.GET,
            "/api/v1/ticker",
            lambda d: decode_record(Ticker, d),
            params={"symbol": symbol},
        )

    async def get_tickers(self) -> ApiResult[list[Ticker]]:
        """Get 24h statistics for all markets."""
        return await self._call(
            HttpMethod.GET, "/api/v1/tickers", lambda d: decode_list(Ticker, d)
        )

    async def get_depth(self, symbol: str) -> ApiResult[Depth]:
        """Get the order book snapshot for one market."""
        return await self._call(
            HttpMethod.GET,
            "/api/v1/depth",
            lambda d: decode_record(Depth, d),
            params={"symbol": symbol},
        )

    async def get_klines(self, query: KlineQuery) -> ApiResult[list[Kline]]:
        """Get candles for one market."""
        return await self._call(
            HttpMethod.GET,
            "/api/v1/klines",
            lambda d: decode_list(Kline, d),
            params=query.to_params(),
        )

    async def get_recent_trades(self, query: RecentTradesQuery) -> ApiResult[list[Trade]]:
        return await self._call(
            HttpMethod.GET,
            "/api/v1/trades",
            lambda d: decode_list(Trade, d),
            params=query.to_params(),
        )

    async def get_historical_trades(self, query: HistoricalTradesQuery) -> ApiResult[list[Trade]]:
        return await self._call(
            HttpMethod.GET,
            "/api/v1/trades/history",
            lambda d: decode_list(Trade, d),
            params=query.to_params(),
        )

    # =========================================================================
    # Capital (private)
    # =========================================================================

    async def get_balances(self) -> ApiResult[dict[str, Balance]]:
        """Get balances keyed by asset symbol."""
        return await self._call(
            HttpMethod.GET,
            "/api/v1/capital",
            lambda d: decode_mapping(Balance, d),
            instruction="balanceQuery",
        )

    async def get_deposit_history(self, query: PageQuery) -> ApiResult[list[Deposit]]:
        return await self._call(
            HttpMethod.GET,
            "/wapi/v1/capital/deposits",
            lambda d: decode_list(Deposit, d),
            params=query.to_params(),
            instruction="depositQueryAll",
        )

    async def get_deposit_address(self, blockchain: str) -> ApiResult[DepositAddress]:
        return await self._call(
            HttpMethod.GET,
            "/wapi/v1/capital/deposit/address",
            lambda d: decode_record(DepositAddress, d),
            params={"blockchain": blockchain},
            instruction="depositAddressQuery",
        )

    async def get_withdrawal_history(self, query: PageQuery) -> ApiResult[list[Withdrawal]]:
        return await self._call(
            HttpMethod.GET,
            "/wapi/v1/capital/withdrawals",
            lambda d: decode_list(Withdrawal, d),
            params=query.to_params(),
            instruction="withdrawalQueryAll",
        )

    async def request_withdrawal(self, request: WithdrawalRequest) -> ApiResult[Withdrawal]:
        """Request a withdrawal to an external address."""
        logger.info(
            "Requesting withdrawal",
            extra={"symbol": request.symbol, "blockchain": request.blockchain},
        )
        return await self._call(
            HttpMethod.POST,
            "/wapi/v1/capital/withdrawals",
            lambda d: decode_record(Withdrawal, d),
            params=request.to_params(),
            instruction="withdraw",
        )

    # =========================================================================
    # History (private)
    # =========================================================================

    async def get_order_history(self, query: OrderHistoryQuery) -> ApiResult[list[OrderHistoryEntry]]:
        return await self._call(
            HttpMethod.GET,
            "/wapi/v1/history/orders",
            lambda d: decode_list(OrderHistoryEntry, d),
            params=query.to_params(),
            instruction="orderHistoryQueryAll",
        )

    async def get_fill_history(self, query: FillHistoryQuery) -> ApiResult[list[Fill]]:
        return await self._call(
            HttpMethod.GET,
            "/wapi/v1/history/fills",
            lambda d: decode_list(Fill, d),
            params=query.to_params(),
            instruction="fillHistoryQueryAll",
        )

    # =========================================================================
    # Orders (private)
    # =========================================================================

    async def get_open_order(self, ref: OrderRef) -> ApiResult[Order]:
        """Get one open order by order id or client id."""
        return await self._call(
            HttpMethod.GET,
            "/api/v1/order",
            lambda d: decode_record(Order, d),
            params=ref.to_params(),
            instruction="orderQuery",
        )

    async def execute_order(self, order: OrderRequest) -> ApiResult[Order]:
        """Submit a new order."""
        logger.info(
            "Submitting order",
            extra={
                "symbol": order.symbol,
                "side": order.side.value,
                "order_type": order.order_type.value,
            },
        )
        return await self._call(
            HttpMethod.POST,
            "/api/v1/order",
            lambda d: decode_record(Order, d),
            params=order.to_params(),
            instruction="orderExecute",
        )

    async def get_open_orders(self, symbol: str) -> ApiResult[list[Order]]:
        """Get all open orders for one market."""
        return await self._call(
            HttpMethod.GET,
            "/api/v1/orders",
            lambda d: decode_list(Order, d),
            params={"symbol": symbol},
            instruction="orderQueryAll",
        )

    async def cancel_order(self, ref: OrderRef) -> ApiResult[Order]:
        """Cancel one open order."""
        return await self._call(
            HttpMethod.DELETE,
            "/api/v1/order",
            lambda d: decode_record(Order, d),
            params=ref.to_params(),
            instruction="orderCancel",
        )

    async def cancel_all_orders(self, symbol: str) -> ApiResult[list[Order]]:
        """
        Cancel all open orders for one market, retrying on exchange failure.

        Returns:
            OK with the cancelled orders, or UNKNOWN when every attempt
            failed. UNKNOWN means some orders may have been cancelled.
        """
        params = {"symbol": symbol}
        headers = self._signed_headers("orderCancelAll", params)
        return await self._cancel_all.cancel_all(headers, params)
