"""Tests for request parameter objects."""

from __future__ import annotations

from decimal import Decimal

import pytest

from backpack_client.contracts.params import (
    FillHistoryQuery,
    HistoricalTradesQuery,
    KlineQuery,
    OrderHistoryQuery,
    OrderRef,
    OrderRequest,
    OrderType,
    PageQuery,
    RecentTradesQuery,
    SelfTradePrevention,
    Side,
    TimeInForce,
    WithdrawalRequest,
)


class TestQueries:
    """Market-data and history queries."""

    def test_kline_query_omits_unset_times(self) -> None:
        assert KlineQuery("SOL_USDC", "1h").to_params() == {"symbol": "SOL_USDC", "interval": "1h"}

    def test_kline_query_rejects_reversed_range(self) -> None:
        with pytest.raises(ValueError, match="end_time"):
            KlineQuery("SOL_USDC", "1h", start_time=10, end_time=5)

    def test_recent_trades(self) -> None:
        assert RecentTradesQuery("SOL_USDC", limit=50).to_params() == {
            "symbol": "SOL_USDC",
            "limit": 50,
        }

    def test_historical_trades_offset_independent_of_limit(self) -> None:
        params = HistoricalTradesQuery("SOL_USDC", limit=100, offset=300).to_params()
        assert params == {"symbol": "SOL_USDC", "limit": 100, "offset": 300}

    @pytest.mark.parametrize(("limit", "offset"), [(0, None), (-1, None), (None, -1)])
    def test_invalid_paging(self, limit: int | None, offset: int | None) -> None:
        with pytest.raises(ValueError):
            PageQuery(limit=limit, offset=offset)

    def test_empty_page_query(self) -> None:
        assert PageQuery().to_params() == {}

    def test_order_history(self) -> None:
        params = OrderHistoryQuery(symbol="SOL_USDC", limit=10).to_params()
        assert params == {"symbol": "SOL_USDC", "limit": 10}

    def test_fill_history_wire_names(self) -> None:
        params = FillHistoryQuery(order_id="1", from_ms=100, to_ms=200, offset=5).to_params()
        assert params == {"orderId": "1", "from": 100, "to": 200, "offset": 5}


class TestOrderRef:
    def test_requires_an_id(self) -> None:
        with pytest.raises(ValueError, match="order_id or client_id"):
            OrderRef("SOL_USDC")

    def test_by_order_id(self) -> None:
        assert OrderRef("SOL_USDC", order_id="9").to_params() == {
            "orderId": "9",
            "symbol": "SOL_USDC",
        }


class TestOrderRequest:
    """Validation and wire rendering of new orders."""

    def test_limit_order_params(self) -> None:
        order = OrderRequest(
            symbol="SOL_USDC",
            side=Side.ASK,
            order_type=OrderType.LIMIT,
            quantity=Decimal("0.50"),
            price=Decimal("1E+2"),
            time_in_force=TimeInForce.IOC,
            post_only=False,
            self_trade_prevention=SelfTradePrevention.REJECT_BOTH,
            client_id=42,
        )

        assert order.to_params() == {
            "clientId": 42,
            "orderType": "Limit",
            "postOnly": False,
            "price": "100",
            "quantity": "0.50",
            "selfTradePrevention": "RejectBoth",
            "side": "Ask",
            "symbol": "SOL_USDC",
            "timeInForce": "IOC",
        }

    def test_market_order_by_quote_quantity(self) -> None:
        order = OrderRequest(
            symbol="SOL_USDC",
            side=Side.BID,
            order_type=OrderType.MARKET,
            quote_quantity=Decimal("25"),
        )
        assert order.to_params() == {
            "orderType": "Market",
            "quoteQuantity": "25",
            "side": "Bid",
            "symbol": "SOL_USDC",
        }

    def test_limit_requires_price(self) -> None:
        with pytest.raises(ValueError, match="Limit"):
            OrderRequest("SOL_USDC", Side.BID, OrderType.LIMIT, quantity=Decimal("1"))

    def test_market_requires_size(self) -> None:
        with pytest.raises(ValueError, match="Market"):
            OrderRequest("SOL_USDC", Side.BID, OrderType.MARKET)

    def test_post_only_limit_only(self) -> None:
        with pytest.raises(ValueError, match="post_only"):
            OrderRequest(
                "SOL_USDC", Side.BID, OrderType.MARKET, quantity=Decimal("1"), post_only=True
            )


class TestWithdrawalRequest:
    def test_params(self) -> None:
        request = WithdrawalRequest(
            address="addr",
            blockchain="Solana",
            quantity=Decimal("1.25"),
            symbol="SOL",
            two_factor_token="123456",
        )
        assert request.to_params() == {
            "address": "addr",
            "blockchain": "Solana",
            "quantity": "1.25",
            "symbol": "SOL",
            "twoFactorToken": "123456",
        }

    def test_non_positive_quantity(self) -> None:
        with pytest.raises(ValueError, match="quantity"):
            WithdrawalRequest("addr", "Solana", Decimal("0"), "SOL")
