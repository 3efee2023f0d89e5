"""Request parameter objects and typed result records."""

from backpack_client.contracts.models import (
    Asset,
    Balance,
    Deposit,
    DepositAddress,
    Depth,
    Fill,
    Kline,
    Market,
    MarketFilters,
    Order,
    OrderHistoryEntry,
    OrderUpdateEvent,
    SystemStatus,
    Ticker,
    Token,
    Trade,
    Withdrawal,
)
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

__all__ = [
    "Asset",
    "Balance",
    "Deposit",
    "DepositAddress",
    "Depth",
    "Fill",
    "FillHistoryQuery",
    "HistoricalTradesQuery",
    "Kline",
    "KlineQuery",
    "Market",
    "MarketFilters",
    "Order",
    "OrderHistoryEntry",
    "OrderHistoryQuery",
    "OrderRef",
    "OrderRequest",
    "OrderType",
    "OrderUpdateEvent",
    "PageQuery",
    "RecentTradesQuery",
    "SelfTradePrevention",
    "Side",
    "SystemStatus",
    "Ticker",
    "TimeInForce",
    "Token",
    "Trade",
    "Withdrawal",
    "WithdrawalRequest",
]
