"""
Request parameter objects for Backpack endpoints.

Each object renders the exact wire parameters via to_params(). Unset
(None) fields are omitted so they take part in neither the signature nor
the request. Decimal amounts are rendered as strings, which is how the
exchange expects prices and quantities.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any


class Side(str, Enum):
    """Order side."""

    BID = "Bid"
    ASK = "Ask"


class OrderType(str, Enum):
    """Order type."""

    LIMIT = "Limit"
    MARKET = "Market"


class TimeInForce(str, Enum):
    """Time in force."""

    GTC = "GTC"
    IOC = "IOC"
    FOK = "FOK"


class SelfTradePrevention(str, Enum):
    """Self-trade prevention mode."""

    REJECT_TAKER = "RejectTaker"
    REJECT_MAKER = "RejectMaker"
    REJECT_BOTH = "RejectBoth"
    ALLOW = "Allow"


def _wire(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return format(value, "f")
    return value


def _compact(params: dict[str, Any]) -> dict[str, Any]:
    """Drop unset fields and render values for the wire."""
    return {key: _wire(value) for key, value in params.items() if value is not None}


def _check_page(limit: int | None, offset: int | None) -> None:
    if limit is not None and limit <= 0:
        raise ValueError(f"limit must be > 0, got {limit}")
    if offset is not None and offset < 0:
        raise ValueError(f"offset must be >= 0, got {offset}")


@dataclass(frozen=True)
class KlineQuery:
    """Candles for one market; times are seconds since epoch."""

    symbol: str
    interval: str
    start_time: int | None = None
    end_time: int | None = None

    def __post_init__(self) -> None:
        if (
            self.start_time is not None
            and self.end_time is not None
            and self.end_time < self.start_time
        ):
            raise ValueError("end_time must be >= start_time")

    def to_params(self) -> dict[str, Any]:
        return _compact(
            {
                "symbol": self.symbol,
                "interval": self.interval,
                "startTime": self.start_time,
                "endTime": self.end_time,
            }
        )


@dataclass(frozen=True)
class RecentTradesQuery:
    symbol: str
    limit: int | None = None

    def __post_init__(self) -> None:
        _check_page(self.limit, None)

    def to_params(self) -> dict[str, Any]:
        return _compact({"symbol": self.symbol, "limit": self.limit})


@dataclass(frozen=True)
class HistoricalTradesQuery:
    symbol: str
    limit: int | None = None
    offset: int | None = None

    def __post_init__(self) -> None:
        _check_page(self.limit, self.offset)

    def to_params(self) -> dict[str, Any]:
        return _compact({"symbol": self.symbol, "limit": self.limit, "offset": self.offset})


@dataclass(frozen=True)
class PageQuery:
    """Pagination for deposit and withdrawal history."""

    limit: int | None = None
    offset: int | None = None

    def __post_init__(self) -> None:
        _check_page(self.limit, self.offset)

    def to_params(self) -> dict[str, Any]:
        return _compact({"limit": self.limit, "offset": self.offset})


@dataclass(frozen=True)
class WithdrawalRequest:
    """Withdrawal of an asset to an external address."""

    address: str
    blockchain: str
    quantity: Decimal
    symbol: str
    client_id: str | None = None
    two_factor_token: str | None = None

    def __post_init__(self) -> None:
        if Decimal(self.quantity) <= 0:
            raise ValueError(f"quantity must be > 0, got {self.quantity}")

    def to_params(self) -> dict[str, Any]:
        return _compact(
            {
                "address": self.address,
                "blockchain": self.blockchain,
                "clientId": self.client_id,
                "quantity": Decimal(self.quantity),
                "symbol": self.symbol,
                "twoFactorToken": self.two_factor_token,
            }
        )


@dataclass(frozen=True)
class OrderHistoryQuery:
    order_id: str | None = None
    symbol: str | None = None
    limit: int | None = None
    offset: int | None = None

    def __post_init__(self) -> None:
        _check_page(self.limit, self.offset)

    def to_params(self) -> dict[str, Any]:
        return _compact(
            {
                "orderId": self.order_id,
                "symbol": self.symbol,
                "limit": self.limit,
                "offset": self.offset,
            }
        )


@dataclass(frozen=True)
class FillHistoryQuery:
    """Fill history; from_ms/to_ms bound the fill timestamps."""

    order_id: str | None = None
    symbol: str | None = None
    from_ms: int | None = None
    to_ms: int | None = None
    limit: int | None = None
    offset: int | None = None

    def __post_init__(self) -> None:
        _check_page(self.limit, self.offset)

    def to_params(self) -> dict[str, Any]:
        return _compact(
            {
                "orderId": self.order_id,
                "from": self.from_ms,
                "to": self.to_ms,
                "symbol": self.symbol,
                "limit": self.limit,
                "offset": self.offset,
            }
        )


@dataclass(frozen=True)
class OrderRef:
    """Identifies one order by exchange id or client id (query and cancel)."""

    symbol: str
    order_id: str | None = None
    client_id: int | None = None

    def __post_init__(self) -> None:
        if self.order_id is None and self.client_id is None:
            raise ValueError("order_id or client_id is required")

    def to_params(self) -> dict[str, Any]:
        return _compact(
            {"clientId": self.client_id, "orderId": self.order_id, "symbol": self.symbol}
        )


@dataclass(frozen=True)
class OrderRequest:
    """New order submission."""

    symbol: str
    side: Side
    order_type: OrderType
    quantity: Decimal | None = None
    price: Decimal | None = None
    quote_quantity: Decimal | None = None
    trigger_price: Decimal | None = None
    time_in_force: TimeInForce | None = None
    post_only: bool | None = None
    self_trade_prevention: SelfTradePrevention | None = None
    client_id: int | None = None

    def __post_init__(self) -> None:
        if self.order_type == OrderType.LIMIT:
            if self.price is None or self.quantity is None:
                raise ValueError("Limit orders require price and quantity")
        elif self.quantity is None and self.quote_quantity is None:
            raise ValueError("Market orders require quantity or quote_quantity")
        if self.post_only and self.order_type != OrderType.LIMIT:
            raise ValueError("post_only is only valid for Limit orders")

    def to_params(self) -> dict[str, Any]:
        return _compact(
            {
                "clientId": self.client_id,
                "orderType": self.order_type,
                "postOnly": self.post_only,
                "price": self.price,
                "quantity": self.quantity,
                "quoteQuantity": self.quote_quantity,
                "selfTradePrevention": self.self_trade_prevention,
                "side": self.side,
                "symbol": self.symbol,
                "timeInForce": self.time_in_force,
                "triggerPrice": self.trigger_price,
            }
        )
