"""
Typed result records for Backpack responses.

Records keep only the domain fields of each response (extra="ignore"
drops exchange-added fields). A missing required field, or one of the
wrong shape, surfaces as DecodeError rather than a partially-filled record.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, TypeVar

import orjson
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from backpack_client.errors import DecodeError, StreamDecodeError

RecordT = TypeVar("RecordT", bound=BaseModel)


class Record(BaseModel):
    """Base for REST result records: camelCase on the wire, frozen, extra dropped."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# System / market data
# =============================================================================


class SystemStatus(Record):
    status: str
    message: str | None = None


class Token(Record):
    """One blockchain on which an asset can be moved."""

    blockchain: str
    deposit_enabled: bool
    minimum_deposit: Decimal
    withdraw_enabled: bool
    minimum_withdrawal: Decimal
    maximum_withdrawal: Decimal | None = None
    withdrawal_fee: Decimal


class Asset(Record):
    symbol: str
    tokens: list[Token] = Field(default_factory=list)


class PriceFilter(Record):
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    tick_size: Decimal


class QuantityFilter(Record):
    min_quantity: Decimal | None = None
    max_quantity: Decimal | None = None
    step_size: Decimal


class LeverageFilter(Record):
    min_leverage: int | None = None
    max_leverage: int | None = None
    step_size: int | None = None


class MarketFilters(Record):
    price: PriceFilter
    quantity: QuantityFilter
    leverage: LeverageFilter | None = None

    @model_validator(mode="before")
    @classmethod
    def nest_flat_filters(cls, data: Any) -> Any:
        """Accept the flat filter layout (minPrice, tickSize, ...) as well as the nested one."""
        if not isinstance(data, dict) or "price" in data:
            return data
        return {
            "price": {
                "minPrice": data.get("minPrice"),
                "maxPrice": data.get("maxPrice"),
                "tickSize": data.get("tickSize"),
            },
            "quantity": {
                "minQuantity": data.get("minQuantity"),
                "maxQuantity": data.get("maxQuantity"),
                "stepSize": data.get("stepSize"),
            },
            "leverage": {
                "minLeverage": data.get("minLeverage"),
                "maxLeverage": data.get("maxLeverage"),
                "stepSize": data.get("leverageStepSize"),
            },
        }


class Market(Record):
    symbol: str
    base_symbol: str
    quote_symbol: str
    filters: MarketFilters


class Ticker(Record):
    """24h summary statistics for one market."""

    symbol: str
    first_price: Decimal
    last_price: Decimal
    price_change: Decimal
    price_change_percent: Decimal
    high: Decimal
    low: Decimal
    volume: Decimal
    quote_volume: Decimal
    trades: int


class Depth(Record):
    """Order book levels as (price, quantity) pairs."""

    asks: list[tuple[Decimal, Decimal]]
    bids: list[tuple[Decimal, Decimal]]
    last_update_id: str | None = None


class Kline(Record):
    start: str
    end: str | None = None
    open: Decimal | None = None
    high: Decimal | None = None
    low: Decimal | None = None
    close: Decimal | None = None
    volume: Decimal
    trades: int


class Trade(Record):
    id: int
    price: Decimal
    quantity: Decimal
    quote_quantity: Decimal
    timestamp: int
    is_buyer_maker: bool


# =============================================================================
# Capital
# =============================================================================


class Balance(Record):
    available: Decimal
    locked: Decimal
    staked: Decimal

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> Decimal:
        return self.available + self.locked + self.staked


class Deposit(Record):
    id: int
    to_address: str | None = None
    from_address: str | None = None
    confirmation_block_number: int | None = None
    provider_id: str | None = None
    source: str
    status: str
    transaction_hash: str | None = None
    subaccount_id: int | None = None
    symbol: str
    quantity: Decimal
    created_at: str


class DepositAddress(Record):
    address: str


class Withdrawal(Record):
    id: int
    blockchain: str
    client_id: str | None = None
    identifier: str | None = None
    quantity: Decimal
    fee: Decimal
    symbol: str
    status: str
    subaccount_id: int | None = None
    to_address: str
    transaction_hash: str | None = None
    created_at: str


# =============================================================================
# Orders and history
# =============================================================================


class Order(Record):
    """An order as returned by order query, execute, list and cancel."""

    id: str
    client_id: int | None = None
    order_type: str
    symbol: str
    side: str
    price: Decimal | None = None
    trigger_price: Decimal | None = None
    quantity: Decimal | None = None
    executed_quantity: Decimal | None = None
    quote_quantity: Decimal | None = None
    executed_quote_quantity: Decimal | None = None
    time_in_force: str | None = None
    self_trade_prevention: str | None = None
    post_only: bool | None = None
    status: str
    created_at: int | None = None


class OrderHistoryEntry(Record):
    id: str
    order_type: str
    symbol: str
    side: str
    price: Decimal | None = None
    trigger_price: Decimal | None = None
    quantity: Decimal | None = None
    quote_quantity: Decimal | None = None
    time_in_force: str | None = None
    self_trade_prevention: str | None = None
    post_only: bool | None = None
    status: str


class Fill(Record):
    trade_id: int | None = None
    order_id: str
    symbol: str
    side: str
    price: Decimal
    quantity: Decimal
    fee: Decimal
    fee_symbol: str
    is_maker: bool
    timestamp: str


# =============================================================================
# Stream events
# =============================================================================


class OrderUpdateEvent(BaseModel):
    """
    One order-lifecycle notification from the order update stream.

    Frames use single-letter keys; see the field aliases. Timestamps are
    microseconds since epoch.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    event_type: str = Field(..., alias="e", min_length=1)
    event_time: int | None = Field(default=None, alias="E")
    symbol: str | None = Field(default=None, alias="s")
    client_order_id: str | None = Field(default=None, alias="c")
    side: str | None = Field(default=None, alias="S")
    order_type: str | None = Field(default=None, alias="o")
    time_in_force: str | None = Field(default=None, alias="f")
    quantity: Decimal | None = Field(default=None, alias="q")
    quote_quantity: Decimal | None = Field(default=None, alias="Q")
    price: Decimal | None = Field(default=None, alias="p")
    trigger_price: Decimal | None = Field(default=None, alias="P")
    order_state: str | None = Field(default=None, alias="X")
    order_id: str | None = Field(default=None, alias="i")
    trade_id: str | None = Field(default=None, alias="t")
    fill_quantity: Decimal | None = Field(default=None, alias="l")
    executed_quantity: Decimal | None = Field(default=None, alias="z")
    executed_quote_quantity: Decimal | None = Field(default=None, alias="Z")
    fill_price: Decimal | None = Field(default=None, alias="L")
    is_maker: bool | None = Field(default=None, alias="m")
    fee: Decimal | None = Field(default=None, alias="n")
    fee_symbol: str | None = Field(default=None, alias="N")
    self_trade_prevention: str | None = Field(default=None, alias="V")
    engine_time: int | None = Field(default=None, alias="T")

    @field_validator("client_order_id", "order_id", "trade_id", mode="before")
    @classmethod
    def ids_as_str(cls, v: Any) -> Any:
        """Ids arrive as numbers or strings; keep them as strings."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @classmethod
    def from_frame(cls, frame: str | bytes | dict[str, Any]) -> OrderUpdateEvent:
        """
        Decode one inbound frame.

        Raises:
            StreamDecodeError: If the frame is not JSON or not an order update.
        """
        if isinstance(frame, dict):
            data = frame
        else:
            try:
                data = orjson.loads(frame)
            except orjson.JSONDecodeError as e:
                raise StreamDecodeError("Frame is not valid JSON", frame=frame) from e
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise StreamDecodeError(
                f"Frame is not an order update: {e.error_count()} errors",
                frame=frame if not isinstance(frame, dict) else None,
            ) from e


# =============================================================================
# Decoding helpers
# =============================================================================


def decode_record(model: type[RecordT], data: Any) -> RecordT:
    """Decode one record, raising DecodeError on shape mismatch."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise DecodeError(f"Cannot decode {model.__name__}: {e}") from e


def decode_list(model: type[RecordT], data: Any) -> list[RecordT]:
    """Decode a JSON array of records."""
    try:
        return TypeAdapter(list[model]).validate_python(data)  # type: ignore[valid-type]
    except ValidationError as e:
        raise DecodeError(f"Cannot decode list[{model.__name__}]: {e}") from e


def decode_mapping(model: type[RecordT], data: Any) -> dict[str, RecordT]:
    """Decode a JSON object of records keyed by name (e.g. balances by asset)."""
    try:
        return TypeAdapter(dict[str, model]).validate_python(data)  # type: ignore[valid-type]
    except ValidationError as e:
        raise DecodeError(f"Cannot decode dict[str, {model.__name__}]: {e}") from e
