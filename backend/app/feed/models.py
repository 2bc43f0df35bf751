"""Data models for feed event envelopes.

Every message on the wire is an envelope ``{"type", "timestamp", "data"}``.
``type`` is the only discriminant: each variant has exactly one payload shape.
"""

from __future__ import annotations

import time
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

TradeStatus = Literal["executed", "failed", "pending"]
TradeKind = Literal["ASSET_A_TARGETED", "ASSET_B_TARGETED"]


def now_ms() -> int:
    """Current wall-clock time in Unix milliseconds."""
    return int(time.time() * 1000)


def _stamp(timestamp: int | None) -> int:
    return now_ms() if timestamp is None else timestamp


class WireModel(BaseModel):
    """Immutable model serialized with camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_dict(self) -> dict:
        """Serialize for JSON transmission."""
        return self.model_dump(by_alias=True, mode="json")


# --- Payloads ---


class Price(WireModel):
    """Exchange rate between the two tracked assets on one chain."""

    rate_a_to_b: float = Field(alias="rateAtoB", gt=0)
    rate_b_to_a: float = Field(alias="rateBtoA", gt=0)
    timestamp: int


class Balance(WireModel):
    """Holdings on one chain. ``total`` is the combined value of both assets."""

    asset_a: float
    asset_b: float
    total: float
    timestamp: int


class PriceUpdate(WireModel):
    chain: str
    price: Price


class BalanceUpdate(WireModel):
    chain: str
    balance: Balance


class TradeExecuted(WireModel):
    source_chain: str
    target_chain: str
    source_price: float
    target_price: float
    amount: float
    gross_profit: float
    gas_cost: float
    net_profit: float
    status: TradeStatus
    kind: TradeKind
    timestamp: int


class StatsUpdate(WireModel):
    total_trades: int = Field(ge=0)
    profitable_trades: int = Field(ge=0)
    total_profit: float
    win_rate: float = Field(ge=0, le=100)
    total_portfolio_value: float
    timestamp: int


class OpportunityFound(WireModel):
    kind: TradeKind
    buy_chain: str
    sell_chain: str
    buy_price: float
    sell_price: float
    trade_amount: float
    gross_profit: float
    net_profit: float
    threshold: float
    timestamp: int


class ConnectionConfirmed(WireModel):
    message: str


# --- Envelopes ---


class PriceUpdateEvent(WireModel):
    type: Literal["PriceUpdate"] = "PriceUpdate"
    timestamp: int
    data: PriceUpdate


class BalanceUpdateEvent(WireModel):
    type: Literal["BalanceUpdate"] = "BalanceUpdate"
    timestamp: int
    data: BalanceUpdate


class TradeExecutedEvent(WireModel):
    type: Literal["TradeExecuted"] = "TradeExecuted"
    timestamp: int
    data: TradeExecuted


class StatsUpdateEvent(WireModel):
    type: Literal["StatsUpdate"] = "StatsUpdate"
    timestamp: int
    data: StatsUpdate


class OpportunityFoundEvent(WireModel):
    type: Literal["OpportunityFound"] = "OpportunityFound"
    timestamp: int
    data: OpportunityFound


class ConnectionConfirmedEvent(WireModel):
    type: Literal["ConnectionConfirmed"] = "ConnectionConfirmed"
    timestamp: int
    data: ConnectionConfirmed


Envelope = Annotated[
    Union[
        PriceUpdateEvent,
        BalanceUpdateEvent,
        TradeExecutedEvent,
        StatsUpdateEvent,
        OpportunityFoundEvent,
        ConnectionConfirmedEvent,
    ],
    Field(discriminator="type"),
]

EVENT_TYPES: frozenset[str] = frozenset(
    {
        "PriceUpdate",
        "BalanceUpdate",
        "TradeExecuted",
        "StatsUpdate",
        "OpportunityFound",
        "ConnectionConfirmed",
    }
)


# --- Constructors used by producers ---


def price_update(chain: str, price: Price, timestamp: int | None = None) -> PriceUpdateEvent:
    return PriceUpdateEvent(
        timestamp=_stamp(timestamp),
        data=PriceUpdate(chain=chain, price=price),
    )


def balance_update(chain: str, balance: Balance, timestamp: int | None = None) -> BalanceUpdateEvent:
    return BalanceUpdateEvent(
        timestamp=_stamp(timestamp),
        data=BalanceUpdate(chain=chain, balance=balance),
    )


def trade_executed(trade: TradeExecuted, timestamp: int | None = None) -> TradeExecutedEvent:
    return TradeExecutedEvent(timestamp=_stamp(timestamp), data=trade)


def stats_update(stats: StatsUpdate, timestamp: int | None = None) -> StatsUpdateEvent:
    return StatsUpdateEvent(timestamp=_stamp(timestamp), data=stats)


def opportunity_found(
    opportunity: OpportunityFound, timestamp: int | None = None
) -> OpportunityFoundEvent:
    return OpportunityFoundEvent(timestamp=_stamp(timestamp), data=opportunity)


def connection_confirmed(message: str, timestamp: int | None = None) -> ConnectionConfirmedEvent:
    return ConnectionConfirmedEvent(
        timestamp=_stamp(timestamp),
        data=ConnectionConfirmed(message=message),
    )
