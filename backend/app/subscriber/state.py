"""Subscriber-local state, the envelope reducer, and a thread-safe store."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from threading import Lock
from types import MappingProxyType

from app.feed.models import Balance, OpportunityFound, Price, StatsUpdate, TradeExecuted

logger = logging.getLogger(__name__)

TRADE_CAPACITY = 20
OPPORTUNITY_CAPACITY = 10
HISTORY_CAPACITY = 100


@dataclass(frozen=True, slots=True)
class PortfolioPoint:
    timestamp: int
    value: float


@dataclass
class ClientState:
    """Mutable state owned by a single subscriber session.

    prices, balances and stats are latest-wins by arrival order. Trades and
    opportunities are newest first; portfolio history is in arrival order.
    All three sequences drop their oldest entry on overflow.
    """

    connected: bool = False
    prices: dict[str, Price] = field(default_factory=dict)
    balances: dict[str, Balance] = field(default_factory=dict)
    recent_trades: deque[TradeExecuted] = field(default_factory=lambda: deque(maxlen=TRADE_CAPACITY))
    opportunities: deque[OpportunityFound] = field(
        default_factory=lambda: deque(maxlen=OPPORTUNITY_CAPACITY)
    )
    stats: StatsUpdate | None = None
    portfolio_history: deque[PortfolioPoint] = field(
        default_factory=lambda: deque(maxlen=HISTORY_CAPACITY)
    )


@dataclass(frozen=True, slots=True)
class ClientSnapshot:
    """Immutable point-in-time copy of a ClientState."""

    version: int
    connected: bool
    prices: Mapping[str, Price]
    balances: Mapping[str, Balance]
    recent_trades: tuple[TradeExecuted, ...]
    opportunities: tuple[OpportunityFound, ...]
    stats: StatsUpdate | None
    portfolio_history: tuple[PortfolioPoint, ...]


# --- Reducer ---


def _on_price(state: ClientState, data) -> None:
    state.prices[data.chain] = data.price


def _on_balance(state: ClientState, data) -> None:
    state.balances[data.chain] = data.balance


def _on_trade(state: ClientState, data) -> None:
    state.recent_trades.appendleft(data)  # full deque drops the oldest from the right


def _on_stats(state: ClientState, data) -> None:
    state.stats = data
    state.portfolio_history.append(
        PortfolioPoint(timestamp=data.timestamp, value=data.total_portfolio_value)
    )


def _on_opportunity(state: ClientState, data) -> None:
    state.opportunities.appendleft(data)


def _on_confirmed(state: ClientState, data) -> None:
    logger.info("Feed connection confirmed: %s", data.message)


_HANDLERS: dict[str, Callable[[ClientState, object], None]] = {
    "PriceUpdate": _on_price,
    "BalanceUpdate": _on_balance,
    "TradeExecuted": _on_trade,
    "StatsUpdate": _on_stats,
    "OpportunityFound": _on_opportunity,
    "ConnectionConfirmed": _on_confirmed,
}


def reduce(state: ClientState, envelope) -> ClientState:
    """Fold one envelope into ``state`` in place and return it.

    Dispatches on ``envelope.type`` only. Unknown types leave the state as is.
    Does no I/O.
    """
    handler = _HANDLERS.get(envelope.type)
    if handler is None:
        logger.debug("No reducer for event type %r", envelope.type)
        return state
    handler(state, envelope.data)
    return state


# --- Store ---


class ClientStateStore:
    """Thread-safe container for a ClientState.

    Writer: the owning SubscriberSession (one at a time).
    Readers: presentation code, via snapshot() or change listeners.
    """

    def __init__(self) -> None:
        self._state = ClientState()
        self._lock = Lock()
        self._version: int = 0  # Monotonically increasing; bumped on every change
        self._listeners: list[Callable[[ClientSnapshot], None]] = []

    def apply(self, envelope) -> None:
        """Reduce an envelope into the state and notify listeners."""
        with self._lock:
            reduce(self._state, envelope)
            self._version += 1
        self._notify()

    def set_connected(self, connected: bool) -> None:
        with self._lock:
            if self._state.connected == connected:
                return
            self._state.connected = connected
            self._version += 1
        self._notify()

    def reset(self) -> None:
        """Discard all state (session start and teardown)."""
        with self._lock:
            self._state = ClientState()
            self._version += 1
        self._notify()

    def snapshot(self) -> ClientSnapshot:
        """Consistent copy of the current state. Safe to hold across updates."""
        with self._lock:
            return self._snapshot_locked()

    def subscribe(self, listener: Callable[[ClientSnapshot], None]) -> Callable[[], None]:
        """Call ``listener`` with a fresh snapshot after every change.

        Returns a function that unsubscribes the listener.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    @property
    def connected(self) -> bool:
        with self._lock:
            return self._state.connected

    @property
    def version(self) -> int:
        """Current version counter. Useful for change detection."""
        with self._lock:
            return self._version

    # --- Internal ---

    def _snapshot_locked(self) -> ClientSnapshot:
        s = self._state
        return ClientSnapshot(
            version=self._version,
            connected=s.connected,
            prices=MappingProxyType(dict(s.prices)),
            balances=MappingProxyType(dict(s.balances)),
            recent_trades=tuple(s.recent_trades),
            opportunities=tuple(s.opportunities),
            stats=s.stats,
            portfolio_history=tuple(s.portfolio_history),
        )

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
            if not listeners:
                return
            snap = self._snapshot_locked()
        for listener in listeners:
            try:
                listener(snap)
            except Exception:
                logger.exception("State listener %r failed", listener)
