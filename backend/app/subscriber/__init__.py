"""Subscriber side of the arbitrage feed.

Public API:
    SubscriberSession   - Connection state machine with fixed-delay reconnects
    SessionStatus       - DISCONNECTED / CONNECTING / CONNECTED / PERMANENTLY_FAILED
    ClientStateStore    - Thread-safe, observable subscriber state
    ClientSnapshot      - Immutable copy of the state for readers
    reduce              - Fold one envelope into a ClientState
    price_difference    - Spread between two chains' rates
    total_portfolio_value - Sum of per-chain balance totals
    create_subscriber_session - Factory for a WebSocket-backed session
"""

from .factory import create_subscriber_session
from .metrics import PriceDifference, price_difference, total_portfolio_value
from .session import SessionStatus, SubscriberSession
from .state import ClientSnapshot, ClientState, ClientStateStore, reduce
from .transport import WebSocketTransport

__all__ = [
    "ClientSnapshot",
    "ClientState",
    "ClientStateStore",
    "PriceDifference",
    "SessionStatus",
    "SubscriberSession",
    "WebSocketTransport",
    "create_subscriber_session",
    "price_difference",
    "reduce",
    "total_portfolio_value",
]
