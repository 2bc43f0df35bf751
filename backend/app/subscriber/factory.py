"""Factory for subscriber sessions."""

from __future__ import annotations

import logging

from app.feed.config import FeedSettings

from .session import SubscriberSession
from .state import ClientStateStore
from .transport import WebSocketTransport

logger = logging.getLogger(__name__)


def create_subscriber_session(
    settings: FeedSettings | None = None,
    store: ClientStateStore | None = None,
) -> SubscriberSession:
    """Create a session attached to ``settings.feed_url`` over WebSocket.

    Settings default to FeedSettings.from_env(). Returns an unstarted session.
    Caller must await session.start().
    """
    settings = settings or FeedSettings.from_env()
    logger.info("Subscriber session for %s", settings.feed_url)
    return SubscriberSession(
        transport=WebSocketTransport(settings.feed_url),
        store=store,
        reconnect_delay=settings.reconnect_delay,
        max_reconnect_attempts=settings.max_reconnect_attempts,
    )
