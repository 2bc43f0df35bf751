"""Factories that wire the feed components together."""

from __future__ import annotations

import logging

from .config import FeedSettings
from .hub import BroadcastHub
from .interface import EventProducer

logger = logging.getLogger(__name__)


def create_hub(settings: FeedSettings) -> BroadcastHub:
    """Create an unattached hub using the configured per-sink send timeout."""
    return BroadcastHub(send_timeout=settings.send_timeout)


def create_event_producer(hub: BroadcastHub, settings: FeedSettings) -> EventProducer:
    """Create the producer that feeds ``hub``.

    Returns an unstarted producer. Caller must await producer.start().
    """
    from .simulator import ArbitrageSimulator

    logger.info(
        "Event producer: arbitrage simulator (%s, %.1fs interval)",
        "/".join(settings.chains),
        settings.update_interval,
    )
    return ArbitrageSimulator(
        hub=hub,
        chains=settings.chains,
        update_interval=settings.update_interval,
    )
