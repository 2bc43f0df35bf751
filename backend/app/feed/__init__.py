"""Arbitrage feed: producer side of the telemetry pipeline.

Public API:
    Envelope            - Tagged union of all wire event types
    encode / decode     - JSON wire framing with schema validation
    BroadcastHub        - Fans envelopes out to connected sinks
    EventProducer       - Abstract interface for envelope producers
    FeedSettings        - Runtime settings (FEED_* environment variables)
    create_hub          - Build a hub from settings
    create_event_producer - Factory for the configured producer
    create_stream_router  - FastAPI router exposing the hub over WebSocket
"""

from .codec import EnvelopeDecodeError, EnvelopeError, UnknownEventTypeError, decode, encode
from .config import DEFAULT_CHAINS, FeedSettings
from .factory import create_event_producer, create_hub
from .hub import BroadcastHub, Sink, SinkHandle
from .interface import EventProducer
from .models import Envelope
from .stream import create_stream_router

__all__ = [
    "DEFAULT_CHAINS",
    "BroadcastHub",
    "Envelope",
    "EnvelopeDecodeError",
    "EnvelopeError",
    "EventProducer",
    "FeedSettings",
    "Sink",
    "SinkHandle",
    "UnknownEventTypeError",
    "create_event_producer",
    "create_hub",
    "create_stream_router",
    "decode",
    "encode",
]
