"""Tests for the subscriber session factory and WebSocket transport."""

import os
from unittest.mock import AsyncMock, patch

import pytest

from app.feed.config import FeedSettings
from app.subscriber.factory import create_subscriber_session
from app.subscriber.session import SessionStatus, SubscriberSession
from app.subscriber.state import ClientStateStore
from app.subscriber.transport import WebSocketTransport


class TestFactory:
    """Tests for create_subscriber_session."""

    def test_creates_websocket_session(self):
        """Test that the session targets the configured feed URL."""
        session = create_subscriber_session(FeedSettings(feed_url="ws://feed:9001/ws"))

        assert isinstance(session, SubscriberSession)
        assert isinstance(session._transport, WebSocketTransport)
        assert session._transport.url == "ws://feed:9001/ws"
        assert session.status is SessionStatus.DISCONNECTED

    def test_reconnect_policy_from_settings(self):
        """Test that the fixed delay and attempt cap come from settings."""
        session = create_subscriber_session(FeedSettings(reconnect_delay=0.5, max_reconnect_attempts=3))
        assert session._reconnect_delay == 0.5
        assert session._max_attempts == 3

    def test_uses_supplied_store(self):
        """Test that a caller-owned store is used as is."""
        store = ClientStateStore()
        session = create_subscriber_session(FeedSettings(), store=store)
        assert session.store is store

    def test_reads_env_by_default(self):
        """Test that settings default to the FEED_* environment."""
        with patch.dict(os.environ, {"FEED_URL": "ws://from-env:1/ws"}, clear=True):
            session = create_subscriber_session()
        assert session._transport.url == "ws://from-env:1/ws"


@pytest.mark.asyncio
class TestWebSocketTransport:
    """Tests for WebSocketTransport with the websockets client mocked."""

    async def test_connect_passes_url_and_timeout(self):
        """Test that connect() opens the configured URL."""
        transport = WebSocketTransport("ws://feed:9001/ws", open_timeout=2.5)
        connection = object()

        with patch("app.subscriber.transport.websockets.connect", new=AsyncMock(return_value=connection)) as mock_connect:
            result = await transport.connect()

        assert result is connection
        mock_connect.assert_awaited_once_with("ws://feed:9001/ws", open_timeout=2.5)

    async def test_connect_errors_propagate(self):
        """Test that handshake failures reach the session."""
        transport = WebSocketTransport("ws://feed:9001/ws")

        with patch(
            "app.subscriber.transport.websockets.connect",
            new=AsyncMock(side_effect=ConnectionRefusedError("refused")),
        ):
            with pytest.raises(ConnectionRefusedError):
                await transport.connect()
