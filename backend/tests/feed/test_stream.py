"""Integration tests for the WebSocket feed endpoint and app lifecycle."""

import socket
import time

import pytest
from fastapi.testclient import TestClient

from app.feed.codec import decode
from app.feed.config import FeedSettings
from app.feed.hub import BroadcastHub
from app.main import create_app, run


def _settings(**overrides) -> FeedSettings:
    return FeedSettings(update_interval=0.01, **overrides)


def _wait_for_sinks(client: TestClient, expected: int, timeout: float = 2.0) -> int:
    deadline = time.monotonic() + timeout
    while True:
        sinks = client.get("/api/feed/health").json()["sinks"]
        if sinks == expected or time.monotonic() > deadline:
            return sinks
        time.sleep(0.01)


class TestFeedEndpoint:
    """End-to-end tests through FastAPI's TestClient."""

    def test_first_frame_is_connection_confirmed(self):
        """Test that a subscriber is greeted before any published envelope."""
        with TestClient(create_app(_settings())) as client:
            with client.websocket_connect("/ws") as ws:
                first = ws.receive_json()

        assert first["type"] == "ConnectionConfirmed"
        assert first["data"]["message"]

    def test_published_envelopes_are_valid(self):
        """Test that frames after the greeting decode as envelopes."""
        with TestClient(create_app(_settings())) as client:
            with client.websocket_connect("/ws") as ws:
                ws.receive_json()
                frames = [ws.receive_text() for _ in range(5)]

        envelopes = [decode(frame) for frame in frames]
        assert all(e.type != "ConnectionConfirmed" for e in envelopes)

    def test_health_counts_sinks(self):
        """Test that the health endpoint reports connected subscribers."""
        with TestClient(create_app(_settings())) as client:
            assert client.get("/api/feed/health").json() == {"status": "ok", "sinks": 0}

            with client.websocket_connect("/ws") as ws:
                ws.receive_json()
                ws.receive_json()  # a published frame proves registration
                assert _wait_for_sinks(client, 1) == 1

            assert _wait_for_sinks(client, 0) == 0

    def test_binary_frame_is_discarded(self):
        """Test that a subscriber sending bytes stays attached and keeps receiving."""
        with TestClient(create_app(_settings())) as client:
            with client.websocket_connect("/ws") as ws:
                ws.receive_json()
                ws.send_bytes(b"\x00")
                ws.send_text("ignored")
                frame = ws.receive_json()
                assert _wait_for_sinks(client, 1) == 1

            assert _wait_for_sinks(client, 0) == 0

        assert frame["type"] != "ConnectionConfirmed"

    def test_app_owns_its_hub(self):
        """Test that each app gets its own hub instance."""
        first = create_app(_settings())
        second = create_app(_settings())
        assert isinstance(first.state.hub, BroadcastHub)
        assert first.state.hub is not second.state.hub

    def test_lifespan_starts_and_stops_producer(self):
        """Test that the producer runs only while the app is up."""
        app = create_app(_settings())
        assert not app.state.producer.is_running

        with TestClient(app):
            assert app.state.producer.is_running

        assert not app.state.producer.is_running


class TestRun:
    """Tests for the server entrypoint."""

    def test_bind_failure_is_reported(self):
        """Test that a taken port surfaces as RuntimeError instead of running silently."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

            with pytest.raises(RuntimeError, match="failed to start"):
                run(_settings(host="127.0.0.1", port=port))
