"""Fixtures for feed tests.

Sinks are in-memory fakes so the hub can be exercised without sockets.
"""

import asyncio
import json

import pytest


class FakeSink:
    """Records every message; can be told to fail, or to stall on send or close."""

    def __init__(self, fail: bool = False, delay: float = 0.0, close_delay: float = 0.0) -> None:
        self.messages: list[str] = []
        self.closed = False
        self.close_calls = 0
        self.fail = fail
        self.delay = delay
        self.close_delay = close_delay

    async def send(self, message: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ConnectionError("sink transport closed")
        self.messages.append(message)

    async def close(self) -> None:
        self.close_calls += 1
        if self.close_delay:
            await asyncio.sleep(self.close_delay)
        self.closed = True

    def envelopes(self) -> list[dict]:
        return [json.loads(m) for m in self.messages]

    def types(self) -> list[str]:
        return [e["type"] for e in self.envelopes()]


@pytest.fixture
def make_sink():
    """Factory for FakeSink instances."""
    return FakeSink
