"""Fixtures for subscriber tests.

The session is driven through fake transports and a fake timer, so no test
here opens a socket or waits out a real reconnect delay.
"""

import asyncio

import pytest


class FakeConnection:
    """Yields scripted frames, then ends, raises, or stays open until closed."""

    def __init__(self, frames=(), error: Exception | None = None, hold_open: bool = False) -> None:
        self._frames = list(frames)
        self._error = error
        self._hold_open = hold_open
        self._closed_event = asyncio.Event()
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for frame in self._frames:
            yield frame
        if self._error is not None:
            raise self._error
        if self._hold_open:
            await self._closed_event.wait()

    async def close(self) -> None:
        self.closed = True
        self._closed_event.set()


class FakeTransport:
    """Returns scripted connect outcomes in order, then refuses forever.

    An outcome is a FakeConnection to hand out or an exception to raise.
    """

    def __init__(self, outcomes=()) -> None:
        self._outcomes = list(outcomes)
        self.connect_calls = 0

    async def connect(self):
        self.connect_calls += 1
        outcome = self._outcomes.pop(0) if self._outcomes else ConnectionRefusedError("refused")
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeTimer:
    """Stands in for asyncio.sleep: records each delay and returns at once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def make_connection():
    return FakeConnection


@pytest.fixture
def make_transport():
    return FakeTransport


@pytest.fixture
def fake_timer():
    return FakeTimer()
