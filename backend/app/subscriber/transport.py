"""Transports a SubscriberSession can read envelopes from."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

import websockets


class Connection(Protocol):
    """An open, message-oriented connection.

    Iterating yields raw text frames. Iteration ends on a clean close and
    raises on an abnormal one.
    """

    def __aiter__(self) -> AsyncIterator[str | bytes]: ...

    async def close(self) -> None: ...


class Transport(Protocol):
    async def connect(self) -> Connection: ...


class WebSocketTransport:
    """Transport backed by a ``websockets`` client connection."""

    def __init__(self, url: str, open_timeout: float = 10.0) -> None:
        self._url = url
        self._open_timeout = open_timeout

    @property
    def url(self) -> str:
        return self._url

    async def connect(self) -> Connection:
        # Handshake errors (refused, timeout, bad status) propagate to the session
        return await websockets.connect(self._url, open_timeout=self._open_timeout)

    def __repr__(self) -> str:
        return f"WebSocketTransport({self._url!r})"
