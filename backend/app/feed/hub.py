"""Broadcast hub that fans feed envelopes out to connected sinks."""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from threading import Lock
from typing import Protocol

from .codec import encode
from .models import Envelope, connection_confirmed

logger = logging.getLogger(__name__)

DEFAULT_WELCOME = "Connected to arbitrage feed"


class Sink(Protocol):
    """Writable endpoint of one connected subscriber."""

    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...


@dataclass(frozen=True, slots=True)
class SinkHandle:
    """Opaque registration token returned by BroadcastHub.accept()."""

    id: int


class BroadcastHub:
    """Fans envelopes out to every registered sink, best effort.

    Producers call publish(); transport listeners call accept() and remove().
    A sink whose send fails or exceeds ``send_timeout`` is evicted and closed;
    the other sinks are unaffected. Closing a sink is bounded by the same
    timeout, so a peer that has stopped reading cannot stall publish() or close().

    The registry is guarded by a lock so accept/remove may be called from any
    thread. Sends run outside the lock on a snapshot of the registry.
    """

    def __init__(self, send_timeout: float = 1.0, welcome_message: str = DEFAULT_WELCOME) -> None:
        self._sinks: dict[SinkHandle, Sink] = {}
        self._lock = Lock()
        self._ids = itertools.count(1)
        self._send_timeout = send_timeout
        self._welcome = welcome_message

    async def accept(self, sink: Sink) -> SinkHandle:
        """Register a sink after sending it a ConnectionConfirmed envelope.

        The confirmation goes out before registration, so it is always the
        first envelope the sink sees. If it cannot be delivered, the sink is
        closed and the returned handle is already unregistered.
        """
        with self._lock:
            handle = SinkHandle(next(self._ids))

        welcome = encode(connection_confirmed(self._welcome))
        try:
            await asyncio.wait_for(sink.send(welcome), timeout=self._send_timeout)
        except Exception as e:
            logger.warning("Sink %d rejected connection confirmation: %s", handle.id, e)
            await self._close_sink(handle, sink)
            return handle

        with self._lock:
            self._sinks[handle] = sink
            count = len(self._sinks)
        logger.info("Sink %d connected. Total sinks: %d", handle.id, count)
        return handle

    def remove(self, handle: SinkHandle) -> None:
        """Unregister a sink. Unknown or already-removed handles are a no-op."""
        self._pop(handle)

    async def publish(self, envelope: Envelope) -> int:
        """Deliver an envelope to all registered sinks concurrently.

        Returns once every send has completed, failed or timed out. Returns the
        number of sinks that received the envelope. Never raises because of a
        broken sink.
        """
        message = encode(envelope)
        with self._lock:
            targets = list(self._sinks.items())
        if not targets:
            return 0

        results = await asyncio.gather(
            *(self._deliver(handle, sink, message) for handle, sink in targets)
        )
        delivered = sum(results)
        logger.debug("Published %s to %d/%d sinks", envelope.type, delivered, len(targets))
        return delivered

    async def close(self) -> None:
        """Unregister and close every sink."""
        with self._lock:
            sinks = list(self._sinks.items())
            self._sinks.clear()
        await asyncio.gather(*(self._close_sink(handle, sink) for handle, sink in sinks))
        logger.info("Broadcast hub closed (%d sinks released)", len(sinks))

    @property
    def sink_count(self) -> int:
        """Number of currently registered sinks."""
        with self._lock:
            return len(self._sinks)

    def __len__(self) -> int:
        return self.sink_count

    def __contains__(self, handle: SinkHandle) -> bool:
        with self._lock:
            return handle in self._sinks

    # --- Internal ---

    def _pop(self, handle: SinkHandle) -> Sink | None:
        with self._lock:
            sink = self._sinks.pop(handle, None)
            count = len(self._sinks)
        if sink is not None:
            logger.info("Sink %d disconnected. Total sinks: %d", handle.id, count)
        return sink

    async def _deliver(self, handle: SinkHandle, sink: Sink, message: str) -> bool:
        # Skip sinks removed after the snapshot was taken
        if handle not in self:
            return False
        try:
            await asyncio.wait_for(sink.send(message), timeout=self._send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(
                "Sink %d did not accept a message within %.1fs; evicting",
                handle.id,
                self._send_timeout,
            )
        except Exception as e:
            logger.warning("Failed to send to sink %d: %s; evicting", handle.id, e)

        # Only the caller that actually unregisters the sink closes it
        if self._pop(handle) is not None:
            await self._close_sink(handle, sink)
        return False

    async def _close_sink(self, handle: SinkHandle, sink: Sink) -> None:
        # A stalled peer may hang on close as well as on send
        try:
            await asyncio.wait_for(sink.close(), timeout=self._send_timeout)
        except asyncio.TimeoutError:
            logger.warning("Sink %d did not close within %.1fs; abandoning it", handle.id, self._send_timeout)
        except Exception as e:
            logger.debug("Error closing sink %d: %s", handle.id, e)
