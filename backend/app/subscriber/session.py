"""Subscriber connection lifecycle with fixed-delay reconnects."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from app.feed.codec import EnvelopeDecodeError, UnknownEventTypeError, decode

from .state import ClientStateStore
from .transport import Connection, Transport

logger = logging.getLogger(__name__)

RECONNECT_DELAY = 3.0
MAX_RECONNECT_ATTEMPTS = 10


class SessionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    PERMANENTLY_FAILED = "permanently_failed"


class SubscriberSession:
    """Keeps one subscriber attached to the feed and folds envelopes into state.

    State machine:
        DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED -> CONNECTING ...
        DISCONNECTED -> PERMANENTLY_FAILED   (reconnect budget exhausted)

    A failed connect or a lost connection schedules a reconnect after
    ``reconnect_delay`` seconds, up to ``max_reconnect_attempts`` times in a row.
    A successful handshake resets the counter. The delay is awaited through
    ``sleep`` so tests can substitute a fake timer.

    Lifecycle:
        session = SubscriberSession(WebSocketTransport(url))
        await session.start()
        # ... read session.store.snapshot() ...
        await session.stop()
    """

    def __init__(
        self,
        transport: Transport,
        store: ClientStateStore | None = None,
        reconnect_delay: float = RECONNECT_DELAY,
        max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._store = store or ClientStateStore()
        self._reconnect_delay = reconnect_delay
        self._max_attempts = max_reconnect_attempts
        self._sleep = sleep
        self._status = SessionStatus.DISCONNECTED
        self._attempts = 0
        self._connection: Connection | None = None
        self._task: asyncio.Task | None = None
        self._stopping = False
        self._status_listeners: list[Callable[[SessionStatus], None]] = []

    # --- Public API ---

    async def start(self) -> None:
        """Start connecting with a fresh, empty state. No-op if already running."""
        if self._task and not self._task.done():
            return
        self._stopping = False
        self._attempts = 0
        self._store.reset()
        self._set_status(SessionStatus.DISCONNECTED)
        self._task = asyncio.create_task(self._run(), name="subscriber-session")

    async def stop(self) -> None:
        """Tear the session down from any state.

        Cancels a pending reconnect, discards an in-flight connect, closes the
        active connection and discards the state. Safe to call repeatedly.
        """
        self._stopping = True
        task, self._task = self._task, None
        if task and not task.done():
            task.cancel()
            if task is not asyncio.current_task():
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        connection, self._connection = self._connection, None
        if connection is not None:
            await self._close_quietly(connection)

        if self._status is not SessionStatus.PERMANENTLY_FAILED:
            self._set_status(SessionStatus.DISCONNECTED)
        self._store.reset()

    async def wait_closed(self) -> None:
        """Wait until the run loop exits (permanent failure or stop())."""
        task = self._task
        if task is None:
            return
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    def add_status_listener(self, listener: Callable[[SessionStatus], None]) -> Callable[[], None]:
        """Call ``listener`` on every status transition. Returns an unsubscribe function."""
        self._status_listeners.append(listener)

        def remove() -> None:
            if listener in self._status_listeners:
                self._status_listeners.remove(listener)

        return remove

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def connected(self) -> bool:
        return self._status is SessionStatus.CONNECTED

    @property
    def reconnect_attempts(self) -> int:
        """Reconnects scheduled since the last successful handshake."""
        return self._attempts

    @property
    def store(self) -> ClientStateStore:
        return self._store

    # --- Internal ---

    async def _run(self) -> None:
        while True:
            self._set_status(SessionStatus.CONNECTING)
            connection = await self._open()
            if self._stopping:
                if connection is not None:
                    await self._close_quietly(connection)
                return
            if connection is not None:
                await self._consume(connection)

            self._set_status(SessionStatus.DISCONNECTED)
            if self._attempts >= self._max_attempts:
                logger.error("Max reconnect attempts reached (%d); giving up", self._max_attempts)
                self._set_status(SessionStatus.PERMANENTLY_FAILED)
                return

            self._attempts += 1
            logger.info(
                "Attempting to reconnect in %.1fs (%d/%d)",
                self._reconnect_delay,
                self._attempts,
                self._max_attempts,
            )
            await self._sleep(self._reconnect_delay)

    async def _open(self) -> Connection | None:
        try:
            return await self._transport.connect()
        except Exception as e:
            logger.warning("Failed to connect to feed: %s", e)
            return None

    async def _consume(self, connection: Connection) -> None:
        """Read until the connection ends, reducing each message in order."""
        self._connection = connection
        self._attempts = 0
        self._set_status(SessionStatus.CONNECTED)
        logger.info("Connected to feed")
        try:
            async for raw in connection:
                self._handle_message(raw)
            logger.info("Feed connection closed")
        except Exception as e:
            logger.warning("Feed connection lost: %s", e)
        finally:
            self._connection = None
            await self._close_quietly(connection)

    def _handle_message(self, raw: str | bytes) -> None:
        try:
            envelope = decode(raw)
        except UnknownEventTypeError as e:
            logger.info("Ignoring unknown event type %r", e.event_type)
            return
        except EnvelopeDecodeError as e:
            logger.warning("Dropping malformed envelope: %s", e)
            return
        self._store.apply(envelope)

    def _set_status(self, status: SessionStatus) -> None:
        if status is self._status:
            return
        self._status = status
        self._store.set_connected(status is SessionStatus.CONNECTED)
        for listener in list(self._status_listeners):
            try:
                listener(status)
            except Exception:
                logger.exception("Status listener %r failed", listener)

    @staticmethod
    async def _close_quietly(connection: Connection) -> None:
        try:
            await connection.close()
        except Exception as e:
            logger.debug("Error closing feed connection: %s", e)
