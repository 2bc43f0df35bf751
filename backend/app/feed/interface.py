"""Abstract interface for feed event producers."""

from __future__ import annotations

from abc import ABC, abstractmethod


class EventProducer(ABC):
    """Contract for components that publish envelopes into a BroadcastHub.

    Producers own a background task and push envelopes on their own schedule.
    They never talk to subscribers directly; the hub does the fan-out.

    Lifecycle:
        producer = create_event_producer(hub, settings)
        await producer.start()
        # ... app runs ...
        await producer.stop()
    """

    @abstractmethod
    async def start(self) -> None:
        """Begin publishing envelopes.

        Starts a background task. Calling start() on a running producer is a
        no-op.
        """

    @abstractmethod
    async def stop(self) -> None:
        """Stop the background task.

        Safe to call multiple times. After stop(), the producer will not
        publish again.
        """

    @property
    @abstractmethod
    def is_running(self) -> bool:
        """Whether the background task is alive."""
