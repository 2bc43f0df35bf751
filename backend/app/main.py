"""FastAPI application and server entrypoint for the arbitrage feed."""

from __future__ import annotations

import copy
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from uvicorn.config import LOGGING_CONFIG

from app.feed import FeedSettings, create_event_producer, create_hub, create_stream_router

logger = logging.getLogger(__name__)


def logging_config() -> dict:
    """uvicorn's logging config with timestamps, extended to the app loggers."""
    config = copy.deepcopy(LOGGING_CONFIG)
    config["formatters"]["default"]["fmt"] = "%(asctime)s | %(levelprefix)s %(name)s | %(message)s"
    config["formatters"]["default"]["datefmt"] = "%Y-%m-%d %H:%M:%S"
    config["formatters"]["access"]["datefmt"] = "%Y-%m-%d %H:%M:%S"
    config["loggers"]["app"] = {"handlers": ["default"], "level": "INFO", "propagate": True}
    return config


def create_app(settings: FeedSettings | None = None) -> FastAPI:
    """Build the feed application.

    The hub is created here and handed to the router and the producer, so
    there is no module-level singleton. The lifespan starts the producer and,
    on shutdown, stops it and releases every connected sink.
    """
    settings = settings or FeedSettings.from_env()
    hub = create_hub(settings)
    producer = create_event_producer(hub, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await producer.start()
        logger.info("Feed started")
        try:
            yield
        finally:
            await producer.stop()
            await hub.close()
            logger.info("Feed stopped")

    app = FastAPI(title="Arbitrage Feed", lifespan=lifespan)
    app.state.hub = hub
    app.state.producer = producer
    app.include_router(create_stream_router(hub))
    return app


def run(settings: FeedSettings | None = None) -> None:
    """Serve the feed until interrupted.

    Raises RuntimeError if the server cannot start, e.g. the port is taken.
    """
    settings = settings or FeedSettings.from_env()
    server = uvicorn.Server(
        uvicorn.Config(
            create_app(settings),
            host=settings.host,
            port=settings.port,
            log_config=logging_config(),
        )
    )
    try:
        server.run()
    except SystemExit as e:
        # uvicorn exits the process when it cannot bind
        raise RuntimeError(f"Feed server failed to start on {settings.host}:{settings.port}") from e
    if not server.started:
        raise RuntimeError(f"Feed server failed to start on {settings.host}:{settings.port}")


if __name__ == "__main__":
    run()
