"""Runtime settings for the feed server and subscribers."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_CHAINS: tuple[str, str] = ("avalanche", "sonic")


@dataclass(frozen=True, slots=True)
class FeedSettings:
    """Settings shared by the hub process and subscriber sessions.

    Only process entrypoints read the environment. Library classes take these
    values as explicit constructor arguments.
    """

    host: str = "0.0.0.0"
    port: int = 8080
    chains: tuple[str, str] = DEFAULT_CHAINS
    update_interval: float = 1.0  # seconds between simulator ticks
    send_timeout: float = 1.0  # per-sink send bound before eviction
    feed_url: str = "ws://localhost:8080/ws"
    reconnect_delay: float = 3.0  # fixed, no backoff growth
    max_reconnect_attempts: int = 10

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> FeedSettings:
        """Build settings from FEED_* environment variables, falling back to defaults.

        - FEED_HOST, FEED_PORT: bind address of the hub server
        - FEED_CHAINS: exactly two comma-separated chain names
        - FEED_UPDATE_INTERVAL, FEED_SEND_TIMEOUT: seconds
        - FEED_URL: endpoint subscribers connect to
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        chains = defaults.chains
        raw_chains = env.get("FEED_CHAINS", "").strip()
        if raw_chains:
            names = tuple(c.strip().lower() for c in raw_chains.split(",") if c.strip())
            if len(names) != 2 or names[0] == names[1]:
                raise ValueError(f"FEED_CHAINS must name two distinct chains, got {raw_chains!r}")
            chains = names

        return cls(
            host=env.get("FEED_HOST", "").strip() or defaults.host,
            port=_parse(env, "FEED_PORT", int, defaults.port),
            chains=chains,
            update_interval=_parse(env, "FEED_UPDATE_INTERVAL", float, defaults.update_interval),
            send_timeout=_parse(env, "FEED_SEND_TIMEOUT", float, defaults.send_timeout),
            feed_url=env.get("FEED_URL", "").strip() or defaults.feed_url,
        )


def _parse(env: Mapping[str, str], name: str, convert, default):
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return convert(raw)
    except ValueError as e:
        raise ValueError(f"{name} has an invalid value {raw!r}") from e
