"""Derived metrics over subscriber state.

Pure functions: they accept a ClientState or a ClientSnapshot and recompute
on every call.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.feed.config import DEFAULT_CHAINS


@dataclass(frozen=True, slots=True)
class PriceDifference:
    """Spread between two chains' asset-A-to-asset-B rates."""

    absolute: float
    percentage: float
    direction: str | None  # chain with the strictly higher rate; None on a tie

    def to_dict(self) -> dict:
        return {
            "absolute": self.absolute,
            "percentage": self.percentage,
            "direction": self.direction,
        }


def price_difference(
    state,
    chain_a: str = DEFAULT_CHAINS[0],
    chain_b: str = DEFAULT_CHAINS[1],
) -> PriceDifference | None:
    """Spread between ``chain_a`` and ``chain_b``, or None if either price is unknown."""
    price_a = state.prices.get(chain_a)
    price_b = state.prices.get(chain_b)
    if price_a is None or price_b is None:
        return None

    rate_a = price_a.rate_a_to_b
    rate_b = price_b.rate_a_to_b
    absolute = abs(rate_a - rate_b)

    if rate_a > rate_b:
        direction = chain_a
    elif rate_b > rate_a:
        direction = chain_b
    else:
        direction = None

    return PriceDifference(
        absolute=absolute,
        percentage=absolute / min(rate_a, rate_b) * 100,
        direction=direction,
    )


def total_portfolio_value(
    state,
    chain_a: str = DEFAULT_CHAINS[0],
    chain_b: str = DEFAULT_CHAINS[1],
) -> float:
    """Sum of ``balance.total`` across all known chains.

    Returns 0.0 until both ``chain_a`` and ``chain_b`` have reported a balance,
    so a half-loaded portfolio is never shown as the whole.
    """
    if chain_a not in state.balances or chain_b not in state.balances:
        return 0.0
    return sum(balance.total for balance in state.balances.values())
