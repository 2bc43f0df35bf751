"""Seed rates, balances and strategy parameters for the arbitrage simulator."""

# Starting asset-A-to-asset-B rate per chain (stablecoin pair, close to par)
SEED_RATES: dict[str, float] = {
    "avalanche": 1.0002,
    "sonic": 0.9998,
}

# Starting holdings per chain, valued at par
SEED_BALANCES: dict[str, dict[str, float]] = {
    "avalanche": {"asset_a": 12_715.25, "asset_b": 12_715.25},
    "sonic": {"asset_a": 6_437.50, "asset_b": 6_437.75},
}

# Unknown chains start at par with this much of each asset
DEFAULT_RATE = 1.0
DEFAULT_BALANCE: dict[str, float] = {"asset_a": 5_000.0, "asset_b": 5_000.0}

# Mean-reverting log-rate process, per tick:
#   x(t+1) = x(t) - theta * x(t) + sigma * Z
# sigma: volatility of the log rate per tick
# theta: pull back towards par per tick
RATE_SIGMA = 0.0008
RATE_THETA = 0.05

# Chains quote the same pair, so their shocks are strongly correlated
CHAIN_CORRELATION = 0.7

# Strategy
SPREAD_THRESHOLD_PERCENT = 0.15  # minimum spread before an opportunity is reported
TRADE_AMOUNT = 1_000.0  # notional per round trip
GAS_COST = 0.35  # flat cost per round trip, in asset B
