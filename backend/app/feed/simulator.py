"""Simulated cross-chain arbitrage feed."""

from __future__ import annotations

import asyncio
import logging
import math

import numpy as np

from .config import DEFAULT_CHAINS
from .hub import BroadcastHub
from .interface import EventProducer
from .models import (
    Balance,
    OpportunityFound,
    Price,
    StatsUpdate,
    TradeExecuted,
    balance_update,
    now_ms,
    opportunity_found,
    price_update,
    stats_update,
    trade_executed,
)
from .seed import (
    CHAIN_CORRELATION,
    DEFAULT_BALANCE,
    DEFAULT_RATE,
    GAS_COST,
    RATE_SIGMA,
    RATE_THETA,
    SEED_BALANCES,
    SEED_RATES,
    SPREAD_THRESHOLD_PERCENT,
    TRADE_AMOUNT,
)

logger = logging.getLogger(__name__)


class RateSimulator:
    """Mean-reverting simulator for correlated per-chain exchange rates.

    Math (per chain, per tick):
        x(t+1) = x(t) - theta * x(t) + sigma * Z
        rate   = exp(x)

    Where:
        x     = log of the asset-A-to-asset-B rate (0 at par)
        theta = pull towards par
        sigma = log-rate volatility per tick
        Z     = correlated standard normal random variable

    Chains quote the same pair, so shocks are correlated through the Cholesky
    factor of a constant-correlation matrix. The spread between chains is what
    the arbitrage strategy trades.
    """

    def __init__(
        self,
        chains: tuple[str, ...],
        sigma: float = RATE_SIGMA,
        theta: float = RATE_THETA,
        correlation: float = CHAIN_CORRELATION,
        seed: int | None = None,
    ) -> None:
        self._chains = list(chains)
        self._sigma = sigma
        self._theta = theta
        self._rng = np.random.default_rng(seed)
        self._log_rates = np.array([math.log(SEED_RATES.get(c, DEFAULT_RATE)) for c in self._chains])
        self._cholesky = self._build_cholesky(len(self._chains), correlation)

    def step(self) -> dict[str, float]:
        """Advance every chain by one tick. Returns {chain: rate}."""
        z = self._rng.standard_normal(len(self._chains))
        if self._cholesky is not None:
            z = self._cholesky @ z
        self._log_rates = self._log_rates - self._theta * self._log_rates + self._sigma * z
        return self.get_rates()

    def get_rates(self) -> dict[str, float]:
        return {
            chain: round(math.exp(x), 6) for chain, x in zip(self._chains, self._log_rates)
        }

    @staticmethod
    def _build_cholesky(n: int, correlation: float) -> np.ndarray | None:
        if n <= 1:
            return None
        corr = np.full((n, n), correlation)
        np.fill_diagonal(corr, 1.0)
        return np.linalg.cholesky(corr)


class ArbitrageSimulator(EventProducer):
    """EventProducer that simulates a two-chain arbitrage bot.

    Every ``update_interval`` seconds it publishes, in order:
      - a PriceUpdate per chain
      - when the spread exceeds the threshold, an OpportunityFound and, if the
        round trip is profitable after gas, a TradeExecuted
      - a BalanceUpdate per chain
      - a StatsUpdate
    """

    def __init__(
        self,
        hub: BroadcastHub,
        chains: tuple[str, str] = DEFAULT_CHAINS,
        update_interval: float = 1.0,
        threshold: float = SPREAD_THRESHOLD_PERCENT,
        trade_amount: float = TRADE_AMOUNT,
        gas_cost: float = GAS_COST,
        seed: int | None = None,
    ) -> None:
        self._hub = hub
        self._chains = chains
        self._interval = update_interval
        self._threshold = threshold
        self._trade_amount = trade_amount
        self._gas_cost = gas_cost
        self._rates = RateSimulator(chains, seed=seed)
        self._balances: dict[str, dict[str, float]] = {
            chain: dict(SEED_BALANCES.get(chain, DEFAULT_BALANCE)) for chain in chains
        }
        self._total_trades = 0
        self._profitable_trades = 0
        self._total_profit = 0.0
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run_loop(), name="arbitrage-simulator")
        logger.info("Arbitrage simulator started for chains %s", ", ".join(self._chains))

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Arbitrage simulator stopped")

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def portfolio_value(self) -> float:
        """Sum of per-chain totals, valued at par."""
        return round(sum(b["asset_a"] + b["asset_b"] for b in self._balances.values()), 2)

    # --- Internal ---

    async def _run_loop(self) -> None:
        """Core loop: simulate one tick, publish it, sleep."""
        while True:
            try:
                await self._tick()
            except Exception:
                logger.exception("Simulator tick failed")
            await asyncio.sleep(self._interval)

    async def _tick(self) -> None:
        ts = now_ms()
        rates = self._rates.step()

        for chain in self._chains:
            rate = rates[chain]
            price = Price(rate_a_to_b=rate, rate_b_to_a=round(1 / rate, 6), timestamp=ts)
            await self._hub.publish(price_update(chain, price, timestamp=ts))

        opportunity = self._find_opportunity(rates, ts)
        if opportunity is not None:
            await self._hub.publish(opportunity_found(opportunity, timestamp=ts))
            if opportunity.net_profit > 0:
                trade = self._execute(opportunity, ts)
                await self._hub.publish(trade_executed(trade, timestamp=ts))

        for chain in self._chains:
            await self._hub.publish(balance_update(chain, self._balance(chain, ts), timestamp=ts))

        await self._hub.publish(stats_update(self._stats(ts), timestamp=ts))

    def _find_opportunity(self, rates: dict[str, float], ts: int) -> OpportunityFound | None:
        """Buy asset A where it is cheap, sell it where it is dear."""
        buy_chain, sell_chain = sorted(self._chains, key=lambda c: rates[c])
        buy_price, sell_price = rates[buy_chain], rates[sell_chain]
        spread = (sell_price - buy_price) / buy_price * 100
        if spread <= self._threshold:
            return None

        gross = self._trade_amount * (sell_price / buy_price - 1)
        # Accumulate whichever asset the portfolio is short of
        total_a = sum(b["asset_a"] for b in self._balances.values())
        total_b = sum(b["asset_b"] for b in self._balances.values())
        kind = "ASSET_A_TARGETED" if total_a < total_b else "ASSET_B_TARGETED"

        logger.debug("Opportunity: %s -> %s spread %.4f%%", buy_chain, sell_chain, spread)
        return OpportunityFound(
            kind=kind,
            buy_chain=buy_chain,
            sell_chain=sell_chain,
            buy_price=buy_price,
            sell_price=sell_price,
            trade_amount=self._trade_amount,
            gross_profit=round(gross, 6),
            net_profit=round(gross - self._gas_cost, 6),
            threshold=self._threshold,
            timestamp=ts,
        )

    def _execute(self, opp: OpportunityFound, ts: int) -> TradeExecuted:
        """Settle both legs of the round trip against the simulated balances."""
        buy = self._balances[opp.buy_chain]
        sell = self._balances[opp.sell_chain]
        amount = opp.trade_amount

        if opp.kind == "ASSET_B_TARGETED":
            # Spend B on the cheap chain, sell the A bought on the dear chain
            qty_a = amount / opp.buy_price
            funded = buy["asset_b"] >= amount and sell["asset_a"] >= qty_a
            if funded:
                buy["asset_b"] -= amount
                buy["asset_a"] += qty_a
                sell["asset_a"] -= qty_a
                sell["asset_b"] += qty_a * opp.sell_price - self._gas_cost
        else:
            # Sell A on the dear chain, rebuy more A on the cheap chain
            proceeds_b = amount * opp.sell_price
            funded = sell["asset_a"] >= amount and buy["asset_b"] >= proceeds_b
            if funded:
                sell["asset_a"] -= amount
                sell["asset_b"] += proceeds_b - self._gas_cost
                buy["asset_b"] -= proceeds_b
                buy["asset_a"] += proceeds_b / opp.buy_price

        self._total_trades += 1
        if funded:
            self._total_profit += opp.net_profit
            self._profitable_trades += 1
            logger.info(
                "Trade executed %s -> %s: net %.4f (%s)",
                opp.buy_chain,
                opp.sell_chain,
                opp.net_profit,
                opp.kind,
            )
        else:
            logger.warning("Trade %s -> %s failed: insufficient balance", opp.buy_chain, opp.sell_chain)

        return TradeExecuted(
            source_chain=opp.buy_chain,
            target_chain=opp.sell_chain,
            source_price=opp.buy_price,
            target_price=opp.sell_price,
            amount=amount,
            gross_profit=opp.gross_profit,
            gas_cost=self._gas_cost,
            net_profit=opp.net_profit if funded else 0.0,
            status="executed" if funded else "failed",
            kind=opp.kind,
            timestamp=ts,
        )

    def _balance(self, chain: str, ts: int) -> Balance:
        held = self._balances[chain]
        return Balance(
            asset_a=round(held["asset_a"], 6),
            asset_b=round(held["asset_b"], 6),
            total=round(held["asset_a"] + held["asset_b"], 2),
            timestamp=ts,
        )

    def _stats(self, ts: int) -> StatsUpdate:
        win_rate = self._profitable_trades / self._total_trades * 100 if self._total_trades else 0.0
        return StatsUpdate(
            total_trades=self._total_trades,
            profitable_trades=self._profitable_trades,
            total_profit=round(self._total_profit, 6),
            win_rate=round(win_rate, 2),
            total_portfolio_value=self.portfolio_value(),
            timestamp=ts,
        )
