"""Tests for derived metrics."""

import pytest

from app.feed.models import Balance, Price, balance_update, price_update
from app.subscriber.metrics import PriceDifference, price_difference, total_portfolio_value
from app.subscriber.state import ClientState, ClientStateStore, reduce


def _with_prices(**rates) -> ClientState:
    state = ClientState()
    for chain, rate in rates.items():
        price = Price(rate_a_to_b=rate, rate_b_to_a=1 / rate, timestamp=1)
        reduce(state, price_update(chain, price, timestamp=1))
    return state


def _with_balances(**totals) -> ClientState:
    state = ClientState()
    for chain, total in totals.items():
        balance = Balance(asset_a=0.0, asset_b=total, total=total, timestamp=1)
        reduce(state, balance_update(chain, balance, timestamp=1))
    return state


class TestPriceDifference:
    """Unit tests for price_difference."""

    def test_no_data_when_empty(self):
        """Test the no-data sentinel with no prices."""
        assert price_difference(ClientState()) is None

    def test_no_data_when_one_chain_missing(self):
        """Test the no-data sentinel with only one chain priced."""
        assert price_difference(_with_prices(avalanche=1.0025)) is None
        assert price_difference(_with_prices(sonic=1.0)) is None

    def test_spread_and_direction(self):
        """Test the spread when chain A is dearer."""
        result = price_difference(_with_prices(avalanche=1.0025, sonic=1.0000))

        assert isinstance(result, PriceDifference)
        assert result.absolute == pytest.approx(0.0025)
        # Relative to the lower of the two rates
        assert result.percentage == pytest.approx(0.25)
        assert result.direction == "avalanche"

    def test_direction_chain_b_higher(self):
        """Test the direction when chain B is dearer."""
        result = price_difference(_with_prices(avalanche=0.998, sonic=1.0))
        assert result.direction == "sonic"
        assert result.percentage == pytest.approx(0.002 / 0.998 * 100)

    def test_tie_has_no_direction(self):
        """Test that equal rates report no clear direction."""
        result = price_difference(_with_prices(avalanche=1.0, sonic=1.0))
        assert result.absolute == 0.0
        assert result.percentage == 0.0
        assert result.direction is None

    def test_custom_chains(self):
        """Test comparing an explicit chain pair."""
        result = price_difference(_with_prices(base=1.01, arbitrum=1.0), "base", "arbitrum")
        assert result.direction == "base"

    def test_works_on_snapshot(self):
        """Test that metrics accept a store snapshot."""
        store = ClientStateStore()
        for chain, rate in (("avalanche", 1.0025), ("sonic", 1.0)):
            price = Price(rate_a_to_b=rate, rate_b_to_a=1 / rate, timestamp=1)
            store.apply(price_update(chain, price, timestamp=1))

        assert price_difference(store.snapshot()).direction == "avalanche"

    def test_to_dict(self):
        """Test serialization of the result."""
        result = price_difference(_with_prices(avalanche=1.0, sonic=1.0))
        assert result.to_dict() == {"absolute": 0.0, "percentage": 0.0, "direction": None}


class TestTotalPortfolioValue:
    """Unit tests for total_portfolio_value."""

    def test_sum_of_totals(self):
        """Test the sum across both chains."""
        state = _with_balances(avalanche=25430.50, sonic=12875.25)
        assert total_portfolio_value(state) == pytest.approx(38305.75)

    def test_zero_when_one_chain_missing(self):
        """Test that a half-loaded portfolio reports zero."""
        assert total_portfolio_value(_with_balances(avalanche=25430.50)) == 0.0
        assert total_portfolio_value(ClientState()) == 0.0

    def test_includes_extra_chains(self):
        """Test that every known chain counts once both required chains are present."""
        state = _with_balances(avalanche=100.0, sonic=50.0, base=25.0)
        assert total_portfolio_value(state) == pytest.approx(175.0)

    def test_latest_balance_counts(self):
        """Test that only the latest balance per chain is summed."""
        state = _with_balances(avalanche=100.0, sonic=50.0)
        reduce(state, balance_update("sonic", Balance(asset_a=0, asset_b=70, total=70.0, timestamp=2)))
        assert total_portfolio_value(state) == pytest.approx(170.0)
