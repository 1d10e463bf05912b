"""Testes para as métricas de concentração (HHI, top-N)."""

import pytest

from etf_intelligence.analytics.concentration import (
    hhi,
    percent_to_fraction,
    top_n_holdings,
    top_n_weight,
)
from etf_intelligence.storage.schemas.records import HoldingRecord


def holding(ticker, weight):
    return HoldingRecord(holding_ticker=ticker, holding_name=ticker, weight=weight)


class TestHhi:
    def test_single_position_is_fully_concentrated(self):
        assert hhi([1.0]) == pytest.approx(1.0)

    def test_equal_weights_hit_lower_bound(self):
        assert hhi([0.1] * 10) == pytest.approx(0.1)

    def test_bounds(self):
        weights = [0.5, 0.2, 0.2, 0.1]

        result = hhi(weights)

        assert 1 / len(weights) <= result <= 1.0
        assert result == pytest.approx(0.34)

    def test_unusable_weights_are_ignored(self):
        assert hhi([0.5, None, 0.0, -0.2, float("nan"), 0.5]) == pytest.approx(0.5)

    def test_empty_portfolio(self):
        assert hhi([]) is None
        assert hhi([None, 0.0]) is None


class TestTopNWeight:
    def test_sums_largest_positions(self):
        weights = [0.05, 0.30, 0.10, 0.20, 0.15]

        assert top_n_weight(weights, 3) == pytest.approx(0.65)

    def test_fewer_positions_than_n(self):
        assert top_n_weight([0.3, 0.2], 10) == pytest.approx(0.5)

    def test_ties_at_cutoff_do_not_change_sum(self):
        assert top_n_weight([0.4, 0.2, 0.2, 0.2], 2) == pytest.approx(0.6)

    def test_unavailable(self):
        assert top_n_weight([], 10) is None
        assert top_n_weight([0.5], 0) is None


class TestTopNHoldings:
    def test_orders_by_weight_then_ticker(self):
        holdings = [
            holding("MSFT", 6.0),
            holding("AAPL", 7.0),
            holding("NVDA", 6.0),
            holding("AMZN", 6.0),
            holding("CASH", None),
            holding("ZERO", 0.0),
        ]

        top = top_n_holdings(holdings, 3)

        assert [h.holding_ticker for h in top] == ["AAPL", "AMZN", "MSFT"]

    def test_default_is_ten(self):
        holdings = [holding(f"T{i:02d}", 20.0 - i) for i in range(15)]

        assert len(top_n_holdings(holdings)) == 10


class TestPercentToFraction:
    def test_converts_and_drops_unusable(self):
        assert percent_to_fraction([12.5, None, 0.0, 50.0]) == pytest.approx([0.125, 0.5])
