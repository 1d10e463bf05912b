"""
Testes para as funções puras de métricas de preço.

Séries são construídas em dias corridos para que as janelas de retorno caiam
exatamente nas datas esperadas.
"""

import math
import statistics
from datetime import date, timedelta

import pytest

from etf_intelligence.analytics.metrics import (
    PricePoint,
    PriceRange,
    beta,
    daily_returns,
    fifty_two_week_range,
    latest_price,
    max_drawdown,
    moving_average,
    rsi14,
    sharpe,
    trailing_return,
    volatility,
    ytd_return,
)


def point(day: date, price: float, close: float | None = None) -> PricePoint:
    return PricePoint(date=day, close=close if close is not None else price, adjusted_close=price)


def series(prices, start: date = date(2024, 1, 1)) -> list[PricePoint]:
    return [point(start + timedelta(days=i), p) for i, p in enumerate(prices)]


def compounded(returns, start_price: float = 100.0) -> list[float]:
    prices = [start_price]
    for r in returns:
        prices.append(prices[-1] * (1 + r))
    return prices


def zigzag(count: int) -> list[float]:
    return [100.0 + (3.0 if i % 2 else 0.0) + i * 0.1 for i in range(count)]


class TestTrailingReturn:
    def test_exact_match(self):
        prices = series([100.0 + i for i in range(60)])
        as_of = prices[-1].date

        result = trailing_return(prices, 21, as_of=as_of)

        base = 100.0 + 59 - 21
        assert result == pytest.approx((159.0 - base) / base)

    def test_uses_adjusted_close(self):
        start = date(2024, 1, 1)
        prices = [point(start, 100.0, close=200.0), point(start + timedelta(days=21), 110.0, close=50.0)]

        assert trailing_return(prices, 21, as_of=start + timedelta(days=21)) == pytest.approx(0.10)

    def test_gap_beyond_tolerance(self):
        prices = [point(date(2024, 1, 1), 100.0), point(date(2024, 3, 1), 120.0)]

        assert trailing_return(prices, 21, as_of=date(2024, 3, 1)) is None

    def test_within_tolerance(self):
        # target 2024-03-10, nearest observation 2024-03-04 (6 days away)
        prices = [point(date(2024, 3, 4), 100.0), point(date(2024, 3, 31), 125.0)]

        assert trailing_return(prices, 21, as_of=date(2024, 3, 31)) == pytest.approx(0.25)

    def test_equidistant_tie_prefers_later_observation(self):
        # target 2024-03-10: 03-08 and 03-12 are both two days away
        prices = [
            point(date(2024, 3, 31), 220.0),
            point(date(2024, 3, 8), 100.0),
            point(date(2024, 3, 12), 200.0),
        ]

        assert trailing_return(prices, 21, as_of=date(2024, 3, 31)) == pytest.approx(0.10)

    def test_insufficient_data(self):
        assert trailing_return([], 21) is None
        assert trailing_return([point(date(2024, 1, 1), 100.0)], 21) is None

    def test_zero_base_is_unavailable(self):
        prices = [point(date(2024, 1, 1), 0.0), point(date(2024, 1, 22), 10.0)]

        assert trailing_return(prices, 21, as_of=date(2024, 1, 22)) is None


class TestYtdReturn:
    def test_anchor_is_last_close_of_previous_year(self):
        prices = [
            point(date(2023, 12, 28), 100.0),
            point(date(2023, 12, 29), 110.0),
            point(date(2024, 1, 2), 120.0),
            point(date(2024, 3, 1), 121.0),
        ]

        assert ytd_return(prices, as_of=date(2024, 3, 1)) == pytest.approx(0.10)

    def test_no_prior_year_data(self):
        prices = series([100.0, 101.0, 102.0], start=date(2024, 1, 2))

        assert ytd_return(prices, as_of=date(2024, 1, 4)) is None


class TestVolatility:
    def test_matches_sample_stdev_annualized(self):
        prices = series(zigzag(40))
        returns = [
            (b.adjusted_close - a.adjusted_close) / a.adjusted_close
            for a, b in zip(prices, prices[1:])
        ]

        expected = statistics.stdev(returns) * math.sqrt(252)

        assert volatility(prices) == pytest.approx(expected)

    def test_constant_series_is_zero(self):
        assert volatility(series([50.0] * 30)) == 0.0

    def test_too_few_returns(self):
        assert volatility(series(zigzag(20))) is None

    def test_daily_returns_keep_length_with_zero_price(self):
        returns = daily_returns(series([10.0, 0.0, 10.0, 10.0]))

        assert len(returns) == 3
        assert returns[0] == pytest.approx(-1.0)
        assert math.isnan(returns[1])
        assert returns[2] == pytest.approx(0.0)

    def test_daily_returns_leading_zero_price(self):
        returns = daily_returns(series([0.0, 10.0, 11.0]))

        assert len(returns) == 2
        assert math.isnan(returns[0])
        assert returns[1] == pytest.approx(0.1)

    @pytest.mark.parametrize("prices", [[], [10.0]])
    def test_daily_returns_short_series(self, prices):
        assert daily_returns(series(prices)) == []

    def test_undefined_returns_are_ignored(self):
        closes = zigzag(40)
        closes[20] = 0.0
        prices = series(closes)
        defined = [
            (b - a) / a for a, b in zip(closes, closes[1:]) if a != 0
        ]

        expected = statistics.stdev(defined) * math.sqrt(252)

        assert volatility(prices) == pytest.approx(expected)


class TestSharpe:
    def test_combines_one_year_return_and_volatility(self):
        prices = series(zigzag(300))
        as_of = prices[-1].date

        expected = (trailing_return(prices, 252, as_of=as_of) - 0.02) / volatility(prices)

        assert sharpe(prices, risk_free_rate=0.02, as_of=as_of) == pytest.approx(expected)

    def test_zero_volatility_is_unavailable(self):
        prices = series([100.0] * 300)

        assert sharpe(prices, as_of=prices[-1].date) is None

    def test_short_history_is_unavailable(self):
        prices = series(zigzag(60))

        assert sharpe(prices, as_of=prices[-1].date) is None


class TestMaxDrawdown:
    def test_deepest_peak_to_trough(self):
        assert max_drawdown(series([100, 120, 90, 130, 65])) == pytest.approx(0.5)

    def test_non_decreasing_series(self):
        assert max_drawdown(series([100, 100, 101, 150])) == 0.0

    def test_order_independent(self):
        prices = series([100, 120, 90, 130, 65])

        assert max_drawdown(list(reversed(prices))) == pytest.approx(0.5)

    def test_insufficient_data(self):
        assert max_drawdown(series([100])) is None


class TestBeta:
    BENCH_RETURNS = [0.01, -0.005, 0.02, -0.015, 0.003, 0.007] * 8

    def test_levered_asset(self):
        bench = series(compounded(self.BENCH_RETURNS))
        asset = series(compounded([2 * r for r in self.BENCH_RETURNS]))

        assert beta(asset, bench) == pytest.approx(2.0)

    def test_joins_on_common_dates(self):
        bench = series(compounded(self.BENCH_RETURNS))
        asset = series(compounded(self.BENCH_RETURNS))
        extra = [point(date(2023, 6, 1), 1.0)]

        assert beta(extra + asset, bench) == pytest.approx(1.0)

    def test_too_few_observations(self):
        bench = series(compounded(self.BENCH_RETURNS[:20]))
        asset = series(compounded(self.BENCH_RETURNS[:20]))

        assert beta(asset, bench) is None

    def test_too_few_common_dates(self):
        bench = series(compounded(self.BENCH_RETURNS))
        asset = series(compounded(self.BENCH_RETURNS), start=date(2024, 2, 20))

        assert beta(asset, bench) is None

    def test_flat_benchmark(self):
        bench = series([100.0] * 40)
        asset = series(zigzag(40))

        assert beta(asset, bench) is None


class TestRsi:
    def test_only_gains(self):
        assert rsi14(series([100.0 + i for i in range(15)])) == 100.0

    def test_only_losses(self):
        assert rsi14(series([100.0 - i for i in range(15)])) == 0.0

    def test_mixed_changes(self):
        # seven +2 moves and seven -1 moves: avg gain 1.0, avg loss 0.5, RS 2
        prices = [100.0]
        for i in range(14):
            prices.append(prices[-1] + (2.0 if i % 2 == 0 else -1.0))

        assert rsi14(series(prices)) == pytest.approx(100 - 100 / 3)

    def test_only_last_period_counts(self):
        prices = [200.0 - i for i in range(30)] + [170.0 + i for i in range(1, 15)]

        assert rsi14(series(prices)) == 100.0

    def test_insufficient_data(self):
        assert rsi14(series([100.0 + i for i in range(14)])) is None


class TestTechnicals:
    def test_moving_average_uses_latest_observations(self):
        prices = series([float(i) for i in range(1, 11)])

        assert moving_average(prices, 5) == pytest.approx(8.0)
        assert moving_average(list(reversed(prices)), 5) == pytest.approx(8.0)

    def test_moving_average_insufficient_data(self):
        prices = series([1.0, 2.0, 3.0])

        assert moving_average(prices, 20) is None
        assert moving_average(prices, 0) is None

    def test_fifty_two_week_range(self):
        prices = [
            point(date(2023, 5, 1), 500.0),
            point(date(2023, 7, 1), 90.0),
            point(date(2024, 1, 1), 150.0),
            point(date(2024, 6, 1), 120.0),
        ]

        result = fifty_two_week_range(prices, as_of=date(2024, 6, 1))

        assert result == PriceRange(high=150.0, low=90.0)

    def test_fifty_two_week_range_without_data(self):
        prices = [point(date(2020, 1, 1), 10.0)]

        assert fifty_two_week_range(prices, as_of=date(2024, 6, 1)) == PriceRange(None, None)

    def test_latest_price(self):
        prices = [point(date(2024, 1, 3), 12.0, close=99.0), point(date(2024, 1, 1), 10.0)]

        assert latest_price(prices) == 12.0
        assert latest_price([]) is None
