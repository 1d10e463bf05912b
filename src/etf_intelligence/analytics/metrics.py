"""
Price-series analytics.

Pure, deterministic functions over a daily price series. Every insufficient
data case returns None (unavailable), never 0 and never NaN. All measures
run on adjusted close so distributions and splits do not show up as moves.

Series need not be sorted; each function orders by date itself. Functions
anchored to "today" take an ``as_of`` date that defaults to date.today().
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, timedelta

import numpy as np
import pandas as pd

TRADING_DAYS_PER_YEAR = 252
MATCH_TOLERANCE_DAYS = 10
MIN_VOLATILITY_RETURNS = 20
MIN_BETA_OBSERVATIONS = 30
RSI_PERIOD = 14
FIFTY_TWO_WEEK_DAYS = 365


@dataclass(frozen=True)
class PricePoint:
    """One observation of a daily series."""

    date: date
    close: float
    adjusted_close: float

    @classmethod
    def from_bar(cls, bar) -> "PricePoint":
        """Build from anything with date/close/adjusted_close attributes (e.g. PriceBarRecord)."""
        return cls(date=bar.date, close=bar.close, adjusted_close=bar.adjusted_close)


@dataclass(frozen=True)
class PriceRange:
    high: float | None
    low: float | None


def _sorted(prices: Iterable[PricePoint]) -> list[PricePoint]:
    return sorted(prices, key=lambda p: p.date)


def _ratio_change(latest: float, base: float) -> float | None:
    if base == 0:
        return None
    result = (latest - base) / base
    return result if math.isfinite(result) else None


def _as_of(as_of: date | None) -> date:
    return as_of if as_of is not None else date.today()


# ----------------------------------------------------------------------------
# Returns
# ----------------------------------------------------------------------------


def trailing_return(
    prices: Sequence[PricePoint],
    days_back: int,
    as_of: date | None = None,
    tolerance_days: int = MATCH_TOLERANCE_DAYS,
) -> float | None:
    """
    Return from the observation nearest to (as_of - days_back) to the latest one.

    The match must lie within ``tolerance_days`` of the target date; when two
    observations are equally near, the later one wins.

    Args:
        prices: Daily series
        days_back: Calendar-day lookback (21 ~ 1M, 252 ~ 1Y ...)
        as_of: Anchor date, defaults to today

    Returns:
        Simple return as decimal (0.10 = 10%) or None
    """
    if len(prices) < 2:
        return None

    ordered = _sorted(prices)
    latest = ordered[-1].adjusted_close
    target = _as_of(as_of) - timedelta(days=days_back)

    # Walk newest -> oldest with strict "<" so ties keep the later observation
    match: PricePoint | None = None
    best = None
    for point in reversed(ordered):
        diff = abs((point.date - target).days)
        if best is None or diff < best:
            best = diff
            match = point

    if match is None or best > tolerance_days:
        return None
    return _ratio_change(latest, match.adjusted_close)


def ytd_return(prices: Sequence[PricePoint], as_of: date | None = None) -> float | None:
    """Return since the last observation strictly before Jan 1 of the as-of year."""
    if len(prices) < 2:
        return None

    ordered = _sorted(prices)
    year_start = date(_as_of(as_of).year, 1, 1)
    before = [p for p in ordered if p.date < year_start]
    if not before:
        return None
    return _ratio_change(ordered[-1].adjusted_close, before[-1].adjusted_close)


def daily_returns(prices: Sequence[PricePoint]) -> list[float]:
    """Simple returns between consecutive observations, always length n - 1.

    A zero previous price has no defined return; that position holds NaN.
    """
    ordered = _sorted(prices)
    closes = np.array([p.adjusted_close for p in ordered], dtype=float)
    if closes.size < 2:
        return []
    prev, curr = closes[:-1], closes[1:]
    returns = np.full(prev.shape, np.nan)
    np.divide(curr - prev, prev, out=returns, where=prev != 0)
    return returns.tolist()


# ----------------------------------------------------------------------------
# Risk
# ----------------------------------------------------------------------------


def volatility(prices: Sequence[PricePoint]) -> float | None:
    """Annualized volatility: sample stdev of the defined daily returns x sqrt(252)."""
    returns = np.array(daily_returns(prices), dtype=float)
    returns = returns[np.isfinite(returns)]
    if len(returns) < MIN_VOLATILITY_RETURNS:
        return None
    result = float(np.std(returns, ddof=1) * math.sqrt(TRADING_DAYS_PER_YEAR))
    return result if math.isfinite(result) else None


def sharpe(
    prices: Sequence[PricePoint],
    risk_free_rate: float = 0.03,
    as_of: date | None = None,
) -> float | None:
    """(1Y trailing return - risk free rate) / volatility."""
    annual_return = trailing_return(prices, TRADING_DAYS_PER_YEAR, as_of=as_of)
    vol = volatility(prices)
    if annual_return is None or vol is None or vol == 0:
        return None
    return (annual_return - risk_free_rate) / vol


def max_drawdown(prices: Sequence[PricePoint]) -> float | None:
    """
    Largest peak-to-trough decline as a positive decimal.

    Single forward pass tracking the running peak. A non-decreasing series
    gives 0.0.
    """
    if len(prices) < 2:
        return None

    worst = 0.0
    peak = None
    for point in _sorted(prices):
        price = point.adjusted_close
        if peak is None or price > peak:
            peak = price
        if peak > 0:
            worst = max(worst, (peak - price) / peak)
    return worst


def beta(
    prices: Sequence[PricePoint], benchmark: Sequence[PricePoint]
) -> float | None:
    """
    Beta against a benchmark: cov(asset, bench) / var(bench) of daily returns.

    Both series are inner-joined on date first; fewer than 30 common dates or
    a flat benchmark give None. Sample (n - 1) estimators.
    """
    if len(prices) < MIN_BETA_OBSERVATIONS or len(benchmark) < MIN_BETA_OBSERVATIONS:
        return None

    asset = pd.Series(
        {p.date: p.adjusted_close for p in prices}, name="asset", dtype=float
    )
    bench = pd.Series(
        {p.date: p.adjusted_close for p in benchmark}, name="bench", dtype=float
    )
    aligned = pd.concat([asset, bench], axis=1, join="inner").sort_index()
    if len(aligned) < MIN_BETA_OBSERVATIONS:
        return None

    returns = aligned.pct_change().iloc[1:]
    returns = returns.replace([np.inf, -np.inf], np.nan).dropna()
    if len(returns) < 2:
        return None

    bench_var = returns["bench"].var(ddof=1)
    if not bench_var or not math.isfinite(bench_var):
        return None
    covariance = returns["asset"].cov(returns["bench"], ddof=1)
    result = float(covariance / bench_var)
    return result if math.isfinite(result) else None


# ----------------------------------------------------------------------------
# Technicals
# ----------------------------------------------------------------------------


def rsi14(prices: Sequence[PricePoint], period: int = RSI_PERIOD) -> float | None:
    """
    Relative strength index over the trailing ``period`` price changes.

    Average gain and average loss are the summed gains/losses divided by the
    period. No losses gives 100.
    """
    if len(prices) < period + 1:
        return None

    closes = np.array([p.adjusted_close for p in _sorted(prices)], dtype=float)
    changes = np.diff(closes)[-period:]
    avg_gain = changes[changes > 0].sum() / period
    avg_loss = -changes[changes < 0].sum() / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return float(100 - 100 / (1 + rs))


def moving_average(prices: Sequence[PricePoint], period: int) -> float | None:
    """Mean adjusted close of the most recent ``period`` observations."""
    if period < 1 or len(prices) < period:
        return None
    recent = _sorted(prices)[-period:]
    return float(np.mean([p.adjusted_close for p in recent]))


def fifty_two_week_range(
    prices: Sequence[PricePoint], as_of: date | None = None
) -> PriceRange:
    """High/low adjusted close over the trailing 365 calendar days."""
    end = _as_of(as_of)
    start = end - timedelta(days=FIFTY_TWO_WEEK_DAYS)
    window = [p.adjusted_close for p in prices if start <= p.date <= end]
    if not window:
        return PriceRange(high=None, low=None)
    return PriceRange(high=max(window), low=min(window))


def latest_price(prices: Sequence[PricePoint]) -> float | None:
    if not prices:
        return None
    return _sorted(prices)[-1].adjusted_close
