"""
Metric snapshot service.

Reads stored price bars and holdings, runs the analytics functions and writes
one MetricSnapshot per instrument per as-of date.
"""

from dataclasses import dataclass
from datetime import date, timedelta

from etf_intelligence.config.state import AnalyticsConfig
from etf_intelligence.infrastructure.observability import get_analytics_logger
from etf_intelligence.shared.models.enums import TrailingWindow
from etf_intelligence.storage.exceptions import PersistenceError
from etf_intelligence.storage.repositories import (
    HoldingRepository,
    InstrumentRepository,
    MetricSnapshotRepository,
    PriceBarRepository,
)
from etf_intelligence.storage.schemas.records import MetricSnapshotRecord

from . import concentration, metrics
from .metrics import PricePoint

# Five years of history plus slack for the 5Y match tolerance and YTD anchor
HISTORY_LOOKBACK_DAYS = 1260 + 30

log = get_analytics_logger("metrics-service")


@dataclass(frozen=True)
class ConcentrationMetrics:
    top10_weight: float | None
    hhi: float | None
    total_holdings: int


@dataclass
class MetricsRunSummary:
    computed: int = 0
    skipped: int = 0
    failed: int = 0


class MetricsService:
    """Computes and stores metric snapshots."""

    def __init__(
        self,
        instruments: InstrumentRepository,
        prices: PriceBarRepository,
        holdings: HoldingRepository,
        snapshots: MetricSnapshotRepository,
        config: AnalyticsConfig | None = None,
    ):
        self.instruments = instruments
        self.prices = prices
        self.holdings = holdings
        self.snapshots = snapshots
        self.config = config or AnalyticsConfig()
        self._benchmark_cache: dict[date, list[PricePoint]] = {}

    def _series(self, ticker: str, as_of: date) -> list[PricePoint]:
        bars = self.prices.get_range(
            ticker, start=as_of - timedelta(days=HISTORY_LOOKBACK_DAYS), end=as_of
        )
        return [PricePoint.from_bar(bar) for bar in bars]

    def _benchmark(self, as_of: date) -> list[PricePoint]:
        if as_of not in self._benchmark_cache:
            self._benchmark_cache[as_of] = self._series(self.config.benchmark_ticker, as_of)
        return self._benchmark_cache[as_of]

    def concentration(self, ticker: str) -> ConcentrationMetrics | None:
        """Top-10 weight, HHI and holding count from the latest holdings of ``ticker``."""
        instrument_id = self.instruments.get_id(ticker)
        if instrument_id is None:
            return None
        return self._concentration(instrument_id)

    def _concentration(self, instrument_id: int) -> ConcentrationMetrics:
        holdings = self.holdings.latest(instrument_id)
        weights = concentration.percent_to_fraction(h.weight for h in holdings)
        return ConcentrationMetrics(
            top10_weight=concentration.top_n_weight(weights, 10),
            hhi=concentration.hhi(weights),
            total_holdings=len(holdings),
        )

    def compute_snapshot(
        self, ticker: str, as_of: date | None = None
    ) -> MetricSnapshotRecord | None:
        """
        Compute and store the snapshot for one ticker.

        Returns None (and stores nothing) when the instrument is unknown or
        has fewer than ``min_price_bars`` bars.
        """
        as_of = as_of or date.today()
        instrument_id = self.instruments.get_id(ticker)
        if instrument_id is None:
            log.warning("instrument_unknown", ticker=ticker)
            return None

        series = self._series(ticker, as_of)
        if len(series) < self.config.min_price_bars:
            log.info(
                "insufficient_price_history",
                ticker=ticker,
                bars=len(series),
                required=self.config.min_price_bars,
            )
            return None

        benchmark = self._benchmark(as_of)
        week_range = metrics.fifty_two_week_range(series, as_of=as_of)
        conc = self._concentration(instrument_id)

        returns = {
            window: metrics.trailing_return(series, window.days, as_of=as_of)
            for window in TrailingWindow
        }

        snapshot = MetricSnapshotRecord(
            instrument_id=instrument_id,
            as_of_date=as_of,
            return_1m=returns[TrailingWindow.ONE_MONTH],
            return_3m=returns[TrailingWindow.THREE_MONTHS],
            return_6m=returns[TrailingWindow.SIX_MONTHS],
            return_1y=returns[TrailingWindow.ONE_YEAR],
            return_3y=returns[TrailingWindow.THREE_YEARS],
            return_5y=returns[TrailingWindow.FIVE_YEARS],
            return_ytd=metrics.ytd_return(series, as_of=as_of),
            volatility=metrics.volatility(series),
            sharpe=metrics.sharpe(series, self.config.risk_free_rate, as_of=as_of),
            max_drawdown=metrics.max_drawdown(series),
            beta=metrics.beta(series, benchmark) if benchmark else None,
            rsi14=metrics.rsi14(series),
            ma20=metrics.moving_average(series, 20),
            ma50=metrics.moving_average(series, 50),
            ma200=metrics.moving_average(series, 200),
            high_52w=week_range.high,
            low_52w=week_range.low,
            latest_price=metrics.latest_price(series),
            top10_weight=conc.top10_weight,
            hhi=conc.hhi,
            holdings_count=conc.total_holdings,
        )
        self.snapshots.upsert(snapshot)
        log.debug("snapshot_stored", ticker=ticker, as_of=as_of.isoformat())
        return snapshot

    def compute_all(
        self, tickers: list[str] | None = None, as_of: date | None = None
    ) -> MetricsRunSummary:
        """Compute snapshots for ``tickers`` (default: every stored instrument)."""
        as_of = as_of or date.today()
        tickers = tickers or self.instruments.list_tickers()
        summary = MetricsRunSummary()

        for ticker in tickers:
            try:
                snapshot = self.compute_snapshot(ticker, as_of=as_of)
            except PersistenceError as e:
                summary.failed += 1
                log.error("snapshot_failed", ticker=ticker, error=str(e))
                continue
            if snapshot is None:
                summary.skipped += 1
            else:
                summary.computed += 1

        log.info(
            "metrics_run_finished",
            computed=summary.computed,
            skipped=summary.skipped,
            failed=summary.failed,
            as_of=as_of.isoformat(),
        )
        return summary
