"""
Incremental price refresh for instruments already in the store.

For each stored ticker, fetches the daily bars after its latest stored date
(or the configured history window when none is stored yet) and appends them.
Shares the provider budget rules of the universe sync: the same-day call count
from the sync checkpoint is honoured, the safety stop ends the refresh early
and an exhausted quota stops it at once.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone

from etf_intelligence.infrastructure.checkpoint.store import CheckpointError, CheckpointStore
from etf_intelligence.infrastructure.observability import get_pipeline_logger
from etf_intelligence.ingestion.adapters.eodhd_plugin.mappers import map_price_bars
from etf_intelligence.ingestion.adapters.eodhd_plugin.outcomes import OutcomeKind
from etf_intelligence.ingestion.config.value_objects import SyncConfig
from etf_intelligence.ingestion.ports.sync import IFetchClient
from etf_intelligence.storage.exceptions import PersistenceError
from etf_intelligence.storage.repositories import InstrumentRepository, PriceBarRepository

from .shutdown import ShutdownFlag


@dataclass
class PriceRefreshSummary:
    tickers: int = 0
    refreshed: list[str] = field(default_factory=list)
    up_to_date: int = 0
    bars_saved: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)  # (ticker, reason)
    stopped: str | None = None  # quota_exhausted | safety_stop | interrupted
    api_calls_used: int = 0

    @property
    def completed(self) -> bool:
        return self.stopped is None


class PriceRefresher:
    """Appends new daily bars for every stored instrument, one ticker at a time."""

    def __init__(
        self,
        fetch_client: IFetchClient,
        instruments: InstrumentRepository,
        prices: PriceBarRepository,
        config: SyncConfig | None = None,
        checkpoint_store: CheckpointStore | None = None,
        shutdown: ShutdownFlag | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.client = fetch_client
        self.instruments = instruments
        self.prices = prices
        self.config = config or SyncConfig()
        self.checkpoint_store = checkpoint_store
        self.shutdown = shutdown if shutdown is not None else ShutdownFlag()
        self._sleep = sleep
        self._now = now
        self.log = get_pipeline_logger("price-refresh")

    def _seed_call_counter(self) -> None:
        if self.checkpoint_store is None:
            return
        try:
            checkpoint = self.checkpoint_store.load()
        except CheckpointError as e:
            self.log.warning("checkpoint_unreadable_budget_not_seeded", error=str(e))
            return
        if checkpoint is None or checkpoint.written_at is None:
            return
        if checkpoint.written_at.date() == self._now().date():
            self.client.reset_call_counter(checkpoint.api_calls_used)

    def start_date(self, ticker: str, today: date) -> date:
        latest = self.prices.latest_date(ticker)
        if latest is None:
            return today - timedelta(days=365 * self.config.price_history_years)
        return latest + timedelta(days=1)

    async def run(self, tickers: list[str] | None = None) -> PriceRefreshSummary:
        """Refresh ``tickers`` (default: every stored instrument)."""
        self._seed_call_counter()
        targets = tickers if tickers else self.instruments.list_tickers()
        summary = PriceRefreshSummary(tickers=len(targets))
        today = self._now().date()
        self.log.info("price_refresh_started", tickers=len(targets), api_calls_used=self.client.calls_used)

        for index, ticker in enumerate(targets):
            if self.shutdown.is_set():
                summary.stopped = "interrupted"
                break
            if self.client.calls_used >= self.config.safety_stop:
                self.log.warning(
                    "safety_stop_reached",
                    api_calls_used=self.client.calls_used,
                    safety_stop=self.config.safety_stop,
                )
                summary.stopped = "safety_stop"
                break

            start = self.start_date(ticker, today)
            if start > today:
                summary.up_to_date += 1
                continue

            if not await self._refresh_one(ticker, start, today, summary):
                break

            if self.config.batch_gap and index < len(targets) - 1:
                await self._sleep(self.config.batch_gap)

        summary.api_calls_used = self.client.calls_used
        self.log.info(
            "price_refresh_finished",
            refreshed=len(summary.refreshed),
            up_to_date=summary.up_to_date,
            bars_saved=summary.bars_saved,
            failed=len(summary.errors),
            stopped=summary.stopped,
            api_calls_used=summary.api_calls_used,
        )
        return summary

    async def _refresh_one(
        self, ticker: str, start: date, today: date, summary: PriceRefreshSummary
    ) -> bool:
        """Fetch and append one ticker. False means the refresh must stop."""
        outcome = await self.client.historical_prices(ticker, start, today)

        if outcome.kind is OutcomeKind.RATE_LIMITED:
            self.log.warning(
                "rate_limited_cooling_down",
                ticker=ticker,
                cooldown_seconds=self.config.rate_limit_cooldown,
            )
            await self._sleep(self.config.rate_limit_cooldown)
            outcome = await self.client.historical_prices(ticker, start, today)

        if outcome.kind is OutcomeKind.QUOTA_EXHAUSTED:
            self.log.error("quota_exhausted_aborting", ticker=ticker, error=outcome.describe())
            summary.errors.append((ticker, outcome.describe()))
            summary.stopped = "quota_exhausted"
            return False

        if not outcome.is_ok:
            summary.errors.append((ticker, outcome.describe()))
            self.log.warning("price_refresh_failed", ticker=ticker, outcome=outcome.describe())
            return True

        try:
            saved = self.prices.append(ticker, map_price_bars(ticker, outcome.data))
        except PersistenceError as e:
            summary.errors.append((ticker, f"persistence: {e}"))
            self.log.warning("price_history_not_saved", ticker=ticker, error=str(e))
            return True

        summary.refreshed.append(ticker)
        summary.bars_saved += saved
        self.log.debug("prices_refreshed", ticker=ticker, start=start.isoformat(), bars=saved)
        return True
