"""
Universe Sync Orchestrator
Drives a resumable, rate-limited sync of every ETF listed on an exchange.

Run lifecycle:
    IDLE -> FETCHING_UNIVERSE -> PROCESSING_BATCH* -> one of
    SAFETY_STOPPED | COMPLETED | FAILED | INTERRUPTED
with CHECKPOINTING entered for every periodic save and on the way out.

Within a batch the provider calls run concurrently; results are then handled
one by one in submission order, so all writes for batch k finish before
batch k+1 is dispatched.
"""

import asyncio
import enum
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError as SchemaValidationError

from etf_intelligence.infrastructure.checkpoint.store import (
    CheckpointError,
    CheckpointStore,
    IngestionCheckpoint,
)
from etf_intelligence.infrastructure.observability import get_pipeline_logger
from etf_intelligence.ingestion.adapters.eodhd_plugin.exceptions import (
    UniverseFetchError,
)
from etf_intelligence.ingestion.adapters.eodhd_plugin.mappers import (
    map_price_bars,
    normalize_fundamentals,
)
from etf_intelligence.ingestion.adapters.eodhd_plugin.outcomes import (
    FetchOutcome,
    OutcomeKind,
)
from etf_intelligence.ingestion.adapters.eodhd_plugin.schemas import SymbolListing
from etf_intelligence.ingestion.config.value_objects import SyncConfig
from etf_intelligence.ingestion.ports.sync import (
    IFetchClient,
    ISyncReporter,
    SyncProgress,
    SyncStats,
    SyncSummary,
)
from etf_intelligence.storage.exceptions import PersistenceError
from etf_intelligence.storage.repositories import (
    HoldingRepository,
    InstrumentRepository,
    PriceBarRepository,
    SectorWeightRepository,
)

from .reporter import SyncReporter
from .shutdown import ShutdownFlag

CHECKPOINT_IO_ERRORS = (OSError, CheckpointError, BotoCoreError, ClientError)


class RunState(str, enum.Enum):
    IDLE = "idle"
    FETCHING_UNIVERSE = "fetching_universe"
    PROCESSING_BATCH = "processing_batch"
    CHECKPOINTING = "checkpointing"
    SAFETY_STOPPED = "safety_stopped"
    COMPLETED = "completed"
    FAILED = "failed"
    INTERRUPTED = "interrupted"


TERMINAL_STATES = frozenset(
    {RunState.SAFETY_STOPPED, RunState.COMPLETED, RunState.FAILED, RunState.INTERRUPTED}
)


class ItemStatus(str, enum.Enum):
    SUCCESS = "success"
    NO_DATA = "no_data"
    FAILED = "failed"
    DEFERRED = "deferred"  # rate limited twice; left for the next run
    ABORT = "abort"  # quota exhausted


@dataclass
class ItemFetch:
    """Provider results for one ticker of a batch."""

    listing: SymbolListing
    fundamentals: FetchOutcome
    prices: FetchOutcome | None = None

    @property
    def ticker(self) -> str:
        return self.listing.code


@dataclass
class SyncResult:
    """Result of a sync run."""

    state: RunState
    summary: SyncSummary
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state in (
            RunState.COMPLETED,
            RunState.SAFETY_STOPPED,
            RunState.INTERRUPTED,
        )


class IngestionOrchestrator:
    """
    Coordinates a full-universe sync with dependency injection.

    Responsibilities:
    - Resume from the checkpoint and compute the remaining work
    - Dispatch batches, apply outcome handling, persist results
    - Enforce the daily call budget and honour operator shutdown
    - NOT responsible for: HTTP, retries, payload parsing, SQL (delegated)
    """

    def __init__(
        self,
        fetch_client: IFetchClient,
        instruments: InstrumentRepository,
        holdings: HoldingRepository,
        sectors: SectorWeightRepository,
        checkpoint_store: CheckpointStore,
        config: SyncConfig | None = None,
        prices: PriceBarRepository | None = None,
        reporter: ISyncReporter | None = None,
        shutdown: ShutdownFlag | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.client = fetch_client
        self.instruments = instruments
        self.holdings = holdings
        self.sectors = sectors
        self.prices = prices
        self.checkpoint_store = checkpoint_store
        self.config = config or SyncConfig()
        self.reporter = reporter or SyncReporter()
        self.shutdown = shutdown if shutdown is not None else ShutdownFlag()
        self._sleep = sleep
        self._now = now

        self.log = get_pipeline_logger("universe-sync", exchange=self.config.exchange)
        self.state = RunState.IDLE
        self.processed: set[str] = set()
        self.failed: list[str] = []
        self.stats = SyncStats()
        self.errors: list[tuple[str, str]] = []
        self.universe: list[str] = []
        self._started_at = 0.0
        self._processed_this_run = 0
        self._remaining_this_run = 0
        self._checkpoint_deleted = False

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------
    async def run(self, fresh: bool = False) -> SyncResult:
        """Execute one sync run and return its terminal state and summary."""
        self._started_at = time.monotonic()
        self._processed_this_run = 0
        self._checkpoint_deleted = False
        self.errors = []
        self._set_state(RunState.IDLE)
        self._restore(fresh)

        try:
            listings = await self._fetch_universe()
            if self.state in TERMINAL_STATES:
                return self._finish()

            remaining = [
                listing for listing in listings if listing.code not in self.processed
            ]
            if self.config.limit is not None:
                remaining = remaining[: self.config.limit]
            self._remaining_this_run = len(remaining)

            self.log.info(
                "sync_started",
                universe=len(self.universe),
                already_processed=len(self.processed & set(self.universe)),
                remaining=len(remaining),
                api_calls_used=self.client.calls_used,
                batch_size=self.config.batch_size,
            )

            await self._process_remaining(remaining)

            if self.state not in TERMINAL_STATES:
                self._complete()
        except Exception as e:
            self.log.error("sync_aborted", error=str(e), exc_info=True)
            self._set_state(RunState.FAILED)
            self._save_checkpoint(best_effort=True)
            raise

        return self._finish()

    def _restore(self, fresh: bool) -> None:
        if fresh and self.checkpoint_store.exists():
            self.log.info("checkpoint_discarded", location=self.checkpoint_store.location)
            self.checkpoint_store.delete()

        try:
            checkpoint = self.checkpoint_store.load()
        except CheckpointError as e:
            self.log.warning("checkpoint_unreadable_starting_fresh", error=str(e))
            checkpoint = None

        if checkpoint is None:
            checkpoint = IngestionCheckpoint()

        self.processed = checkpoint.processed_set
        self.failed = list(checkpoint.failed)
        self.stats = SyncStats.from_dict(checkpoint.stats)

        calls_used = checkpoint.api_calls_used
        written_at = checkpoint.written_at
        if written_at is not None and written_at.date() != self._now().date():
            self.log.info(
                "daily_budget_reset",
                previous_calls=calls_used,
                checkpoint_date=written_at.date().isoformat(),
            )
            calls_used = 0
        self.client.reset_call_counter(calls_used)

    async def _fetch_universe(self) -> list[SymbolListing]:
        self._set_state(RunState.FETCHING_UNIVERSE)
        outcome = await self.client.list_symbols(
            self.config.exchange, self.config.symbol_type
        )

        if outcome.kind is OutcomeKind.QUOTA_EXHAUSTED:
            self._abort(outcome)
            return []

        if not outcome.is_ok:
            error = UniverseFetchError(
                f"Could not list {self.config.symbol_type} symbols on "
                f"{self.config.exchange}: {outcome.describe()}"
            )
            self.errors.append(("*universe*", str(error)))
            self.log.error("universe_fetch_failed", error=str(error))
            self._set_state(RunState.FAILED)
            self._save_checkpoint(best_effort=True)
            return []

        listings: list[SymbolListing] = []
        seen: set[str] = set()
        for listing in outcome.data:
            if listing.code not in seen:
                seen.add(listing.code)
                listings.append(listing)
        self.universe = [listing.code for listing in listings]
        return listings

    async def _process_remaining(self, remaining: list[SymbolListing]) -> None:
        batch_size = self.config.batch_size
        total_batches = (len(remaining) + batch_size - 1) // batch_size

        for batch_index, start in enumerate(range(0, len(remaining), batch_size)):
            if self.shutdown.is_set():
                self._interrupt()
                return

            if self.client.calls_used >= self.config.safety_stop:
                self.log.warning(
                    "safety_stop_reached",
                    api_calls_used=self.client.calls_used,
                    safety_stop=self.config.safety_stop,
                    daily_call_limit=self.config.daily_call_limit,
                )
                self._set_state(RunState.SAFETY_STOPPED)
                self._save_checkpoint(best_effort=True)
                return

            batch = remaining[start : start + batch_size]
            self._set_state(RunState.PROCESSING_BATCH)
            self.log.debug(
                "batch_dispatched",
                batch=batch_index + 1,
                total_batches=total_batches,
                tickers=[listing.code for listing in batch],
            )

            fetched = await asyncio.gather(*(self._fetch_item(listing) for listing in batch))

            for item in fetched:
                if self.shutdown.is_set():
                    self._interrupt()
                    return
                status = await self._process_item(item)
                if status is ItemStatus.ABORT:
                    return

            if self.config.batch_gap and batch_index < total_batches - 1:
                await self._sleep(self.config.batch_gap)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------
    async def _fetch_item(self, listing: SymbolListing) -> ItemFetch:
        fundamentals = await self.client.fundamentals(listing.code)
        prices = None
        if self.config.sync_prices and self.prices is not None and fundamentals.is_ok:
            today = self._now().date()
            prices = await self.client.historical_prices(
                listing.code,
                today - timedelta(days=365 * self.config.price_history_years),
                today,
            )
        return ItemFetch(listing=listing, fundamentals=fundamentals, prices=prices)

    async def _process_item(self, item: ItemFetch) -> ItemStatus:
        outcome = item.fundamentals

        if outcome.kind is OutcomeKind.RATE_LIMITED:
            self.log.warning(
                "rate_limited_cooling_down",
                ticker=item.ticker,
                cooldown_seconds=self.config.rate_limit_cooldown,
            )
            await self._sleep(self.config.rate_limit_cooldown)
            item = await self._fetch_item(item.listing)
            outcome = item.fundamentals
            if outcome.kind is OutcomeKind.RATE_LIMITED:
                self.stats.rate_limited += 1
                self.log.warning("ticker_deferred", ticker=item.ticker)
                return ItemStatus.DEFERRED

        if outcome.kind is OutcomeKind.QUOTA_EXHAUSTED:
            self._abort(outcome)
            return ItemStatus.ABORT

        # the ticker stays pending so a resumed run fetches it whole
        if item.prices is not None and item.prices.kind is OutcomeKind.QUOTA_EXHAUSTED:
            self._abort(item.prices)
            return ItemStatus.ABORT

        if outcome.kind in (OutcomeKind.NOT_FOUND, OutcomeKind.FATAL):
            return self._record_failure(item.ticker, outcome.describe())

        return self._persist(item)

    def _persist(self, item: ItemFetch) -> ItemStatus:
        ticker = item.ticker
        as_of = self._now().date()

        try:
            normalized = normalize_fundamentals(
                ticker, item.fundamentals.data, as_of, listing=item.listing
            )
        except SchemaValidationError as e:
            return self._record_failure(ticker, f"validation: {e}")

        if normalized is None:
            self.stats.no_data += 1
            self._mark_processed(ticker)
            self.log.debug("ticker_no_data", ticker=ticker)
            return ItemStatus.NO_DATA

        try:
            instrument_id = self.instruments.upsert(normalized.instrument)
            holdings_saved = self.holdings.replace(instrument_id, normalized.holdings, as_of)
            sectors_saved = self.sectors.replace(instrument_id, normalized.sectors, as_of)
        except PersistenceError as e:
            return self._record_failure(ticker, f"persistence: {e}")

        self.stats.holdings_saved += holdings_saved
        self.stats.sectors_saved += sectors_saved
        self.stats.price_bars_saved += self._persist_prices(ticker, item.prices)
        self.stats.success += 1
        self._mark_processed(ticker)
        self.log.debug(
            "ticker_synced",
            ticker=ticker,
            holdings=holdings_saved,
            sectors=sectors_saved,
        )

        if self.stats.success % self.config.checkpoint_interval == 0:
            self._checkpoint_with_progress()

        return ItemStatus.SUCCESS

    def _persist_prices(self, ticker: str, outcome: FetchOutcome | None) -> int:
        """Price history is best effort: a failure other than quota does not fail the ticker."""
        if outcome is None or self.prices is None:
            return 0
        if not outcome.is_ok:
            self.log.warning("price_history_unavailable", ticker=ticker, outcome=outcome.describe())
            return 0
        try:
            return self.prices.append(ticker, map_price_bars(ticker, outcome.data))
        except PersistenceError as e:
            self.log.warning("price_history_not_saved", ticker=ticker, error=str(e))
            return 0

    def _record_failure(self, ticker: str, reason: str) -> ItemStatus:
        self.stats.failed += 1
        if ticker not in self.failed:
            self.failed.append(ticker)
        self.errors.append((ticker, reason))
        self._mark_processed(ticker)
        self.log.warning("ticker_failed", ticker=ticker, reason=reason)
        return ItemStatus.FAILED

    def _mark_processed(self, ticker: str) -> None:
        self.processed.add(ticker)
        self._processed_this_run += 1

    # ------------------------------------------------------------------
    # Terminal transitions
    # ------------------------------------------------------------------
    def _abort(self, outcome: FetchOutcome) -> None:
        self.errors.append(("*quota*", outcome.describe()))
        self.log.error(
            "quota_exhausted_aborting",
            api_calls_used=self.client.calls_used,
            error=outcome.describe(),
        )
        self._set_state(RunState.CHECKPOINTING)
        self._save_checkpoint(best_effort=True)
        self._set_state(RunState.FAILED)

    def _interrupt(self) -> None:
        self.log.warning("sync_interrupted", reason=self.shutdown.reason)
        self._set_state(RunState.CHECKPOINTING)
        self._save_checkpoint(best_effort=True)
        self._set_state(RunState.INTERRUPTED)

    def _complete(self) -> None:
        missing = set(self.universe) - self.processed
        self._set_state(RunState.CHECKPOINTING)
        if missing:
            self.log.info("sync_partial", unprocessed=len(missing))
            self._save_checkpoint(best_effort=True)
        else:
            self.checkpoint_store.delete()
            self._checkpoint_deleted = True
        self._set_state(RunState.COMPLETED)

    # ------------------------------------------------------------------
    # Checkpointing & reporting
    # ------------------------------------------------------------------
    def _snapshot(self) -> IngestionCheckpoint:
        return IngestionCheckpoint(
            processed=sorted(self.processed),
            failed=list(self.failed),
            api_calls_used=self.client.calls_used,
            stats=self.stats.to_dict(),
        )

    def _save_checkpoint(self, best_effort: bool = False) -> bool:
        try:
            self.checkpoint_store.save(self._snapshot())
            return True
        except CHECKPOINT_IO_ERRORS as e:
            if not best_effort:
                raise
            self.log.error("checkpoint_save_failed", error=str(e))
            return False

    def _checkpoint_with_progress(self) -> None:
        previous = self.state
        self._set_state(RunState.CHECKPOINTING)
        self._save_checkpoint(best_effort=True)
        self.reporter.log_progress(self._progress())
        self._set_state(previous)

    def _progress(self) -> SyncProgress:
        return SyncProgress(
            processed=len(self.processed & set(self.universe)),
            universe_size=len(self.universe),
            stats=self.stats,
            api_calls_used=self.client.calls_used,
            daily_call_limit=self.config.daily_call_limit,
            elapsed_seconds=time.monotonic() - self._started_at,
            processed_this_run=self._processed_this_run,
            remaining_this_run=max(self._remaining_this_run - self._processed_this_run, 0),
        )

    def _database_totals(self) -> dict[str, int]:
        try:
            return {
                "instruments": self.instruments.count(),
                "holdings": self.holdings.count(),
                "sector_weights": self.sectors.count(),
            }
        except PersistenceError as e:
            self.log.warning("database_totals_unavailable", error=str(e))
            return {}

    def _finish(self) -> SyncResult:
        summary = SyncSummary(
            state=self.state.value,
            universe_size=len(self.universe),
            processed=len(self.processed & set(self.universe)),
            stats=self.stats,
            api_calls_used=self.client.calls_used,
            duration_seconds=time.monotonic() - self._started_at,
            checkpoint_deleted=self._checkpoint_deleted,
            errors=list(self.errors),
            totals=self._database_totals(),
        )
        self.reporter.log_summary(summary)
        self.log.info(
            "sync_finished",
            state=self.state.value,
            processed=summary.processed,
            universe=summary.universe_size,
            api_calls_used=summary.api_calls_used,
        )
        error = None
        if self.state is RunState.FAILED and self.errors:
            error = self.errors[-1][1]
        return SyncResult(state=self.state, summary=summary, error=error)

    def _set_state(self, state: RunState) -> None:
        if state is not self.state:
            self.log.debug("state_transition", from_state=self.state.value, to_state=state.value)
        self.state = state
