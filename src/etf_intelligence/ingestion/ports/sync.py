"""Universe sync abstractions.

Separates orchestration logic from its collaborators:
- Fetching: how provider data is obtained (IFetchClient)
- Reporting: how progress and results are reported (ISyncReporter)
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Protocol

from etf_intelligence.ingestion.adapters.eodhd_plugin.outcomes import FetchOutcome


@dataclass
class SyncStats:
    """Counters carried across runs inside the checkpoint."""

    success: int = 0
    no_data: int = 0
    failed: int = 0
    rate_limited: int = 0
    holdings_saved: int = 0
    sectors_saved: int = 0
    price_bars_saved: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "success": self.success,
            "noData": self.no_data,
            "failed": self.failed,
            "rateLimited": self.rate_limited,
            "holdingsSaved": self.holdings_saved,
            "sectorsSaved": self.sectors_saved,
            "priceBarsSaved": self.price_bars_saved,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "SyncStats":
        return cls(
            success=int(raw.get("success", 0)),
            no_data=int(raw.get("noData", 0)),
            failed=int(raw.get("failed", 0)),
            rate_limited=int(raw.get("rateLimited", 0)),
            holdings_saved=int(raw.get("holdingsSaved", 0)),
            sectors_saved=int(raw.get("sectorsSaved", 0)),
            price_bars_saved=int(raw.get("priceBarsSaved", 0)),
        )


@dataclass
class SyncProgress:
    """Snapshot emitted at each periodic checkpoint."""

    processed: int
    universe_size: int
    stats: SyncStats
    api_calls_used: int
    daily_call_limit: int
    elapsed_seconds: float
    processed_this_run: int
    remaining_this_run: int

    @property
    def percent(self) -> float:
        if self.universe_size == 0:
            return 100.0
        return self.processed / self.universe_size * 100

    @property
    def eta_seconds(self) -> float | None:
        if self.processed_this_run == 0:
            return None
        rate = self.processed_this_run / max(self.elapsed_seconds, 1e-9)
        return self.remaining_this_run / rate


@dataclass
class SyncSummary:
    """Summary statistics after a run ends, whatever its terminal state."""

    state: str
    universe_size: int
    processed: int
    stats: SyncStats
    api_calls_used: int
    duration_seconds: float
    checkpoint_deleted: bool = False
    errors: list[tuple[str, str]] = field(default_factory=list)  # (ticker, error)
    totals: dict[str, int] = field(default_factory=dict)


class IFetchClient(Protocol):
    """Provider access used by the orchestrator."""

    calls_used: int

    def reset_call_counter(self, value: int = 0) -> None: ...

    async def list_symbols(self, exchange: str, symbol_type: str) -> FetchOutcome: ...

    async def fundamentals(self, symbol: str) -> FetchOutcome: ...

    async def historical_prices(
        self, symbol: str, from_date: date, to_date: date
    ) -> FetchOutcome: ...


class ISyncReporter(Protocol):
    """Abstraction for reporting and logging.

    Single Responsibility: Format and report progress/results.
    Does NOT make sync decisions.
    """

    def log_progress(self, progress: SyncProgress) -> None: ...

    def log_summary(self, summary: SyncSummary) -> None: ...
