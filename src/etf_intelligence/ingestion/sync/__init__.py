"""Checkpointed, resumable universe sync."""

from .context import SyncContext, build_sync_context
from .orchestrator import IngestionOrchestrator, RunState, SyncResult
from .price_refresh import PriceRefresher, PriceRefreshSummary
from .reporter import SyncReporter
from .shutdown import ShutdownFlag, install_signal_handlers

__all__ = [
    "IngestionOrchestrator",
    "RunState",
    "SyncResult",
    "PriceRefresher",
    "PriceRefreshSummary",
    "SyncReporter",
    "SyncContext",
    "build_sync_context",
    "ShutdownFlag",
    "install_signal_handlers",
]
