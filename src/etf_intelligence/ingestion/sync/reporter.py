"""
Sync reporter for progress logging and summary reporting.

Responsibility: Format and log progress/results.
Does NOT make sync decisions or touch provider data.
"""

import logging

from etf_intelligence.ingestion.ports.sync import SyncProgress, SyncSummary

logger = logging.getLogger(__name__)


def _format_duration(seconds: float | None) -> str:
    if seconds is None:
        return "n/a"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h{minutes:02d}m"
    if minutes:
        return f"{minutes}m{secs:02d}s"
    return f"{secs}s"


class SyncReporter:
    """
    Reports sync progress and results.

    Implements ISyncReporter protocol.
    """

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def log_progress(self, progress: SyncProgress) -> None:
        stats = progress.stats
        logger.info(
            f"📊 {progress.processed}/{progress.universe_size} ETFs "
            f"({progress.percent:.1f}%) | ✅ {stats.success} ⚪ {stats.no_data} "
            f"❌ {stats.failed} | holdings={stats.holdings_saved:,} "
            f"sectors={stats.sectors_saved:,} bars={stats.price_bars_saved:,} | "
            f"API {progress.api_calls_used:,}/{progress.daily_call_limit:,} | "
            f"elapsed {_format_duration(progress.elapsed_seconds)}, "
            f"ETA {_format_duration(progress.eta_seconds)}"
        )

    def log_summary(self, summary: SyncSummary) -> None:
        stats = summary.stats
        logger.info("\n" + "=" * 80)
        logger.info(f"ETF SYNC SUMMARY ({summary.state})")
        logger.info("=" * 80)

        logger.info(f"Universe: {summary.universe_size:,} ETFs")
        logger.info(f"Processed: {summary.processed:,}")
        logger.info(f"  ✅ Success: {stats.success:,}")
        logger.info(f"  ⚪ No data: {stats.no_data:,}")
        logger.info(f"  ❌ Failed: {stats.failed:,}")
        if stats.rate_limited:
            logger.info(f"  ⏳ Deferred (rate limited): {stats.rate_limited:,}")
        logger.info(f"Holdings saved: {stats.holdings_saved:,}")
        logger.info(f"Sectors saved: {stats.sectors_saved:,}")
        if stats.price_bars_saved:
            logger.info(f"Price bars saved: {stats.price_bars_saved:,}")
        logger.info(f"API calls used: {summary.api_calls_used:,}")
        logger.info(f"Duration: {_format_duration(summary.duration_seconds)}")

        if summary.totals:
            logger.info("Database totals:")
            for name, count in summary.totals.items():
                logger.info(f"  - {name}: {count:,}")

        if summary.checkpoint_deleted:
            logger.info("🏁 Universe fully processed, checkpoint removed")
        elif summary.processed < summary.universe_size:
            logger.info("💾 Checkpoint kept; re-run to resume")

        if summary.errors and self.verbose:
            logger.info("\nErrors encountered:")
            for ticker, error_msg in summary.errors:
                logger.info(f"  - {ticker}: {error_msg}")
        elif summary.errors:
            logger.info(f"{len(summary.errors)} errors (run with --verbose to list)")

        logger.info("=" * 80 + "\n")
