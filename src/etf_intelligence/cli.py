#!/usr/bin/env python3
"""
Command line entry point.

    etf-intel sync [--config-dir DIR] [--env ENV] [--fresh] [--prices] [--limit N]
    etf-intel metrics [--config-dir DIR] [--env ENV] [--ticker T ...] [--as-of YYYY-MM-DD]
    etf-intel prices [--config-dir DIR] [--env ENV] [--ticker T ...] [--metrics]
"""

import argparse
import asyncio
import logging
import sys
from datetime import date

from etf_intelligence.analytics.service import MetricsRunSummary, MetricsService
from etf_intelligence.config.state import ConfigState, load_config
from etf_intelligence.infrastructure.database.engine import create_db_engine, init_schema
from etf_intelligence.infrastructure.observability import setup_logging
from etf_intelligence.ingestion.sync.context import (
    Repositories,
    build_repositories,
    build_sync_context,
)
from etf_intelligence.ingestion.sync.orchestrator import RunState
from etf_intelligence.ingestion.sync.reporter import SyncReporter
from etf_intelligence.ingestion.sync.shutdown import ShutdownFlag, install_signal_handlers

logger = logging.getLogger(__name__)


async def run_sync(state: ConfigState, args: argparse.Namespace) -> RunState:
    shutdown = ShutdownFlag()
    install_signal_handlers(shutdown, asyncio.get_running_loop())

    overrides = {"limit": args.limit}
    if args.prices:
        overrides["sync_prices"] = True

    async with build_sync_context(state, shutdown=shutdown) as ctx:
        orchestrator = ctx.orchestrator(reporter=SyncReporter(verbose=args.verbose), **overrides)
        result = await orchestrator.run(fresh=args.fresh)
    return result.state


def metrics_service(state: ConfigState, repos: Repositories) -> MetricsService:
    return MetricsService(
        instruments=repos.instruments,
        prices=repos.prices,
        holdings=repos.holdings,
        snapshots=repos.metrics,
        config=state.analytics,
    )


def _print_metrics(summary: MetricsRunSummary) -> None:
    print(
        f"📊 Metrics: {summary.computed} computed, "
        f"{summary.skipped} skipped, {summary.failed} failed"
    )


def run_metrics(state: ConfigState, args: argparse.Namespace) -> int:
    engine = create_db_engine(state.database)
    try:
        init_schema(engine)
        service = metrics_service(state, build_repositories(engine))
        summary = service.compute_all(tickers=args.ticker or None, as_of=args.as_of)
    finally:
        engine.dispose()

    _print_metrics(summary)
    return 1 if summary.failed else 0


async def run_prices(state: ConfigState, args: argparse.Namespace) -> int:
    """Append new bars for stored instruments, then recompute their metrics if asked."""
    shutdown = ShutdownFlag()
    install_signal_handlers(shutdown, asyncio.get_running_loop())

    async with build_sync_context(state, shutdown=shutdown) as ctx:
        summary = await ctx.price_refresher().run(tickers=args.ticker or None)
        print(
            f"📈 Prices: {len(summary.refreshed)}/{summary.tickers} refreshed, "
            f"{summary.up_to_date} up to date, {summary.bars_saved:,} bars, "
            f"{len(summary.errors)} errors, API {summary.api_calls_used:,} calls"
        )
        if summary.stopped:
            logger.warning(f"⚠️ Price refresh stopped early: {summary.stopped}")

        metrics_failed = 0
        if args.metrics and summary.refreshed:
            metrics = metrics_service(state, ctx.repositories).compute_all(tickers=summary.refreshed)
            _print_metrics(metrics)
            metrics_failed = metrics.failed

    return 1 if summary.stopped == "quota_exhausted" or metrics_failed else 0


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="etf-intel", description="ETF universe ingestion and analytics")
    parser.add_argument("--config-dir", default=None, help="Directory holding the YAML config files")
    parser.add_argument("--env", default=None, help="Environment overlay (config/env/<env>.yaml)")
    sub = parser.add_subparsers(dest="command", required=True)

    sync = sub.add_parser("sync", help="Sync the ETF universe from the provider")
    sync.add_argument("--fresh", action="store_true", help="Discard the checkpoint and start over")
    sync.add_argument("--prices", action="store_true", help="Also fetch daily price history")
    sync.add_argument("--limit", type=int, default=None, help="Process at most N tickers this run")
    sync.add_argument("-v", "--verbose", action="store_true", help="Log every processed ticker")

    metrics = sub.add_parser("metrics", help="Compute metric snapshots from stored data")
    metrics.add_argument("--ticker", action="append", help="Ticker to compute (repeatable)")
    metrics.add_argument("--as-of", type=_parse_date, default=None, help="Snapshot date")

    prices = sub.add_parser("prices", help="Append new daily bars for stored instruments")
    prices.add_argument("--ticker", action="append", help="Ticker to refresh (repeatable)")
    prices.add_argument(
        "--metrics", action="store_true", help="Recompute metric snapshots for refreshed tickers"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    state = load_config(config_dir=args.config_dir, env=args.env)
    setup_logging(level=state.logging.level, json_logs=state.logging.json_logs)

    if args.command == "metrics":
        return run_metrics(state, args)

    if not state.provider.api_key:
        logger.error("❌ EODHD_API_KEY is not set; refusing to call the provider")
        return 1

    if args.command == "prices":
        return asyncio.run(run_prices(state, args))

    final_state = asyncio.run(run_sync(state, args))
    return 1 if final_state == RunState.FAILED else 0


if __name__ == "__main__":
    sys.exit(main())
