"""Testes para SyncProgress/SyncStats e para o SyncReporter."""

import logging

import pytest

from etf_intelligence.ingestion.ports.sync import SyncProgress, SyncStats, SyncSummary
from etf_intelligence.ingestion.sync.reporter import SyncReporter, _format_duration

REPORTER_LOGGER = "etf_intelligence.ingestion.sync.reporter"


def progress(**overrides) -> SyncProgress:
    values = dict(
        processed=250,
        universe_size=1000,
        stats=SyncStats(success=240, no_data=6, failed=4, holdings_saved=12_345),
        api_calls_used=260,
        daily_call_limit=100_000,
        elapsed_seconds=100.0,
        processed_this_run=50,
        remaining_this_run=750,
    )
    values.update(overrides)
    return SyncProgress(**values)


class TestSyncProgress:
    def test_percent_and_eta(self):
        p = progress()

        assert p.percent == pytest.approx(25.0)
        # 0.5 tickers/s this run -> 750 remaining take 1500s
        assert p.eta_seconds == pytest.approx(1500.0)

    def test_eta_unknown_before_first_ticker(self):
        assert progress(processed_this_run=0).eta_seconds is None

    def test_empty_universe_is_complete(self):
        assert progress(processed=0, universe_size=0).percent == 100.0


class TestSyncStats:
    def test_checkpoint_round_trip_uses_camel_case(self):
        stats = SyncStats(success=3, no_data=1, rate_limited=2, price_bars_saved=900)

        raw = stats.to_dict()

        assert raw["noData"] == 1
        assert raw["rateLimited"] == 2
        assert SyncStats.from_dict(raw) == stats

    def test_from_dict_tolerates_missing_counters(self):
        assert SyncStats.from_dict({"success": "7"}) == SyncStats(success=7)


class TestSyncReporter:
    @pytest.mark.parametrize(
        "seconds, expected",
        [(None, "n/a"), (42, "42s"), (125, "2m05s"), (3 * 3600 + 61, "3h01m")],
    )
    def test_format_duration(self, seconds, expected):
        assert _format_duration(seconds) == expected

    def test_progress_line(self, caplog):
        caplog.set_level(logging.INFO, logger=REPORTER_LOGGER)

        SyncReporter().log_progress(progress())

        message = caplog.messages[-1]
        assert "250/1000 ETFs (25.0%)" in message
        assert "holdings=12,345" in message
        assert "API 260/100,000" in message

    def test_summary_lists_errors_only_when_verbose(self, caplog):
        caplog.set_level(logging.INFO, logger=REPORTER_LOGGER)
        summary = SyncSummary(
            state="completed",
            universe_size=3,
            processed=3,
            stats=SyncStats(success=2, failed=1, rate_limited=1),
            api_calls_used=4,
            duration_seconds=65.0,
            checkpoint_deleted=True,
            errors=[("GONE", "not found")],
            totals={"instruments": 2},
        )

        SyncReporter(verbose=False).log_summary(summary)
        quiet = "\n".join(caplog.messages)
        caplog.clear()
        SyncReporter(verbose=True).log_summary(summary)
        verbose = "\n".join(caplog.messages)

        assert "1 errors (run with --verbose to list)" in quiet
        assert "GONE: not found" not in quiet
        assert "GONE: not found" in verbose
        assert "Deferred (rate limited): 1" in verbose
        assert "instruments: 2" in verbose
        assert "checkpoint removed" in verbose
