"""
Testes para o PriceRefresher: atualização incremental de preços dos ETFs já
armazenados, com o mesmo orçamento de chamadas do sync.
"""

import json
from datetime import date, datetime, timedelta, timezone

import pytest

from etf_intelligence.infrastructure.checkpoint.store import IngestionCheckpoint
from etf_intelligence.ingestion.adapters.eodhd_plugin.exceptions import (
    NotFoundError,
    QuotaExhaustedError,
    RateLimitError,
)
from etf_intelligence.ingestion.adapters.eodhd_plugin.outcomes import FetchOutcome
from etf_intelligence.ingestion.config.value_objects import SyncConfig
from etf_intelligence.ingestion.sync.price_refresh import PriceRefresher
from etf_intelligence.ingestion.sync.shutdown import ShutdownFlag
from etf_intelligence.storage.schemas.records import InstrumentRecord, PriceBarRecord

NOW = datetime(2024, 6, 3, 18, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


def bar(symbol: str, day: date, price: float = 100.0) -> PriceBarRecord:
    return PriceBarRecord(symbol=symbol, date=day, close=price, adjusted_close=price)


def write_checkpoint(store, calls_used: int, written_at: datetime) -> None:
    store.path.parent.mkdir(parents=True, exist_ok=True)
    document = IngestionCheckpoint(
        processed=["AAA"], api_calls_used=calls_used, timestamp=written_at.isoformat()
    ).to_dict()
    store.path.write_text(json.dumps(document))


@pytest.fixture
def stored(repositories):
    """Factory: stored("AAA", "BBB") upserts the instruments."""

    def _stored(*tickers):
        for ticker in tickers:
            repositories.instruments.upsert(InstrumentRecord(ticker=ticker, name=f"{ticker} fund"))
        return repositories

    return _stored


@pytest.fixture
def build(repositories, recorded_sleep):
    def _build(client, shutdown=None, checkpoint_store=None, **config):
        config.setdefault("batch_gap", 0.2)
        return PriceRefresher(
            fetch_client=client,
            instruments=repositories.instruments,
            prices=repositories.prices,
            config=SyncConfig(**config),
            checkpoint_store=checkpoint_store,
            shutdown=shutdown,
            sleep=recorded_sleep,
            now=lambda: NOW,
        )

    return _build


class TestIncrementalWindow:
    @pytest.mark.asyncio
    async def test_fetches_after_latest_stored_date(self, build, stored, fake_fetch_client):
        repos = stored("AAA")
        repos.prices.append("AAA", [bar("AAA", date(2024, 5, 30)), bar("AAA", date(2024, 5, 31))])
        client = fake_fetch_client([])

        summary = await build(client).run()

        assert client.price_calls == [("AAA", date(2024, 6, 1), TODAY)]
        assert summary.refreshed == ["AAA"]
        assert summary.completed

    @pytest.mark.asyncio
    async def test_without_history_uses_configured_window(self, build, stored, fake_fetch_client):
        stored("NEW")
        client = fake_fetch_client([])

        await build(client, price_history_years=5).run()

        assert client.price_calls == [("NEW", TODAY - timedelta(days=365 * 5), TODAY)]

    @pytest.mark.asyncio
    async def test_up_to_date_ticker_makes_no_call(self, build, stored, fake_fetch_client):
        repos = stored("AAA")
        repos.prices.append("AAA", [bar("AAA", TODAY)])
        client = fake_fetch_client([])

        summary = await build(client).run()

        assert client.price_calls == []
        assert summary.up_to_date == 1
        assert summary.refreshed == []

    @pytest.mark.asyncio
    async def test_only_new_bars_are_appended(self, build, stored, fake_fetch_client):
        repos = stored("AAA")
        # the fake answers with the five days ending today
        repos.prices.append("AAA", [bar("AAA", TODAY - timedelta(days=d)) for d in (4, 3, 2)])
        client = fake_fetch_client([])

        summary = await build(client).run()

        assert summary.bars_saved == 2
        assert repos.prices.latest_date("AAA") == TODAY
        assert repos.prices.count("AAA") == 5

    @pytest.mark.asyncio
    async def test_explicit_tickers_override_store(self, build, stored, fake_fetch_client):
        stored("AAA", "BBB", "CCC")
        client = fake_fetch_client([])

        summary = await build(client).run(tickers=["CCC"])

        assert [call[0] for call in client.price_calls] == ["CCC"]
        assert summary.tickers == 1

    @pytest.mark.asyncio
    async def test_gap_between_tickers(self, build, stored, fake_fetch_client, recorded_sleep):
        stored("AAA", "BBB", "CCC")

        await build(fake_fetch_client([]), batch_gap=0.2).run()

        assert recorded_sleep.delays == [0.2, 0.2]


class TestOutcomes:
    @pytest.mark.asyncio
    async def test_not_found_is_recorded_and_skipped(self, build, stored, fake_fetch_client):
        stored("AAA", "BBB")
        client = fake_fetch_client([])
        client.price_outcomes["AAA"] = FetchOutcome.not_found(NotFoundError("404", status_code=404))

        summary = await build(client).run()

        assert summary.refreshed == ["BBB"]
        assert [ticker for ticker, _ in summary.errors] == ["AAA"]
        assert summary.completed

    @pytest.mark.asyncio
    async def test_quota_stops_the_refresh(self, build, stored, fake_fetch_client):
        stored("AAA", "BBB", "CCC")
        client = fake_fetch_client([])
        client.price_outcomes["BBB"] = FetchOutcome.quota_exhausted(
            QuotaExhaustedError("402", status_code=402)
        )

        summary = await build(client).run()

        assert summary.stopped == "quota_exhausted"
        assert not summary.completed
        assert [call[0] for call in client.price_calls] == ["AAA", "BBB"]
        assert summary.refreshed == ["AAA"]

    @pytest.mark.asyncio
    async def test_rate_limit_cools_down_once(
        self, build, stored, fake_fetch_client, recorded_sleep
    ):
        stored("AAA")
        client = fake_fetch_client([])
        client.price_outcomes["AAA"] = FetchOutcome.rate_limited(
            RateLimitError("429", status_code=429), attempts=3
        )

        summary = await build(client, rate_limit_cooldown=60.0).run()

        assert len(client.price_calls) == 2
        assert recorded_sleep.delays == [60.0]
        assert [ticker for ticker, _ in summary.errors] == ["AAA"]


class TestBudget:
    @pytest.mark.asyncio
    async def test_safety_stop_ends_refresh(self, build, stored, fake_fetch_client):
        stored("AAA", "BBB", "CCC")
        client = fake_fetch_client([])

        summary = await build(client, daily_call_limit=10, safety_stop=2).run()

        assert summary.stopped == "safety_stop"
        assert len(client.price_calls) == 2
        assert summary.api_calls_used == 2

    @pytest.mark.asyncio
    async def test_same_day_checkpoint_seeds_call_counter(
        self, build, stored, fake_fetch_client, checkpoint_store
    ):
        stored("AAA")
        write_checkpoint(checkpoint_store, calls_used=95, written_at=NOW)
        client = fake_fetch_client([])

        summary = await build(
            client, checkpoint_store=checkpoint_store, daily_call_limit=100, safety_stop=95
        ).run()

        assert summary.stopped == "safety_stop"
        assert client.price_calls == []

    @pytest.mark.asyncio
    async def test_stale_checkpoint_does_not_count(
        self, build, stored, fake_fetch_client, checkpoint_store
    ):
        stored("AAA")
        write_checkpoint(checkpoint_store, calls_used=95, written_at=NOW - timedelta(days=1))
        client = fake_fetch_client([])

        summary = await build(
            client, checkpoint_store=checkpoint_store, daily_call_limit=100, safety_stop=95
        ).run()

        assert summary.completed
        assert summary.api_calls_used == 1

    @pytest.mark.asyncio
    async def test_shutdown_stops_before_next_ticker(self, build, stored, fake_fetch_client):
        stored("AAA", "BBB")
        shutdown = ShutdownFlag()
        shutdown.request("test")

        summary = await build(fake_fetch_client([]), shutdown=shutdown).run()

        assert summary.stopped == "interrupted"
        assert summary.refreshed == []
