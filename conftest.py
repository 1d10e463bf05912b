"""
Shared fixtures for the ETF intelligence test-suite.

Provides:
- A scripted IHttpClient double and a no-wait rate limiter for client tests
- A scripted IFetchClient double for orchestrator tests
- A throwaway SQLite database with all repositories wired
"""

import json
import sys
from datetime import date, timedelta
from pathlib import Path

import pytest

# Ensure src on path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from etf_intelligence.config.state import DatabaseConfig  # noqa: E402
from etf_intelligence.infrastructure.checkpoint.store import CheckpointStore  # noqa: E402
from etf_intelligence.infrastructure.database.engine import (  # noqa: E402
    create_db_engine,
    init_schema,
)
from etf_intelligence.ingestion.adapters.eodhd_plugin.client import EodhdClient  # noqa: E402
from etf_intelligence.ingestion.adapters.eodhd_plugin.outcomes import FetchOutcome  # noqa: E402
from etf_intelligence.ingestion.adapters.eodhd_plugin.schemas import SymbolListing  # noqa: E402
from etf_intelligence.ingestion.config.value_objects import EodhdConfig, RetryConfig  # noqa: E402
from etf_intelligence.ingestion.ports.http import HttpResponse  # noqa: E402
from etf_intelligence.ingestion.sync.context import build_repositories  # noqa: E402

FIXTURES_DIR = Path(__file__).parent / "tests" / "fixtures"


def load_fixture(fixture_name: str):
    """Load one named payload from tests/fixtures/eodhd_responses.json."""
    with open(FIXTURES_DIR / "eodhd_responses.json", encoding="utf-8") as f:
        all_fixtures = json.load(f)
    if fixture_name not in all_fixtures:
        raise KeyError(f"Fixture '{fixture_name}' not found")
    return all_fixtures[fixture_name]


def make_fundamentals(ticker: str, holdings: int = 3) -> dict:
    """Minimal but complete fundamentals document for ``ticker``."""
    return {
        "General": {
            "Code": ticker,
            "Name": f"{ticker} Index Fund",
            "Exchange": "NYSE ARCA",
            "CountryISO": "US",
            "CurrencyCode": "USD",
            "Category": "Large Blend",
        },
        "ETF_Data": {
            "TotalAssets": "1000000000",
            "NetExpenseRatio": "0.0009",
            "Asset_Allocation": {
                "Stock US": {"Net_Assets_%": "95.5"},
                "Cash": {"Net_Assets_%": "4.5"},
            },
            "Holdings": {
                f"H{i}.US": {"Code": f"H{i}", "Name": f"Holding {i}", "Assets_%": 10.0 - i}
                for i in range(holdings)
            },
            "Sector_Weights": {
                "Technology": {"Equity_%": "30.1"},
                "Healthcare": {"Equity_%": "12.4"},
            },
        },
    }


def make_eod_rows(start: date, count: int, price: float = 100.0) -> list[dict]:
    rows = []
    for i in range(count):
        close = price + i
        rows.append(
            {
                "date": (start + timedelta(days=i)).isoformat(),
                "open": close,
                "high": close + 1,
                "low": close - 1,
                "close": close,
                "adjusted_close": close,
                "volume": 1000 + i,
            }
        )
    return rows


# ============================================================================
# Test doubles
# ============================================================================


class FakeHttpClient:
    """
    IHttpClient double with scripted responses per URL suffix.

    Each route holds a queue; the last entry repeats once the queue is drained.
    Exceptions in the queue are raised instead of returned.
    """

    def __init__(self):
        self.routes: dict[str, list] = {}
        self.calls: list[tuple[str, dict]] = []
        self.closed = False

    def add(self, suffix: str, *responses) -> "FakeHttpClient":
        self.routes.setdefault(suffix, []).extend(responses)
        return self

    async def get(self, url, params=None, headers=None, timeout=None) -> HttpResponse:
        self.calls.append((url, dict(params or {})))
        for suffix, queue in self.routes.items():
            if url.endswith(suffix):
                item = queue.pop(0) if len(queue) > 1 else queue[0]
                if isinstance(item, BaseException):
                    raise item
                return item
        return HttpResponse(status_code=404, body="Ticker Not Found.", headers={}, url=url)

    async def close(self) -> None:
        self.closed = True


def respond(status_code: int, body=None, headers: dict | None = None) -> HttpResponse:
    return HttpResponse(status_code=status_code, body=body, headers=headers or {}, url="")


class CountingLimiter:
    """Rate limiter double that never waits."""

    def __init__(self):
        self.acquired = 0

    async def acquire(self) -> None:
        self.acquired += 1


class RecordingSleep:
    """Async sleep double that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeFetchClient:
    """
    IFetchClient double for orchestrator tests.

    Every provider call increments ``calls_used``. Fundamentals default to a
    complete document; per-ticker queues override it.
    """

    def __init__(self, tickers: list[str]):
        self.calls_used = 0
        self.listing_outcome = FetchOutcome.ok(
            [SymbolListing(code=t, name=f"{t} listing") for t in tickers]
        )
        self.scripted: dict[str, list[FetchOutcome]] = {}
        self.price_outcome: FetchOutcome | None = None
        self.price_outcomes: dict[str, FetchOutcome] = {}  # per-ticker override
        self.price_calls: list[tuple[str, date, date]] = []
        self.fundamentals_calls: list[str] = []
        self.on_fetch = None  # optional hook(ticker) run before each fundamentals call

    def script(self, ticker: str, *outcomes: FetchOutcome) -> "FakeFetchClient":
        self.scripted.setdefault(ticker, []).extend(outcomes)
        return self

    def reset_call_counter(self, value: int = 0) -> None:
        self.calls_used = value

    async def list_symbols(self, exchange: str, symbol_type: str) -> FetchOutcome:
        self.calls_used += 1
        return self.listing_outcome

    async def fundamentals(self, symbol: str) -> FetchOutcome:
        if self.on_fetch is not None:
            self.on_fetch(symbol)
        self.calls_used += 1
        self.fundamentals_calls.append(symbol)
        queue = self.scripted.get(symbol)
        if queue:
            return queue.pop(0) if len(queue) > 1 else queue[0]
        return FetchOutcome.ok(make_fundamentals(symbol))

    async def historical_prices(self, symbol: str, from_date: date, to_date: date) -> FetchOutcome:
        self.calls_used += 1
        self.price_calls.append((symbol, from_date, to_date))
        if symbol in self.price_outcomes:
            return self.price_outcomes[symbol]
        if self.price_outcome is not None:
            return self.price_outcome
        return FetchOutcome.ok(make_eod_rows(to_date - timedelta(days=4), 5))


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def fake_http():
    return FakeHttpClient()


@pytest.fixture
def limiter():
    return CountingLimiter()


@pytest.fixture
def recorded_sleep():
    return RecordingSleep()


@pytest.fixture
def eodhd_config():
    return EodhdConfig(
        base_url="https://eodhd.test/api",
        api_key="test-key",
        retry_config=RetryConfig(max_attempts=3, base_delay=1.0, max_delay=60.0),
    )


@pytest.fixture
def eodhd_client(eodhd_config, fake_http, limiter, recorded_sleep):
    return EodhdClient(eodhd_config, fake_http, limiter, sleep=recorded_sleep)


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(DatabaseConfig(url=f"sqlite:///{tmp_path / 'etf.db'}"))
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repositories(engine):
    return build_repositories(engine)


@pytest.fixture
def checkpoint_store(tmp_path):
    return CheckpointStore(path=str(tmp_path / "checkpoints" / "progress.json"))


@pytest.fixture
def fake_fetch_client():
    """Factory: fake_fetch_client(["SPY", "QQQ"])."""
    return FakeFetchClient


@pytest.fixture
def http_response():
    """Factory: http_response(200, body, headers)."""
    return respond


@pytest.fixture
def fundamentals_factory():
    return make_fundamentals


@pytest.fixture
def eod_rows():
    return make_eod_rows


@pytest.fixture
def payload():
    """Loader for the recorded EODHD payloads: payload("fundamentals_spy")."""
    return load_fixture
