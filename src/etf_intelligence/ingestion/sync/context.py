"""
Composition root for sync runs.

Builds every collaborator of a run explicitly from ConfigState and tears them
down when the run ends. No component reaches for a shared global instance.
"""

from dataclasses import dataclass

from sqlalchemy import Engine

from etf_intelligence.config.state import ConfigState
from etf_intelligence.infrastructure.checkpoint.store import CheckpointStore
from etf_intelligence.infrastructure.database.engine import (
    create_db_engine,
    init_schema,
    make_session_factory,
)
from etf_intelligence.ingestion.adapters.eodhd_plugin.client import EodhdClient
from etf_intelligence.ingestion.config.value_objects import EodhdConfig, SyncConfig
from etf_intelligence.ingestion.connectors.aiohttp_client import AiohttpClient
from etf_intelligence.ingestion.orchestration.rate_limiter import TokenBucketRateLimiter
from etf_intelligence.storage.repositories import (
    HoldingRepository,
    InstrumentRepository,
    MetricSnapshotRepository,
    PriceBarRepository,
    SectorWeightRepository,
)

from .orchestrator import IngestionOrchestrator
from .price_refresh import PriceRefresher
from .reporter import SyncReporter
from .shutdown import ShutdownFlag


@dataclass
class Repositories:
    instruments: InstrumentRepository
    holdings: HoldingRepository
    sectors: SectorWeightRepository
    prices: PriceBarRepository
    metrics: MetricSnapshotRepository


def build_repositories(engine: Engine) -> Repositories:
    session_factory = make_session_factory(engine)
    return Repositories(
        instruments=InstrumentRepository(session_factory),
        holdings=HoldingRepository(session_factory),
        sectors=SectorWeightRepository(session_factory),
        prices=PriceBarRepository(session_factory),
        metrics=MetricSnapshotRepository(session_factory),
    )


def build_checkpoint_store(state: ConfigState) -> CheckpointStore:
    checkpoint = state.checkpoint
    if checkpoint.backend == "s3":
        return CheckpointStore(
            bucket=checkpoint.bucket, key=checkpoint.key, endpoint=checkpoint.endpoint
        )
    return CheckpointStore(path=checkpoint.path)


@dataclass
class SyncContext:
    """Everything one sync run needs, with an explicit close()."""

    state: ConfigState
    engine: Engine
    repositories: Repositories
    http_client: AiohttpClient
    rate_limiter: TokenBucketRateLimiter
    client: EodhdClient
    checkpoint_store: CheckpointStore
    shutdown: ShutdownFlag

    def orchestrator(self, reporter: SyncReporter | None = None, **overrides) -> IngestionOrchestrator:
        return IngestionOrchestrator(
            fetch_client=self.client,
            instruments=self.repositories.instruments,
            holdings=self.repositories.holdings,
            sectors=self.repositories.sectors,
            prices=self.repositories.prices,
            checkpoint_store=self.checkpoint_store,
            config=SyncConfig.from_state(self.state, **overrides),
            reporter=reporter,
            shutdown=self.shutdown,
        )

    def price_refresher(self, **overrides) -> PriceRefresher:
        return PriceRefresher(
            fetch_client=self.client,
            instruments=self.repositories.instruments,
            prices=self.repositories.prices,
            config=SyncConfig.from_state(self.state, **overrides),
            checkpoint_store=self.checkpoint_store,
            shutdown=self.shutdown,
        )

    async def close(self) -> None:
        await self.http_client.close()
        self.engine.dispose()

    async def __aenter__(self) -> "SyncContext":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


def build_sync_context(state: ConfigState, shutdown: ShutdownFlag | None = None) -> SyncContext:
    """Wire config -> engine, repositories, HTTP, limiter, client, checkpoint store."""
    engine = create_db_engine(state.database)
    init_schema(engine)

    eodhd_config = EodhdConfig.from_state(state)
    http_client = AiohttpClient(eodhd_config.http_config)
    rate_limiter = TokenBucketRateLimiter.from_config(eodhd_config.rate_limit_config)

    return SyncContext(
        state=state,
        engine=engine,
        repositories=build_repositories(engine),
        http_client=http_client,
        rate_limiter=rate_limiter,
        client=EodhdClient(eodhd_config, http_client, rate_limiter),
        checkpoint_store=build_checkpoint_store(state),
        shutdown=shutdown if shutdown is not None else ShutdownFlag(),
    )
