"""Configuration value objects for dependency injection.

Instead of injecting the whole ConfigState, inject specific configuration
dataclasses into each component. Enables:
- Easy testing with different configurations
- Clear constructor contracts
- Validation at composition root
"""

from dataclasses import dataclass, field

from etf_intelligence.config.state import ConfigState


@dataclass(frozen=True)
class HttpClientConfig:
    """Configuration for HTTP client."""

    timeout: float = 20.0
    connect_timeout: float = 10.0


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    retryable_status_codes: tuple[int, ...] = (429, 500, 502, 503, 504)


@dataclass(frozen=True)
class RateLimitConfig:
    """Token bucket sizing."""

    requests_per_minute: int = 300

    @property
    def rate_per_second(self) -> float:
        return self.requests_per_minute / 60.0


@dataclass(frozen=True)
class EodhdConfig:
    """Configuration for the EODHD API client."""

    base_url: str
    api_key: str
    symbol_suffix: str = "US"
    http_config: HttpClientConfig = field(default_factory=HttpClientConfig)
    retry_config: RetryConfig = field(default_factory=RetryConfig)
    rate_limit_config: RateLimitConfig = field(default_factory=RateLimitConfig)

    @classmethod
    def from_state(cls, state: ConfigState) -> "EodhdConfig":
        provider = state.provider
        return cls(
            base_url=provider.base_url,
            api_key=provider.api_key,
            symbol_suffix=provider.symbol_suffix,
            http_config=HttpClientConfig(timeout=provider.timeout),
            retry_config=RetryConfig(
                max_attempts=provider.max_attempts,
                base_delay=provider.backoff_base,
            ),
            rate_limit_config=RateLimitConfig(
                requests_per_minute=provider.requests_per_minute
            ),
        )


@dataclass(frozen=True)
class SyncConfig:
    """Configuration for a universe sync run."""

    exchange: str = "US"
    symbol_type: str = "ETF"
    batch_size: int = 5
    checkpoint_interval: int = 50
    daily_call_limit: int = 100_000
    safety_stop: int = 95_000
    rate_limit_cooldown: float = 60.0
    batch_gap: float = 0.2
    sync_prices: bool = False
    price_history_years: int = 5
    limit: int | None = None  # Cap on remaining symbols per run (None = all)

    @classmethod
    def from_state(cls, state: ConfigState, **overrides) -> "SyncConfig":
        ingestion = state.ingestion
        values = {
            "exchange": state.provider.exchange,
            "symbol_type": state.provider.symbol_type,
            "batch_size": ingestion.batch_size,
            "checkpoint_interval": ingestion.checkpoint_interval,
            "daily_call_limit": ingestion.daily_call_limit,
            "safety_stop": ingestion.safety_stop,
            "rate_limit_cooldown": ingestion.rate_limit_cooldown,
            "batch_gap": ingestion.batch_gap,
            "sync_prices": ingestion.sync_prices,
            "price_history_years": ingestion.price_history_years,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
