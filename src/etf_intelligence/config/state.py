"""
Unified configuration state for the ETF sync pipeline and analytics.

Combines hierarchical YAML files with environment overrides, type validation
and sensible defaults. The loaded ConfigState is passed explicitly to the
components that need it; nothing here is a module-level singleton.
"""

import logging
import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = "config"


# =============================================================================
# PYDANTIC MODELS - Type-Safe Configuration
# =============================================================================


class ProviderConfig(BaseModel):
    """EODHD API configuration."""

    model_config = ConfigDict(extra="allow")

    base_url: str = Field(default="https://eodhd.com/api")
    api_key: str = Field(default="")
    requests_per_minute: int = Field(default=300, ge=1)
    timeout: float = Field(default=20.0, gt=0)
    max_attempts: int = Field(default=3, ge=1, le=10)
    backoff_base: float = Field(default=1.0, ge=0)
    exchange: str = Field(default="US")
    symbol_type: str = Field(default="ETF")
    symbol_suffix: str = Field(default="US")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("Provider base_url must be an http(s) URL")
        return v.rstrip("/")


class IngestionConfig(BaseModel):
    """Universe sync run configuration."""

    model_config = ConfigDict(extra="allow")

    batch_size: int = Field(default=5, ge=1, le=100)
    checkpoint_interval: int = Field(default=50, ge=1)
    daily_call_limit: int = Field(default=100_000, ge=1)
    safety_stop: int = Field(default=95_000, ge=1)
    rate_limit_cooldown: float = Field(default=60.0, ge=0)
    batch_gap: float = Field(default=0.2, ge=0)
    sync_prices: bool = Field(default=False)
    price_history_years: int = Field(default=5, ge=1, le=30)

    @model_validator(mode="after")
    def check_safety_stop(self) -> "IngestionConfig":
        if self.safety_stop > self.daily_call_limit:
            raise ValueError(
                f"safety_stop ({self.safety_stop}) must not exceed "
                f"daily_call_limit ({self.daily_call_limit})"
            )
        return self


class CheckpointConfig(BaseModel):
    """Where the ingestion checkpoint document lives."""

    model_config = ConfigDict(extra="allow")

    backend: Literal["local", "s3"] = Field(default="local")
    path: str = Field(default="data/etf-sync-progress.json")
    bucket: str | None = Field(default=None)
    key: str = Field(default="checkpoints/etf-sync-progress.json")
    endpoint: str | None = Field(default=None)

    @model_validator(mode="after")
    def check_bucket(self) -> "CheckpointConfig":
        if self.backend == "s3" and not self.bucket:
            raise ValueError("checkpoint.bucket is required for the s3 backend")
        return self


class DatabaseConfig(BaseModel):
    """Relational store connection configuration."""

    model_config = ConfigDict(extra="allow")

    url: str = Field(default="sqlite:///./data/etf_intelligence.db")
    echo: bool = Field(default=False)
    pool_pre_ping: bool = Field(default=True)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if "://" not in v:
            raise ValueError("Database URL must be an SQLAlchemy URL")
        return v


class AnalyticsConfig(BaseModel):
    """Metric computation settings."""

    model_config = ConfigDict(extra="allow")

    risk_free_rate: float = Field(default=0.03, ge=-1.0, le=1.0)
    benchmark_ticker: str = Field(default="SPY", min_length=1)
    min_price_bars: int = Field(default=20, ge=2)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="allow")

    level: str = Field(default="INFO")
    json_logs: bool = Field(default=False)


class ConfigState(BaseModel):
    """
    Root configuration state - single source of truth for a run.

    Built by ConfigLoader and handed to build_sync_context() / MetricsService.
    """

    model_config = ConfigDict(extra="allow")

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    checkpoint: CheckpointConfig = Field(default_factory=CheckpointConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    env: str = Field(default="dev")
    config_dir: str = Field(default=DEFAULT_CONFIG_DIR)


# =============================================================================
# CONFIG LOADER - Clean, Validated Loading
# =============================================================================


class ConfigLoader:
    """
    Load and validate configuration from hierarchical YAML files.

    Merges:
      1. Global defaults (hardcoded in the models)
      2. YAML files from config_dir
      3. env/{ETF_ENV}.yaml
      4. Environment variable overrides
    """

    CONFIG_FILES = (
        "provider.yaml",
        "ingestion.yaml",
        "database.yaml",
        "analytics.yaml",
    )

    def __init__(self, config_dir: str | None = None, env: str | None = None):
        self.config_dir = Path(config_dir or os.getenv("ETF_CONFIG_DIR", DEFAULT_CONFIG_DIR))
        self._yaml_cache: dict[Path, Any] = {}
        self.env = env or os.getenv("ETF_ENV", "dev")

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        """Load YAML file with caching. Missing files yield an empty mapping."""
        if path in self._yaml_cache:
            return self._yaml_cache[path]

        if not path.exists():
            logger.debug(f"Config file not found (using defaults): {path}")
            return {}

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        self._yaml_cache[path] = data
        logger.debug(f"Loaded config: {path}")
        return data

    def _apply_env_overrides(self, config: dict[str, Any]) -> dict[str, Any]:
        """Apply environment variable overrides to config."""
        if api_key := os.getenv("EODHD_API_KEY"):
            config.setdefault("provider", {})["api_key"] = api_key

        if base_url := os.getenv("EODHD_BASE_URL"):
            config.setdefault("provider", {})["base_url"] = base_url

        if rpm := os.getenv("EODHD_REQUESTS_PER_MINUTE"):
            config.setdefault("provider", {})["requests_per_minute"] = rpm

        if db_url := os.getenv("DATABASE_URL"):
            config.setdefault("database", {})["url"] = db_url

        if rf := os.getenv("RISK_FREE_RATE_ANNUAL"):
            config.setdefault("analytics", {})["risk_free_rate"] = rf

        if benchmark := os.getenv("BENCHMARK_TICKER"):
            config.setdefault("analytics", {})["benchmark_ticker"] = benchmark

        if checkpoint_path := os.getenv("ETF_CHECKPOINT_PATH"):
            config.setdefault("checkpoint", {})["path"] = checkpoint_path

        if log_level := os.getenv("LOG_LEVEL"):
            config.setdefault("logging", {})["level"] = log_level

        return config

    def _merge_dicts(self, base: dict, override: dict) -> dict:
        """Deep merge override into base dict."""
        result = base.copy()
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_dicts(result[key], value)
            else:
                result[key] = value
        return result

    def load(self) -> ConfigState:
        """
        Load complete configuration state.

        Returns:
            ConfigState: Validated configuration object

        Raises:
            pydantic.ValidationError: If configuration is invalid
        """
        logger.info(f"Loading configuration from {self.config_dir} (env: {self.env})")

        config: dict[str, Any] = {}

        for config_file in self.CONFIG_FILES:
            file_config = self._load_yaml(self.config_dir / config_file)
            config = self._merge_dicts(config, file_config)

        env_config = self._load_yaml(self.config_dir / "env" / f"{self.env}.yaml")
        config = self._merge_dicts(config, env_config)

        config = self._apply_env_overrides(config)

        state = ConfigState(env=self.env, config_dir=str(self.config_dir), **config)
        logger.info(
            f"✅ Configuration loaded: provider={state.provider.base_url}, "
            f"rpm={state.provider.requests_per_minute}, "
            f"batch={state.ingestion.batch_size}, db={state.database.url.split(':', 1)[0]}"
        )
        if not state.provider.api_key:
            logger.warning("⚠️ No EODHD API key configured; provider calls will be rejected")
        return state


def load_config(config_dir: str | None = None, env: str | None = None) -> ConfigState:
    """Convenience wrapper around ConfigLoader(...).load()."""
    return ConfigLoader(config_dir=config_dir, env=env).load()
