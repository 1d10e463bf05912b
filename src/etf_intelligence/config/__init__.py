from .state import (
    AnalyticsConfig,
    CheckpointConfig,
    ConfigLoader,
    ConfigState,
    DatabaseConfig,
    IngestionConfig,
    LoggingConfig,
    ProviderConfig,
    load_config,
)

__all__ = [
    "AnalyticsConfig",
    "CheckpointConfig",
    "ConfigLoader",
    "ConfigState",
    "DatabaseConfig",
    "IngestionConfig",
    "LoggingConfig",
    "ProviderConfig",
    "load_config",
]
