from .value_objects import (
    EodhdConfig,
    HttpClientConfig,
    RateLimitConfig,
    RetryConfig,
    SyncConfig,
)

__all__ = [
    "EodhdConfig",
    "HttpClientConfig",
    "RateLimitConfig",
    "RetryConfig",
    "SyncConfig",
]
