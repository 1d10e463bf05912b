"""EODHD provider plugin: client, error mapping, retry policy and mappers."""

from .client import EodhdClient
from .error_mapper import EodhdErrorMapper
from .exceptions import (
    AuthenticationError,
    NotFoundError,
    ProviderError,
    ProviderTimeoutError,
    QuotaExhaustedError,
    RateLimitError,
    ServerError,
    TransientProviderError,
    UniverseFetchError,
    ValidationError,
)
from .outcomes import FetchOutcome, OutcomeKind
from .retry_handler import RetryHandler

__all__ = [
    "EodhdClient",
    "EodhdErrorMapper",
    "RetryHandler",
    "FetchOutcome",
    "OutcomeKind",
    # Errors
    "ProviderError",
    "TransientProviderError",
    "RateLimitError",
    "ServerError",
    "ProviderTimeoutError",
    "NotFoundError",
    "QuotaExhaustedError",
    "AuthenticationError",
    "ValidationError",
    "UniverseFetchError",
]
