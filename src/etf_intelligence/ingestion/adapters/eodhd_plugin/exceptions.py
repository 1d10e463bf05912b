"""
EODHD API Exception Hierarchy

Provides specific exception types for the provider failure modes so the
client can decide what to retry and the orchestrator what to record.
"""


class ProviderError(Exception):
    """Base exception for all EODHD API errors."""

    def __init__(
        self, message: str, status_code: int | None = None, endpoint: str | None = None
    ):
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


class TransientProviderError(ProviderError):
    """429/5xx - temporary failure, retried with backoff."""

    pass


class RateLimitError(TransientProviderError):
    """429 - Too many requests, rate limit exceeded."""

    def __init__(self, message: str, retry_after: int | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class ServerError(TransientProviderError):
    """500+ - Server-side error."""

    pass


class ProviderTimeoutError(TransientProviderError):
    """Request exceeded its timeout or the connection dropped."""

    pass


class NotFoundError(ProviderError):
    """404 - Symbol unknown to the provider."""

    pass


class QuotaExhaustedError(ProviderError):
    """402 - Plan or daily billing limit reached. Fatal for the run."""

    pass


class AuthenticationError(ProviderError):
    """401/403 - Invalid or missing API token."""

    pass


class ValidationError(ProviderError):
    """Response payload has an unusable shape."""

    pass


class UniverseFetchError(ProviderError):
    """The symbol listing could not be fetched; nothing to sync."""

    pass
