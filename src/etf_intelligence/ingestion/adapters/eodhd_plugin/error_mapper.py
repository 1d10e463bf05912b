"""
EODHD Error Mapper

Turns a non-2xx response into the ProviderError subclass the client and the
retry handler branch on. EODHD reports errors as plain text ("Ticker Not
Found.") or as {"error": ...}/{"message": ...} objects.
"""

from typing import Any

from .exceptions import (
    AuthenticationError,
    NotFoundError,
    ProviderError,
    QuotaExhaustedError,
    RateLimitError,
    ServerError,
)

MAX_MESSAGE_LENGTH = 200

# status -> (exception type, message prefix)
_STATUS_ERRORS: dict[int, tuple[type[ProviderError], str]] = {
    401: (AuthenticationError, "Invalid API token"),
    403: (AuthenticationError, "Access denied"),
    402: (QuotaExhaustedError, "API quota exhausted"),
    404: (NotFoundError, "Resource not found"),
}


class EodhdErrorMapper:
    """Maps HTTP status codes to appropriate exception types."""

    @staticmethod
    def extract_error_message(response_body: Any) -> str:
        if response_body is None:
            return ""
        if isinstance(response_body, dict):
            message = response_body.get("error") or response_body.get("message")
            if message:
                return str(message)[:MAX_MESSAGE_LENGTH]
        return str(response_body).strip()[:MAX_MESSAGE_LENGTH]

    @staticmethod
    def parse_retry_after(retry_after: str | None) -> int | None:
        """Retry-After in seconds; the HTTP-date form is ignored."""
        if not retry_after:
            return None
        try:
            return int(retry_after)
        except ValueError:
            return None

    @staticmethod
    def map_error(
        status_code: int,
        response_body: Any,
        endpoint: str,
        retry_after: str | None = None,
    ) -> ProviderError:
        """
        Build the exception for a failed response.

        Args:
            status_code: HTTP status code
            response_body: Decoded body (mapping, text or None)
            endpoint: Endpoint path that was called (e.g. "fundamentals/SPY.US")
            retry_after: Raw Retry-After header, if any

        Returns:
            ProviderError subclass instance (not raised)
        """
        detail = EodhdErrorMapper.extract_error_message(response_body)
        context = {"status_code": status_code, "endpoint": endpoint}

        if status_code == 429:
            return RateLimitError(
                f"Rate limit exceeded for {endpoint}: {detail}",
                retry_after=EodhdErrorMapper.parse_retry_after(retry_after),
                **context,
            )
        if status_code >= 500:
            return ServerError(f"Server error {status_code} for {endpoint}: {detail}", **context)

        if status_code in _STATUS_ERRORS:
            error_type, prefix = _STATUS_ERRORS[status_code]
            return error_type(f"{prefix} for {endpoint}: {detail}", **context)

        return ProviderError(f"Unexpected status {status_code} for {endpoint}: {detail}", **context)
