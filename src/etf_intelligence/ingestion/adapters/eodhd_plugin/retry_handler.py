"""
EODHD Retry Handler

Distinguishes between retryable errors (rate limits, server errors, timeouts)
and non-retryable errors (bad requests, quota exhausted, not found).
"""

from etf_intelligence.ingestion.config.value_objects import RetryConfig


class RetryHandler:
    """Determines retry behavior for different error types."""

    # Status codes that should NOT be retried (permanent failures)
    NON_RETRYABLE_STATUS_CODES = (400, 401, 402, 403, 404)

    def __init__(self, config: RetryConfig | None = None):
        self.config = config or RetryConfig()

    @property
    def max_attempts(self) -> int:
        return self.config.max_attempts

    def should_retry(self, status_code: int) -> bool:
        """
        Determine if an error should be retried.

        Args:
            status_code: HTTP status code

        Returns:
            True if error is retryable, False otherwise
        """
        if status_code in self.NON_RETRYABLE_STATUS_CODES:
            return False

        if status_code in self.config.retryable_status_codes:
            return True

        # Unknown 5xx errors should be retried as server issues
        if status_code >= 500:
            return True

        return False

    def get_retry_delay(
        self, attempt: int, status_code: int | None = None, retry_after: int | None = None
    ) -> float:
        """
        Calculate retry delay with exponential backoff.

        Args:
            attempt: Current attempt (0-indexed)
            status_code: HTTP status code, None for timeouts/connection errors
            retry_after: Parsed Retry-After header value if present

        Returns:
            Number of seconds to wait before retrying
        """
        if status_code == 429 and retry_after is not None:
            return float(min(retry_after, self.config.max_delay))

        delay = self.config.base_delay * (2**attempt)
        return min(delay, self.config.max_delay)
