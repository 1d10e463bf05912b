"""
EODHD API client.

Wraps the three endpoints the sync pipeline needs behind a retrying,
rate-limited fetch layer. Provider conditions come back as FetchOutcome tags;
only programming errors escape as exceptions.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any

import aiohttp

from etf_intelligence.infrastructure.observability import get_ingestion_logger
from etf_intelligence.ingestion.config.value_objects import EodhdConfig
from etf_intelligence.ingestion.orchestration.rate_limiter import IRateLimiter
from etf_intelligence.ingestion.ports.http import IHttpClient

from .error_mapper import EodhdErrorMapper
from .exceptions import (
    NotFoundError,
    ProviderError,
    ProviderTimeoutError,
    QuotaExhaustedError,
    RateLimitError,
    ValidationError,
)
from .mappers import map_listing
from .outcomes import FetchOutcome
from .retry_handler import RetryHandler

log = get_ingestion_logger("eodhd-client", provider="eodhd")


class EodhdClient:
    """
    Retrying EODHD client.

    Every attempt acquires a rate limiter token first and is counted in
    ``calls_used`` whether it succeeds or not. 429, 5xx and timeouts are
    retried with exponential backoff; 404 and 402 are terminal.
    """

    def __init__(
        self,
        config: EodhdConfig,
        http_client: IHttpClient,
        rate_limiter: IRateLimiter,
        retry_handler: RetryHandler | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.http = http_client
        self.rate_limiter = rate_limiter
        self.retry_handler = retry_handler or RetryHandler(config.retry_config)
        self._sleep = sleep
        self.calls_used = 0

    def reset_call_counter(self, value: int = 0) -> None:
        """Restore the daily call counter (e.g. from a checkpoint)."""
        self.calls_used = value

    def _provider_symbol(self, symbol: str) -> str:
        if "." in symbol or not self.config.symbol_suffix:
            return symbol
        return f"{symbol}.{self.config.symbol_suffix}"

    async def _request(self, endpoint: str, params: dict[str, Any] | None = None) -> FetchOutcome:
        url = f"{self.config.base_url}/{endpoint.lstrip('/')}"
        query = {"api_token": self.config.api_key, "fmt": "json"}
        if params:
            query.update(params)

        max_attempts = self.retry_handler.max_attempts
        last_error: ProviderError | None = None

        for attempt in range(max_attempts):
            await self.rate_limiter.acquire()
            self.calls_used += 1

            status_code: int | None = None
            retry_after: int | None = None

            try:
                response = await self.http.get(
                    url, params=query, timeout=self.config.http_config.timeout
                )
            except (asyncio.TimeoutError, aiohttp.ClientError) as e:
                last_error = ProviderTimeoutError(
                    f"Request to {endpoint} failed: {type(e).__name__}: {e}",
                    endpoint=endpoint,
                )
                log.warning(
                    "request_transport_error",
                    endpoint=endpoint,
                    attempt=attempt + 1,
                    error=str(last_error),
                )
            except UnicodeDecodeError as e:
                # the same bytes come back on a retry
                error = ValidationError(f"Undecodable response from {endpoint}: {e}", endpoint=endpoint)
                log.error("response_undecodable", endpoint=endpoint, error=str(e))
                return FetchOutcome.fatal(error, attempts=attempt + 1, endpoint=endpoint)
            else:
                status_code = response.status_code
                if 200 <= status_code < 300:
                    return FetchOutcome.ok(
                        response.body, attempts=attempt + 1, endpoint=endpoint
                    )

                error = EodhdErrorMapper.map_error(
                    status_code,
                    response.body,
                    endpoint,
                    retry_after=response.headers.get("Retry-After"),
                )

                if isinstance(error, NotFoundError):
                    log.info("resource_not_found", endpoint=endpoint)
                    return FetchOutcome.not_found(error, attempts=attempt + 1, endpoint=endpoint)

                if isinstance(error, QuotaExhaustedError):
                    log.error("quota_exhausted", endpoint=endpoint, status=status_code)
                    return FetchOutcome.quota_exhausted(
                        error, attempts=attempt + 1, endpoint=endpoint
                    )

                if not self.retry_handler.should_retry(status_code):
                    log.error(
                        "request_failed_non_retryable",
                        endpoint=endpoint,
                        status=status_code,
                        error=str(error),
                    )
                    return FetchOutcome.fatal(error, attempts=attempt + 1, endpoint=endpoint)

                last_error = error
                if isinstance(error, RateLimitError):
                    retry_after = error.retry_after
                log.warning(
                    "request_retryable_error",
                    endpoint=endpoint,
                    status=status_code,
                    attempt=attempt + 1,
                )

            if attempt < max_attempts - 1:
                delay = self.retry_handler.get_retry_delay(
                    attempt, status_code, retry_after=retry_after
                )
                await self._sleep(delay)

        if isinstance(last_error, RateLimitError):
            return FetchOutcome.rate_limited(last_error, attempts=max_attempts, endpoint=endpoint)

        log.error(
            "request_retries_exhausted",
            endpoint=endpoint,
            attempts=max_attempts,
            error=str(last_error),
        )
        return FetchOutcome.fatal(last_error, attempts=max_attempts, endpoint=endpoint)

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------
    async def list_symbols(self, exchange: str = "US", symbol_type: str = "ETF") -> FetchOutcome:
        """List exchange symbols of one type. OK data is a list of SymbolListing."""
        outcome = await self._request(
            f"exchange-symbol-list/{exchange}", {"type": symbol_type}
        )
        if not outcome.is_ok:
            return outcome
        if not isinstance(outcome.data, list):
            return FetchOutcome.fatal(
                ValidationError(
                    f"Symbol list for {exchange} is not a list",
                    endpoint=outcome.endpoint,
                ),
                attempts=outcome.attempts,
                endpoint=outcome.endpoint,
            )
        listings = map_listing(outcome.data)
        log.info("symbols_listed", exchange=exchange, symbol_type=symbol_type, count=len(listings))
        return FetchOutcome.ok(listings, attempts=outcome.attempts, endpoint=outcome.endpoint)

    async def fundamentals(self, symbol: str) -> FetchOutcome:
        """Fetch the fundamentals document. OK data is the raw mapping ({} if empty)."""
        outcome = await self._request(f"fundamentals/{self._provider_symbol(symbol)}")
        if not outcome.is_ok:
            return outcome
        body = outcome.data
        if not body:
            body = {}
        if not isinstance(body, dict):
            return FetchOutcome.fatal(
                ValidationError(
                    f"Fundamentals for {symbol} is a {type(body).__name__}, expected an object",
                    endpoint=outcome.endpoint,
                ),
                attempts=outcome.attempts,
                endpoint=outcome.endpoint,
            )
        return FetchOutcome.ok(body, attempts=outcome.attempts, endpoint=outcome.endpoint)

    async def historical_prices(
        self, symbol: str, from_date: date, to_date: date
    ) -> FetchOutcome:
        """Fetch daily bars. OK data is the raw list of bar mappings."""
        outcome = await self._request(
            f"eod/{self._provider_symbol(symbol)}",
            {
                "from": from_date.isoformat(),
                "to": to_date.isoformat(),
                "period": "d",
            },
        )
        if not outcome.is_ok:
            return outcome
        body = outcome.data or []
        if not isinstance(body, list):
            return FetchOutcome.fatal(
                ValidationError(
                    f"Price history for {symbol} is not a list", endpoint=outcome.endpoint
                ),
                attempts=outcome.attempts,
                endpoint=outcome.endpoint,
            )
        return FetchOutcome.ok(body, attempts=outcome.attempts, endpoint=outcome.endpoint)
