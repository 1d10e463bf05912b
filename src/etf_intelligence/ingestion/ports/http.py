"""HTTP transport port used by the EODHD client.

Retry, error mapping and rate limiting live in the adapter; the transport only
moves bytes and decodes bodies.
"""

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass
class HttpResponse:
    """Status, decoded body, headers and final URL of one request."""

    status_code: int
    body: Any  # decoded JSON, stripped text when not JSON, None when empty
    headers: dict[str, str]
    url: str


class IHttpClient(Protocol):
    """GET-only async HTTP transport. Non-2xx statuses are returned, not raised."""

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResponse:
        """
        Raises:
            aiohttp.ClientError: On network or connection errors
            asyncio.TimeoutError: When the request exceeds its timeout
        """
        ...

    async def close(self) -> None:
        """Release pooled connections."""
        ...
