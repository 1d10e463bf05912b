"""aiohttp transport behind IHttpClient.

Bodies are decoded leniently: EODHD answers some symbols with an empty body or
plain text ("NA") under a 200, labels JSON as text/html on some endpoints
and does not always send valid UTF-8. The adapter decides what an undecodable
body means; the transport never raises for it.
"""

import json
from typing import Any

import aiohttp

from etf_intelligence.ingestion.config.value_objects import HttpClientConfig
from etf_intelligence.ingestion.ports.http import HttpResponse, IHttpClient


def decode_body(text: str) -> Any:
    """JSON value of ``text``; None when empty, the stripped text when not JSON."""
    stripped = text.strip()
    if not stripped:
        return None
    try:
        return json.loads(stripped)
    except ValueError:
        return stripped


def decode_payload(raw: bytes, charset: str | None = None) -> Any:
    """Decode raw bytes; undecodable sequences become U+FFFD instead of raising."""
    try:
        text = raw.decode(charset or "utf-8", errors="replace")
    except LookupError:
        text = raw.decode("utf-8", errors="replace")
    return decode_body(text)


class AiohttpClient(IHttpClient):
    """One lazily created ClientSession per client, reused across requests."""

    def __init__(self, config: HttpClientConfig):
        self.config = config
        self._session: aiohttp.ClientSession | None = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(
                    total=self.config.timeout, connect=self.config.connect_timeout
                )
            )
        return self._session

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResponse:
        """GET ``url``; transport failures surface as aiohttp.ClientError / asyncio.TimeoutError."""
        session = self._ensure_session()
        request_timeout = aiohttp.ClientTimeout(total=timeout or self.config.timeout)

        async with session.get(
            url, params=params, headers=headers, timeout=request_timeout
        ) as resp:
            raw = await resp.read()
            return HttpResponse(
                status_code=resp.status,
                body=decode_payload(raw, resp.charset),
                headers=dict(resp.headers),
                url=str(resp.url),
            )

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "AiohttpClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
