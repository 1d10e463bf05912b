"""
Testes para o AiohttpClient contra um servidor aiohttp local.

O provedor às vezes devolve bytes que não são UTF-8 válido; o transporte deve
entregar um HttpResponse mesmo assim.
"""

import pytest
from aiohttp import test_utils, web

from etf_intelligence.ingestion.adapters.eodhd_plugin.client import EodhdClient
from etf_intelligence.ingestion.adapters.eodhd_plugin.outcomes import OutcomeKind
from etf_intelligence.ingestion.config.value_objects import EodhdConfig, HttpClientConfig
from etf_intelligence.ingestion.connectors.aiohttp_client import AiohttpClient


def build_app(body: bytes, status: int = 200, content_type: str = "application/json") -> web.Application:
    async def handler(request):
        return web.Response(body=body, status=status, content_type=content_type, charset="utf-8")

    app = web.Application()
    app.router.add_get("/api/fundamentals/{symbol}", handler)
    return app


class TestAiohttpClient:
    @pytest.mark.asyncio
    async def test_json_body_is_decoded(self):
        app = build_app(b'{"General": {"Code": "SPY"}}')
        async with test_utils.TestServer(app) as server:
            async with AiohttpClient(HttpClientConfig(timeout=5.0)) as http:
                response = await http.get(str(server.make_url("/api/fundamentals/SPY.US")))

        assert response.status_code == 200
        assert response.body == {"General": {"Code": "SPY"}}
        assert response.url.endswith("/api/fundamentals/SPY.US")

    @pytest.mark.asyncio
    async def test_invalid_utf8_does_not_raise(self):
        app = build_app(b'{"General": {"Name": "\xff\xfe"}}')
        async with test_utils.TestServer(app) as server:
            async with AiohttpClient(HttpClientConfig(timeout=5.0)) as http:
                response = await http.get(str(server.make_url("/api/fundamentals/AAA.US")))

        assert response.status_code == 200
        assert response.body == {"General": {"Name": "\ufffd\ufffd"}}

    @pytest.mark.asyncio
    async def test_plain_text_error_body(self):
        app = build_app(b"Ticker Not Found.", status=404, content_type="text/plain")
        async with test_utils.TestServer(app) as server:
            async with AiohttpClient(HttpClientConfig(timeout=5.0)) as http:
                response = await http.get(str(server.make_url("/api/fundamentals/ZZZ.US")))

        assert response.status_code == 404
        assert response.body == "Ticker Not Found."


class TestEodhdClientOverAiohttp:
    @pytest.mark.asyncio
    async def test_invalid_utf8_fundamentals_yield_an_outcome(self, limiter, recorded_sleep):
        app = build_app(b'{"General": {"Code": "AAA", "Name": "\xff\xfe Fund", "Type": "ETF"}}')
        async with test_utils.TestServer(app) as server:
            async with AiohttpClient(HttpClientConfig(timeout=5.0)) as http:
                client = EodhdClient(
                    EodhdConfig(base_url=str(server.make_url("/api")), api_key="test-key"),
                    http,
                    limiter,
                    sleep=recorded_sleep,
                )
                outcome = await client.fundamentals("AAA")

        assert outcome.kind is OutcomeKind.OK
        assert outcome.data["General"]["Code"] == "AAA"
        assert outcome.data["General"]["Name"].endswith(" Fund")
