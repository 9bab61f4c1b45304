import json

import httpx

from src.adapters.integrations.analytics import HttpAnalyticsClient


class TestHttpAnalyticsClient:
    def test_captura(self):
        recebidos = []

        def handler(request):
            recebidos.append(request)
            return httpx.Response(200, json={"status": 1})

        client = HttpAnalyticsClient(
            "phc_teste",
            host="https://posthog.test/",
            client=httpx.Client(transport=httpx.MockTransport(handler)),
        )

        client.capture("g1", "ticket.created", {"numero": 1})

        assert str(recebidos[0].url) == "https://posthog.test/capture/"
        body = json.loads(recebidos[0].content)
        assert body["api_key"] == "phc_teste"
        assert body["event"] == "ticket.created"
        assert body["distinct_id"] == "g1"
        assert body["properties"] == {"numero": 1}

    def test_falha_nao_propaga(self):
        """Analytics nunca interrompe o fluxo."""

        def handler(request):
            raise httpx.ConnectError("fora do ar", request=request)

        client = HttpAnalyticsClient("phc_teste", client=httpx.Client(transport=httpx.MockTransport(handler)))

        client.capture("g1", "ticket.created", {})
