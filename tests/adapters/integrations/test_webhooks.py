"""
Testes do cliente de webhooks do painel.

Usa httpx.MockTransport: nenhuma requisição sai da máquina.
"""

import json

import httpx
import pytest

from src.adapters.integrations.webhooks import (
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    WebhookClient,
    sign_payload,
    verify_signature,
)
from src.core.shared.exceptions import TransientExternalError

SECRET = "segredo"


def cliente(handler):
    return WebhookClient(
        "https://painel.test/",
        SECRET,
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


class TestAssinatura:
    def test_formato(self):
        assinatura = sign_payload(SECRET, '{"a": 1}', "1700000000000")

        assert assinatura.startswith("sha256=")
        assert len(assinatura) == len("sha256=") + 64

    def test_verificar_valida(self):
        assinatura = sign_payload(SECRET, "corpo", "1000")

        assert verify_signature(SECRET, "corpo", assinatura, "1000", now_ms=2000)

    def test_corpo_alterado(self):
        assinatura = sign_payload(SECRET, "corpo", "1000")

        assert not verify_signature(SECRET, "corpo!", assinatura, "1000", now_ms=2000)

    def test_timestamp_antigo(self):
        """Deve rejeitar replay com mais de 5 minutos."""
        assinatura = sign_payload(SECRET, "corpo", "1000")

        assert not verify_signature(SECRET, "corpo", assinatura, "1000", now_ms=1000 + 5 * 60 * 1000 + 1)

    @pytest.mark.parametrize("timestamp", [None, "", "abc"])
    def test_timestamp_invalido(self, timestamp):
        assert not verify_signature(SECRET, "corpo", "sha256=x", timestamp)


class TestWebhookClient:
    def test_envia_assinado(self):
        recebidos = []

        def handler(request):
            recebidos.append(request)
            return httpx.Response(200)

        assert cliente(handler).send("ticket.closed", {"ticketId": "t1"}) is True

        request = recebidos[0]
        assert str(request.url) == "https://painel.test/api/webhooks/bot/events"
        body = request.content.decode()
        assert json.loads(body)["ticketId"] == "t1"
        assert verify_signature(
            SECRET, body, request.headers[SIGNATURE_HEADER], request.headers[TIMESTAMP_HEADER]
        )

    @pytest.mark.parametrize("status", [429, 500, 503])
    def test_status_transitorio(self, status):
        with pytest.raises(TransientExternalError):
            cliente(lambda request: httpx.Response(status)).send("ticket.closed", {})

    def test_erro_de_rede(self):
        def handler(request):
            raise httpx.ConnectError("recusado", request=request)

        with pytest.raises(TransientExternalError):
            cliente(handler).send("ticket.closed", {})

    def test_4xx_nao_repete(self):
        assert cliente(lambda request: httpx.Response(400, text="payload inválido")).send("ticket.closed", {}) is False

    def test_configuracao_obrigatoria(self):
        with pytest.raises(ValueError):
            WebhookClient("", SECRET)
        with pytest.raises(ValueError):
            WebhookClient("https://painel.test", "")
