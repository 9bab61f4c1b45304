"""
Webhooks para o painel web.

O bot avisa o painel sobre transições de ticket com um POST JSON
assinado em `{WEB_URL}/api/webhooks/bot/events`.

Assinatura:
    x-webhook-timestamp: epoch em milissegundos
    x-webhook-signature: sha256=<hex HMAC-SHA256(secret, f"{timestamp}.{body}")>

O lado receptor valida com `verify_signature` (janela de 5 minutos).
"""

from typing import Any, Dict, Optional
import hashlib
import hmac
import json
import logging
import time

import httpx

from src.core.shared.exceptions import TransientExternalError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-webhook-signature"
TIMESTAMP_HEADER = "x-webhook-timestamp"
MAX_IDADE_MS = 5 * 60 * 1000


def sign_payload(secret: str, body: str, timestamp: str) -> str:
    digest = hmac.new(
        secret.encode("utf-8"),
        f"{timestamp}.{body}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"sha256={digest}"


def verify_signature(
    secret: str,
    body: str,
    signature: Optional[str],
    timestamp: Optional[str],
    now_ms: Optional[int] = None,
) -> bool:
    """
    Valida assinatura de um webhook recebido.

    Rejeita timestamps ausentes, inválidos ou com mais de 5 minutos
    (proteção contra replay). Comparação em tempo constante.
    """
    if not signature or not timestamp:
        return False

    try:
        timestamp_ms = int(timestamp)
    except ValueError:
        return False

    agora = now_ms if now_ms is not None else int(time.time() * 1000)
    if agora - timestamp_ms > MAX_IDADE_MS:
        return False

    esperado = sign_payload(secret, body, timestamp)
    return hmac.compare_digest(esperado, signature)


class WebhookClient:
    """
    Implementa WebhookNotifier (core.tickets.ports) com httpx.

    Returns de `send`:
        True em 2xx; False em 4xx (payload recusado, não adianta repetir)

    Raises:
        TransientExternalError: Timeout, erro de rede, 429 ou 5xx
    """

    ENDPOINT = "/api/webhooks/bot/events"

    def __init__(
        self,
        base_url: str,
        secret: str,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        if not base_url:
            raise ValueError("WEB_URL não configurada")
        if not secret:
            raise ValueError("BOT_WEBHOOK_SECRET não configurado")

        self.url = base_url.rstrip("/") + self.ENDPOINT
        self._secret = secret
        self._client = client or httpx.Client(timeout=timeout)

    def send(self, event_name: str, payload: Dict[str, Any]) -> bool:
        timestamp = str(int(time.time() * 1000))
        body = json.dumps({"timestamp": timestamp, **payload}, default=str)

        headers = {
            "Content-Type": "application/json",
            SIGNATURE_HEADER: sign_payload(self._secret, body, timestamp),
            TIMESTAMP_HEADER: timestamp,
        }

        try:
            response = self._client.post(self.url, content=body, headers=headers)
        except httpx.TransportError as e:
            raise TransientExternalError(f"Webhook {event_name} falhou: {e}", service="webhook") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise TransientExternalError(
                f"Webhook {event_name} respondeu {response.status_code}",
                service="webhook",
            )

        if not response.is_success:
            logger.warning(
                f"Webhook {event_name} recusado: status={response.status_code} "
                f"body={response.text[:500]}"
            )
            return False

        logger.debug(f"Webhook {event_name} enviado")
        return True

    def close(self) -> None:
        self._client.close()


class LoggingWebhookNotifier:
    """Usado quando WEB_URL/segredo não estão configurados (desenvolvimento)."""

    def send(self, event_name: str, payload: Dict[str, Any]) -> bool:
        logger.info(f"[WEBHOOK] {event_name} | ticket={payload.get('ticketId')}")
        return True
