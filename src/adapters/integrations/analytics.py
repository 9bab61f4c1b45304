"""
Analytics de produto.

HttpAnalyticsClient envia no formato de captura do PostHog
(`POST {host}/capture/`). Analytics nunca interrompe o fluxo: erros
são logados e descartados.
"""

from typing import Any, Dict, Optional
from datetime import datetime, timezone
import logging

import httpx

logger = logging.getLogger(__name__)


class HttpAnalyticsClient:
    """Implementa AnalyticsClient (core.tickets.ports)."""

    def __init__(
        self,
        api_key: str,
        host: str = "https://us.i.posthog.com",
        timeout: float = 5.0,
        client: Optional[httpx.Client] = None,
    ):
        self._api_key = api_key
        self.url = host.rstrip("/") + "/capture/"
        self._client = client or httpx.Client(timeout=timeout)

    def capture(self, distinct_id: str, event_name: str, properties: Dict[str, Any]) -> None:
        body = {
            "api_key": self._api_key,
            "event": event_name,
            "distinct_id": distinct_id,
            "properties": properties,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        try:
            response = self._client.post(self.url, json=body)
            if not response.is_success:
                logger.warning(f"Analytics {event_name} falhou: status={response.status_code}")
        except httpx.HTTPError as e:
            logger.warning(f"Analytics {event_name} indisponível: {e}")


class LoggingAnalyticsClient:
    """Sem chave configurada: apenas registra em log."""

    def capture(self, distinct_id: str, event_name: str, properties: Dict[str, Any]) -> None:
        logger.debug(f"[ANALYTICS] {event_name} | distinct_id={distinct_id} | {properties}")
