"""
Gateway da plataforma de chat (Discord REST API v10) com httpx.

Implementa ChatPlatformGateway (core.tickets.ports). O tenant é o
servidor (guild) e as identidades são snowflakes de usuário.

Classificação de falhas:
- Timeout, erro de rede, 429 e 5xx → TransientExternalError
- Demais 4xx → False (colaborador recusou; logado como aviso)
- 404 ao remover canal/overwrite → sucesso (já não existe)
"""

from typing import Any, Dict, List, Optional
import logging

import httpx

from src.core.shared.exceptions import TransientExternalError

logger = logging.getLogger(__name__)

# Bits de permissão de canal do Discord
VIEW_CHANNEL = 1 << 10
SEND_MESSAGES = 1 << 11
EMBED_LINKS = 1 << 14
ATTACH_FILES = 1 << 15
READ_MESSAGE_HISTORY = 1 << 16

ACESSO_TICKET = VIEW_CHANNEL | SEND_MESSAGES | EMBED_LINKS | ATTACH_FILES | READ_MESSAGE_HISTORY

OVERWRITE_ROLE = 0
OVERWRITE_MEMBER = 1
GUILD_TEXT = 0


class DiscordRestGateway:
    """
    Cliente síncrono da API REST.

    Example:
        gateway = DiscordRestGateway(token=settings.DISCORD_BOT_TOKEN)
        canal_id = gateway.create_channel("g1", "ticket-0001", ["42"])
    """

    def __init__(
        self,
        token: str,
        base_url: str = "https://discord.com/api/v10",
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        if not token:
            raise ValueError("DISCORD_BOT_TOKEN não configurado")

        self._client = client or httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={"Authorization": f"Bot {token}"},
        )

    def _request(self, method: str, path: str, json: Any = None) -> httpx.Response:
        try:
            response = self._client.request(method, path, json=json)
        except httpx.TransportError as e:
            raise TransientExternalError(f"{method} {path} falhou: {e}", service="discord") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise TransientExternalError(
                f"{method} {path} respondeu {response.status_code}",
                service="discord",
            )
        return response

    def _ok(self, response: httpx.Response, acao: str, ignorar_404: bool = False) -> bool:
        if response.is_success:
            return True
        if ignorar_404 and response.status_code == 404:
            logger.info(f"{acao}: recurso já não existe")
            return True
        logger.warning(f"{acao} recusado: status={response.status_code} body={response.text[:300]}")
        return False

    def create_channel(self, tenant_id: str, nome: str, membros: List[str]) -> Optional[str]:
        overwrites: List[Dict[str, Any]] = [
            # @everyone tem o mesmo id do servidor
            {"id": tenant_id, "type": OVERWRITE_ROLE, "deny": str(VIEW_CHANNEL)},
        ]
        overwrites.extend(
            {"id": membro, "type": OVERWRITE_MEMBER, "allow": str(ACESSO_TICKET)}
            for membro in membros
        )

        response = self._request(
            "POST",
            f"/guilds/{tenant_id}/channels",
            json={"name": nome, "type": GUILD_TEXT, "permission_overwrites": overwrites},
        )
        if not self._ok(response, f"Criar canal {nome}"):
            return None

        canal_id = response.json()["id"]
        logger.info(f"Canal {nome} criado: {canal_id}")
        return canal_id

    def archive_or_delete_channel(
        self,
        tenant_id: str,
        canal_id: str,
        excluir: bool = False,
        categoria_arquivo_id: Optional[str] = None,
    ) -> bool:
        """Sem categoria de arquivo o canal é excluído."""
        if excluir or not categoria_arquivo_id:
            response = self._request("DELETE", f"/channels/{canal_id}")
            return self._ok(response, f"Excluir canal {canal_id}", ignorar_404=True)

        response = self._request(
            "PATCH",
            f"/channels/{canal_id}",
            json={"parent_id": categoria_arquivo_id, "lock_permissions": False},
        )
        return self._ok(response, f"Arquivar canal {canal_id}")

    def update_permission_overwrite(
        self,
        tenant_id: str,
        canal_id: str,
        identidade_id: str,
        permitir: bool,
    ) -> bool:
        if permitir:
            response = self._request(
                "PUT",
                f"/channels/{canal_id}/permissions/{identidade_id}",
                json={"type": OVERWRITE_MEMBER, "allow": str(ACESSO_TICKET), "deny": "0"},
            )
            return self._ok(response, f"Conceder acesso a {identidade_id} em {canal_id}")

        response = self._request("DELETE", f"/channels/{canal_id}/permissions/{identidade_id}")
        return self._ok(response, f"Revogar acesso de {identidade_id} em {canal_id}", ignorar_404=True)

    def notify_user(self, tenant_id: str, identidade_id: str, mensagem: str) -> bool:
        response = self._request("POST", "/users/@me/channels", json={"recipient_id": identidade_id})
        if not self._ok(response, f"Abrir DM com {identidade_id}"):
            return False

        dm_id = response.json()["id"]
        response = self._request("POST", f"/channels/{dm_id}/messages", json={"content": mensagem})
        # 403: usuário bloqueia DMs do servidor
        return self._ok(response, f"Mensagem para {identidade_id}")

    def close(self) -> None:
        self._client.close()
