"""
Efeitos Diferidos do Domínio de Tickets.

Depois que a transação de uma operação confirma, cada evento gerado é
entregue a este módulo, que executa os efeitos externos: canal no chat,
permissões, mensagem ao abertor, webhook para o painel e analytics.

Regras:
- Cada efeito roda isolado: a falha de um não impede os demais
- Falha transitória (TransientExternalError) tem no máximo uma nova tentativa
- Falhas são logadas e reportadas no resultado, nunca propagadas
- Efeitos já concluídos numa entrega anterior são pulados
- Efeitos nunca escrevem na linha do ticket; o id do canal criado volta
  pelo use case de vínculo, em transação própria
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional
import logging

from src.core.shared.context import SystemActor, provide
from src.core.shared.exceptions import TransientExternalError

from .dtos import VincularCanalInputDTO
from .ports import (
    AnalyticsClient,
    ChatPlatformGateway,
    TenantRepository,
    TicketRepository,
    WebhookNotifier,
)

logger = logging.getLogger(__name__)


@dataclass
class ResultadoEfeito:
    nome: str
    sucesso: bool
    tentativas: int = 1
    erro: Optional[str] = None


@dataclass
class ResultadoDespacho:
    """Resultado da execução de todos os efeitos de um evento."""

    event_id: str
    event_type: str
    efeitos: List[ResultadoEfeito] = field(default_factory=list)
    ignorado: bool = False

    @property
    def sucesso(self) -> bool:
        return all(e.sucesso for e in self.efeitos)

    @property
    def erros(self) -> List[str]:
        return [f"{e.nome}: {e.erro}" for e in self.efeitos if not e.sucesso]

    @property
    def concluidos(self) -> List[str]:
        return [e.nome for e in self.efeitos if e.sucesso]


class TicketEffects:
    """
    Roteador de efeitos por tipo de evento.

    Attributes:
        gateway: Plataforma de chat
        webhooks: Notificador do painel web
        analytics: Cliente de analytics
        tenant_repo: Leitura da categoria de arquivo do tenant
        ticket_repo: Leitura do canal atual antes de criar outro
        vincular_canal: Callable(ticket_id, canal_id) que registra o canal criado
        tentativas_extras: Novas tentativas após falha transitória

    Example:
        effects = TicketEffects(gateway, webhooks, analytics, tenant_repo)
        resultado = effects.handle("TicketFechadoEvent", event.to_dict())
    """

    def __init__(
        self,
        gateway: ChatPlatformGateway,
        webhooks: WebhookNotifier,
        analytics: AnalyticsClient,
        tenant_repo: Optional[TenantRepository] = None,
        ticket_repo: Optional[TicketRepository] = None,
        vincular_canal: Optional[Callable[[str, str], Any]] = None,
        tentativas_extras: int = 1,
    ):
        self.gateway = gateway
        self.webhooks = webhooks
        self.analytics = analytics
        self.tenant_repo = tenant_repo
        self.ticket_repo = ticket_repo
        self.vincular_canal = vincular_canal
        self.tentativas_extras = tentativas_extras

        self._rotas: Dict[str, List[Callable[[Dict[str, Any]], bool]]] = {
            "TicketCriadoEvent": [self.criar_canal],
            "TicketAssumidoEvent": [self.conceder_acesso_atendente],
            "TicketLiberadoEvent": [],
            "TicketFechadoEvent": [self.arquivar_canal, self.notificar_abertor],
            "TicketReabertoEvent": [self.restaurar_acesso_abertor],
            "FechamentoSolicitadoEvent": [],
            "FechamentoNegadoEvent": [],
            "ParticipanteAdicionadoEvent": [self.conceder_acesso_participante],
            "ParticipanteRemovidoEvent": [self.revogar_acesso_participante],
            "CanalVinculadoEvent": [],
        }

    def handle(
        self,
        event_type: str,
        event: Dict[str, Any],
        concluidos: Iterable[str] = (),
    ) -> ResultadoDespacho:
        """
        Executa os efeitos de um evento serializado (`DomainEvent.to_dict()`).

        Eventos sem rota são ignorados com aviso. Efeitos listados em
        `concluidos` contam como sucesso sem rodar de novo.
        """
        concluidos = set(concluidos)
        resultado = ResultadoDespacho(event_id=event.get("event_id", ""), event_type=event_type)

        if event_type not in self._rotas:
            logger.warning(f"Nenhum efeito registrado para {event_type}")
            return resultado

        efeitos = list(self._rotas[event_type])
        efeitos.append(self.enviar_webhook)
        efeitos.append(self.registrar_analytics)

        for efeito in efeitos:
            if efeito.__name__ in concluidos:
                logger.debug(f"Efeito {efeito.__name__} já concluído para {resultado.event_id}")
                resultado.efeitos.append(ResultadoEfeito(efeito.__name__, True, tentativas=0))
                continue
            resultado.efeitos.append(self._executar(efeito, event))

        if resultado.sucesso:
            logger.info(f"Efeitos de {event_type} ({event.get('aggregate_id')}) concluídos")
        else:
            logger.warning(
                f"Efeitos de {event_type} ({event.get('aggregate_id')}) com falha: "
                f"{'; '.join(resultado.erros)}"
            )
        return resultado

    def _executar(self, efeito: Callable[[Dict[str, Any]], bool], event: Dict[str, Any]) -> ResultadoEfeito:
        nome = efeito.__name__
        tentativas = 0
        while True:
            tentativas += 1
            try:
                if efeito(event) is False:
                    return ResultadoEfeito(nome, False, tentativas, "colaborador externo recusou")
                return ResultadoEfeito(nome, True, tentativas)
            except TransientExternalError as e:
                if tentativas <= self.tentativas_extras:
                    logger.info(f"Efeito {nome} falhou de forma transitória, tentando de novo: {e}")
                    continue
                logger.warning(f"Efeito {nome} falhou após {tentativas} tentativas: {e}")
                return ResultadoEfeito(nome, False, tentativas, str(e))
            except Exception as e:
                logger.warning(f"Efeito {nome} falhou: {e}", exc_info=True)
                return ResultadoEfeito(nome, False, tentativas, str(e))

    # ------------------------------------------------------------------
    # Efeitos
    # ------------------------------------------------------------------

    def criar_canal(self, event: Dict[str, Any]) -> bool:
        data = event["data"]
        if data.get("canal_id"):
            return True

        # O evento é um retrato da abertura; vale o canal gravado agora
        if self.ticket_repo is not None:
            ticket = self.ticket_repo.get_by_id(event["aggregate_id"])
            if ticket is None or ticket.canal_id:
                return True

        canal_id = self.gateway.create_channel(
            data["tenant_id"],
            f"ticket-{data['numero']:04d}",
            [data["aberto_por_id"]],
        )
        if not canal_id:
            return False

        if self.vincular_canal is not None:
            self.vincular_canal(event["aggregate_id"], canal_id)
        return True

    def conceder_acesso_atendente(self, event: Dict[str, Any]) -> bool:
        data = event["data"]
        if not data.get("canal_id"):
            return True
        return self.gateway.update_permission_overwrite(
            data["tenant_id"], data["canal_id"], data["atendente_id"], True
        )

    def arquivar_canal(self, event: Dict[str, Any]) -> bool:
        data = event["data"]
        if not data.get("canal_id"):
            return True

        categoria = None
        if self.tenant_repo is not None and not data.get("excluir_canal"):
            config = self.tenant_repo.get_config(data["tenant_id"])
            categoria = config.categoria_arquivo_id if config else None

        return self.gateway.archive_or_delete_channel(
            data["tenant_id"],
            data["canal_id"],
            excluir=bool(data.get("excluir_canal")),
            categoria_arquivo_id=categoria,
        )

    def notificar_abertor(self, event: Dict[str, Any]) -> bool:
        data = event["data"]
        if not data.get("notificar_abertor"):
            return True

        mensagem = f"Seu ticket #{data['numero']} foi fechado."
        if data.get("motivo"):
            mensagem += f" Motivo: {data['motivo']}"
        return self.gateway.notify_user(data["tenant_id"], data["aberto_por_id"], mensagem)

    def restaurar_acesso_abertor(self, event: Dict[str, Any]) -> bool:
        data = event["data"]
        if not data.get("canal_id"):
            return True
        return self.gateway.update_permission_overwrite(
            data["tenant_id"], data["canal_id"], data["aberto_por_id"], True
        )

    def conceder_acesso_participante(self, event: Dict[str, Any]) -> bool:
        data = event["data"]
        if not data.get("canal_id"):
            return True
        return self.gateway.update_permission_overwrite(
            data["tenant_id"], data["canal_id"], data["identidade_id"], True
        )

    def revogar_acesso_participante(self, event: Dict[str, Any]) -> bool:
        data = event["data"]
        if not data.get("canal_id"):
            return True
        return self.gateway.update_permission_overwrite(
            data["tenant_id"], data["canal_id"], data["identidade_id"], False
        )

    def enviar_webhook(self, event: Dict[str, Any]) -> bool:
        payload = {
            "event": event["event_name"],
            "eventId": event["event_id"],
            "ticketId": event["aggregate_id"],
            "occurredAt": event["occurred_at"],
            "data": event["data"],
        }
        return self.webhooks.send(event["event_name"], payload)

    def registrar_analytics(self, event: Dict[str, Any]) -> bool:
        data = event["data"]
        propriedades = {k: v for k, v in data.items() if k != "motivo"}
        propriedades["ticket_id"] = event["aggregate_id"]
        self.analytics.capture(data.get("tenant_id") or "system", event["event_name"], propriedades)
        return True


def vincular_canal_como_sistema(service_factory: Callable[[], Any]) -> Callable[[str, str], Any]:
    """
    Adapta VincularCanalService para o callback `vincular_canal`.

    O efeito roda fora de qualquer request; o vínculo é feito como
    SystemActor em transação própria.
    """

    def vincular(ticket_id: str, canal_id: str):
        service = service_factory()
        return provide(
            SystemActor("effects"),
            service.execute,
            VincularCanalInputDTO(ticket_id=ticket_id, canal_id=canal_id),
        )

    return vincular
