"""
Despacho de interações do bot (slash commands e botões).

O cliente do gateway converte cada interação recebida em `Interacao`
e chama `InteractionDispatcher.dispatch`. Para cada interação:

1. Calcula as permissões do usuário no servidor (PermissionEngine)
2. Estabelece um ChatPlatformActor como ator ambiente
3. Executa o use case síncrono via `sync_to_async`

Interações concorrentes rodam em tasks distintas e nunca compartilham
ator. Erros de domínio viram resposta efêmera; erros inesperados são
logados e respondidos com mensagem genérica.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional
import logging

from asgiref.sync import sync_to_async

from src.core.shared.context import ChatPlatformActor, provide_async
from src.core.shared.exceptions import DomainException, EntityNotFoundError, NoContextError
from src.core.tickets.dtos import (
    CriarTicketInputDTO,
    AssumirTicketInputDTO,
    LiberarTicketInputDTO,
    FecharTicketInputDTO,
    SolicitarFechamentoInputDTO,
    ResponderFechamentoInputDTO,
    ReabrirTicketInputDTO,
    ParticipanteInputDTO,
    DefinirExclusaoFechamentoAutomaticoInputDTO,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Interacao:
    """
    Interação normalizada.

    Attributes:
        comando: Nome do comando ou do botão (ex: "claim", "close-approve")
        user_id: Snowflake de quem interagiu
        tenant_id: Servidor onde ocorreu
        canal_id: Canal onde ocorreu (identifica o ticket)
        opcoes: Opções do comando / dados do botão
    """

    comando: str
    user_id: str
    tenant_id: str
    canal_id: Optional[str] = None
    opcoes: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RespostaInteracao:
    sucesso: bool
    mensagem: str
    dados: Optional[Dict[str, Any]] = None
    efemera: bool = True


class InteractionDispatcher:
    """
    Roteia interações para os use cases do container.

    Example:
        dispatcher = InteractionDispatcher(get_container())
        resposta = await dispatcher.dispatch(Interacao("claim", "42", "g1", canal_id="c1"))
    """

    def __init__(self, container):
        self.container = container
        self._comandos: Dict[str, Callable[[Interacao], RespostaInteracao]] = {
            "open": self._abrir,
            "claim": self._assumir,
            "unclaim": self._liberar,
            "close": self._fechar,
            "closerequest": self._solicitar_fechamento,
            "close-approve": self._aprovar_fechamento,
            "close-deny": self._negar_fechamento,
            "reopen": self._reabrir,
            "add": self._adicionar,
            "remove": self._remover,
            "autoclose": self._exclusao_fechamento_automatico,
        }

    async def construir_ator(self, interacao: Interacao) -> ChatPlatformActor:
        engine = self.container.permission_engine()
        permissoes = await sync_to_async(engine.get_effective_permissions_or_none)(
            interacao.tenant_id, interacao.user_id
        )
        return ChatPlatformActor(
            user_id=interacao.user_id,
            tenant_id=interacao.tenant_id,
            permissions=permissoes,
            channel_ref=interacao.canal_id,
        )

    async def dispatch(self, interacao: Interacao) -> RespostaInteracao:
        handler = self._comandos.get(interacao.comando)
        if handler is None:
            logger.warning(f"[BOT] Comando desconhecido: {interacao.comando}")
            return RespostaInteracao(False, "Comando desconhecido.")

        ator = await self.construir_ator(interacao)
        logger.info(f"[BOT] {interacao.comando} | {interacao.user_id}@{interacao.tenant_id}")

        try:
            return await provide_async(ator, sync_to_async(handler), interacao)
        except NoContextError as e:
            logger.error(f"[BOT] Contexto ausente em {interacao.comando}: {e}", exc_info=True)
        except DomainException as e:
            logger.info(f"[BOT] {interacao.comando} recusado: {e}")
            return RespostaInteracao(False, e.message, dados=e.to_dict())
        except Exception as e:
            logger.exception(f"[BOT] Erro inesperado em {interacao.comando}: {e}")
        return RespostaInteracao(False, "Algo deu errado. Tente novamente em instantes.")

    # ------------------------------------------------------------------
    # Handlers (síncronos, já dentro do escopo do ator)
    # ------------------------------------------------------------------

    def _ticket_do_canal(self, interacao: Interacao) -> str:
        ticket_id = interacao.opcoes.get("ticket_id")
        if ticket_id:
            return ticket_id

        ticket = None
        if interacao.canal_id:
            ticket = self.container.ticket_repository().get_by_canal_id(interacao.canal_id)
        if ticket is None or ticket.tenant_id != interacao.tenant_id:
            raise EntityNotFoundError("Este canal não é um ticket", entity_type="Ticket")
        return ticket.id

    def _abrir(self, interacao: Interacao) -> RespostaInteracao:
        output = self.container.criar_ticket_service().execute(
            CriarTicketInputDTO(
                tenant_id=interacao.tenant_id,
                painel_id=interacao.opcoes.get("painel_id"),
                assunto=interacao.opcoes.get("assunto"),
                metadados=interacao.opcoes.get("respostas"),
            )
        )
        return RespostaInteracao(True, f"Ticket #{output.numero} aberto.", output.to_dict())

    def _assumir(self, interacao: Interacao) -> RespostaInteracao:
        output = self.container.assumir_ticket_service().execute(
            AssumirTicketInputDTO(ticket_id=self._ticket_do_canal(interacao))
        )
        return RespostaInteracao(True, f"<@{interacao.user_id}> assumiu este ticket.", output.to_dict(), efemera=False)

    def _liberar(self, interacao: Interacao) -> RespostaInteracao:
        output = self.container.liberar_ticket_service().execute(
            LiberarTicketInputDTO(ticket_id=self._ticket_do_canal(interacao))
        )
        return RespostaInteracao(True, "Ticket liberado.", output.to_dict(), efemera=False)

    def _fechar(self, interacao: Interacao) -> RespostaInteracao:
        output = self.container.fechar_ticket_service().execute(
            FecharTicketInputDTO(
                ticket_id=self._ticket_do_canal(interacao),
                motivo=interacao.opcoes.get("motivo"),
            )
        )
        return RespostaInteracao(True, "Ticket fechado.", output.to_dict())

    def _solicitar_fechamento(self, interacao: Interacao) -> RespostaInteracao:
        output = self.container.solicitar_fechamento_service().execute(
            SolicitarFechamentoInputDTO(
                ticket_id=self._ticket_do_canal(interacao),
                motivo=interacao.opcoes.get("motivo"),
                horas_fechamento_automatico=interacao.opcoes.get("horas"),
            )
        )
        return RespostaInteracao(True, "Pedido de fechamento enviado.", output.to_dict(), efemera=False)

    def _aprovar_fechamento(self, interacao: Interacao) -> RespostaInteracao:
        output = self.container.aprovar_fechamento_service().execute(
            ResponderFechamentoInputDTO(pedido_id=interacao.opcoes["pedido_id"])
        )
        return RespostaInteracao(True, "Fechamento aprovado.", output.to_dict())

    def _negar_fechamento(self, interacao: Interacao) -> RespostaInteracao:
        output = self.container.negar_fechamento_service().execute(
            ResponderFechamentoInputDTO(pedido_id=interacao.opcoes["pedido_id"])
        )
        return RespostaInteracao(True, "Pedido de fechamento negado.", output.to_dict(), efemera=False)

    def _reabrir(self, interacao: Interacao) -> RespostaInteracao:
        output = self.container.reabrir_ticket_service().execute(
            ReabrirTicketInputDTO(ticket_id=self._ticket_do_canal(interacao))
        )
        return RespostaInteracao(True, "Ticket reaberto.", output.to_dict(), efemera=False)

    def _adicionar(self, interacao: Interacao) -> RespostaInteracao:
        usuario = interacao.opcoes["usuario"]
        output = self.container.adicionar_participante_service().execute(
            ParticipanteInputDTO(ticket_id=self._ticket_do_canal(interacao), identidade_id=usuario)
        )
        return RespostaInteracao(True, f"<@{usuario}> adicionado ao ticket.", output.to_dict(), efemera=False)

    def _remover(self, interacao: Interacao) -> RespostaInteracao:
        usuario = interacao.opcoes["usuario"]
        output = self.container.remover_participante_service().execute(
            ParticipanteInputDTO(ticket_id=self._ticket_do_canal(interacao), identidade_id=usuario)
        )
        return RespostaInteracao(True, f"<@{usuario}> removido do ticket.", output.to_dict(), efemera=False)

    def _exclusao_fechamento_automatico(self, interacao: Interacao) -> RespostaInteracao:
        excluir = bool(interacao.opcoes.get("excluir", True))
        output = self.container.definir_exclusao_fechamento_automatico_service().execute(
            DefinirExclusaoFechamentoAutomaticoInputDTO(
                ticket_id=self._ticket_do_canal(interacao),
                excluir=excluir,
            )
        )
        mensagem = (
            "Ticket excluído do fechamento automático."
            if excluir else "Ticket volta a seguir o fechamento automático."
        )
        return RespostaInteracao(True, mensagem, output.to_dict())
