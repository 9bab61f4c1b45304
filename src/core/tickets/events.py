"""
Domain Events do Domínio de Tickets.

Este módulo define os eventos de domínio que são disparados
quando algo significativo acontece com tickets.

Eventos:
- TicketCriadoEvent: Novo ticket foi criado
- TicketAssumidoEvent: Atendente assumiu o ticket
- TicketLiberadoEvent: Atendente deixou o ticket
- TicketFechadoEvent: Ticket foi fechado (manual, aprovado ou automático)
- TicketReabertoEvent: Ticket foi reaberto
- FechamentoSolicitadoEvent: Pedido de fechamento criado
- FechamentoNegadoEvent: Pedido de fechamento negado
- ParticipanteAdicionadoEvent / ParticipanteRemovidoEvent
- CanalVinculadoEvent: Canal externo vinculado ao ticket

Uso:
    Eventos são criados nos use cases e publicados através do
    UnitOfWork após commit bem-sucedido. Carregam apenas ids e
    valores simples para que possam ser serializados no outbox.

    with uow:
        ticket = TicketEntity.criar(...)
        repo.save(ticket)
        uow.publish_event(TicketCriadoEvent(...))
"""

from dataclasses import dataclass
from typing import Dict, Optional, Type

from src.core.shared.events import DomainEvent


@dataclass
class TicketEvent(DomainEvent):
    """Base dos eventos do agregado Ticket."""

    tenant_id: str = ""

    @property
    def aggregate_type(self) -> str:
        return "Ticket"


@dataclass
class TicketCriadoEvent(TicketEvent):
    """
    Evento: Ticket foi criado.

    Handlers típicos:
    - Criar canal no chat (se ainda não existe)
    - Webhook para o painel web
    - Registrar em analytics
    """

    event_name = "ticket.created"

    numero: int = 0
    aberto_por_id: str = ""
    canal_id: Optional[str] = None
    painel_id: Optional[str] = None
    assunto: Optional[str] = None


@dataclass
class TicketAssumidoEvent(TicketEvent):
    """
    Evento: Atendente assumiu o ticket.

    Attributes:
        atendente_id: ID do atendente
        canal_id: Canal onde conceder acesso
    """

    event_name = "ticket.claimed"

    atendente_id: str = ""
    canal_id: Optional[str] = None


@dataclass
class TicketLiberadoEvent(TicketEvent):
    event_name = "ticket.unclaimed"

    atendente_anterior_id: str = ""
    liberado_por_id: str = ""
    canal_id: Optional[str] = None


@dataclass
class TicketFechadoEvent(TicketEvent):
    """
    Evento: Ticket foi fechado.

    Handlers típicos:
    - Arquivar ou excluir canal
    - Notificar abertor
    - Webhook/analytics

    Attributes:
        fechado_por_id: ID de quem fechou
        automatico: Se foi fechado pelo timer de fechamento automático
        excluir_canal: Excluir canal em vez de arquivar
        notificar_abertor: Enviar mensagem direta ao abertor
    """

    event_name = "ticket.closed"

    numero: int = 0
    fechado_por_id: str = ""
    aberto_por_id: str = ""
    motivo: Optional[str] = None
    canal_id: Optional[str] = None
    automatico: bool = False
    excluir_canal: bool = False
    notificar_abertor: bool = True


@dataclass
class TicketReabertoEvent(TicketEvent):
    event_name = "ticket.reopened"

    reaberto_por_id: str = ""
    aberto_por_id: str = ""
    canal_id: Optional[str] = None


@dataclass
class FechamentoSolicitadoEvent(TicketEvent):
    """
    Evento: Pedido de fechamento foi criado.

    Attributes:
        pedido_id: Token do pedido
        fechamento_automatico_em: Prazo ISO-8601 (None se sem timer)
    """

    event_name = "ticket.close_requested"

    pedido_id: str = ""
    solicitado_por_id: str = ""
    motivo: Optional[str] = None
    fechamento_automatico_em: Optional[str] = None
    canal_id: Optional[str] = None


@dataclass
class FechamentoNegadoEvent(TicketEvent):
    event_name = "ticket.close_request_cancelled"

    pedido_id: str = ""
    negado_por_id: str = ""
    canal_id: Optional[str] = None


@dataclass
class ParticipanteAdicionadoEvent(TicketEvent):
    event_name = "ticket.participant_added"

    identidade_id: str = ""
    papel: str = ""
    canal_id: Optional[str] = None


@dataclass
class ParticipanteRemovidoEvent(TicketEvent):
    event_name = "ticket.participant_removed"

    identidade_id: str = ""
    canal_id: Optional[str] = None


@dataclass
class CanalVinculadoEvent(TicketEvent):
    event_name = "ticket.channel_linked"

    canal_id: str = ""


TICKET_EVENTS: Dict[str, Type[TicketEvent]] = {
    cls.__name__: cls
    for cls in (
        TicketCriadoEvent,
        TicketAssumidoEvent,
        TicketLiberadoEvent,
        TicketFechadoEvent,
        TicketReabertoEvent,
        FechamentoSolicitadoEvent,
        FechamentoNegadoEvent,
        ParticipanteAdicionadoEvent,
        ParticipanteRemovidoEvent,
        CanalVinculadoEvent,
    )
}
