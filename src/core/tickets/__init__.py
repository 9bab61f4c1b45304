"""
Domínio de Tickets - Ciclo de Vida de Atendimento.

Este módulo contém toda a lógica de negócio relacionada ao ciclo de
vida de tickets de suporte em servidores de chat, incluindo:
- Entidades (TicketEntity, TicketStatus, PedidoFechamento)
- Use Cases (Criar, Assumir, Fechar, Pedido de fechamento, ...)
- Domain Events (TicketCriado, TicketAssumido, TicketFechado, ...)
- Efeitos diferidos (canal, permissões, webhook, analytics)
- DTOs e Ports

Características do Domínio:
- Um único atendente por vez; assumir/liberar ortogonal ao status
- Fechamento idempotente, direto ou em duas fases (pedido → aprovação)
- Fechamento automático por timer com token do pedido
- Isolamento por tenant e concorrência otimista por versão
"""

from .entities import (
    TicketEntity,
    TicketStatus,
    PedidoFechamento,
    Participante,
    PapelParticipante,
    TenantConfig,
)
from .events import (
    TicketCriadoEvent,
    TicketAssumidoEvent,
    TicketLiberadoEvent,
    TicketFechadoEvent,
    TicketReabertoEvent,
    FechamentoSolicitadoEvent,
    FechamentoNegadoEvent,
    TICKET_EVENTS,
)
from .dtos import (
    CriarTicketInputDTO,
    AssumirTicketInputDTO,
    FecharTicketInputDTO,
    SolicitarFechamentoInputDTO,
    ResponderFechamentoInputDTO,
    TicketOutputDTO,
    PedidoFechamentoOutputDTO,
    ListarTicketsQueryDTO,
)
from .ports import TicketRepository, TenantRepository, AutoCloseScheduler, ChatPlatformGateway
from .use_cases import (
    CriarTicketService,
    AssumirTicketService,
    LiberarTicketService,
    FecharTicketService,
    SolicitarFechamentoService,
    AprovarFechamentoService,
    NegarFechamentoService,
    FecharAutomaticamenteService,
    ReabrirTicketService,
    ObterTicketService,
    ListarTicketsService,
)
from .effects import TicketEffects

__all__ = [
    # Entities
    "TicketEntity",
    "TicketStatus",
    "PedidoFechamento",
    "Participante",
    "PapelParticipante",
    "TenantConfig",
    # Events
    "TicketCriadoEvent",
    "TicketAssumidoEvent",
    "TicketLiberadoEvent",
    "TicketFechadoEvent",
    "TicketReabertoEvent",
    "FechamentoSolicitadoEvent",
    "FechamentoNegadoEvent",
    "TICKET_EVENTS",
    # DTOs
    "CriarTicketInputDTO",
    "AssumirTicketInputDTO",
    "FecharTicketInputDTO",
    "SolicitarFechamentoInputDTO",
    "ResponderFechamentoInputDTO",
    "TicketOutputDTO",
    "PedidoFechamentoOutputDTO",
    "ListarTicketsQueryDTO",
    # Ports
    "TicketRepository",
    "TenantRepository",
    "AutoCloseScheduler",
    "ChatPlatformGateway",
    # Use Cases
    "CriarTicketService",
    "AssumirTicketService",
    "LiberarTicketService",
    "FecharTicketService",
    "SolicitarFechamentoService",
    "AprovarFechamentoService",
    "NegarFechamentoService",
    "FecharAutomaticamenteService",
    "ReabrirTicketService",
    "ObterTicketService",
    "ListarTicketsService",
    # Efeitos
    "TicketEffects",
]
