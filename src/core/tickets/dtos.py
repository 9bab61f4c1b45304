"""
Data Transfer Objects (DTOs) do Domínio de Tickets.

DTOs são estruturas simples para transportar dados entre camadas,
evitando vazamento de modelos internos (entidades) para camadas externas.

Tipos de DTOs:
- Input DTOs: Recebem dados de entrada (da API ou do bot)
- Output DTOs: Formatam dados para resposta
- Query DTOs: Filtros de listagem

Campos de identidade (quem fecha, quem assume, ...) são opcionais:
quando omitidos, o use case usa a identidade do ator corrente.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .entities import TicketEntity, PedidoFechamento


# =============================================================================
# INPUT DTOs (Entrada)
# =============================================================================

@dataclass(frozen=True)
class CriarTicketInputDTO:
    """
    DTO de entrada para criar ticket.

    Imutável (frozen=True) para garantir que dados
    validados não sejam alterados acidentalmente.

    Attributes:
        tenant_id: Tenant (servidor) do ticket
        aberto_por_id: Abertor (padrão: ator corrente)
        canal_id: Canal já existente (fluxos que criam o canal antes)
        painel_id: Painel de origem
        assunto: Assunto (máx. 100 caracteres)
        metadados: Dados livres
        excluir_de_fechamento_automatico: Ignorar timers
    """

    tenant_id: str
    aberto_por_id: Optional[str] = None
    canal_id: Optional[str] = None
    painel_id: Optional[str] = None
    assunto: Optional[str] = None
    metadados: Optional[Dict[str, Any]] = None
    excluir_de_fechamento_automatico: bool = False


@dataclass(frozen=True)
class AssumirTicketInputDTO:
    ticket_id: str
    atendente_id: Optional[str] = None


@dataclass(frozen=True)
class LiberarTicketInputDTO:
    ticket_id: str


@dataclass(frozen=True)
class FecharTicketInputDTO:
    """
    DTO de entrada para fechar ticket.

    Attributes:
        ticket_id: ID do ticket
        fechado_por_id: Quem está fechando (padrão: ator corrente)
        motivo: Motivo do fechamento
        excluir_canal: Excluir o canal em vez de arquivar
        notificar_abertor: Enviar mensagem ao abertor
    """

    ticket_id: str
    fechado_por_id: Optional[str] = None
    motivo: Optional[str] = None
    excluir_canal: bool = False
    notificar_abertor: bool = True


@dataclass(frozen=True)
class SolicitarFechamentoInputDTO:
    """
    DTO de entrada para pedido de fechamento.

    Attributes:
        horas_fechamento_automatico: Fecha sozinho após N horas sem resposta
    """

    ticket_id: str
    solicitado_por_id: Optional[str] = None
    motivo: Optional[str] = None
    horas_fechamento_automatico: Optional[float] = None


@dataclass(frozen=True)
class ResponderFechamentoInputDTO:
    """Aprovação ou negação de um pedido de fechamento."""

    pedido_id: str
    respondido_por_id: Optional[str] = None


@dataclass(frozen=True)
class ReabrirTicketInputDTO:
    ticket_id: str
    reaberto_por_id: Optional[str] = None


@dataclass(frozen=True)
class ParticipanteInputDTO:
    ticket_id: str
    identidade_id: str
    papel: str = "participant"


@dataclass(frozen=True)
class VincularCanalInputDTO:
    ticket_id: str
    canal_id: str


@dataclass(frozen=True)
class DefinirExclusaoFechamentoAutomaticoInputDTO:
    ticket_id: str
    excluir: bool = True


# =============================================================================
# OUTPUT DTOs (Saída)
# =============================================================================

def _iso(valor: Optional[datetime]) -> Optional[str]:
    return valor.isoformat() if valor else None


@dataclass
class TicketOutputDTO:
    """
    DTO de saída completo com dados do ticket.

    Attributes:
        id: Identificador único
        numero: Número sequencial no tenant
        status: Valor do enum ("OPEN"/"CLOSED")
        pedido_fechamento_id: Pedido pendente, se houver
        participantes: Lista de {"identidade_id", "papel"}
    """

    id: str
    tenant_id: str
    numero: int
    status: str
    aberto_por_id: str
    assumido_por_id: Optional[str]
    painel_id: Optional[str]
    canal_id: Optional[str]
    assunto: Optional[str]
    criado_em: datetime
    atualizado_em: datetime
    fechado_em: Optional[datetime] = None
    fechado_por_id: Optional[str] = None
    motivo_fechamento: Optional[str] = None
    excluir_de_fechamento_automatico: bool = False
    pedido_fechamento_id: Optional[str] = None
    fechamento_automatico_em: Optional[datetime] = None
    participantes: List[Dict[str, str]] = field(default_factory=list)
    versao: int = 0

    @classmethod
    def from_entity(cls, entity: TicketEntity) -> "TicketOutputDTO":
        """
        Factory method para converter entidade em DTO.

        Args:
            entity: Entidade TicketEntity

        Returns:
            DTO com dados da entidade
        """
        pedido = entity.pedido_fechamento
        return cls(
            id=entity.id,
            tenant_id=entity.tenant_id,
            numero=entity.numero,
            status=entity.status.value,
            aberto_por_id=entity.aberto_por_id,
            assumido_por_id=entity.assumido_por_id,
            painel_id=entity.painel_id,
            canal_id=entity.canal_id,
            assunto=entity.assunto,
            criado_em=entity.criado_em,
            atualizado_em=entity.atualizado_em,
            fechado_em=entity.fechado_em,
            fechado_por_id=entity.fechado_por_id,
            motivo_fechamento=entity.motivo_fechamento,
            excluir_de_fechamento_automatico=entity.excluir_de_fechamento_automatico,
            pedido_fechamento_id=pedido.id if pedido else None,
            fechamento_automatico_em=pedido.fechamento_automatico_em if pedido else None,
            participantes=[
                {"identidade_id": p.identidade_id, "papel": p.papel.value}
                for p in entity.participantes
            ],
            versao=entity.versao,
        )

    @property
    def esta_assumido(self) -> bool:
        return self.status == "OPEN" and self.assumido_por_id is not None

    def to_dict(self) -> dict:
        """Converte para dicionário (serialização JSON)."""
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "numero": self.numero,
            "status": self.status,
            "aberto_por_id": self.aberto_por_id,
            "assumido_por_id": self.assumido_por_id,
            "esta_assumido": self.esta_assumido,
            "painel_id": self.painel_id,
            "canal_id": self.canal_id,
            "assunto": self.assunto,
            "criado_em": self.criado_em.isoformat(),
            "atualizado_em": self.atualizado_em.isoformat(),
            "fechado_em": _iso(self.fechado_em),
            "fechado_por_id": self.fechado_por_id,
            "motivo_fechamento": self.motivo_fechamento,
            "excluir_de_fechamento_automatico": self.excluir_de_fechamento_automatico,
            "pedido_fechamento_id": self.pedido_fechamento_id,
            "fechamento_automatico_em": _iso(self.fechamento_automatico_em),
            "participantes": list(self.participantes),
            "versao": self.versao,
        }


@dataclass
class PedidoFechamentoOutputDTO:
    """Resultado de um pedido de fechamento."""

    pedido_id: str
    ticket_id: str
    solicitado_por_id: str
    motivo: Optional[str]
    fechamento_automatico_em: Optional[datetime]

    @classmethod
    def from_pedido(cls, ticket_id: str, pedido: PedidoFechamento) -> "PedidoFechamentoOutputDTO":
        return cls(
            pedido_id=pedido.id,
            ticket_id=ticket_id,
            solicitado_por_id=pedido.solicitado_por_id,
            motivo=pedido.motivo,
            fechamento_automatico_em=pedido.fechamento_automatico_em,
        )

    def to_dict(self) -> dict:
        return {
            "pedido_id": self.pedido_id,
            "ticket_id": self.ticket_id,
            "solicitado_por_id": self.solicitado_por_id,
            "motivo": self.motivo,
            "fechamento_automatico_em": _iso(self.fechamento_automatico_em),
        }


# =============================================================================
# QUERY DTOs (Filtros de Busca)
# =============================================================================

@dataclass(frozen=True)
class ListarTicketsQueryDTO:
    """
    DTO para parâmetros de busca/filtro de tickets.

    Attributes:
        tenant_id: Tenant (obrigatório para atores não-sistema)
        status: Filtrar por status ("OPEN"/"CLOSED")
        aberto_por_id: Filtrar por abertor
        assumido_por_id: Filtrar por atendente
        limite: Máximo de itens
    """

    tenant_id: Optional[str] = None
    status: Optional[str] = None
    aberto_por_id: Optional[str] = None
    assumido_por_id: Optional[str] = None
    limite: int = 50
