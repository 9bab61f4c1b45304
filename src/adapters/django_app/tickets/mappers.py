"""
Mappers para conversão entre Entities (Core) e Models (Django).

Responsabilidades:
- Converter TicketEntity → campos do TicketModel (para persistência)
- Converter TicketModel → TicketEntity (para uso no Core)
- Converter DomainEvent ↔ DomainEventModel (outbox)

Princípios:
- Mappers são stateless
- Não contêm lógica de negócio
- Tratam apenas conversão de dados
"""

from typing import Any, Dict, Iterable, List

from src.core.tickets.entities import (
    PapelParticipante,
    Participante,
    PedidoFechamento,
    TicketEntity,
    TicketStatus,
)
from src.core.shared.events import DomainEvent

from .models import TicketModel, DomainEventModel


class TicketMapper:
    """
    Mapper para conversão entre TicketEntity e TicketModel.

    Responsável por:
    - to_fields(): Entity → dict de colunas (insert/update)
    - to_entity(): Model → Entity
    - to_entity_list(): List[Model] → List[Entity]
    """

    @staticmethod
    def to_fields(entity: TicketEntity) -> Dict[str, Any]:
        """
        Colunas do TicketModel a partir da entidade.

        `versao` fica de fora: é controlada pelo repositório.
        """
        pedido = entity.pedido_fechamento
        return {
            'tenant_id': entity.tenant_id,
            'numero': entity.numero,
            'status': entity.status.value,
            'aberto_por_id': entity.aberto_por_id,
            'assumido_por_id': entity.assumido_por_id,
            'painel_id': entity.painel_id,
            'canal_id': entity.canal_id,
            'assunto': entity.assunto,
            'metadados': entity.metadados,
            'criado_em': entity.criado_em,
            'atualizado_em': entity.atualizado_em,
            'fechado_em': entity.fechado_em,
            'fechado_por_id': entity.fechado_por_id,
            'motivo_fechamento': entity.motivo_fechamento,
            'excluir_de_fechamento_automatico': entity.excluir_de_fechamento_automatico,
            'pedido_fechamento_id': pedido.id if pedido else None,
            'pedido_solicitado_por_id': pedido.solicitado_por_id if pedido else None,
            'pedido_motivo': pedido.motivo if pedido else None,
            'pedido_criado_em': pedido.criado_em if pedido else None,
            'fechamento_automatico_em': pedido.fechamento_automatico_em if pedido else None,
        }

    @staticmethod
    def to_entity(model: TicketModel) -> TicketEntity:
        """
        Converte TicketModel para TicketEntity.

        Note:
            Bypassa validações do factory method .criar()
            pois dados já foram validados na criação original
        """
        pedido = None
        if model.pedido_fechamento_id:
            pedido = PedidoFechamento(
                id=model.pedido_fechamento_id,
                solicitado_por_id=model.pedido_solicitado_por_id,
                motivo=model.pedido_motivo,
                fechamento_automatico_em=model.fechamento_automatico_em,
                criado_em=model.pedido_criado_em,
            )

        return TicketEntity(
            id=model.id,
            tenant_id=model.tenant_id,
            numero=model.numero,
            status=TicketStatus(model.status),
            aberto_por_id=model.aberto_por_id,
            assumido_por_id=model.assumido_por_id,
            painel_id=model.painel_id,
            canal_id=model.canal_id,
            assunto=model.assunto,
            metadados=dict(model.metadados or {}),
            criado_em=model.criado_em,
            atualizado_em=model.atualizado_em,
            fechado_em=model.fechado_em,
            fechado_por_id=model.fechado_por_id,
            motivo_fechamento=model.motivo_fechamento,
            excluir_de_fechamento_automatico=model.excluir_de_fechamento_automatico,
            pedido_fechamento=pedido,
            participantes=[
                Participante(p.identidade_id, PapelParticipante(p.papel))
                for p in model.participantes.all()
            ],
            versao=model.versao,
        )

    @staticmethod
    def to_entity_list(models: Iterable[TicketModel]) -> List[TicketEntity]:
        return [TicketMapper.to_entity(model) for model in models]


class DomainEventMapper:
    """
    Mapper para conversão entre DomainEvent e DomainEventModel.

    Usado para persistir eventos no outbox e reconstruir o dict que
    o dispatcher de efeitos consome.
    """

    @staticmethod
    def to_model(event: DomainEvent) -> DomainEventModel:
        serializado = event.to_dict()
        return DomainEventModel(
            event_id=event.event_id,
            event_type=event.event_type,
            event_name=event.event_name,
            aggregate_type=event.aggregate_type,
            aggregate_id=event.aggregate_id,
            event_data=serializado['data'],
            version=event.version,
            occurred_at=event.occurred_at,
        )

    @staticmethod
    def to_dict(model: DomainEventModel) -> Dict[str, Any]:
        """Mesmo formato de `DomainEvent.to_dict()`, mais dados de entrega."""
        return {
            'event_id': model.event_id,
            'event_type': model.event_type,
            'event_name': model.event_name,
            'aggregate_id': model.aggregate_id,
            'aggregate_type': model.aggregate_type,
            'occurred_at': model.occurred_at.isoformat(),
            'version': model.version,
            'data': model.event_data,
            'status': model.status,
            'attempts': model.tentativas,
            'last_error': model.ultimo_erro,
            'completed_effects': list(model.efeitos_concluidos or []),
        }
