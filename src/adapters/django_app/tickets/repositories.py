"""
Repositórios Django para persistência de Tickets.

Implementam as interfaces (Ports) definidas no Core.
São DRIVEN ADAPTERS - acionados pelo Core em resposta a operações.

Responsabilidades:
- Implementar TicketRepository protocol
- Mapear entities para models e vice-versa
- Concorrência otimista (compare-and-set em `versao`)
- Outbox de eventos (DjangoEventStore)

Princípios:
- Repository não contém lógica de negócio
- Usa Mapper para conversões
- Trata apenas persistência
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence
import logging

from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from src.core.tickets.entities import TicketEntity, TicketStatus
from src.core.shared.events import DomainEvent
from src.core.shared.exceptions import ConflictError
from src.core.shared.interfaces import EventStore

from .models import DomainEventModel, TicketModel, TicketParticipantModel
from .mappers import DomainEventMapper, TicketMapper

logger = logging.getLogger(__name__)


class DjangoTicketRepository:
    """
    Implementação Django do TicketRepository.

    Implementa a interface definida em src/core/tickets/ports.py,
    usando Django ORM.

    Concorrência:
        `save` faz UPDATE ... WHERE versao = <lida>. Zero linhas
        afetadas significa que outra transação gravou antes: levanta
        ConflictError. Com `for_update=True`, a leitura também bloqueia
        a linha (SELECT ... FOR UPDATE) em bancos que suportam.

    Example:
        repo = DjangoTicketRepository()
        repo.save(ticket_entity)
        ticket = repo.get_by_id("uuid-here", for_update=True)
    """

    def save(self, ticket: TicketEntity) -> None:
        """
        Persiste ticket (insert na primeira vez, compare-and-set depois).

        Raises:
            ConflictError: Versão desatualizada ou violação de unicidade
                (número no tenant, canal, pedido)
        """
        logger.debug(f"Saving ticket: {ticket.id} (versao={ticket.versao})")
        campos = TicketMapper.to_fields(ticket)

        try:
            # Savepoint: IntegrityError não invalida a transação externa
            with transaction.atomic():
                if ticket.versao == 0:
                    TicketModel.objects.create(id=ticket.id, versao=1, **campos)
                    nova_versao = 1
                else:
                    linhas = (
                        TicketModel.objects
                        .filter(id=ticket.id, versao=ticket.versao)
                        .update(versao=F('versao') + 1, **campos)
                    )
                    if linhas == 0:
                        raise ConflictError(
                            "Ticket foi modificado por outra operação",
                            rule="versao_desatualizada"
                        )
                    nova_versao = ticket.versao + 1

                self._sincronizar_participantes(ticket)
        except IntegrityError as e:
            logger.warning(f"Violação de unicidade ao salvar ticket {ticket.id}: {e}")
            raise ConflictError(
                "Ticket conflita com registro existente",
                rule="unicidade"
            ) from e

        ticket.versao = nova_versao
        logger.info(f"Ticket saved: {ticket.id} (versao={nova_versao})")

    def _sincronizar_participantes(self, ticket: TicketEntity) -> None:
        desejados = {(p.identidade_id, p.papel.value) for p in ticket.participantes}
        existentes = {
            (identidade_id, papel): pk
            for pk, identidade_id, papel in TicketParticipantModel.objects
            .filter(ticket_id=ticket.id)
            .values_list('id', 'identidade_id', 'papel')
        }

        remover = [pk for chave, pk in existentes.items() if chave not in desejados]
        if remover:
            TicketParticipantModel.objects.filter(id__in=remover).delete()

        novos = [
            TicketParticipantModel(ticket_id=ticket.id, identidade_id=identidade_id, papel=papel)
            for identidade_id, papel in desejados
            if (identidade_id, papel) not in existentes
        ]
        if novos:
            TicketParticipantModel.objects.bulk_create(novos)

    def _queryset(self, for_update: bool = False):
        qs = TicketModel.objects.prefetch_related('participantes')
        if for_update:
            qs = qs.select_for_update()
        return qs

    def _primeiro(self, for_update: bool = False, **filtros) -> Optional[TicketEntity]:
        model = self._queryset(for_update).filter(**filtros).first()
        return TicketMapper.to_entity(model) if model else None

    def get_by_id(self, ticket_id: str, for_update: bool = False) -> Optional[TicketEntity]:
        """
        Busca ticket por ID.

        Args:
            ticket_id: UUID do ticket
            for_update: Bloquear a linha (exige transação ativa)
        """
        return self._primeiro(for_update, id=ticket_id)

    def get_by_close_request_id(self, pedido_id: str, for_update: bool = False) -> Optional[TicketEntity]:
        return self._primeiro(for_update, pedido_fechamento_id=pedido_id)

    def get_by_canal_id(self, canal_id: str) -> Optional[TicketEntity]:
        return self._primeiro(canal_id=canal_id)

    def count_open_by_opener(self, tenant_id: str, aberto_por_id: str) -> int:
        return TicketModel.objects.filter(
            tenant_id=tenant_id,
            aberto_por_id=aberto_por_id,
            status=TicketStatus.ABERTO.value,
        ).count()

    def list(
        self,
        tenant_id: Optional[str] = None,
        status: Optional[TicketStatus] = None,
        aberto_por_id: Optional[str] = None,
        assumido_por_id: Optional[str] = None,
        limite: int = 50,
    ) -> List[TicketEntity]:
        """Lista tickets filtrados, mais recentes primeiro."""
        qs = self._queryset()
        if tenant_id:
            qs = qs.filter(tenant_id=tenant_id)
        if status:
            qs = qs.filter(status=status.value)
        if aberto_por_id:
            qs = qs.filter(aberto_por_id=aberto_por_id)
        if assumido_por_id:
            qs = qs.filter(assumido_por_id=assumido_por_id)
        return TicketMapper.to_entity_list(qs.order_by('-criado_em')[:limite])

    def list_pending_auto_close(self) -> List[TicketEntity]:
        """Tickets abertos com timer de fechamento automático pendente."""
        qs = self._queryset().filter(
            status=TicketStatus.ABERTO.value,
            fechamento_automatico_em__isnull=False,
            excluir_de_fechamento_automatico=False,
        ).order_by('fechamento_automatico_em')
        return TicketMapper.to_entity_list(qs)


class DjangoEventStore(EventStore):
    """
    Outbox de eventos usando Django ORM.

    `append` roda dentro da transação do UoW; reserva e marcações de
    entrega rodam depois, em autocommit.
    """

    def append(self, event: DomainEvent) -> None:
        DomainEventMapper.to_model(event).save(force_insert=True)
        logger.debug(f"Event stored: {event.event_type} for {event.aggregate_id}")

    def mark_delivered(self, event_id: str) -> None:
        DomainEventModel.objects.filter(event_id=event_id).update(
            status=DomainEventModel.Status.DELIVERED,
            tentativas=F('tentativas') + 1,
            ultimo_erro=None,
            entregue_em=timezone.now(),
        )

    def claim(self, event_id: str, lease: timedelta) -> Optional[List[str]]:
        """
        Reserva com UPDATE condicional: só uma entrega vê a linha mudar.
        """
        agora = timezone.now()
        livre = Q(status__in=[DomainEventModel.Status.PENDING, DomainEventModel.Status.FAILED]) | Q(
            status=DomainEventModel.Status.PROCESSING, reservado_em__lte=agora - lease
        )
        reservados = DomainEventModel.objects.filter(livre, event_id=event_id).update(
            status=DomainEventModel.Status.PROCESSING,
            reservado_em=agora,
        )
        if reservados != 1:
            return None

        concluidos = DomainEventModel.objects.values_list('efeitos_concluidos', flat=True).get(
            event_id=event_id
        )
        return list(concluidos or [])

    def mark_failed(self, event_id: str, error: str, completed_effects: Sequence[str] = ()) -> None:
        DomainEventModel.objects.filter(event_id=event_id).update(
            status=DomainEventModel.Status.FAILED,
            tentativas=F('tentativas') + 1,
            ultimo_erro=error[:2000],
            efeitos_concluidos=list(completed_effects),
        )
        logger.warning(f"Event delivery failed: {event_id} | {error}")

    def list_pending(
        self,
        max_attempts: int,
        limit: int = 100,
        older_than: Optional[timedelta] = None,
    ) -> List[Dict[str, Any]]:
        qs = DomainEventModel.objects.exclude(
            status=DomainEventModel.Status.DELIVERED
        ).filter(tentativas__lt=max_attempts)
        if older_than is not None:
            qs = qs.filter(recorded_at__lte=timezone.now() - older_than)
        return [DomainEventMapper.to_dict(m) for m in qs.order_by('recorded_at')[:limit]]

    def get_events_for_aggregate(self, aggregate_id: str) -> List[Dict[str, Any]]:
        """
        Recupera eventos de um agregado (histórico de auditoria).

        Returns:
            Lista de eventos em formato dict, em ordem de gravação
        """
        qs = DomainEventModel.objects.filter(aggregate_id=aggregate_id).order_by('recorded_at')
        return [DomainEventMapper.to_dict(m) for m in qs]
