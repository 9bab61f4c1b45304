"""
Event Handlers - Tarefas Celery do ciclo de vida de tickets.

Tarefas:
- dispatch_domain_event: Executa os efeitos diferidos de um evento
- fechar_ticket_automaticamente: Timer de fechamento automático
- reprocessar_eventos_pendentes: Drena o outbox (Celery beat)
- cleanup_old_events: Remove eventos entregues antigos (Celery beat)

Padrão:
    @shared_task(bind=True, ...)
    def <tarefa>(self, ...) -> ...:
        container = get_container()
        ...

Os efeitos já fazem sua própria nova tentativa para falhas
transitórias; o reprocessamento de longo prazo fica com o outbox,
portanto `dispatch_domain_event` não usa autoretry.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from celery import shared_task
from django.conf import settings

from src.core.shared.context import SystemActor, provide

logger = logging.getLogger(__name__)


def _dispatcher():
    # Importação tardia para evitar circular import
    from src.config.container import get_container

    return get_container().outbox_dispatcher()


@shared_task(bind=True, acks_late=True)
def dispatch_domain_event(self, event_type: str, event_data: Dict[str, Any]) -> bool:
    """
    Dispatcher central para Domain Events.

    Executa os efeitos do evento e atualiza a linha do outbox.

    Args:
        event_type: Tipo do evento (ex: 'TicketFechadoEvent')
        event_data: Evento serializado (DomainEvent.to_dict)

    Returns:
        True se todos os efeitos tiveram sucesso
    """
    logger.info(f"[DISPATCHER] {event_type} | aggregate={event_data.get('aggregate_id')}")
    resultado = _dispatcher().dispatch(event_type, event_data)
    return resultado.sucesso


@shared_task(bind=True, max_retries=3, default_retry_delay=30, acks_late=True)
def fechar_ticket_automaticamente(self, ticket_id: str, pedido_id: str) -> Optional[str]:
    """
    Timer de fechamento automático (agendado com `eta`).

    Roda como SystemActor. Timers obsoletos (pedido negado, substituído
    ou ticket já fechado) terminam sem erro.

    Returns:
        Status final do ticket, ou None se nada foi feito
    """
    from src.config.container import get_container

    service = get_container().fechar_automaticamente_service()
    try:
        resultado = provide(SystemActor("auto-close"), service.execute, ticket_id, pedido_id)
    except Exception as e:
        logger.error(f"Erro no fechamento automático de {ticket_id}: {e}", exc_info=True)
        raise self.retry(exc=e)

    if resultado is None:
        return None
    logger.info(f"[AUTO-CLOSE] Ticket {ticket_id} fechado automaticamente")
    return resultado.status


@shared_task(bind=True, ignore_result=True)
def reprocessar_eventos_pendentes(
    self,
    max_tentativas: Optional[int] = None,
    limite: int = 100,
    idade_minima_segundos: int = 120,
) -> int:
    """
    Drena o outbox: reexecuta efeitos de eventos não entregues.

    Só considera linhas com alguns minutos de idade para não competir
    com a entrega normal logo após o commit. Linhas reservadas por uma
    entrega em andamento são puladas pelo dispatcher.

    Returns:
        Número de eventos reprocessados
    """
    from src.config.container import get_container

    if max_tentativas is None:
        max_tentativas = settings.OUTBOX_MAX_TENTATIVAS

    event_store = get_container().event_store()
    dispatcher = _dispatcher()

    pendentes = event_store.list_pending(
        max_tentativas,
        limit=limite,
        older_than=timedelta(seconds=idade_minima_segundos),
    )

    reprocessados = 0
    for event_data in pendentes:
        resultado = dispatcher.dispatch(event_data["event_type"], event_data)
        if not resultado.ignorado:
            reprocessados += 1

    if reprocessados:
        logger.info(f"[OUTBOX] {reprocessados} eventos reprocessados")
    return reprocessados


@shared_task(bind=True, max_retries=3, default_retry_delay=120)
def cleanup_old_events(self, days: int = 90) -> int:
    """
    Limpa eventos entregues antigos do outbox.

    Executada semanalmente pelo Celery Beat. Eventos não entregues são
    mantidos para inspeção.

    Args:
        days: Número de dias para manter eventos

    Returns:
        Número de eventos removidos
    """
    logger.info(f"[SCHEDULED] Limpando eventos com mais de {days} dias...")

    try:
        from src.adapters.django_app.tickets.models import DomainEventModel

        cutoff_date = datetime.now(timezone.utc) - timedelta(days=days)

        deleted, _ = DomainEventModel.objects.filter(
            occurred_at__lt=cutoff_date,
            status=DomainEventModel.Status.DELIVERED,
        ).delete()

        logger.info(f"[SCHEDULED] {deleted} eventos removidos")

        return deleted

    except Exception as e:
        logger.error(f"Erro ao limpar eventos: {e}", exc_info=True)
        return 0
