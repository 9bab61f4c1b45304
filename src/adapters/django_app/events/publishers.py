"""
Event Publishers - Publicadores de Eventos de Domínio.

Responsável por entregar eventos, após o commit, aos efeitos diferidos.
Implementações:
- LocalEventPublisher: Executa os efeitos no próprio processo (bot, dev)
- CeleryEventPublisher: Enfileira para o worker Celery (produção)
- InMemoryEventPublisher: Para testes

Em todas as formas, o OutboxDispatcher reserva a linha do outbox,
executa os efeitos que faltam e marca a linha como entregue ou com falha.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence
import json
import logging

from src.core.shared.events import DomainEvent
from src.core.shared.interfaces import EventPublisher, EventStore
from src.core.tickets.effects import ResultadoDespacho, TicketEffects

logger = logging.getLogger(__name__)


class OutboxDispatcher:
    """
    Executa os efeitos de um evento e atualiza o outbox.

    Antes de executar, reserva a linha. Se ela já foi entregue ou está
    reservada por outra entrega, o despacho é ignorado. Efeitos que
    tiveram sucesso numa tentativa anterior não rodam de novo.

    Example:
        dispatcher = OutboxDispatcher(effects, event_store)
        dispatcher.dispatch("TicketFechadoEvent", event.to_dict())
    """

    def __init__(
        self,
        effects: TicketEffects,
        event_store: Optional[EventStore] = None,
        reserva: timedelta = timedelta(minutes=5),
    ):
        self._effects = effects
        self._event_store = event_store
        self._reserva = reserva

    def dispatch(self, event_type: str, event_data: Dict[str, Any]) -> ResultadoDespacho:
        event_id = event_data.get("event_id")
        concluidos: List[str] = []

        if self._event_store is not None and event_id:
            reservado = self._event_store.claim(event_id, self._reserva)
            if reservado is None:
                logger.info(f"[DISPATCHER] {event_type} {event_id} já entregue ou em andamento; ignorado")
                return ResultadoDespacho(event_id=event_id, event_type=event_type, ignorado=True)
            concluidos = reservado

        resultado = self._effects.handle(event_type, event_data, concluidos)

        if self._event_store is not None and resultado.event_id:
            if resultado.sucesso:
                self._event_store.mark_delivered(resultado.event_id)
            else:
                self._event_store.mark_failed(
                    resultado.event_id, "; ".join(resultado.erros), resultado.concluidos
                )

        return resultado


class LocalEventPublisher(EventPublisher):
    """
    Publisher síncrono: efeitos rodam logo após o commit, no mesmo processo.

    Usado pelo processo do bot e em desenvolvimento, sem infraestrutura
    de mensageria.
    """

    def __init__(self, dispatcher: OutboxDispatcher, log_level: int = logging.INFO):
        """
        Args:
            dispatcher: Executor dos efeitos
            log_level: Nível de log para eventos
        """
        self._dispatcher = dispatcher
        self._log_level = log_level

    def publish(self, event: DomainEvent) -> None:
        event_data = event.to_dict()

        logger.log(
            self._log_level,
            f"[EVENT] {event.event_type} | "
            f"aggregate={event.aggregate_id} | "
            f"data={json.dumps(event_data['data'], default=str)}"
        )

        self._dispatcher.dispatch(event.event_type, event_data)


class CeleryEventPublisher(EventPublisher):
    """
    Publisher que envia eventos para Celery.

    Usado em produção para processamento assíncrono. Se o broker estiver
    fora, a linha continua pendente no outbox e o beat a reprocessa.
    """

    def __init__(self, also_log: bool = True):
        """
        Inicializa publisher.

        Args:
            also_log: Se deve também logar eventos
        """
        self._also_log = also_log

    def publish(self, event: DomainEvent) -> None:
        """
        Publica evento via Celery.

        Args:
            event: Evento a publicar
        """
        event_data = event.to_dict()

        if self._also_log:
            logger.info(
                f"[EVENT->CELERY] {event.event_type} | "
                f"aggregate={event.aggregate_id}"
            )

        try:
            from src.adapters.django_app.events.handlers import dispatch_domain_event
            dispatch_domain_event.delay(event.event_type, event_data)
        except Exception as e:
            logger.error(f"Falha ao publicar evento no Celery: {e}", exc_info=True)
            # O outbox garante nova tentativa; não quebra o fluxo principal


class InMemoryEventPublisher(EventPublisher):
    """
    Publisher em memória para testes.

    Armazena eventos publicados para verificação em testes.
    """

    def __init__(self):
        self._published_events: List[DomainEvent] = []
        self._handlers: Dict[str, List[Callable]] = {}

    def publish(self, event: DomainEvent) -> None:
        """Armazena evento na lista."""
        self._published_events.append(event)
        for handler in self._handlers.get(event.event_type, []):
            handler(event)

    @property
    def published_events(self) -> List[DomainEvent]:
        """Retorna eventos publicados."""
        return self._published_events.copy()

    def clear(self) -> None:
        """Limpa eventos armazenados."""
        self._published_events.clear()

    def get_events_by_type(self, event_type: str) -> List[DomainEvent]:
        """Filtra eventos por tipo."""
        return [e for e in self._published_events if e.event_type == event_type]

    def register_handler(
        self,
        event_type: str,
        handler: Callable[[DomainEvent], None]
    ) -> None:
        """Registra handler para tipo de evento."""
        self._handlers.setdefault(event_type, []).append(handler)


class InMemoryEventStore(EventStore):
    """
    Outbox em memória para testes.

    Guarda cada evento como o dict que a versão Django gravaria.
    """

    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}

    def append(self, event: DomainEvent) -> None:
        self.rows[event.event_id] = {
            **event.to_dict(),
            "status": "pending",
            "attempts": 0,
            "last_error": None,
            "completed_effects": [],
            "claimed_at": None,
            "created_at": datetime.now(timezone.utc),
        }

    def claim(self, event_id: str, lease: timedelta) -> Optional[List[str]]:
        row = self.rows.get(event_id)
        if row is None or row["status"] == "delivered":
            return None

        agora = datetime.now(timezone.utc)
        if row["status"] == "processing" and row["claimed_at"] > agora - lease:
            return None

        row["status"] = "processing"
        row["claimed_at"] = agora
        return list(row["completed_effects"])

    def mark_delivered(self, event_id: str) -> None:
        row = self.rows.get(event_id)
        if row:
            row["status"] = "delivered"
            row["attempts"] += 1
            row["last_error"] = None

    def mark_failed(self, event_id: str, error: str, completed_effects: Sequence[str] = ()) -> None:
        row = self.rows.get(event_id)
        if row:
            row["status"] = "failed"
            row["attempts"] += 1
            row["last_error"] = error
            row["completed_effects"] = list(completed_effects)

    def list_pending(
        self,
        max_attempts: int,
        limit: int = 100,
        older_than: Optional[timedelta] = None,
    ) -> List[Dict[str, Any]]:
        limite_criacao = datetime.now(timezone.utc) - older_than if older_than else None
        pendentes = [
            row for row in self.rows.values()
            if row["status"] != "delivered"
            and row["attempts"] < max_attempts
            and (limite_criacao is None or row["created_at"] <= limite_criacao)
        ]
        return pendentes[:limit]

    def get_events_for_aggregate(self, aggregate_id: str) -> List[Dict[str, Any]]:
        return [row for row in self.rows.values() if row["aggregate_id"] == aggregate_id]


def get_event_publisher(mode: str, dispatcher: Optional[OutboxDispatcher] = None) -> EventPublisher:
    """
    Factory para obter publisher apropriado.

    Args:
        mode: "celery" ou "sync" (EVENT_PUBLISHER_MODE)
        dispatcher: Necessário fora do modo celery

    Returns:
        Publisher configurado
    """
    if mode == "celery":
        return CeleryEventPublisher()
    if dispatcher is None:
        raise ValueError("Modo sync exige um OutboxDispatcher")
    return LocalEventPublisher(dispatcher)
