"""
Interfaces (Ports) - Contratos entre Core e Adapters.

Este módulo define as interfaces que os Adapters devem implementar.
São os "Ports" da Arquitetura Hexagonal.

Tipos de Ports:
- Driven Ports (lado direito): UnitOfWork, EventPublisher, EventStore
- Driving Ports (lado esquerdo): Definidos nos Use Cases

Princípio: Core define interfaces; Adapters implementam.
O fluxo de dependência sempre aponta para o Core.
"""

from abc import ABC, abstractmethod
from contextvars import ContextVar
from datetime import timedelta
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
import logging

from .events import DomainEvent
from .exceptions import NoContextError

logger = logging.getLogger(__name__)


class TransactionScope:
    """
    Estado da transação mais externa em andamento.

    Uma única instância é compartilhada por todos os UnitOfWork que
    entram enquanto ela está ativa, de modo que operações de domínio
    compostas (aprovar → fechar) sejam atômicas como um todo.

    Attributes:
        events: Eventos publicados no escopo (persistidos no commit)
    """

    def __init__(self):
        self.events: List[DomainEvent] = []
        self._callbacks: List[Tuple[str, Callable[[], Any]]] = []

    def add_callback(self, callback: Callable[[], Any], name: Optional[str] = None) -> None:
        """Enfileira callback para depois do commit."""
        self._callbacks.append((name or getattr(callback, "__name__", repr(callback)), callback))

    @property
    def pending_callbacks(self) -> int:
        return len(self._callbacks)

    def run_callbacks(self) -> None:
        """
        Executa os callbacks na ordem de registro, uma única vez.

        Cada callback é isolado: falha é logada e não impede os demais.
        O commit já aconteceu e não é afetado.
        """
        callbacks, self._callbacks = self._callbacks, []
        for nome, callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.exception(f"Falha em callback pós-commit '{nome}': {e}")

    def discard(self) -> None:
        """Descarta callbacks e eventos (rollback)."""
        self._callbacks.clear()
        self.events.clear()


_active_scope: ContextVar[Optional[TransactionScope]] = ContextVar(
    "active_transaction_scope", default=None
)


def get_active_scope() -> Optional[TransactionScope]:
    """Escopo transacional ativo no fluxo corrente, se houver."""
    return _active_scope.get()


class EventPublisher(ABC):
    """
    Interface para publicação de eventos.

    Adapters implementam para integrar com diferentes
    formas de entrega (local síncrona, Celery).
    """

    @abstractmethod
    def publish(self, event: DomainEvent) -> None:
        """
        Publica evento para consumidores.

        Args:
            event: Evento de domínio a ser publicado
        """
        raise NotImplementedError

    def publish_batch(self, events: List[DomainEvent]) -> None:
        """Publica múltiplos eventos em ordem."""
        for event in events:
            self.publish(event)


class EventStore(ABC):
    """
    Outbox de eventos de domínio.

    Eventos são gravados na mesma transação da mudança de domínio e
    marcados como entregues depois que os efeitos rodam. Linhas
    pendentes ou com falha são reprocessadas por um drenador.

    Cada entrega reserva a linha antes de executar (`claim`), de modo
    que o worker e o drenador nunca rodam o mesmo evento em paralelo.
    A linha guarda os efeitos já concluídos; uma nova entrega só
    executa os que faltam.
    """

    @abstractmethod
    def append(self, event: DomainEvent) -> None:
        """Grava evento como pendente (dentro da transação corrente)."""
        raise NotImplementedError

    @abstractmethod
    def mark_delivered(self, event_id: str) -> None:
        """Marca evento como entregue."""
        raise NotImplementedError

    @abstractmethod
    def claim(self, event_id: str, lease: timedelta) -> Optional[List[str]]:
        """
        Reserva o evento para entrega.

        Reservas mais antigas que `lease` são consideradas abandonadas
        (worker morreu no meio) e podem ser tomadas de novo.

        Returns:
            Efeitos já concluídos, ou None se o evento não existe, já foi
            entregue ou está reservado por outra entrega
        """
        raise NotImplementedError

    @abstractmethod
    def mark_failed(self, event_id: str, error: str, completed_effects: Sequence[str] = ()) -> None:
        """Registra tentativa com falha e os efeitos que já tiveram sucesso."""
        raise NotImplementedError

    @abstractmethod
    def list_pending(
        self,
        max_attempts: int,
        limit: int = 100,
        older_than: Optional[timedelta] = None,
    ) -> List[Dict[str, Any]]:
        """
        Eventos ainda não entregues com menos de `max_attempts` tentativas.

        `older_than` ignora linhas gravadas há menos tempo que isso.
        """
        raise NotImplementedError

    @abstractmethod
    def get_events_for_aggregate(self, aggregate_id: str) -> List[Dict[str, Any]]:
        """Histórico de eventos de um agregado, em ordem de gravação."""
        raise NotImplementedError


class UnitOfWork(ABC):
    """
    Unit of Work - Coordena transações atômicas.

    Garante que múltiplas operações de persistência sejam
    executadas como uma única unidade: ou todas são persistidas
    ou nenhuma é.

    Pattern: Context Manager
        with uow:
            repo.save(entity)
            uow.publish_event(event)
            uow.after_commit(lambda: scheduler.cancel(...))
        # Commit automático ao sair sem erro, callbacks depois
        # Rollback automático se exceção, callbacks descartados

    Aninhamento:
        Entrar em um UoW enquanto outro escopo está ativo (no mesmo
        fluxo de execução) reaproveita a transação existente. Apenas o
        UoW mais externo faz commit ou rollback.
    """

    def __init__(self, event_publisher: Optional[EventPublisher] = None):
        self._events: List[DomainEvent] = []
        self._event_publisher = event_publisher
        self._stack: List[Tuple[TransactionScope, Any]] = []

    def __enter__(self) -> "UnitOfWork":
        """
        Inicia (ou reaproveita) o contexto de transação.

        Returns:
            Self para permitir uso como context manager
        """
        ativo = _active_scope.get()
        if ativo is not None:
            self._stack.append((ativo, None))
            return self

        escopo = TransactionScope()
        token = _active_scope.set(escopo)
        self._stack.append((escopo, token))
        try:
            self._begin_transaction()
        except Exception:
            self._stack.pop()
            _active_scope.reset(token)
            raise
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        """
        Finaliza contexto de transação.

        Escopo aninhado apenas sai; o mais externo decide. O escopo deixa
        de ser ambiente antes do commit para que callbacks pós-commit que
        abram novos UoW iniciem transações próprias.

        Returns:
            False para propagar exceções
        """
        escopo, token = self._stack[-1]
        if token is None:
            self._stack.pop()
            return False

        _active_scope.reset(token)
        try:
            if exc_type is not None:
                escopo.discard()
                self.rollback()
            else:
                self.commit()
        finally:
            self._stack.pop()
        return False  # Não suprime exceções

    @property
    def scope(self) -> TransactionScope:
        """
        Escopo corrente deste UoW.

        Raises:
            NoContextError: Se usado fora de um bloco `with`
        """
        if not self._stack:
            raise NoContextError("Transaction")
        return self._stack[-1][0]

    @property
    def in_transaction(self) -> bool:
        return bool(self._stack)

    @property
    def is_nested(self) -> bool:
        """True se este UoW entrou em uma transação já existente."""
        return bool(self._stack) and self._stack[-1][1] is None

    @abstractmethod
    def _begin_transaction(self) -> None:
        """Inicia uma nova transação (apenas no escopo mais externo)."""
        raise NotImplementedError

    @abstractmethod
    def commit(self) -> None:
        """
        Persiste todas as mudanças e agenda os callbacks.

        Ordem de execução:
        1. Gravar eventos do escopo no outbox (se configurado)
        2. Commit da transação no banco
        3. Executar callbacks pós-commit (self.scope.run_callbacks)

        Note:
            Callbacks só rodam após commit bem-sucedido.
            Se commit falhar, são descartados.
        """
        raise NotImplementedError

    @abstractmethod
    def rollback(self) -> None:
        """
        Desfaz todas as mudanças e descarta eventos.

        Chamado automaticamente se exceção ocorrer dentro
        do bloco `with`.
        """
        raise NotImplementedError

    def after_commit(self, callback: Callable[[], Any], name: Optional[str] = None) -> None:
        """
        Enfileira callback para rodar uma vez, após o commit do escopo
        mais externo.

        Raises:
            NoContextError: Se chamado fora de transação
        """
        self.scope.add_callback(callback, name)

    def publish_event(self, event: DomainEvent) -> None:
        """
        Enfileira evento para publicação após commit.

        O evento entra no outbox do escopo (gravado no commit) e a
        publicação é registrada como callback, preservando a ordem em
        relação aos demais callbacks.

        Example:
            with uow:
                ticket = TicketEntity.criar(...)
                repo.save(ticket)
                uow.publish_event(TicketCriadoEvent(aggregate_id=ticket.id))
            # Evento publicado aqui, após commit
        """
        escopo = self.scope
        escopo.events.append(event)
        self._events.append(event)
        escopo.add_callback(partial(self._dispatch_event, event), f"publish:{event.event_type}")

    def _dispatch_event(self, event: DomainEvent) -> None:
        logger.info(
            f"Publishing event: {event.event_type} "
            f"for aggregate {event.aggregate_id}"
        )
        if self._event_publisher:
            self._event_publisher.publish(event)

    def collect_events(self) -> List[DomainEvent]:
        """
        Retorna eventos publicados por este UoW (para testing/debugging).

        Returns:
            Lista de eventos
        """
        return list(self._events)

    def clear_events(self) -> None:
        """Limpa registro de eventos."""
        self._events.clear()


# Type alias para facilitar tipagem
UoW = UnitOfWork
