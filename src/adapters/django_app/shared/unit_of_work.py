"""
Unit of Work - Implementação Django.

Gerencia transações atômicas entre múltiplos repositórios,
garantindo consistência de dados.

Responsabilidades:
- Iniciar/finalizar transações (transaction.atomic)
- Commit/Rollback coordenado
- Gravar eventos no outbox dentro da transação
- Agendar callbacks e publicação para depois do commit (on_commit)

ACID Guarantees:
- Atomicidade: ticket e outbox gravados juntos ou nenhum
- Consistência: Eventos refletem estado persistido
- Isolamento: Cada comando tem sua transação
- Durabilidade: linha pendente no outbox sobrevive a crash entre
  commit e efeito, e é reprocessada pelo Celery beat
"""

from typing import List, Optional
import logging

from django.db import transaction

from src.core.shared.interfaces import EventPublisher, EventStore, UnitOfWork
from src.core.shared.events import DomainEvent

logger = logging.getLogger(__name__)


class DjangoUnitOfWork(UnitOfWork):
    """
    Implementação Django do Unit of Work.

    O escopo mais externo abre um `transaction.atomic()`. Os callbacks
    do escopo são entregues a `transaction.on_commit`, portanto só rodam
    se o commit de fato acontecer (inclusive quando este UoW roda dentro
    de um atomic externo aberto por outro código).

    Example:
        with DjangoUnitOfWork(event_store=store) as uow:
            repo.save(entity1)
            repo.save(entity2)
            uow.publish_event(MyEvent(...))
        # Commit automático + eventos publicados

    Example com rollback:
        with DjangoUnitOfWork() as uow:
            repo.save(entity)
            uow.publish_event(MyEvent(...))
            raise Exception("Erro!")
        # Rollback automático, eventos descartados
    """

    def __init__(
        self,
        event_publisher: Optional[EventPublisher] = None,
        event_store: Optional[EventStore] = None,
        using: Optional[str] = None,
    ):
        """
        Inicializa Unit of Work.

        Args:
            event_publisher: Publicador de eventos (local ou Celery)
            event_store: Outbox para persistência de eventos
            using: Alias do banco (padrão: default)
        """
        super().__init__(event_publisher=event_publisher)
        self._event_store = event_store
        self._using = using
        self._atomic = None

    def _begin_transaction(self) -> None:
        self._atomic = transaction.atomic(using=self._using)
        self._atomic.__enter__()
        logger.debug("Transaction started")

    def commit(self) -> None:
        """
        Persiste todas as mudanças e agenda os callbacks.

        Ordem de execução:
        1. Gravar eventos no outbox (mesma transação)
        2. Registrar callbacks em on_commit
        3. Sair do atomic (commit real)

        Raises:
            Exception: Se gravação do outbox ou commit falhar
        """
        escopo = self.scope

        try:
            if self._event_store and escopo.events:
                for event in escopo.events:
                    self._event_store.append(event)
        except Exception as e:
            logger.error(f"Falha ao gravar outbox, revertendo: {e}")
            self.rollback()
            raise

        transaction.on_commit(escopo.run_callbacks, using=self._using)

        atomic, self._atomic = self._atomic, None
        try:
            atomic.__exit__(None, None, None)
        except Exception as e:
            logger.error(f"Commit failed: {e}")
            escopo.discard()
            raise
        logger.debug("Transaction committed")

    def rollback(self) -> None:
        """
        Desfaz todas as mudanças e descarta eventos.

        Chamado automaticamente se exceção ocorrer dentro do contexto.
        """
        self.scope.discard()
        self.clear_events()

        atomic, self._atomic = self._atomic, None
        if atomic is None:
            return

        transaction.set_rollback(True, using=self._using)
        try:
            atomic.__exit__(None, None, None)
            logger.debug("Transaction rolled back")
        except Exception as e:
            logger.error(f"Rollback failed: {e}")
            raise


class InMemoryUnitOfWork(UnitOfWork):
    """
    Unit of Work em memória para testes.

    Não persiste nada: simula commit executando os callbacks do
    escopo logo após marcar o commit.

    Example:
        uow = InMemoryUnitOfWork()
        with uow:
            # operações
            uow.publish_event(event)

        assert uow.committed
        assert len(uow.published_events) == 1
    """

    def __init__(
        self,
        event_publisher: Optional[EventPublisher] = None,
        event_store: Optional[EventStore] = None,
    ):
        super().__init__(event_publisher=event_publisher)
        self._event_store = event_store
        self._committed = False
        self._rolled_back = False
        self._published_events: List[DomainEvent] = []

    def _begin_transaction(self) -> None:
        """Simula início de transação."""
        pass

    def commit(self) -> None:
        """Simula commit e executa callbacks pós-commit."""
        escopo = self.scope
        if self._event_store:
            for event in escopo.events:
                self._event_store.append(event)

        self._committed = True
        self._published_events.extend(escopo.events)
        escopo.run_callbacks()

    def rollback(self) -> None:
        """Simula rollback."""
        self._rolled_back = True
        self.scope.discard()
        self.clear_events()

    @property
    def committed(self) -> bool:
        """Verifica se foi comitado."""
        return self._committed

    @property
    def rolled_back(self) -> bool:
        """Verifica se foi revertido."""
        return self._rolled_back

    @property
    def published_events(self) -> List[DomainEvent]:
        """Eventos de todas as transações comitadas por este UoW."""
        return self._published_events

    def reset(self) -> None:
        """Reset para próximo teste."""
        self._committed = False
        self._rolled_back = False
        self._published_events.clear()
        self.clear_events()
