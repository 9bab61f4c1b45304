"""
Agendadores do timer de fechamento automático.

Implementações de AutoCloseScheduler (core.tickets.ports):
- CeleryAutoCloseScheduler: tarefa com `eta` e id determinístico,
  revogada no cancelamento (web/worker)
- AsyncioAutoCloseScheduler: tasks no event loop do processo do bot

Disparo após cancelamento é tolerado: o serviço de fechamento
automático confere o token do pedido antes de fechar.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from asgiref.sync import sync_to_async

from src.core.shared.context import SystemActor, provide_async

logger = logging.getLogger(__name__)


def task_id_para(ticket_id: str, pedido_id: str) -> str:
    return f"auto-close-{ticket_id}-{pedido_id}"


def _segundos_ate(executar_em: datetime) -> float:
    if executar_em.tzinfo is None:
        executar_em = executar_em.replace(tzinfo=timezone.utc)
    return max(0.0, (executar_em - datetime.now(timezone.utc)).total_seconds())


class CeleryAutoCloseScheduler:
    """
    Agenda `fechar_ticket_automaticamente` no Celery.

    O id da tarefa deriva do ticket e do token do pedido, então o
    cancelamento não precisa de estado local.
    """

    def __init__(self, celery_app=None):
        self._app = celery_app

    @property
    def app(self):
        if self._app is None:
            from src.config.celery import app
            self._app = app
        return self._app

    def schedule(self, ticket_id: str, pedido_id: str, executar_em: datetime) -> None:
        from src.adapters.django_app.events.handlers import fechar_ticket_automaticamente

        fechar_ticket_automaticamente.apply_async(
            args=[ticket_id, pedido_id],
            eta=executar_em,
            task_id=task_id_para(ticket_id, pedido_id),
        )
        logger.info(f"[AUTO-CLOSE] Ticket {ticket_id} agendado para {executar_em.isoformat()}")

    def cancel(self, ticket_id: str, pedido_id: str) -> None:
        try:
            self.app.control.revoke(task_id_para(ticket_id, pedido_id))
        except Exception as e:
            # A tarefa confere o token ao disparar; revogar é só otimização
            logger.warning(f"[AUTO-CLOSE] Falha ao revogar timer de {ticket_id}: {e}")
            return
        logger.info(f"[AUTO-CLOSE] Timer de {ticket_id} cancelado")


class AsyncioAutoCloseScheduler:
    """
    Timers como tasks asyncio no loop do bot.

    `schedule`/`cancel` podem ser chamados de qualquer thread (callbacks
    pós-commit rodam na thread do `sync_to_async`); o trabalho é
    repassado ao loop com `call_soon_threadsafe`.

    Attributes:
        executar: Corrotina (ticket_id, pedido_id) que fecha o ticket
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        executar: Callable[[str, str], Awaitable[Any]],
    ):
        self.loop = loop
        self.executar = executar
        self._tarefas: Dict[str, Tuple[str, asyncio.Task]] = {}

    def schedule(self, ticket_id: str, pedido_id: str, executar_em: datetime) -> None:
        atraso = _segundos_ate(executar_em)
        self.loop.call_soon_threadsafe(self._agendar, ticket_id, pedido_id, atraso)

    def cancel(self, ticket_id: str, pedido_id: str) -> None:
        self.loop.call_soon_threadsafe(self._cancelar, ticket_id, pedido_id)

    def pendentes(self) -> Dict[str, str]:
        """ticket_id → pedido_id dos timers ativos."""
        return {ticket_id: pedido_id for ticket_id, (pedido_id, _) in self._tarefas.items()}

    def _agendar(self, ticket_id: str, pedido_id: str, atraso: float) -> None:
        anterior = self._tarefas.pop(ticket_id, None)
        if anterior is not None:
            anterior[1].cancel()

        tarefa = self.loop.create_task(self._disparar(ticket_id, pedido_id, atraso))
        self._tarefas[ticket_id] = (pedido_id, tarefa)
        logger.info(f"[AUTO-CLOSE] Ticket {ticket_id} fecha em {atraso:.0f}s")

    def _cancelar(self, ticket_id: str, pedido_id: str) -> None:
        atual = self._tarefas.get(ticket_id)
        if atual is None or atual[0] != pedido_id:
            return
        del self._tarefas[ticket_id]
        atual[1].cancel()
        logger.info(f"[AUTO-CLOSE] Timer de {ticket_id} cancelado")

    async def _disparar(self, ticket_id: str, pedido_id: str, atraso: float) -> None:
        await asyncio.sleep(atraso)

        atual = self._tarefas.get(ticket_id)
        if atual is not None and atual[0] == pedido_id:
            del self._tarefas[ticket_id]

        try:
            await self.executar(ticket_id, pedido_id)
        except Exception as e:
            logger.error(f"[AUTO-CLOSE] Falha ao fechar {ticket_id}: {e}", exc_info=True)


def fechar_como_sistema(service_factory: Callable[[], Any]) -> Callable[[str, str], Awaitable[Any]]:
    """
    Corrotina de disparo para AsyncioAutoCloseScheduler.

    Roda FecharAutomaticamenteService como SystemActor em uma thread
    (`sync_to_async` leva o ator junto no contexto).
    """

    async def executar(ticket_id: str, pedido_id: str) -> Optional[Any]:
        service = service_factory()
        return await provide_async(
            SystemActor("auto-close"),
            sync_to_async(service.execute),
            ticket_id,
            pedido_id,
        )

    return executar


def restaurar_agendamentos(ticket_repo, scheduler) -> int:
    """
    Reagenda timers pendentes ao iniciar o processo.

    Prazos já vencidos disparam imediatamente.

    Returns:
        Quantidade de timers reagendados
    """
    total = 0
    for ticket in ticket_repo.list_pending_auto_close():
        pedido = ticket.pedido_fechamento
        if pedido is None or pedido.fechamento_automatico_em is None:
            continue
        scheduler.schedule(ticket.id, pedido.id, pedido.fechamento_automatico_em)
        total += 1

    if total:
        logger.info(f"[AUTO-CLOSE] {total} timers restaurados")
    return total
