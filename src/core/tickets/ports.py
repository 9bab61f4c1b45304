"""
Ports (Interfaces) do Domínio de Tickets.

Define os contratos que os Adapters de infraestrutura devem implementar
para persistência, agendamento e efeitos externos.

Tipos de Ports:
- TicketRepository: Persistência de tickets com concorrência otimista
- TenantRepository: Configuração, numeração e lista negra por tenant
- AutoCloseScheduler: Timers de fechamento automático
- ChatPlatformGateway: Operações no chat (canais, permissões, DMs)
- WebhookNotifier: Notificação assinada para o painel web
- AnalyticsClient: Captura de eventos de produto

Princípio:
    Core define interfaces → Adapters implementam
    Dependências sempre apontam para o Core

As implementações em memória deste módulo servem para testes unitários
e desenvolvimento local.
"""

from copy import deepcopy
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Set, Tuple, runtime_checkable

from src.core.shared.exceptions import ConflictError, TransientExternalError
from .entities import TicketEntity, TicketStatus, TenantConfig


@runtime_checkable
class TicketRepository(Protocol):
    """
    Interface para persistência de Tickets.

    Implementações:
    - DjangoTicketRepository (PostgreSQL/SQLite via ORM)
    - InMemoryTicketRepository (para testes)

    Concorrência:
        `save` compara `ticket.versao` com a versão gravada. Se outra
        transação gravou antes, levanta ConflictError e nada é escrito.
        Em caso de sucesso, `ticket.versao` é incrementado.
    """

    def save(self, ticket: TicketEntity) -> None:
        """
        Persiste ticket (insert se versao == 0, senão compare-and-set).

        Raises:
            ConflictError: Se a versão gravada mudou ou se violar unicidade
        """
        ...

    def get_by_id(self, ticket_id: str, for_update: bool = False) -> Optional[TicketEntity]:
        """
        Busca ticket por ID.

        Args:
            for_update: Bloqueia a linha até o fim da transação (se suportado)
        """
        ...

    def get_by_close_request_id(self, pedido_id: str, for_update: bool = False) -> Optional[TicketEntity]:
        """Busca o ticket cujo pedido de fechamento pendente é `pedido_id`."""
        ...

    def get_by_canal_id(self, canal_id: str) -> Optional[TicketEntity]:
        ...

    def count_open_by_opener(self, tenant_id: str, aberto_por_id: str) -> int:
        """Conta tickets abertos de um usuário no tenant."""
        ...

    def list(
        self,
        tenant_id: Optional[str] = None,
        status: Optional[TicketStatus] = None,
        aberto_por_id: Optional[str] = None,
        assumido_por_id: Optional[str] = None,
        limite: int = 50,
    ) -> List[TicketEntity]:
        """Lista tickets filtrados, mais recentes primeiro."""
        ...

    def list_pending_auto_close(self) -> List[TicketEntity]:
        """Tickets abertos com pedido de fechamento e prazo definido."""
        ...


@runtime_checkable
class TenantRepository(Protocol):
    """
    Interface para dados de tenant usados pelo ciclo de vida.

    `next_ticket_number` deve serializar criações concorrentes no mesmo
    tenant (bloqueio da linha do tenant até o fim da transação).
    """

    def get_config(self, tenant_id: str) -> Optional[TenantConfig]:
        ...

    def next_ticket_number(self, tenant_id: str) -> int:
        ...

    def is_blacklisted(self, tenant_id: str, identidade_id: str) -> bool:
        ...


@runtime_checkable
class AutoCloseScheduler(Protocol):
    """
    Timers de fechamento automático.

    Um timer por ticket; agendar de novo substitui o anterior. O timer
    leva o token do pedido e só fecha se o token ainda for o pendente.
    """

    def schedule(self, ticket_id: str, pedido_id: str, executar_em: datetime) -> None:
        ...

    def cancel(self, ticket_id: str, pedido_id: str) -> None:
        ...


@runtime_checkable
class ChatPlatformGateway(Protocol):
    """
    Operações na plataforma de chat.

    Falhas transitórias (rate limit, indisponibilidade) levantam
    TransientExternalError. Falhas definitivas retornam False/None.
    """

    def create_channel(self, tenant_id: str, nome: str, membros: List[str]) -> Optional[str]:
        """Cria canal privado e retorna seu id."""
        ...

    def archive_or_delete_channel(
        self,
        tenant_id: str,
        canal_id: str,
        excluir: bool = False,
        categoria_arquivo_id: Optional[str] = None,
    ) -> bool:
        ...

    def update_permission_overwrite(
        self,
        tenant_id: str,
        canal_id: str,
        identidade_id: str,
        permitir: bool,
    ) -> bool:
        ...

    def notify_user(self, tenant_id: str, identidade_id: str, mensagem: str) -> bool:
        ...


@runtime_checkable
class WebhookNotifier(Protocol):
    def send(self, event_name: str, payload: Dict[str, Any]) -> bool:
        """Envia evento assinado. TransientExternalError se vale nova tentativa."""
        ...


@runtime_checkable
class AnalyticsClient(Protocol):
    def capture(self, distinct_id: str, event_name: str, properties: Dict[str, Any]) -> None:
        """Registra evento de produto. Nunca deve levantar exceção."""
        ...


# =============================================================================
# Implementações em memória
# =============================================================================

class InMemoryTicketRepository:
    """
    Implementação em memória do TicketRepository.

    Guarda cópias das entidades para reproduzir a semântica de um banco:
    quem lê recebe um snapshot e `save` aplica compare-and-set na versão.

    Não usar em produção!

    Example:
        repo = InMemoryTicketRepository()
        repo.save(ticket)
        found = repo.get_by_id(ticket.id)
    """

    def __init__(self):
        self._tickets: Dict[str, TicketEntity] = {}

    def save(self, ticket: TicketEntity) -> None:
        atual = self._tickets.get(ticket.id)
        gravada = atual.versao if atual else 0
        if gravada != ticket.versao:
            raise ConflictError(
                "Ticket foi modificado por outra operação",
                rule="versao_desatualizada"
            )

        for outro in self._tickets.values():
            if outro.id == ticket.id:
                continue
            if ticket.canal_id and outro.canal_id == ticket.canal_id:
                raise ConflictError("Canal já vinculado a outro ticket", rule="canal_unico")
            if outro.tenant_id == ticket.tenant_id and outro.numero == ticket.numero:
                raise ConflictError("Número de ticket já utilizado", rule="numero_unico")

        ticket.versao = gravada + 1
        self._tickets[ticket.id] = deepcopy(ticket)

    def get_by_id(self, ticket_id: str, for_update: bool = False) -> Optional[TicketEntity]:
        ticket = self._tickets.get(ticket_id)
        return deepcopy(ticket) if ticket else None

    def get_by_close_request_id(self, pedido_id: str, for_update: bool = False) -> Optional[TicketEntity]:
        for ticket in self._tickets.values():
            if ticket.pedido_fechamento and ticket.pedido_fechamento.id == pedido_id:
                return deepcopy(ticket)
        return None

    def get_by_canal_id(self, canal_id: str) -> Optional[TicketEntity]:
        for ticket in self._tickets.values():
            if ticket.canal_id == canal_id:
                return deepcopy(ticket)
        return None

    def count_open_by_opener(self, tenant_id: str, aberto_por_id: str) -> int:
        return len([
            t for t in self._tickets.values()
            if t.tenant_id == tenant_id
            and t.aberto_por_id == aberto_por_id
            and t.status == TicketStatus.ABERTO
        ])

    def list(
        self,
        tenant_id: Optional[str] = None,
        status: Optional[TicketStatus] = None,
        aberto_por_id: Optional[str] = None,
        assumido_por_id: Optional[str] = None,
        limite: int = 50,
    ) -> List[TicketEntity]:
        tickets = [
            t for t in self._tickets.values()
            if (tenant_id is None or t.tenant_id == tenant_id)
            and (status is None or t.status == status)
            and (aberto_por_id is None or t.aberto_por_id == aberto_por_id)
            and (assumido_por_id is None or t.assumido_por_id == assumido_por_id)
        ]
        tickets.sort(key=lambda t: t.criado_em, reverse=True)
        return [deepcopy(t) for t in tickets[:limite]]

    def list_pending_auto_close(self) -> List[TicketEntity]:
        return [
            deepcopy(t) for t in self._tickets.values()
            if t.status == TicketStatus.ABERTO
            and t.pedido_fechamento is not None
            and t.pedido_fechamento.fechamento_automatico_em is not None
            and not t.excluir_de_fechamento_automatico
        ]

    def count(self) -> int:
        return len(self._tickets)

    def clear(self) -> None:
        """Limpa todos os dados (útil para testes)."""
        self._tickets.clear()


class InMemoryTenantRepository:
    """TenantRepository em memória (testes)."""

    def __init__(self):
        self._configs: Dict[str, TenantConfig] = {}
        self._contadores: Dict[str, int] = {}
        self._lista_negra: Set[Tuple[str, str]] = set()

    def add_tenant(self, config: TenantConfig) -> None:
        self._configs[config.tenant_id] = config
        self._contadores.setdefault(config.tenant_id, 0)

    def block(self, tenant_id: str, identidade_id: str) -> None:
        self._lista_negra.add((tenant_id, identidade_id))

    def get_config(self, tenant_id: str) -> Optional[TenantConfig]:
        return self._configs.get(tenant_id)

    def next_ticket_number(self, tenant_id: str) -> int:
        self._contadores[tenant_id] = self._contadores.get(tenant_id, 0) + 1
        return self._contadores[tenant_id]

    def is_blacklisted(self, tenant_id: str, identidade_id: str) -> bool:
        return (tenant_id, identidade_id) in self._lista_negra


class InMemoryAutoCloseScheduler:
    """
    Scheduler que apenas registra agendamentos (testes).

    Attributes:
        agendados: ticket_id → (pedido_id, executar_em)
        cancelados: Lista de (ticket_id, pedido_id) cancelados
    """

    def __init__(self):
        self.agendados: Dict[str, Tuple[str, datetime]] = {}
        self.cancelados: List[Tuple[str, str]] = []

    def schedule(self, ticket_id: str, pedido_id: str, executar_em: datetime) -> None:
        self.agendados[ticket_id] = (pedido_id, executar_em)

    def cancel(self, ticket_id: str, pedido_id: str) -> None:
        self.cancelados.append((ticket_id, pedido_id))
        agendado = self.agendados.get(ticket_id)
        if agendado and agendado[0] == pedido_id:
            del self.agendados[ticket_id]


class InMemoryChatPlatformGateway:
    """
    Gateway de chat falso.

    Registra cada chamada em `chamadas` e permite simular falhas:
    `falhas_transitorias[metodo] = n` faz as próximas n chamadas de
    `metodo` levantarem TransientExternalError; `falhas[metodo] = True`
    faz o método retornar falha definitiva.
    """

    def __init__(self):
        self.chamadas: List[Tuple[str, Tuple[Any, ...]]] = []
        self.falhas_transitorias: Dict[str, int] = {}
        self.falhas: Dict[str, bool] = {}
        self._sequencia = 0

    def _registrar(self, metodo: str, *args: Any) -> bool:
        self.chamadas.append((metodo, args))
        restantes = self.falhas_transitorias.get(metodo, 0)
        if restantes > 0:
            self.falhas_transitorias[metodo] = restantes - 1
            raise TransientExternalError(f"{metodo}: indisponível", service="chat")
        return not self.falhas.get(metodo, False)

    def chamadas_de(self, metodo: str) -> List[Tuple[Any, ...]]:
        return [args for nome, args in self.chamadas if nome == metodo]

    def create_channel(self, tenant_id: str, nome: str, membros: List[str]) -> Optional[str]:
        if not self._registrar("create_channel", tenant_id, nome, tuple(membros)):
            return None
        self._sequencia += 1
        return f"canal-{self._sequencia}"

    def archive_or_delete_channel(
        self,
        tenant_id: str,
        canal_id: str,
        excluir: bool = False,
        categoria_arquivo_id: Optional[str] = None,
    ) -> bool:
        return self._registrar("archive_or_delete_channel", tenant_id, canal_id, excluir, categoria_arquivo_id)

    def update_permission_overwrite(
        self,
        tenant_id: str,
        canal_id: str,
        identidade_id: str,
        permitir: bool,
    ) -> bool:
        return self._registrar("update_permission_overwrite", tenant_id, canal_id, identidade_id, permitir)

    def notify_user(self, tenant_id: str, identidade_id: str, mensagem: str) -> bool:
        return self._registrar("notify_user", tenant_id, identidade_id, mensagem)


class InMemoryWebhookNotifier:
    def __init__(self):
        self.enviados: List[Tuple[str, Dict[str, Any]]] = []
        self.falhas_transitorias = 0

    def send(self, event_name: str, payload: Dict[str, Any]) -> bool:
        if self.falhas_transitorias > 0:
            self.falhas_transitorias -= 1
            raise TransientExternalError("webhook indisponível", service="webhook")
        self.enviados.append((event_name, payload))
        return True


class InMemoryAnalyticsClient:
    def __init__(self):
        self.capturados: List[Tuple[str, str, Dict[str, Any]]] = []

    def capture(self, distinct_id: str, event_name: str, properties: Dict[str, Any]) -> None:
        self.capturados.append((distinct_id, event_name, properties))
