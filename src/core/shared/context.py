"""
Contexto de Ator - Quem está executando a operação atual.

O ator é estabelecido uma vez por comando de entrada (request HTTP,
interação do bot, job agendado) e fica disponível para qualquer código
na mesma cadeia lógica de chamadas, sem ser passado como parâmetro.

Mecanismo:
    contextvars.ContextVar - cada task asyncio tem sua própria cópia do
    contexto, e `asgiref.sync.sync_to_async` copia o contexto para a
    thread que executa código síncrono. Duas interações concorrentes
    nunca enxergam o ator uma da outra.

Uso:
    actor = ChatPlatformActor(user_id="42", tenant_id="g1", permissions=mask)

    resultado = provide(actor, service.execute, dto)

    async def handler():
        return await provide_async(actor, executar_comando, interacao)

    with actor_scope(actor):
        require_capability(PermissionFlags.TICKET_CLAIM)
"""

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, ClassVar, Iterator, Optional, TypeVar, Union

from src.core.permissions.flags import (
    ALL_PERMISSIONS,
    NO_PERMISSIONS,
    PermissionFlags,
    has_capability,
    names_for,
)

from .exceptions import NoContextError, PermissionDeniedError


T = TypeVar("T")


@dataclass(frozen=True)
class WebActor:
    """Pessoa autenticada no painel web."""

    kind: ClassVar[str] = "human_via_web"

    user_id: str
    tenant_id: str
    permissions: PermissionFlags = NO_PERMISSIONS
    session_ref: Optional[str] = None

    @property
    def identidade_id(self) -> str:
        return self.user_id


@dataclass(frozen=True)
class ChatPlatformActor:
    """Pessoa interagindo pelo bot (slash command, botão)."""

    kind: ClassVar[str] = "human_via_chat_platform"

    user_id: str
    tenant_id: str
    permissions: PermissionFlags = NO_PERMISSIONS
    channel_ref: Optional[str] = None

    @property
    def identidade_id(self) -> str:
        return self.user_id


@dataclass(frozen=True)
class SystemActor:
    """
    O próprio sistema (timers, workers, migrações de dados).

    Possui todas as capacidades e não está preso a um tenant.
    """

    kind: ClassVar[str] = "system"

    identifier: str = "system"
    tenant_id: ClassVar[Optional[str]] = None

    @property
    def permissions(self) -> PermissionFlags:
        return ALL_PERMISSIONS

    @property
    def identidade_id(self) -> str:
        return self.identifier


Actor = Union[WebActor, ChatPlatformActor, SystemActor]


_current_actor: ContextVar[Optional[Actor]] = ContextVar("current_actor", default=None)


@contextmanager
def actor_scope(actor: Actor) -> Iterator[Actor]:
    """
    Estabelece `actor` como ator ambiente dentro do bloco `with`.

    Escopos aninhados sombreiam o externo e o restauram na saída,
    inclusive quando o bloco lança exceção.
    """
    token = _current_actor.set(actor)
    try:
        yield actor
    finally:
        _current_actor.reset(token)


def provide(actor: Actor, work: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Executa `work(*args, **kwargs)` com `actor` como ator ambiente.

    Returns:
        O retorno de `work` (exceções são propagadas sem alteração)
    """
    with actor_scope(actor):
        return work(*args, **kwargs)


async def provide_async(
    actor: Actor,
    work: Callable[..., Awaitable[T]],
    *args: Any,
    **kwargs: Any,
) -> T:
    """
    Versão assíncrona de `provide`.

    O ator sobrevive aos pontos de suspensão de `work` porque o
    ContextVar pertence ao contexto da task corrente.
    """
    with actor_scope(actor):
        return await work(*args, **kwargs)


def current() -> Actor:
    """
    Retorna o ator ambiente.

    Raises:
        NoContextError: Se chamado fora de qualquer escopo
    """
    actor = _current_actor.get()
    if actor is None:
        raise NoContextError("Actor")
    return actor


def current_or_none() -> Optional[Actor]:
    """Retorna o ator ambiente ou None quando não autenticado."""
    return _current_actor.get()


def require_capability(flag: PermissionFlags) -> Actor:
    """
    Garante que o ator ambiente possui a capacidade `flag`.

    Returns:
        O ator corrente, para conveniência

    Raises:
        NoContextError: Se não houver ator
        PermissionDeniedError: Se o bit estiver ausente
    """
    actor = current()
    if not has_capability(actor.permissions, flag):
        nomes = names_for(flag)
        raise PermissionDeniedError(
            f"Permissão necessária: {', '.join(nomes)}",
            capabilities=nomes,
        )
    return actor


def actor_has(flag: PermissionFlags) -> bool:
    """Versão booleana de `require_capability`; False sem ator."""
    actor = current_or_none()
    return actor is not None and has_capability(actor.permissions, flag)
