"""
Coordenador de Transações - API funcional.

Complementa o UnitOfWork com duas funções para código que não recebe
o UoW explicitamente:

    with_transaction(work, ...)  - executa `work` em uma transação
    after_transaction(callback)  - agenda callback para após o commit

Chamadas aninhadas reaproveitam a transação ativa do fluxo corrente.
"""

from typing import Any, Callable, Optional, TypeVar

from .exceptions import NoContextError
from .interfaces import UnitOfWork, get_active_scope


T = TypeVar("T")

_uow_factory: Optional[Callable[[], UnitOfWork]] = None


def configure(uow_factory: Optional[Callable[[], UnitOfWork]]) -> None:
    """Define a fábrica de UoW usada quando nenhum é informado."""
    global _uow_factory
    _uow_factory = uow_factory


def with_transaction(
    work: Callable[..., T],
    *args: Any,
    uow: Optional[UnitOfWork] = None,
    **kwargs: Any,
) -> T:
    """
    Executa `work(*args, **kwargs)` de forma atômica e retorna seu resultado.

    Se já existe transação ativa e nenhum `uow` foi informado, `work`
    roda dentro dela. Exceções causam rollback completo antes de
    propagar.

    Raises:
        NoContextError: Se não há transação ativa, nem `uow`, nem fábrica
    """
    if uow is None:
        if get_active_scope() is not None:
            return work(*args, **kwargs)
        if _uow_factory is None:
            raise NoContextError("Transaction")
        uow = _uow_factory()

    with uow:
        return work(*args, **kwargs)


def after_transaction(callback: Callable[[], Any], name: Optional[str] = None) -> None:
    """
    Enfileira `callback` para rodar uma vez após o commit da transação
    mais externa do fluxo corrente. Descartado em caso de rollback.

    Raises:
        NoContextError: Se chamado fora de `with_transaction`/UoW
    """
    escopo = get_active_scope()
    if escopo is None:
        raise NoContextError("Transaction")
    escopo.add_callback(callback, name)


def in_transaction() -> bool:
    return get_active_scope() is not None
