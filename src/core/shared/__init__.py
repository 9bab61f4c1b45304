"""
Shared Domain Components.

Contém componentes compartilhados entre todos os domínios:
- Exceções de domínio
- Interfaces (Ports) e coordenação de transações
- Base classes para Domain Events

O contexto de ator fica em `src.core.shared.context`.
"""

from .exceptions import (
    DomainException,
    ValidationError,
    EntityNotFoundError,
    PermissionDeniedError,
    BusinessRuleViolationError,
    ConflictError,
    LimitExceededError,
    NoContextError,
)
from .events import DomainEvent
from .interfaces import UnitOfWork, TransactionScope
from .transaction import with_transaction, after_transaction

__all__ = [
    "DomainException",
    "ValidationError",
    "EntityNotFoundError",
    "PermissionDeniedError",
    "BusinessRuleViolationError",
    "ConflictError",
    "LimitExceededError",
    "NoContextError",
    "DomainEvent",
    "UnitOfWork",
    "TransactionScope",
    "with_transaction",
    "after_transaction",
]
