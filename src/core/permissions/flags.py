"""
Flags de Permissão.

Cada bit é uma capacidade nomeada. A máscara efetiva de um ator é o
OR das máscaras dos seus papéis no tenant.

Layout de bits compartilhado com o painel web e o bot; nunca reutilizar
um bit removido.
"""

from enum import IntFlag
from functools import reduce
from operator import or_
from typing import List, Union


class PermissionFlags(IntFlag):
    """Capacidades atribuíveis a papéis de um tenant."""

    # Painéis
    PANEL_CREATE = 1 << 0
    PANEL_EDIT = 1 << 1
    PANEL_DELETE = 1 << 2
    PANEL_DEPLOY = 1 << 3

    # Tickets
    TICKET_VIEW_ALL = 1 << 4
    TICKET_CLAIM = 1 << 5
    TICKET_CLOSE_ANY = 1 << 6
    TICKET_ASSIGN = 1 << 7
    TICKET_DELETE = 1 << 8
    TICKET_EXPORT = 1 << 9

    # Papéis
    ROLE_CREATE = 1 << 10
    ROLE_EDIT = 1 << 11
    ROLE_DELETE = 1 << 12
    ROLE_ASSIGN = 1 << 13

    # Membros
    MEMBER_VIEW = 1 << 14
    MEMBER_BLACKLIST = 1 << 15

    # Formulários
    FORM_CREATE = 1 << 16
    FORM_EDIT = 1 << 17
    FORM_DELETE = 1 << 18

    # Tags
    TAG_CREATE = 1 << 19
    TAG_EDIT = 1 << 20
    TAG_DELETE = 1 << 21
    TAG_USE = 1 << 22

    # Configurações do tenant
    GUILD_SETTINGS_VIEW = 1 << 23
    GUILD_SETTINGS_EDIT = 1 << 24

    # Analytics e feedback
    ANALYTICS_VIEW = 1 << 25
    FEEDBACK_VIEW = 1 << 26
    FEEDBACK_MANAGE = 1 << 27

    MEMBER_UNBLACKLIST = 1 << 28


NO_PERMISSIONS = PermissionFlags(0)

ALL_PERMISSIONS = reduce(or_, PermissionFlags, NO_PERMISSIONS)


DEFAULT_ROLE_PERMISSIONS = {
    "admin": ALL_PERMISSIONS,
    "support": (
        PermissionFlags.TICKET_VIEW_ALL
        | PermissionFlags.TICKET_CLAIM
        | PermissionFlags.TICKET_ASSIGN
        | PermissionFlags.TAG_USE
        | PermissionFlags.MEMBER_VIEW
    ),
    "viewer": (
        PermissionFlags.ANALYTICS_VIEW
        | PermissionFlags.TICKET_VIEW_ALL
        | PermissionFlags.MEMBER_VIEW
        | PermissionFlags.GUILD_SETTINGS_VIEW
    ),
}


def to_flags(value: Union[int, str, PermissionFlags, None]) -> PermissionFlags:
    """
    Converte valor cru (int, hex "0x..." ou decimal em string) para flags.

    Bits desconhecidos são descartados para que um valor vindo do banco
    nunca carregue capacidades inexistentes.

    Raises:
        ValueError: Se a string não for um número válido
    """
    if value is None:
        return NO_PERMISSIONS
    if isinstance(value, str):
        value = int(value.strip(), 0)
    if value < 0:
        raise ValueError(f"Máscara de permissões negativa: {value}")
    return PermissionFlags(int(value) & ALL_PERMISSIONS.value)


def has_capability(mask: Union[int, PermissionFlags], flag: PermissionFlags) -> bool:
    """Teste puro de bits: todos os bits de `flag` presentes em `mask`."""
    return (int(mask) & flag.value) == flag.value


def names_for(mask: Union[int, PermissionFlags]) -> List[str]:
    """
    Nomes das capacidades presentes na máscara.

    Usado apenas em mensagens de erro e logs, nunca para autorizar.
    """
    valor = int(mask)
    return [flag.name for flag in PermissionFlags if valor & flag.value]
