"""
Permissões - capacidades como máscara de bits.

- PermissionFlags: bits nomeados
- PermissionEngine: máscara efetiva por tenant/identidade
- IdentityRoleStore: port de leitura de papéis
"""

from .flags import (
    PermissionFlags,
    ALL_PERMISSIONS,
    NO_PERMISSIONS,
    DEFAULT_ROLE_PERMISSIONS,
    has_capability,
    names_for,
    to_flags,
)
from .engine import PermissionEngine
from .ports import IdentityRoleStore, InMemoryIdentityRoleStore

__all__ = [
    "PermissionFlags",
    "ALL_PERMISSIONS",
    "NO_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "has_capability",
    "names_for",
    "to_flags",
    "PermissionEngine",
    "IdentityRoleStore",
    "InMemoryIdentityRoleStore",
]
