"""
Ports do Motor de Permissões.

O armazenamento de identidades/papéis é somente leitura para o núcleo.
"""

from typing import Dict, List, Optional, Protocol, Set, Tuple, runtime_checkable

from .flags import PermissionFlags, NO_PERMISSIONS


@runtime_checkable
class IdentityRoleStore(Protocol):
    """
    Consultas de identidade e papéis de um tenant.

    Implementações:
    - DjangoIdentityRoleStore (ORM)
    - InMemoryIdentityRoleStore (testes)

    Falhas de acesso devem propagar como exceção; nunca retornar
    máscara "permissiva" por padrão.
    """

    def get_tenant_owner_id(self, tenant_id: str) -> Optional[str]:
        """ID do dono do tenant, ou None se o tenant não existe."""
        ...

    def list_role_permissions(self, tenant_id: str, identity_id: str) -> List[int]:
        """Máscaras de todos os papéis ativos atribuídos à identidade."""
        ...

    def get_additional_permissions(self, tenant_id: str, identity_id: str) -> int:
        """Bits concedidos diretamente ao membro, fora de papéis."""
        ...


class InMemoryIdentityRoleStore:
    """
    Implementação em memória do IdentityRoleStore.

    Example:
        store = InMemoryIdentityRoleStore()
        store.set_owner("g1", "dono")
        store.assign_role("g1", "staff", PermissionFlags.TICKET_CLAIM)
    """

    def __init__(self):
        self._owners: Dict[str, str] = {}
        self._roles: Dict[Tuple[str, str], List[int]] = {}
        self._additional: Dict[Tuple[str, str], int] = {}
        self.falhar_com: Optional[Exception] = None

    def set_owner(self, tenant_id: str, identity_id: str) -> None:
        self._owners[tenant_id] = identity_id

    def assign_role(self, tenant_id: str, identity_id: str, permissions: PermissionFlags) -> None:
        self._roles.setdefault((tenant_id, identity_id), []).append(int(permissions))

    def grant_additional(self, tenant_id: str, identity_id: str, permissions: PermissionFlags) -> None:
        self._additional[(tenant_id, identity_id)] = int(permissions)

    def _checar_falha(self) -> None:
        if self.falhar_com is not None:
            raise self.falhar_com

    def get_tenant_owner_id(self, tenant_id: str) -> Optional[str]:
        self._checar_falha()
        return self._owners.get(tenant_id)

    def list_role_permissions(self, tenant_id: str, identity_id: str) -> List[int]:
        self._checar_falha()
        return list(self._roles.get((tenant_id, identity_id), []))

    def get_additional_permissions(self, tenant_id: str, identity_id: str) -> int:
        self._checar_falha()
        return self._additional.get((tenant_id, identity_id), int(NO_PERMISSIONS))
