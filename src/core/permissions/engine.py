"""
Motor de Permissões.

Calcula a máscara efetiva de uma identidade em um tenant:

    efetiva = OR(papéis) | permissões adicionais
    dono do tenant → ALL_PERMISSIONS
    modo desenvolvedor → máscara fixa de configuração

Falhas do armazenamento viram PermissionLookupError; o chamador
trata como "sem permissão", nunca como acesso concedido.
"""

import logging
from functools import reduce
from operator import or_
from typing import List, Optional, Union

from src.core.shared.exceptions import DomainException, PermissionLookupError

from . import flags as _flags
from .flags import ALL_PERMISSIONS, NO_PERMISSIONS, PermissionFlags, to_flags
from .ports import IdentityRoleStore

logger = logging.getLogger(__name__)


class PermissionEngine:
    """
    Serviço de consulta de capacidades.

    Attributes:
        store: Armazenamento de identidades/papéis
        dev_override: Máscara fixa usada apenas em modo desenvolvedor
    """

    def __init__(
        self,
        store: IdentityRoleStore,
        dev_mode: bool = False,
        dev_permissions_hex: Optional[str] = None,
    ):
        self.store = store
        self.dev_override: Optional[PermissionFlags] = None

        if dev_mode and dev_permissions_hex:
            self.dev_override = to_flags(dev_permissions_hex)
            logger.warning(
                f"Modo desenvolvedor: permissões fixas {dev_permissions_hex} "
                f"para todas as identidades"
            )

    def get_effective_permissions(self, tenant_id: str, identity_id: str) -> PermissionFlags:
        """
        Máscara efetiva da identidade no tenant.

        Raises:
            PermissionLookupError: Se o armazenamento não responder
        """
        if self.dev_override is not None:
            logger.debug(f"Modo desenvolvedor: {identity_id}@{tenant_id} -> {self.dev_override!r}")
            return self.dev_override

        try:
            if self.store.get_tenant_owner_id(tenant_id) == identity_id:
                return ALL_PERMISSIONS

            mascaras = self.store.list_role_permissions(tenant_id, identity_id)
            adicionais = self.store.get_additional_permissions(tenant_id, identity_id)
        except DomainException:
            raise
        except Exception as e:
            logger.error(f"Falha ao consultar permissões de {identity_id}@{tenant_id}: {e}")
            raise PermissionLookupError(
                f"Não foi possível obter permissões de {identity_id}"
            ) from e

        combinada = reduce(or_, (to_flags(m) for m in mascaras), NO_PERMISSIONS)
        return combinada | to_flags(adicionais)

    def get_effective_permissions_or_none(self, tenant_id: str, identity_id: str) -> PermissionFlags:
        """Como `get_effective_permissions`, mas falha vira máscara vazia."""
        try:
            return self.get_effective_permissions(tenant_id, identity_id)
        except PermissionLookupError:
            return NO_PERMISSIONS

    def has_capability(self, mask: Union[int, PermissionFlags], flag: PermissionFlags) -> bool:
        return _flags.has_capability(mask, flag)

    def names_for(self, mask: Union[int, PermissionFlags]) -> List[str]:
        return _flags.names_for(mask)
