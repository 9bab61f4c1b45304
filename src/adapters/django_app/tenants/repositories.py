"""
Repositórios Django de Tenants.

- DjangoTenantRepository: implementa TenantRepository (core.tickets.ports)
- DjangoIdentityRoleStore: implementa IdentityRoleStore (core.permissions.ports)
"""

from typing import List, Optional
import logging

from django.db.models import F

from src.core.tickets.entities import TenantConfig
from src.core.shared.exceptions import EntityNotFoundError

from .models import (
    MemberPermissionModel,
    TenantBlacklistModel,
    TenantModel,
    TenantRoleModel,
)

logger = logging.getLogger(__name__)


class DjangoTenantRepository:
    """
    Configuração, numeração e lista negra por tenant.

    `next_ticket_number` bloqueia a linha do tenant (SELECT FOR UPDATE)
    e incrementa o contador; criações concorrentes no mesmo tenant ficam
    serializadas até o fim da transação. Deve ser chamado dentro de um UoW.
    """

    def get_config(self, tenant_id: str) -> Optional[TenantConfig]:
        model = TenantModel.objects.filter(id=tenant_id).first()
        if model is None:
            return None
        return TenantConfig(
            tenant_id=model.id,
            owner_id=model.owner_id,
            limite_tickets_por_usuario=model.max_tickets_por_usuario,
            categoria_arquivo_id=model.categoria_arquivo_id,
        )

    def next_ticket_number(self, tenant_id: str) -> int:
        """
        Raises:
            EntityNotFoundError: Se tenant não existe
        """
        tenant = TenantModel.objects.select_for_update().filter(id=tenant_id).first()
        if tenant is None:
            raise EntityNotFoundError(
                f"Tenant {tenant_id} não encontrado",
                entity_type="Tenant",
                entity_id=tenant_id
            )

        TenantModel.objects.filter(id=tenant_id).update(total_tickets=F('total_tickets') + 1)
        numero = tenant.total_tickets + 1
        logger.debug(f"Ticket number allocated: {tenant_id} #{numero}")
        return numero

    def is_blacklisted(self, tenant_id: str, identidade_id: str) -> bool:
        return TenantBlacklistModel.objects.filter(
            tenant_id=tenant_id,
            identidade_id=identidade_id,
        ).exists()


class DjangoIdentityRoleStore:
    """Leitura de dono, papéis e permissões adicionais via ORM."""

    def get_tenant_owner_id(self, tenant_id: str) -> Optional[str]:
        return (
            TenantModel.objects
            .filter(id=tenant_id)
            .values_list('owner_id', flat=True)
            .first()
        )

    def list_role_permissions(self, tenant_id: str, identity_id: str) -> List[int]:
        return list(
            TenantRoleModel.objects
            .filter(tenant_id=tenant_id, ativo=True, membros__identidade_id=identity_id)
            .values_list('permissoes', flat=True)
        )

    def get_additional_permissions(self, tenant_id: str, identity_id: str) -> int:
        valor = (
            MemberPermissionModel.objects
            .filter(tenant_id=tenant_id, identidade_id=identity_id)
            .values_list('permissoes', flat=True)
            .first()
        )
        return valor or 0
