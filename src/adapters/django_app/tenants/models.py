"""
Django Models de Tenants (servidores) e papéis.

Models:
- TenantModel: Configuração do servidor e contador de tickets
- TenantRoleModel: Papel com máscara de permissões
- TenantRoleMemberModel: Atribuição de papel a uma identidade
- MemberPermissionModel: Permissões adicionais por membro
- TenantBlacklistModel: Identidades bloqueadas de abrir tickets

Máscaras são gravadas em BigIntegerField (cabe o conjunto completo
de flags definidas).
"""

from django.db import models


class TenantModel(models.Model):
    """
    Servidor (guild) que usa o bot.

    Fields:
        id: Snowflake do servidor
        owner_id: Dono (recebe todas as permissões)
        max_tickets_por_usuario: Limite de tickets abertos (0 = sem limite)
        total_tickets: Último número de ticket alocado
        categoria_arquivo_id: Categoria para canais arquivados
    """

    id = models.CharField(
        max_length=32,
        primary_key=True,
        help_text="Snowflake do servidor"
    )

    nome = models.CharField(max_length=100, blank=True, default='')

    owner_id = models.CharField(
        max_length=32,
        help_text="Dono do servidor"
    )

    max_tickets_por_usuario = models.PositiveIntegerField(
        default=0,
        help_text="Máximo de tickets abertos por usuário (0 = sem limite)"
    )

    total_tickets = models.PositiveIntegerField(
        default=0,
        help_text="Contador para numeração de tickets"
    )

    categoria_arquivo_id = models.CharField(
        max_length=32,
        null=True,
        blank=True,
        help_text="Categoria onde canais fechados são arquivados"
    )

    criado_em = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'tenants'
        verbose_name = 'Servidor'
        verbose_name_plural = 'Servidores'

    def __str__(self):
        return self.nome or self.id


class TenantRoleModel(models.Model):
    """Papel do servidor com máscara de capacidades."""

    id = models.BigAutoField(primary_key=True)

    tenant = models.ForeignKey(
        TenantModel,
        on_delete=models.CASCADE,
        related_name='papeis',
    )

    nome = models.CharField(max_length=100)

    permissoes = models.BigIntegerField(
        default=0,
        help_text="Máscara de PermissionFlags"
    )

    ativo = models.BooleanField(default=True)

    class Meta:
        db_table = 'tenant_roles'
        verbose_name = 'Papel'
        verbose_name_plural = 'Papéis'
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'nome'], name='papel_nome_unico_por_tenant'),
        ]

    def __str__(self):
        return f"{self.nome} ({self.tenant_id})"


class TenantRoleMemberModel(models.Model):
    id = models.BigAutoField(primary_key=True)

    papel = models.ForeignKey(
        TenantRoleModel,
        on_delete=models.CASCADE,
        related_name='membros',
    )

    identidade_id = models.CharField(max_length=32, db_index=True)

    class Meta:
        db_table = 'tenant_role_members'
        constraints = [
            models.UniqueConstraint(fields=['papel', 'identidade_id'], name='membro_unico_por_papel'),
        ]


class MemberPermissionModel(models.Model):
    """Permissões concedidas diretamente a um membro, fora de papéis."""

    id = models.BigAutoField(primary_key=True)

    tenant = models.ForeignKey(
        TenantModel,
        on_delete=models.CASCADE,
        related_name='permissoes_membros',
    )

    identidade_id = models.CharField(max_length=32)

    permissoes = models.BigIntegerField(default=0)

    class Meta:
        db_table = 'member_permissions'
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'identidade_id'], name='permissao_unica_por_membro'),
        ]


class TenantBlacklistModel(models.Model):
    id = models.BigAutoField(primary_key=True)

    tenant = models.ForeignKey(
        TenantModel,
        on_delete=models.CASCADE,
        related_name='lista_negra',
    )

    identidade_id = models.CharField(max_length=32)

    motivo = models.TextField(null=True, blank=True)

    criado_em = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'tenant_blacklist'
        verbose_name = 'Bloqueio'
        verbose_name_plural = 'Lista negra'
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'identidade_id'], name='bloqueio_unico'),
        ]
