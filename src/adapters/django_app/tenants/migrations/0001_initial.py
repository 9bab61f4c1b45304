"""
Migration inicial para Tenants.

Cria as tabelas:
- tenants: Servidores e contador de tickets
- tenant_roles / tenant_role_members: Papéis e atribuições
- member_permissions: Permissões adicionais
- tenant_blacklist: Lista negra
"""

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    """Migration inicial."""

    initial = True

    dependencies = [
    ]

    operations = [
        # =================================================================
        # Tabela: tenants
        # =================================================================
        migrations.CreateModel(
            name='TenantModel',
            fields=[
                ('id', models.CharField(
                    max_length=32, primary_key=True, serialize=False, help_text='Snowflake do servidor'
                )),
                ('nome', models.CharField(max_length=100, blank=True, default='')),
                ('owner_id', models.CharField(max_length=32, help_text='Dono do servidor')),
                ('max_tickets_por_usuario', models.PositiveIntegerField(
                    default=0, help_text='Máximo de tickets abertos por usuário (0 = sem limite)'
                )),
                ('total_tickets', models.PositiveIntegerField(
                    default=0, help_text='Contador para numeração de tickets'
                )),
                ('categoria_arquivo_id', models.CharField(
                    max_length=32, null=True, blank=True,
                    help_text='Categoria onde canais fechados são arquivados'
                )),
                ('criado_em', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Servidor',
                'verbose_name_plural': 'Servidores',
                'db_table': 'tenants',
            },
        ),

        # =================================================================
        # Tabelas: tenant_roles / tenant_role_members
        # =================================================================
        migrations.CreateModel(
            name='TenantRoleModel',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('nome', models.CharField(max_length=100)),
                ('permissoes', models.BigIntegerField(default=0, help_text='Máscara de PermissionFlags')),
                ('ativo', models.BooleanField(default=True)),
                ('tenant', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='papeis',
                    to='tenants.tenantmodel',
                )),
            ],
            options={
                'verbose_name': 'Papel',
                'verbose_name_plural': 'Papéis',
                'db_table': 'tenant_roles',
            },
        ),
        migrations.AddConstraint(
            model_name='tenantrolemodel',
            constraint=models.UniqueConstraint(fields=('tenant', 'nome'), name='papel_nome_unico_por_tenant'),
        ),
        migrations.CreateModel(
            name='TenantRoleMemberModel',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('identidade_id', models.CharField(max_length=32, db_index=True)),
                ('papel', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='membros',
                    to='tenants.tenantrolemodel',
                )),
            ],
            options={
                'db_table': 'tenant_role_members',
            },
        ),
        migrations.AddConstraint(
            model_name='tenantrolemembermodel',
            constraint=models.UniqueConstraint(fields=('papel', 'identidade_id'), name='membro_unico_por_papel'),
        ),

        # =================================================================
        # Tabela: member_permissions
        # =================================================================
        migrations.CreateModel(
            name='MemberPermissionModel',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('identidade_id', models.CharField(max_length=32)),
                ('permissoes', models.BigIntegerField(default=0)),
                ('tenant', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='permissoes_membros',
                    to='tenants.tenantmodel',
                )),
            ],
            options={
                'db_table': 'member_permissions',
            },
        ),
        migrations.AddConstraint(
            model_name='memberpermissionmodel',
            constraint=models.UniqueConstraint(
                fields=('tenant', 'identidade_id'), name='permissao_unica_por_membro'
            ),
        ),

        # =================================================================
        # Tabela: tenant_blacklist
        # =================================================================
        migrations.CreateModel(
            name='TenantBlacklistModel',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('identidade_id', models.CharField(max_length=32)),
                ('motivo', models.TextField(null=True, blank=True)),
                ('criado_em', models.DateTimeField(auto_now_add=True)),
                ('tenant', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='lista_negra',
                    to='tenants.tenantmodel',
                )),
            ],
            options={
                'verbose_name': 'Bloqueio',
                'verbose_name_plural': 'Lista negra',
                'db_table': 'tenant_blacklist',
            },
        ),
        migrations.AddConstraint(
            model_name='tenantblacklistmodel',
            constraint=models.UniqueConstraint(fields=('tenant', 'identidade_id'), name='bloqueio_unico'),
        ),
    ]
