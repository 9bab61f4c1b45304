"""
Migration inicial para o domínio de Tickets.

Cria as tabelas:
- tickets: Tabela principal de tickets
- ticket_participants: Participantes
- domain_events: Outbox de eventos
"""

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    """Migration inicial."""

    initial = True

    dependencies = [
    ]

    operations = [
        # =================================================================
        # Tabela: tickets
        # =================================================================
        migrations.CreateModel(
            name='TicketModel',
            fields=[
                ('id', models.CharField(
                    max_length=36,
                    primary_key=True,
                    serialize=False,
                    editable=False,
                    help_text='UUID único do ticket'
                )),
                ('tenant_id', models.CharField(max_length=32, db_index=True, help_text='Servidor dono do ticket')),
                ('numero', models.PositiveIntegerField(help_text='Número sequencial no servidor')),
                ('status', models.CharField(
                    max_length=10,
                    choices=[('OPEN', 'Aberto'), ('CLOSED', 'Fechado')],
                    default='OPEN',
                    db_index=True,
                    help_text='Estado atual do ticket'
                )),
                ('aberto_por_id', models.CharField(max_length=32, db_index=True, help_text='Quem abriu o ticket')),
                ('assumido_por_id', models.CharField(
                    max_length=32, null=True, blank=True, db_index=True, help_text='Atendente atual'
                )),
                ('painel_id', models.CharField(max_length=32, null=True, blank=True, help_text='Painel de origem')),
                ('canal_id', models.CharField(
                    max_length=32, null=True, blank=True, unique=True,
                    help_text='Canal do ticket na plataforma de chat'
                )),
                ('assunto', models.CharField(
                    max_length=100, null=True, blank=True, help_text='Assunto informado na abertura'
                )),
                ('metadados', models.JSONField(
                    default=dict, blank=True, help_text='Dados livres (respostas de formulário)'
                )),
                ('criado_em', models.DateTimeField(
                    default=django.utils.timezone.now, db_index=True, help_text='Data/hora de criação'
                )),
                ('atualizado_em', models.DateTimeField(
                    default=django.utils.timezone.now, help_text='Data/hora da última atualização'
                )),
                ('fechado_em', models.DateTimeField(null=True, blank=True)),
                ('fechado_por_id', models.CharField(max_length=32, null=True, blank=True)),
                ('motivo_fechamento', models.TextField(null=True, blank=True)),
                ('excluir_de_fechamento_automatico', models.BooleanField(
                    default=False, help_text='Ignora timers de fechamento automático'
                )),
                ('pedido_fechamento_id', models.CharField(
                    max_length=40, null=True, blank=True, unique=True,
                    help_text='Token do pedido de fechamento pendente'
                )),
                ('pedido_solicitado_por_id', models.CharField(max_length=32, null=True, blank=True)),
                ('pedido_motivo', models.TextField(null=True, blank=True)),
                ('pedido_criado_em', models.DateTimeField(null=True, blank=True)),
                ('fechamento_automatico_em', models.DateTimeField(
                    null=True, blank=True, db_index=True,
                    help_text='Prazo do timer de fechamento automático'
                )),
                ('versao', models.PositiveIntegerField(default=1, help_text='Versão para concorrência otimista')),
            ],
            options={
                'verbose_name': 'Ticket',
                'verbose_name_plural': 'Tickets',
                'db_table': 'tickets',
                'ordering': ['-criado_em'],
            },
        ),
        migrations.AddConstraint(
            model_name='ticketmodel',
            constraint=models.UniqueConstraint(
                fields=('tenant_id', 'numero'), name='ticket_numero_unico_por_tenant'
            ),
        ),
        migrations.AddIndex(
            model_name='ticketmodel',
            index=models.Index(
                fields=['tenant_id', 'aberto_por_id', 'status'], name='tickets_tenant__1c7a4e_idx'
            ),
        ),
        migrations.AddIndex(
            model_name='ticketmodel',
            index=models.Index(
                fields=['tenant_id', 'status', 'criado_em'], name='tickets_tenant__8e2b13_idx'
            ),
        ),
        migrations.AddIndex(
            model_name='ticketmodel',
            index=models.Index(
                fields=['assumido_por_id', 'status'], name='tickets_assumid_5d0f97_idx'
            ),
        ),

        # =================================================================
        # Tabela: ticket_participants
        # =================================================================
        migrations.CreateModel(
            name='TicketParticipantModel',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('identidade_id', models.CharField(
                    max_length=32, db_index=True, help_text='Identidade do participante'
                )),
                ('papel', models.CharField(
                    max_length=20,
                    choices=[('opener', 'Abertor'), ('claimant', 'Atendente'), ('participant', 'Participante')],
                    default='participant',
                )),
                ('adicionado_em', models.DateTimeField(auto_now_add=True)),
                ('ticket', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='participantes',
                    to='tickets.ticketmodel',
                    help_text='Ticket relacionado'
                )),
            ],
            options={
                'verbose_name': 'Participante',
                'verbose_name_plural': 'Participantes',
                'db_table': 'ticket_participants',
                'ordering': ['id'],
            },
        ),
        migrations.AddConstraint(
            model_name='ticketparticipantmodel',
            constraint=models.UniqueConstraint(
                fields=('ticket', 'identidade_id', 'papel'), name='participante_unico_por_papel'
            ),
        ),

        # =================================================================
        # Tabela: domain_events (outbox)
        # =================================================================
        migrations.CreateModel(
            name='DomainEventModel',
            fields=[
                ('event_id', models.CharField(
                    max_length=36, primary_key=True, serialize=False, help_text='UUID único do evento'
                )),
                ('event_type', models.CharField(
                    max_length=100, db_index=True, help_text='Tipo do evento (ex: TicketFechadoEvent)'
                )),
                ('event_name', models.CharField(max_length=100, help_text='Nome público (ex: ticket.closed)')),
                ('aggregate_type', models.CharField(max_length=100, help_text='Tipo do agregado (ex: Ticket)')),
                ('aggregate_id', models.CharField(
                    max_length=36, db_index=True, help_text='ID do agregado que gerou o evento'
                )),
                ('event_data', models.JSONField(default=dict, help_text='Dados serializados do evento')),
                ('version', models.IntegerField(default=1, help_text='Versão do schema do evento')),
                ('occurred_at', models.DateTimeField(help_text='Quando o evento ocorreu')),
                ('recorded_at', models.DateTimeField(auto_now_add=True, help_text='Quando o evento foi persistido')),
                ('status', models.CharField(
                    max_length=10,
                    choices=[('pending', 'Pendente'), ('delivered', 'Entregue'), ('failed', 'Falhou')],
                    default='pending',
                    db_index=True,
                )),
                ('tentativas', models.PositiveIntegerField(default=0)),
                ('ultimo_erro', models.TextField(null=True, blank=True)),
                ('entregue_em', models.DateTimeField(null=True, blank=True)),
            ],
            options={
                'verbose_name': 'Evento de Domínio',
                'verbose_name_plural': 'Eventos de Domínio',
                'db_table': 'domain_events',
                'ordering': ['recorded_at'],
            },
        ),
        migrations.AddIndex(
            model_name='domaineventmodel',
            index=models.Index(fields=['aggregate_id', 'recorded_at'], name='domain_even_aggrega_3b9c21_idx'),
        ),
        migrations.AddIndex(
            model_name='domaineventmodel',
            index=models.Index(fields=['status', 'recorded_at'], name='domain_even_status_a47e05_idx'),
        ),
    ]
