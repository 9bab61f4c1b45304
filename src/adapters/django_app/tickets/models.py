"""
Django Models para o domínio de Tickets.

Estes models são ADAPTERS - implementam a persistência para as
entidades de domínio definidas em src/core/tickets/entities.py.

IMPORTANTE:
- Models NÃO contêm lógica de negócio
- Lógica de negócio fica nas Entities do Core
- Models são mapeados para/de Entities via Mappers

Relacionamentos:
- TicketModel: Tabela principal de tickets (inclui o pedido de fechamento pendente)
- TicketParticipantModel: Participantes do ticket (conjunto)
- DomainEventModel: Outbox de eventos de domínio
"""

from django.db import models
from django.utils import timezone


class TicketStatusChoices(models.TextChoices):
    """Choices para status de ticket (espelha TicketStatus do Core)."""
    ABERTO = 'OPEN', 'Aberto'
    FECHADO = 'CLOSED', 'Fechado'


class PapelParticipanteChoices(models.TextChoices):
    """Espelha PapelParticipante do Core."""
    ABERTOR = 'opener', 'Abertor'
    ATENDENTE = 'claimant', 'Atendente'
    PARTICIPANTE = 'participant', 'Participante'


class TicketModel(models.Model):
    """
    Model Django para persistência de Tickets.

    Este model é um ADAPTER que persiste dados do TicketEntity.
    NÃO contém lógica de negócio - apenas estrutura de dados.

    Fields:
        id: UUID como primary key (gerado pela Entity)
        tenant_id: Servidor (snowflake) dono do ticket
        numero: Sequência por tenant (única com tenant_id)
        status: OPEN/CLOSED
        aberto_por_id / assumido_por_id: Identidades (snowflakes)
        canal_id: Canal externo (único, imutável após definido)
        pedido_*: Pedido de fechamento pendente (nulos se não há)
        versao: Contador para compare-and-set
    """

    # Primary Key - UUID gerado pela Entity
    id = models.CharField(
        max_length=36,
        primary_key=True,
        editable=False,
        help_text="UUID único do ticket"
    )

    tenant_id = models.CharField(
        max_length=32,
        db_index=True,
        help_text="Servidor dono do ticket"
    )

    numero = models.PositiveIntegerField(
        help_text="Número sequencial no servidor"
    )

    # Estado
    status = models.CharField(
        max_length=10,
        choices=TicketStatusChoices.choices,
        default=TicketStatusChoices.ABERTO,
        db_index=True,
        help_text="Estado atual do ticket"
    )

    # Identidades (snowflakes como string)
    aberto_por_id = models.CharField(
        max_length=32,
        db_index=True,
        help_text="Quem abriu o ticket"
    )

    assumido_por_id = models.CharField(
        max_length=32,
        null=True,
        blank=True,
        db_index=True,
        help_text="Atendente atual"
    )

    painel_id = models.CharField(
        max_length=32,
        null=True,
        blank=True,
        help_text="Painel de origem"
    )

    canal_id = models.CharField(
        max_length=32,
        null=True,
        blank=True,
        unique=True,
        help_text="Canal do ticket na plataforma de chat"
    )

    assunto = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        help_text="Assunto informado na abertura"
    )

    metadados = models.JSONField(
        default=dict,
        blank=True,
        help_text="Dados livres (respostas de formulário)"
    )

    # Timestamps
    criado_em = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="Data/hora de criação"
    )

    atualizado_em = models.DateTimeField(
        default=timezone.now,
        help_text="Data/hora da última atualização"
    )

    # Fechamento
    fechado_em = models.DateTimeField(null=True, blank=True)
    fechado_por_id = models.CharField(max_length=32, null=True, blank=True)
    motivo_fechamento = models.TextField(null=True, blank=True)

    excluir_de_fechamento_automatico = models.BooleanField(
        default=False,
        help_text="Ignora timers de fechamento automático"
    )

    # Pedido de fechamento pendente
    pedido_fechamento_id = models.CharField(
        max_length=40,
        null=True,
        blank=True,
        unique=True,
        help_text="Token do pedido de fechamento pendente"
    )
    pedido_solicitado_por_id = models.CharField(max_length=32, null=True, blank=True)
    pedido_motivo = models.TextField(null=True, blank=True)
    pedido_criado_em = models.DateTimeField(null=True, blank=True)
    fechamento_automatico_em = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Prazo do timer de fechamento automático"
    )

    versao = models.PositiveIntegerField(
        default=1,
        help_text="Versão para concorrência otimista"
    )

    class Meta:
        db_table = 'tickets'
        verbose_name = 'Ticket'
        verbose_name_plural = 'Tickets'
        ordering = ['-criado_em']
        constraints = [
            models.UniqueConstraint(
                fields=['tenant_id', 'numero'],
                name='ticket_numero_unico_por_tenant',
            ),
        ]
        indexes = [
            # Índices compostos para queries frequentes
            models.Index(fields=['tenant_id', 'aberto_por_id', 'status'], name='tickets_tenant__1c7a4e_idx'),
            models.Index(fields=['tenant_id', 'status', 'criado_em'], name='tickets_tenant__8e2b13_idx'),
            models.Index(fields=['assumido_por_id', 'status'], name='tickets_assumid_5d0f97_idx'),
        ]

    def __str__(self):
        return f"#{self.numero} ({self.tenant_id}) [{self.status}]"

    def __repr__(self):
        return f"<TicketModel id={self.id[:8]} status={self.status} versao={self.versao}>"


class TicketParticipantModel(models.Model):
    """
    Participantes de um ticket.

    Conjunto (ticket, identidade, papel): inserções repetidas são
    evitadas pela constraint.
    """

    id = models.BigAutoField(primary_key=True)

    ticket = models.ForeignKey(
        TicketModel,
        on_delete=models.CASCADE,
        related_name='participantes',
        help_text="Ticket relacionado"
    )

    identidade_id = models.CharField(
        max_length=32,
        db_index=True,
        help_text="Identidade do participante"
    )

    papel = models.CharField(
        max_length=20,
        choices=PapelParticipanteChoices.choices,
        default=PapelParticipanteChoices.PARTICIPANTE,
    )

    adicionado_em = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'ticket_participants'
        verbose_name = 'Participante'
        verbose_name_plural = 'Participantes'
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(
                fields=['ticket', 'identidade_id', 'papel'],
                name='participante_unico_por_papel',
            ),
        ]

    def __str__(self):
        return f"{self.identidade_id} ({self.papel}) em {self.ticket_id[:8]}"


class DomainEventModel(models.Model):
    """
    Outbox de Domain Events.

    Cada evento é gravado na mesma transação da mudança que o gerou,
    com status PENDING. Cada entrega reserva a linha (PROCESSING) antes
    de executar os efeitos. O dispatcher marca DELIVERED quando todos os
    efeitos tiveram sucesso, ou FAILED (com o erro e os efeitos já
    concluídos) para reprocessamento pelo Celery beat até
    OUTBOX_MAX_TENTATIVAS.

    Também serve de histórico de auditoria do ticket.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pendente'
        PROCESSING = 'processing', 'Em processamento'
        DELIVERED = 'delivered', 'Entregue'
        FAILED = 'failed', 'Falhou'

    # Identificação
    event_id = models.CharField(
        max_length=36,
        primary_key=True,
        help_text="UUID único do evento"
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Tipo do evento (ex: TicketFechadoEvent)"
    )

    event_name = models.CharField(
        max_length=100,
        help_text="Nome público (ex: ticket.closed)"
    )

    aggregate_type = models.CharField(
        max_length=100,
        help_text="Tipo do agregado (ex: Ticket)"
    )

    aggregate_id = models.CharField(
        max_length=36,
        db_index=True,
        help_text="ID do agregado que gerou o evento"
    )

    # Dados do evento
    event_data = models.JSONField(
        default=dict,
        help_text="Dados serializados do evento"
    )

    # Versionamento
    version = models.IntegerField(
        default=1,
        help_text="Versão do schema do evento"
    )

    # Metadata
    occurred_at = models.DateTimeField(
        help_text="Quando o evento ocorreu"
    )

    recorded_at = models.DateTimeField(
        auto_now_add=True,
        help_text="Quando o evento foi persistido"
    )

    # Entrega
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )

    tentativas = models.PositiveIntegerField(default=0)

    ultimo_erro = models.TextField(null=True, blank=True)

    entregue_em = models.DateTimeField(null=True, blank=True)

    reservado_em = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Início da entrega em andamento"
    )

    efeitos_concluidos = models.JSONField(
        default=list,
        blank=True,
        help_text="Efeitos que já tiveram sucesso (não rodam de novo)"
    )

    class Meta:
        db_table = 'domain_events'
        verbose_name = 'Evento de Domínio'
        verbose_name_plural = 'Eventos de Domínio'
        ordering = ['recorded_at']
        indexes = [
            models.Index(fields=['aggregate_id', 'recorded_at'], name='domain_even_aggrega_3b9c21_idx'),
            models.Index(fields=['status', 'recorded_at'], name='domain_even_status_a47e05_idx'),
        ]

    def __str__(self):
        return f"{self.event_type} - {self.aggregate_id[:8]} @ {self.occurred_at} [{self.status}]"
