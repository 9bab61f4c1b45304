"""
Testes das tarefas Celery e dos publishers.

As tarefas são chamadas diretamente (sem broker); o container global
é o de testes, instalado pela fixture `container`.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from src.adapters.django_app.events.handlers import (
    cleanup_old_events,
    dispatch_domain_event,
    fechar_ticket_automaticamente,
    reprocessar_eventos_pendentes,
)
from src.adapters.django_app.events.publishers import (
    CeleryEventPublisher,
    LocalEventPublisher,
    get_event_publisher,
)
from src.adapters.django_app.tickets.models import DomainEventModel
from src.adapters.django_app.tickets.repositories import DjangoEventStore
from src.core.shared.context import provide
from src.core.tickets.dtos import FecharTicketInputDTO, SolicitarFechamentoInputDTO
from src.core.tickets.events import TicketCriadoEvent, TicketFechadoEvent


def solicitar(container, ator, ticket_id):
    return provide(
        ator,
        container.solicitar_fechamento_service().execute,
        SolicitarFechamentoInputDTO(ticket_id=ticket_id, horas_fechamento_automatico=1),
    )


class TestFecharTicketAutomaticamente:
    def test_fecha_com_pedido_vigente(self, container, abrir_ticket, atendente):
        ticket = abrir_ticket()
        pedido = solicitar(container, atendente, ticket.id)

        status = fechar_ticket_automaticamente(ticket.id, pedido.pedido_id)

        assert status == "CLOSED"
        fechado = container.ticket_repository().get_by_id(ticket.id)
        assert fechado.fechado_por_id == "200"

    def test_timer_obsoleto(self, container, abrir_ticket, atendente):
        """Pedido substituído: o timer antigo não fecha nada."""
        ticket = abrir_ticket()
        solicitar(container, atendente, ticket.id)

        assert fechar_ticket_automaticamente(ticket.id, "cr_antigo") is None
        assert container.ticket_repository().get_by_id(ticket.id).esta_aberto

    def test_ticket_inexistente(self, container):
        assert fechar_ticket_automaticamente("nao-existe", "cr_1") is None


class TestReprocessamento:
    def test_reentrega_apos_falha(self, container, abrir_ticket):
        gateway = container.chat_gateway()
        gateway.falhas["create_channel"] = True
        ticket = abrir_ticket()

        assert container.ticket_repository().get_by_id(ticket.id).canal_id is None

        gateway.falhas.clear()
        total = reprocessar_eventos_pendentes(idade_minima_segundos=0)

        assert total == 1
        assert container.ticket_repository().get_by_id(ticket.id).canal_id == "canal-1"
        assert container.event_store().list_pending(max_attempts=5) == []

    def test_respeita_limite_de_tentativas(self, container, abrir_ticket):
        container.chat_gateway().falhas["create_channel"] = True
        abrir_ticket()

        for _ in range(3):
            reprocessar_eventos_pendentes(max_tentativas=3, idade_minima_segundos=0)

        # 1 entrega normal + 2 reprocessamentos
        assert len(container.chat_gateway().chamadas_de("create_channel")) == 3

    def test_idade_minima(self, container, abrir_ticket):
        container.chat_gateway().falhas["create_channel"] = True
        abrir_ticket()

        assert reprocessar_eventos_pendentes() == 0

    def test_nao_recria_canal_quando_so_o_webhook_falhou(self, container, abrir_ticket):
        """Abertura e vínculo com webhook fora: a reentrega só repete o webhook."""
        container.webhook_notifier().falhas_transitorias = 4
        ticket = abrir_ticket()

        assert reprocessar_eventos_pendentes(idade_minima_segundos=0) == 2

        assert len(container.chat_gateway().chamadas_de("create_channel")) == 1
        assert container.ticket_repository().get_by_id(ticket.id).canal_id == "canal-1"
        assert [nome for nome, _ in container.webhook_notifier().enviados] == [
            "ticket.created",
            "ticket.channel_linked",
        ]
        assert container.event_store().list_pending(max_attempts=5) == []

    def test_fechamento_nao_repete_aviso_ao_abertor(self, container, abrir_ticket, abertor):
        ticket = abrir_ticket()
        container.webhook_notifier().falhas_transitorias = 2
        provide(
            abertor,
            container.fechar_ticket_service().execute,
            FecharTicketInputDTO(ticket_id=ticket.id, motivo="Resolvido"),
        )

        assert reprocessar_eventos_pendentes(idade_minima_segundos=0) == 1

        gateway = container.chat_gateway()
        assert len(gateway.chamadas_de("notify_user")) == 1
        assert len(gateway.chamadas_de("archive_or_delete_channel")) == 1
        assert "ticket.closed" in [nome for nome, _ in container.webhook_notifier().enviados]

    def test_pula_evento_com_entrega_em_andamento(self, container):
        """Worker já reservou a linha: o beat não executa em paralelo."""
        store = container.event_store()
        event = TicketFechadoEvent(
            aggregate_id="t1", tenant_id="g1", numero=1, aberto_por_id="100", canal_id="c1"
        )
        store.append(event)
        assert store.claim(event.event_id, timedelta(minutes=5)) == []

        assert reprocessar_eventos_pendentes(idade_minima_segundos=0) == 0
        assert container.chat_gateway().chamadas_de("archive_or_delete_channel") == []

    def test_retoma_reserva_expirada(self, container):
        store = container.event_store()
        event = TicketFechadoEvent(
            aggregate_id="t1", tenant_id="g1", numero=1, aberto_por_id="100", canal_id="c1"
        )
        store.append(event)
        store.claim(event.event_id, timedelta(minutes=5))
        store.rows[event.event_id]["claimed_at"] -= timedelta(minutes=10)

        assert reprocessar_eventos_pendentes(idade_minima_segundos=0) == 1
        assert store.rows[event.event_id]["status"] == "delivered"


class TestDispatchDomainEvent:
    def test_executa_efeitos(self, container):
        event = TicketFechadoEvent(
            aggregate_id="t1", tenant_id="g1", numero=3, aberto_por_id="100", canal_id="c1"
        )
        container.event_store().append(event)

        assert dispatch_domain_event(event.event_type, event.to_dict()) is True
        assert container.chat_gateway().chamadas_de("archive_or_delete_channel") == [
            ("g1", "c1", False, "arquivo")
        ]

    def test_reporta_falha(self, container):
        container.chat_gateway().falhas["archive_or_delete_channel"] = True
        event = TicketFechadoEvent(aggregate_id="t1", tenant_id="g1", canal_id="c1")
        container.event_store().append(event)

        assert dispatch_domain_event(event.event_type, event.to_dict()) is False

    def test_entrega_tardia_nao_repete(self, container):
        """Tarefa enfileirada chega depois que o beat já entregou o evento."""
        event = TicketFechadoEvent(
            aggregate_id="t1", tenant_id="g1", numero=3, aberto_por_id="100", canal_id="c1"
        )
        container.event_store().append(event)

        dispatch_domain_event(event.event_type, event.to_dict())
        assert dispatch_domain_event(event.event_type, event.to_dict()) is True

        assert len(container.chat_gateway().chamadas_de("archive_or_delete_channel")) == 1
        assert len(container.chat_gateway().chamadas_de("notify_user")) == 1


@pytest.mark.django_db
def test_cleanup_old_events():
    store = DjangoEventStore()
    antigo = TicketCriadoEvent(
        aggregate_id="t1", tenant_id="g1", occurred_at=datetime.now(timezone.utc) - timedelta(days=100)
    )
    antigo_pendente = TicketCriadoEvent(
        aggregate_id="t2", tenant_id="g1", occurred_at=datetime.now(timezone.utc) - timedelta(days=100)
    )
    recente = TicketCriadoEvent(aggregate_id="t3", tenant_id="g1")
    for event in (antigo, antigo_pendente, recente):
        store.append(event)
    store.mark_delivered(antigo.event_id)
    store.mark_delivered(recente.event_id)

    assert cleanup_old_events(days=90) == 1
    assert set(DomainEventModel.objects.values_list("aggregate_id", flat=True)) == {"t2", "t3"}


class TestPublishers:
    def test_celery_enfileira(self):
        event = TicketCriadoEvent(aggregate_id="t1", tenant_id="g1", numero=1)

        with patch("src.adapters.django_app.events.handlers.dispatch_domain_event.delay") as delay:
            CeleryEventPublisher(also_log=False).publish(event)

        delay.assert_called_once_with("TicketCriadoEvent", event.to_dict())

    def test_celery_broker_fora_nao_propaga(self):
        """O evento continua pendente no outbox."""
        event = TicketCriadoEvent(aggregate_id="t1", tenant_id="g1")

        with patch(
            "src.adapters.django_app.events.handlers.dispatch_domain_event.delay",
            side_effect=ConnectionError("broker fora"),
        ):
            CeleryEventPublisher().publish(event)

    def test_factory(self, container):
        assert isinstance(get_event_publisher("celery"), CeleryEventPublisher)
        assert isinstance(
            get_event_publisher("local", container.outbox_dispatcher()), LocalEventPublisher
        )

        with pytest.raises(ValueError):
            get_event_publisher("local")
