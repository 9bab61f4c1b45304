"""
Testes dos adapters Django: repositórios, outbox e Unit of Work.

Coverage:
- DjangoTicketRepository: mapeamento completo e compare-and-set
- DjangoTenantRepository / DjangoIdentityRoleStore
- DjangoEventStore: estados de entrega
- DjangoUnitOfWork: outbox na transação, efeitos após commit
"""

from datetime import timedelta

import pytest

from src.adapters.django_app.events.publishers import InMemoryEventPublisher
from src.adapters.django_app.shared.unit_of_work import DjangoUnitOfWork
from src.adapters.django_app.tenants.models import (
    MemberPermissionModel,
    TenantBlacklistModel,
    TenantRoleMemberModel,
    TenantRoleModel,
)
from src.adapters.django_app.tenants.repositories import DjangoIdentityRoleStore, DjangoTenantRepository
from src.adapters.django_app.tickets.models import DomainEventModel, TicketModel
from src.adapters.django_app.tickets.repositories import DjangoEventStore, DjangoTicketRepository
from src.core.permissions.engine import PermissionEngine
from src.core.permissions.flags import ALL_PERMISSIONS, PermissionFlags
from src.core.shared.context import provide
from src.core.shared.exceptions import ConflictError, EntityNotFoundError
from src.core.tickets.dtos import (
    CriarTicketInputDTO,
    FecharTicketInputDTO,
    ResponderFechamentoInputDTO,
    SolicitarFechamentoInputDTO,
)
from src.core.tickets.entities import TicketEntity, TicketStatus
from src.core.tickets.events import TicketCriadoEvent


def novo_ticket(numero=1, **kwargs):
    return TicketEntity.criar(tenant_id="g1", numero=numero, aberto_por_id="100", **kwargs)


@pytest.mark.django_db
class TestDjangoTicketRepository:
    def test_salvar_e_ler(self):
        repo = DjangoTicketRepository()
        ticket = novo_ticket(assunto="Pagamento", metadados={"plano": "pro"})
        repo.save(ticket)

        ticket.assumir("200")
        pedido = ticket.solicitar_fechamento("200", motivo="Ok?", horas_fechamento_automatico=2)
        repo.save(ticket)

        lido = repo.get_by_id(ticket.id)
        assert lido.versao == 2
        assert lido.assunto == "Pagamento"
        assert lido.metadados == {"plano": "pro"}
        assert lido.assumido_por_id == "200"
        assert lido.pedido_fechamento.id == pedido.id
        assert lido.pedido_fechamento.fechamento_automatico_em == pedido.fechamento_automatico_em
        assert {p.identidade_id for p in lido.participantes} == {"100", "200"}
        assert repo.get_by_close_request_id(pedido.id).id == ticket.id

    def test_versao_desatualizada(self):
        """Duas leituras da mesma versão: apenas a primeira gravação vence."""
        repo = DjangoTicketRepository()
        ticket = novo_ticket()
        repo.save(ticket)

        primeiro = repo.get_by_id(ticket.id)
        segundo = repo.get_by_id(ticket.id)
        primeiro.assumir("200")
        repo.save(primeiro)
        segundo.assumir("201")

        with pytest.raises(ConflictError) as exc_info:
            repo.save(segundo)

        assert exc_info.value.rule == "versao_desatualizada"
        assert repo.get_by_id(ticket.id).assumido_por_id == "200"

    def test_numero_duplicado(self):
        repo = DjangoTicketRepository()
        repo.save(novo_ticket(numero=1))

        with pytest.raises(ConflictError):
            repo.save(novo_ticket(numero=1))

        assert TicketModel.objects.count() == 1

    def test_canal_duplicado(self):
        repo = DjangoTicketRepository()
        repo.save(novo_ticket(numero=1, canal_id="c1"))

        with pytest.raises(ConflictError):
            repo.save(novo_ticket(numero=2, canal_id="c1"))

    def test_remover_participante(self):
        repo = DjangoTicketRepository()
        ticket = novo_ticket()
        ticket.adicionar_participante("300")
        repo.save(ticket)

        ticket.remover_participante("300")
        repo.save(ticket)

        assert not repo.get_by_id(ticket.id).eh_envolvido("300")

    def test_consultas(self):
        repo = DjangoTicketRepository()
        aberto = novo_ticket(numero=1, canal_id="c1")
        fechado = novo_ticket(numero=2)
        fechado.fechar("100")
        com_timer = novo_ticket(numero=3)
        com_timer.solicitar_fechamento("200", horas_fechamento_automatico=1)
        for ticket in (aberto, fechado, com_timer):
            repo.save(ticket)

        assert repo.get_by_canal_id("c1").id == aberto.id
        assert repo.count_open_by_opener("g1", "100") == 2
        assert [t.id for t in repo.list(tenant_id="g1", status=TicketStatus.FECHADO)] == [fechado.id]
        assert repo.list(tenant_id="g2") == []
        assert [t.id for t in repo.list_pending_auto_close()] == [com_timer.id]


@pytest.mark.django_db
class TestDjangoTenantRepository:
    def test_config(self, tenant_model):
        config = DjangoTenantRepository().get_config("g1")

        assert config.owner_id == "1"
        assert config.categoria_arquivo_id == "arquivo"
        assert DjangoTenantRepository().get_config("nao-existe") is None

    def test_numeracao(self, tenant_model):
        repo = DjangoTenantRepository()

        assert [repo.next_ticket_number("g1") for _ in range(3)] == [1, 2, 3]

    def test_numeracao_tenant_inexistente(self):
        with pytest.raises(EntityNotFoundError):
            DjangoTenantRepository().next_ticket_number("nao-existe")

    def test_lista_negra(self, tenant_model):
        TenantBlacklistModel.objects.create(tenant=tenant_model, identidade_id="666")

        assert DjangoTenantRepository().is_blacklisted("g1", "666")
        assert not DjangoTenantRepository().is_blacklisted("g1", "100")


@pytest.mark.django_db
class TestDjangoIdentityRoleStore:
    def test_permissoes_efetivas(self, tenant_model):
        """OR de papéis ativos com permissões adicionais; papel inativo não conta."""
        suporte = TenantRoleModel.objects.create(
            tenant=tenant_model, nome="Suporte", permissoes=int(PermissionFlags.TICKET_CLAIM)
        )
        inativo = TenantRoleModel.objects.create(
            tenant=tenant_model, nome="Antigo", permissoes=int(PermissionFlags.TICKET_CLOSE_ANY), ativo=False
        )
        TenantRoleMemberModel.objects.create(papel=suporte, identidade_id="200")
        TenantRoleMemberModel.objects.create(papel=inativo, identidade_id="200")
        MemberPermissionModel.objects.create(
            tenant=tenant_model, identidade_id="200", permissoes=int(PermissionFlags.TICKET_VIEW_ALL)
        )

        engine = PermissionEngine(store=DjangoIdentityRoleStore())

        assert engine.get_effective_permissions("g1", "200") == (
            PermissionFlags.TICKET_CLAIM | PermissionFlags.TICKET_VIEW_ALL
        )
        assert engine.get_effective_permissions("g1", "1") == ALL_PERMISSIONS
        assert not engine.get_effective_permissions("g1", "300")


@pytest.mark.django_db
class TestDjangoEventStore:
    def evento(self):
        return TicketCriadoEvent(aggregate_id="t1", tenant_id="g1", numero=1, aberto_por_id="100")

    def test_ciclo_de_entrega(self):
        store = DjangoEventStore()
        event = self.evento()
        store.append(event)

        store.mark_failed(event.event_id, "criar_canal: indisponível")
        pendente = store.list_pending(max_attempts=5)[0]

        assert pendente["event_type"] == "TicketCriadoEvent"
        assert pendente["data"]["numero"] == 1
        assert pendente["status"] == "failed"
        assert pendente["attempts"] == 1
        assert pendente["last_error"] == "criar_canal: indisponível"

        store.mark_delivered(event.event_id)

        assert store.list_pending(max_attempts=5) == []
        assert store.get_events_for_aggregate("t1")[0]["status"] == "delivered"

    def test_limite_de_tentativas(self):
        store = DjangoEventStore()
        event = self.evento()
        store.append(event)
        for _ in range(3):
            store.mark_failed(event.event_id, "erro")

        assert store.list_pending(max_attempts=3) == []
        assert len(store.list_pending(max_attempts=4)) == 1

    def test_idade_minima(self):
        store = DjangoEventStore()
        store.append(self.evento())

        assert store.list_pending(max_attempts=5, older_than=timedelta(minutes=2)) == []

    def test_reserva(self):
        """Só uma entrega reserva a linha; os efeitos concluídos voltam na próxima."""
        store = DjangoEventStore()
        event = self.evento()
        store.append(event)

        assert store.claim(event.event_id, timedelta(minutes=5)) == []
        assert store.claim(event.event_id, timedelta(minutes=5)) is None

        store.mark_failed(event.event_id, "enviar_webhook: fora", ["criar_canal"])

        assert store.claim(event.event_id, timedelta(minutes=5)) == ["criar_canal"]

    def test_reserva_expirada(self):
        store = DjangoEventStore()
        event = self.evento()
        store.append(event)
        store.claim(event.event_id, timedelta(minutes=5))

        assert store.claim(event.event_id, timedelta(0)) == []

    def test_entregue_nao_reserva(self):
        store = DjangoEventStore()
        event = self.evento()
        store.append(event)
        store.mark_failed(event.event_id, "erro")
        store.mark_delivered(event.event_id)

        assert store.claim(event.event_id, timedelta(minutes=5)) is None
        assert store.claim("nao-existe", timedelta(minutes=5)) is None
        assert DomainEventModel.objects.get(event_id=event.event_id).ultimo_erro is None


@pytest.mark.django_db
class TestDjangoUnitOfWork:
    def test_commit_grava_outbox_e_publica_depois(self, django_capture_on_commit_callbacks):
        publisher = InMemoryEventPublisher()
        uow = DjangoUnitOfWork(event_publisher=publisher, event_store=DjangoEventStore())
        ticket = novo_ticket()

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with uow:
                DjangoTicketRepository().save(ticket)
                uow.publish_event(TicketCriadoEvent(aggregate_id=ticket.id, tenant_id="g1", numero=1))
                assert publisher.published_events == []

        assert len(callbacks) == 1
        assert [e.event_type for e in publisher.published_events] == ["TicketCriadoEvent"]
        assert DomainEventModel.objects.filter(aggregate_id=ticket.id).count() == 1

    def test_rollback_descarta_tudo(self, django_capture_on_commit_callbacks):
        publisher = InMemoryEventPublisher()
        uow = DjangoUnitOfWork(event_publisher=publisher, event_store=DjangoEventStore())
        ticket = novo_ticket()

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with pytest.raises(RuntimeError):
                with uow:
                    DjangoTicketRepository().save(ticket)
                    uow.publish_event(TicketCriadoEvent(aggregate_id=ticket.id, tenant_id="g1", numero=1))
                    raise RuntimeError("falha no meio")

        assert callbacks == []
        assert publisher.published_events == []
        assert not TicketModel.objects.filter(id=ticket.id).exists()
        assert not DomainEventModel.objects.exists()


@pytest.mark.django_db
class TestFluxoComBanco:
    """Use cases completos sobre o container Django."""

    def test_abrir_vincula_canal_apos_commit(self, django_container, abertor, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            output = provide(
                abertor,
                django_container.criar_ticket_service().execute,
                CriarTicketInputDTO(tenant_id="g1"),
            )

        ticket = TicketModel.objects.get(id=output.id)
        assert ticket.numero == 1
        assert ticket.canal_id == "canal-1"
        assert set(
            DomainEventModel.objects.filter(aggregate_id=output.id).values_list("event_type", "status")
        ) == {("TicketCriadoEvent", "delivered"), ("CanalVinculadoEvent", "delivered")}

    def test_aprovar_fecha_na_mesma_transacao(
        self, django_container, abertor, atendente, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            ticket = provide(
                abertor, django_container.criar_ticket_service().execute, CriarTicketInputDTO(tenant_id="g1")
            )
            pedido = provide(
                atendente,
                django_container.solicitar_fechamento_service().execute,
                SolicitarFechamentoInputDTO(ticket_id=ticket.id, horas_fechamento_automatico=1),
            )

        with django_capture_on_commit_callbacks(execute=True):
            output = provide(
                abertor,
                django_container.aprovar_fechamento_service().execute,
                ResponderFechamentoInputDTO(pedido_id=pedido.pedido_id),
            )

        model = TicketModel.objects.get(id=ticket.id)
        assert output.status == model.status == "CLOSED"
        assert model.pedido_fechamento_id is None
        assert django_container.scheduler().cancelados == [(ticket.id, pedido.pedido_id)]
        assert django_container.chat_gateway().chamadas_de("archive_or_delete_channel") == [
            ("g1", "canal-1", False, "arquivo")
        ]

    def test_fechar_duas_vezes(self, django_container, abertor, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            ticket = provide(
                abertor, django_container.criar_ticket_service().execute, CriarTicketInputDTO(tenant_id="g1")
            )

        with django_capture_on_commit_callbacks(execute=True):
            for _ in range(2):
                provide(
                    abertor,
                    django_container.fechar_ticket_service().execute,
                    FecharTicketInputDTO(ticket_id=ticket.id),
                )

        assert DomainEventModel.objects.filter(event_type="TicketFechadoEvent").count() == 1


@pytest.mark.django_db(transaction=True)
def test_on_commit_real(django_container, abertor):
    """Sem transação de teste envolvendo: efeitos rodam no commit de verdade."""
    output = provide(abertor, django_container.criar_ticket_service().execute, CriarTicketInputDTO(tenant_id="g1"))

    assert TicketModel.objects.get(id=output.id).canal_id == "canal-1"
    assert not DomainEventModel.objects.exclude(status="delivered").exists()
