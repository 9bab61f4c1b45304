"""
Testes do Coordenador de Transações.

Usa InMemoryUnitOfWork para verificar:
- Callbacks pós-commit (ordem, execução única, isolamento)
- Descarte em rollback
- Aninhamento (UoW interno reaproveita o escopo externo)
- with_transaction / after_transaction / in_transaction
"""

import pytest

from src.adapters.django_app.events.publishers import InMemoryEventPublisher, InMemoryEventStore
from src.adapters.django_app.shared.unit_of_work import InMemoryUnitOfWork
from src.core.shared import transaction
from src.core.shared.exceptions import NoContextError
from src.core.shared.transaction import after_transaction, in_transaction, with_transaction
from src.core.tickets.events import TicketAssumidoEvent


@pytest.fixture
def publisher():
    return InMemoryEventPublisher()


@pytest.fixture
def store():
    return InMemoryEventStore()


@pytest.fixture
def uow(publisher, store):
    return InMemoryUnitOfWork(event_publisher=publisher, event_store=store)


@pytest.fixture
def fabrica_padrao(publisher, store):
    transaction.configure(lambda: InMemoryUnitOfWork(event_publisher=publisher, event_store=store))
    yield
    transaction.configure(None)


def evento(ticket_id="t1"):
    return TicketAssumidoEvent(aggregate_id=ticket_id, tenant_id="g1", atendente_id="200")


class TestCallbacks:
    """Testes de after_commit."""

    def test_rodam_apos_commit_na_ordem(self, uow):
        """Deve executar callbacks em ordem, somente depois do commit."""
        ordem = []

        with uow:
            uow.after_commit(lambda: ordem.append(("a", uow.committed)))
            uow.after_commit(lambda: ordem.append(("b", uow.committed)))
            assert ordem == []

        assert ordem == [("a", True), ("b", True)]

    def test_descartados_no_rollback(self, uow):
        """Deve descartar callbacks e eventos quando o bloco falha."""
        chamados = []

        with pytest.raises(ValueError):
            with uow:
                uow.after_commit(lambda: chamados.append(1))
                uow.publish_event(evento())
                raise ValueError("falha")

        assert chamados == []
        assert uow.rolled_back
        assert uow.published_events == []

    def test_falha_isolada(self, uow):
        """Deve continuar os demais callbacks quando um falha."""
        chamados = []

        def falhar():
            raise RuntimeError("boom")

        with uow:
            uow.after_commit(falhar)
            uow.after_commit(lambda: chamados.append("segundo"))

        assert chamados == ["segundo"]
        assert uow.committed

    def test_fora_de_transacao(self, uow):
        """Deve lançar NoContextError fora do bloco with."""
        with pytest.raises(NoContextError):
            uow.after_commit(lambda: None)


class TestEventos:
    """Testes de publish_event."""

    def test_publicado_e_gravado_apos_commit(self, uow, publisher, store):
        e = evento()

        with uow:
            uow.publish_event(e)
            assert publisher.published_events == []

        assert publisher.published_events == [e]
        assert store.rows[e.event_id]["status"] == "pending"

    def test_ordem_relativa_a_callbacks(self, uow, publisher):
        """Publicação respeita a ordem de registro em relação aos callbacks."""
        ordem = []
        publisher.register_handler("TicketAssumidoEvent", lambda e: ordem.append("evento"))

        with uow:
            uow.after_commit(lambda: ordem.append("antes"))
            uow.publish_event(evento())
            uow.after_commit(lambda: ordem.append("depois"))

        assert ordem == ["antes", "evento", "depois"]


class TestAninhamento:
    """UoW interno entra na transação externa."""

    def test_interno_reaproveita_escopo(self, uow, publisher, store):
        interno = InMemoryUnitOfWork(event_publisher=publisher, event_store=store)
        chamados = []

        with uow:
            with interno:
                assert interno.is_nested
                interno.after_commit(lambda: chamados.append("interno"))
            assert chamados == []
            assert not interno.committed

        assert chamados == ["interno"]
        assert uow.committed
        assert not interno.committed

    def test_falha_externa_descarta_interno(self, uow, publisher, store):
        """Callbacks do UoW interno somem se o externo faz rollback."""
        interno = InMemoryUnitOfWork(event_publisher=publisher, event_store=store)
        chamados = []

        with pytest.raises(ValueError):
            with uow:
                with interno:
                    interno.after_commit(lambda: chamados.append("interno"))
                    interno.publish_event(evento())
                raise ValueError("falha depois do interno")

        assert chamados == []
        assert publisher.published_events == []
        assert store.rows == {}

    def test_callback_abre_transacao_propria(self, uow, publisher, store):
        """Um callback pós-commit que abre UoW inicia uma nova transação."""
        novo = InMemoryUnitOfWork(event_publisher=publisher, event_store=store)

        def abrir():
            with novo:
                assert not novo.is_nested
                novo.publish_event(evento("t2"))

        with uow:
            uow.after_commit(abrir)

        assert novo.committed
        assert [e.aggregate_id for e in publisher.published_events] == ["t2"]


class TestApiFuncional:
    """with_transaction / after_transaction / in_transaction."""

    def test_with_transaction_retorna_resultado(self, uow):
        chamados = []

        def trabalho(x):
            assert in_transaction()
            after_transaction(lambda: chamados.append(x))
            return x * 2

        assert with_transaction(trabalho, 21, uow=uow) == 42
        assert chamados == [21]
        assert not in_transaction()

    def test_usa_fabrica_configurada(self, fabrica_padrao):
        chamados = []

        with_transaction(lambda: after_transaction(lambda: chamados.append(1)))

        assert chamados == [1]

    def test_aninhado_junta_a_transacao(self, fabrica_padrao):
        """Chamada interna não faz commit próprio."""
        ordem = []

        def interno():
            after_transaction(lambda: ordem.append("interno"))

        def externo():
            with_transaction(interno)
            assert ordem == []
            after_transaction(lambda: ordem.append("externo"))

        with_transaction(externo)

        assert ordem == ["interno", "externo"]

    def test_rollback_propaga_excecao(self, uow):
        chamados = []

        def falhar():
            after_transaction(lambda: chamados.append(1))
            raise KeyError("x")

        with pytest.raises(KeyError):
            with_transaction(falhar, uow=uow)

        assert chamados == []
        assert uow.rolled_back

    def test_sem_fabrica(self):
        transaction.configure(None)

        with pytest.raises(NoContextError):
            with_transaction(lambda: None)

    def test_after_transaction_fora(self):
        with pytest.raises(NoContextError):
            after_transaction(lambda: None)
