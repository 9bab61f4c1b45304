"""
Testes Unitários para Entidades do Domínio de Tickets.

Testa as regras de negócio encapsuladas na entidade, incluindo
validações e transições de estado.

Coverage:
- TicketEntity.criar(): Validações de criação
- TicketEntity.assumir() / liberar(): Atendente
- TicketEntity.fechar() / reabrir(): Status
- Pedido de fechamento (token, prazo, descarte, disparo do timer)
- Participantes, canal e exclusão do fechamento automático
"""

import pytest

from src.core.tickets.entities import (
    MOTIVO_FECHAMENTO_AUTOMATICO,
    PapelParticipante,
    Participante,
    PedidoFechamento,
    TicketEntity,
    TicketStatus,
)
from src.core.shared.exceptions import (
    ConflictError,
    EntityNotFoundError,
    ValidationError,
)


def novo_ticket(**kwargs):
    dados = {"tenant_id": "g1", "numero": 1, "aberto_por_id": "100"}
    dados.update(kwargs)
    return TicketEntity.criar(**dados)


class TestTicketEntityCriacao:
    """Testes para criação de tickets."""

    def test_criar_ticket_valido(self):
        """Deve criar ticket aberto, sem atendente, com o abertor participante."""
        ticket = novo_ticket(assunto="  Problema no pagamento  ", painel_id="p1")

        assert len(ticket.id) == 36  # UUID
        assert ticket.status == TicketStatus.ABERTO
        assert ticket.assunto == "Problema no pagamento"
        assert ticket.assumido_por_id is None
        assert ticket.pedido_fechamento is None
        assert ticket.participantes == [Participante("100", PapelParticipante.ABERTOR)]

    def test_assunto_longo(self):
        """Deve rejeitar assunto acima de 100 caracteres."""
        with pytest.raises(ValidationError) as exc_info:
            novo_ticket(assunto="x" * 101)

        assert exc_info.value.field == "assunto"

    def test_sem_tenant(self):
        with pytest.raises(ValidationError) as exc_info:
            novo_ticket(tenant_id="")

        assert exc_info.value.field == "tenant_id"

    def test_sem_abertor(self):
        with pytest.raises(ValidationError):
            novo_ticket(aberto_por_id="")

    def test_numero_invalido(self):
        with pytest.raises(ValidationError):
            novo_ticket(numero=0)


class TestTicketEntityAssumir:
    """Testes para assumir/liberar."""

    def test_assumir(self):
        ticket = novo_ticket()

        assert ticket.assumir("200") is True

        assert ticket.assumido_por_id == "200"
        assert ticket.esta_assumido
        assert Participante("200", PapelParticipante.ATENDENTE) in ticket.participantes

    def test_assumir_de_novo_mesmo_atendente(self):
        """Deve ser sucesso sem mudança."""
        ticket = novo_ticket()
        ticket.assumir("200")

        assert ticket.assumir("200") is False
        assert ticket.assumido_por_id == "200"

    def test_assumir_ja_assumido(self):
        """Deve recusar quando outro atendente já assumiu."""
        ticket = novo_ticket()
        ticket.assumir("200")

        with pytest.raises(ConflictError) as exc_info:
            ticket.assumir("201")

        assert exc_info.value.rule == "ticket_ja_assumido"
        assert ticket.assumido_por_id == "200"

    def test_assumir_fechado(self):
        ticket = novo_ticket()
        ticket.fechar("100")

        with pytest.raises(ConflictError):
            ticket.assumir("200")

    def test_liberar(self):
        ticket = novo_ticket()
        ticket.assumir("200")

        assert ticket.liberar() == "200"

        assert ticket.assumido_por_id is None
        assert not ticket.esta_assumido
        assert all(p.papel != PapelParticipante.ATENDENTE for p in ticket.participantes)

    def test_liberar_sem_atendente(self):
        ticket = novo_ticket()

        with pytest.raises(ConflictError):
            ticket.liberar()


class TestTicketEntityFechar:
    """Testes para fechamento e reabertura."""

    def test_fechar(self):
        ticket = novo_ticket()

        assert ticket.fechar("200", motivo="Resolvido") is True

        assert ticket.status == TicketStatus.FECHADO
        assert ticket.fechado_por_id == "200"
        assert ticket.motivo_fechamento == "Resolvido"
        assert ticket.fechado_em is not None

    def test_fechar_idempotente(self):
        """Segundo fechamento não altera nada."""
        ticket = novo_ticket()
        ticket.fechar("200", motivo="Primeiro")

        assert ticket.fechar("300", motivo="Segundo") is False
        assert ticket.fechado_por_id == "200"
        assert ticket.motivo_fechamento == "Primeiro"

    def test_fechar_descarta_pedido(self):
        ticket = novo_ticket()
        ticket.solicitar_fechamento("200", horas_fechamento_automatico=1)

        ticket.fechar("100")

        assert ticket.pedido_fechamento is None

    def test_motivo_longo(self):
        ticket = novo_ticket()

        with pytest.raises(ValidationError):
            ticket.fechar("100", motivo="x" * 501)

    def test_reabrir(self):
        """Deve voltar a ABERTO e limpar fechamento e atendente."""
        ticket = novo_ticket()
        ticket.assumir("200")
        ticket.fechar("200", motivo="Resolvido")

        ticket.reabrir()

        assert ticket.status == TicketStatus.ABERTO
        assert ticket.assumido_por_id is None
        assert ticket.fechado_em is None
        assert ticket.fechado_por_id is None
        assert ticket.motivo_fechamento is None

    def test_reabrir_aberto(self):
        ticket = novo_ticket()

        with pytest.raises(ConflictError) as exc_info:
            ticket.reabrir()

        assert exc_info.value.rule == "apenas_fechado_pode_reabrir"


class TestPedidoFechamento:
    """Testes do fechamento em duas fases."""

    def test_solicitar_com_prazo(self):
        ticket = novo_ticket()

        pedido = ticket.solicitar_fechamento("200", motivo="Resolvido?", horas_fechamento_automatico=24)

        assert pedido.id.startswith("cr_")
        assert ticket.pedido_fechamento is pedido
        assert ticket.status == TicketStatus.ABERTO
        assert (pedido.fechamento_automatico_em - pedido.criado_em).total_seconds() == 24 * 3600

    def test_solicitar_sem_prazo(self):
        pedido = novo_ticket().solicitar_fechamento("200")

        assert pedido.fechamento_automatico_em is None

    def test_ticket_excluido_nao_recebe_prazo(self):
        ticket = novo_ticket(excluir_de_fechamento_automatico=True)

        pedido = ticket.solicitar_fechamento("200", horas_fechamento_automatico=24)

        assert pedido.fechamento_automatico_em is None

    def test_pedido_duplicado(self):
        ticket = novo_ticket()
        ticket.solicitar_fechamento("200")

        with pytest.raises(ConflictError):
            ticket.solicitar_fechamento("201")

    def test_horas_invalidas(self):
        with pytest.raises(ValidationError):
            novo_ticket().solicitar_fechamento("200", horas_fechamento_automatico=0)

    def test_solicitar_em_fechado(self):
        ticket = novo_ticket()
        ticket.fechar("100")

        with pytest.raises(ConflictError):
            ticket.solicitar_fechamento("200")

    def test_tokens_unicos(self):
        assert PedidoFechamento.gerar_id() != PedidoFechamento.gerar_id()

    def test_descartar(self):
        ticket = novo_ticket()
        pedido = ticket.solicitar_fechamento("200")

        assert ticket.descartar_pedido_fechamento(pedido.id) == pedido
        assert ticket.pedido_fechamento is None
        assert ticket.status == TicketStatus.ABERTO

    def test_descartar_token_errado(self):
        ticket = novo_ticket()
        ticket.solicitar_fechamento("200")

        with pytest.raises(EntityNotFoundError):
            ticket.descartar_pedido_fechamento("cr_outro")

    def test_pode_fechar_automaticamente(self):
        ticket = novo_ticket()
        pedido = ticket.solicitar_fechamento("200", horas_fechamento_automatico=1)

        assert ticket.pode_fechar_automaticamente(pedido.id)
        assert not ticket.pode_fechar_automaticamente("cr_antigo")

    def test_timer_obsoleto_apos_novo_pedido(self):
        """Pedido negado e substituído invalida o timer antigo."""
        ticket = novo_ticket()
        antigo = ticket.solicitar_fechamento("200", horas_fechamento_automatico=1)
        ticket.descartar_pedido_fechamento(antigo.id)
        ticket.solicitar_fechamento("200", horas_fechamento_automatico=1)

        assert not ticket.pode_fechar_automaticamente(antigo.id)

    def test_exclusao_remove_prazo(self):
        """Excluir o ticket remove o prazo e devolve o pedido a cancelar."""
        ticket = novo_ticket()
        pedido = ticket.solicitar_fechamento("200", horas_fechamento_automatico=1)

        cancelado = ticket.definir_exclusao_fechamento_automatico(True)

        assert cancelado.id == pedido.id
        assert ticket.pedido_fechamento.id == pedido.id
        assert ticket.pedido_fechamento.fechamento_automatico_em is None
        assert not ticket.pode_fechar_automaticamente(pedido.id)

    def test_motivo_automatico_definido(self):
        assert MOTIVO_FECHAMENTO_AUTOMATICO


class TestParticipantesECanal:
    """Testes de participantes e vínculo de canal."""

    def test_adicionar_idempotente(self):
        ticket = novo_ticket()

        assert ticket.adicionar_participante("300") is True
        assert ticket.adicionar_participante("300") is False
        assert ticket.eh_envolvido("300")

    def test_remover(self):
        ticket = novo_ticket()
        ticket.adicionar_participante("300")

        assert ticket.remover_participante("300") is True
        assert ticket.remover_participante("300") is False
        assert not ticket.eh_envolvido("300")

    def test_papel_invalido(self):
        with pytest.raises(ValidationError):
            PapelParticipante.from_string("dono")

    def test_vincular_canal(self):
        ticket = novo_ticket()

        assert ticket.vincular_canal("c1") is True
        assert ticket.vincular_canal("c1") is False

    def test_canal_imutavel(self):
        ticket = novo_ticket(canal_id="c1")

        with pytest.raises(ConflictError):
            ticket.vincular_canal("c2")

    def test_status_from_string(self):
        assert TicketStatus.from_string("open") == TicketStatus.ABERTO
        assert TicketStatus.from_string("FECHADO") == TicketStatus.FECHADO
        with pytest.raises(ValueError):
            TicketStatus.from_string("pendente")
