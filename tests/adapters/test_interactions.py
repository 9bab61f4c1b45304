"""
Testes do despacho de interações do bot.

Cada interação calcula permissões no PermissionEngine do container
(InMemoryIdentityRoleStore) e roda o use case com o ator correspondente.
"""

import asyncio

import pytest

from src.adapters.chat_platform.interactions import Interacao, InteractionDispatcher
from src.core.permissions.flags import DEFAULT_ROLE_PERMISSIONS


@pytest.fixture
def dispatcher(container):
    container.identity_role_store().assign_role("g1", "200", DEFAULT_ROLE_PERMISSIONS["support"])
    container.identity_role_store().assign_role("g1", "201", DEFAULT_ROLE_PERMISSIONS["support"])
    return InteractionDispatcher(container)


class TestInteractionDispatcher:
    @pytest.mark.asyncio
    async def test_abrir_e_assumir_pelo_canal(self, dispatcher, container):
        aberto = await dispatcher.dispatch(Interacao("open", "100", "g1", opcoes={"assunto": "Ajuda"}))

        assert aberto.sucesso
        assert aberto.mensagem == "Ticket #1 aberto."

        resposta = await dispatcher.dispatch(Interacao("claim", "200", "g1", canal_id="canal-1"))

        assert resposta.sucesso
        assert resposta.efemera is False
        assert resposta.dados["assumido_por_id"] == "200"

    @pytest.mark.asyncio
    async def test_sem_permissao_vira_resposta(self, dispatcher):
        await dispatcher.dispatch(Interacao("open", "100", "g1"))

        resposta = await dispatcher.dispatch(Interacao("claim", "100", "g1", canal_id="canal-1"))

        assert not resposta.sucesso
        assert resposta.dados["error"] == "PERMISSION_DENIED"

    @pytest.mark.asyncio
    async def test_canal_que_nao_e_ticket(self, dispatcher):
        resposta = await dispatcher.dispatch(Interacao("close", "100", "g1", canal_id="geral"))

        assert not resposta.sucesso
        assert resposta.mensagem == "Este canal não é um ticket"

    @pytest.mark.asyncio
    async def test_comando_desconhecido(self, dispatcher):
        resposta = await dispatcher.dispatch(Interacao("dance", "100", "g1"))

        assert resposta.mensagem == "Comando desconhecido."

    @pytest.mark.asyncio
    async def test_fluxo_de_pedido_de_fechamento(self, dispatcher, container):
        await dispatcher.dispatch(Interacao("open", "100", "g1"))
        pedido = await dispatcher.dispatch(
            Interacao("closerequest", "200", "g1", canal_id="canal-1", opcoes={"horas": 24})
        )

        resposta = await dispatcher.dispatch(
            Interacao("close-approve", "100", "g1", opcoes={"pedido_id": pedido.dados["pedido_id"]})
        )

        assert resposta.sucesso
        assert resposta.dados["status"] == "CLOSED"

    @pytest.mark.asyncio
    async def test_interacoes_concorrentes_isoladas(self, dispatcher, container):
        """Duas pessoas disputam o mesmo ticket: exatamente uma assume."""
        await dispatcher.dispatch(Interacao("open", "100", "g1"))

        respostas = await asyncio.gather(
            dispatcher.dispatch(Interacao("claim", "200", "g1", canal_id="canal-1")),
            dispatcher.dispatch(Interacao("claim", "201", "g1", canal_id="canal-1")),
        )

        assert sorted(r.sucesso for r in respostas) == [False, True]
        vencedor = next(r for r in respostas if r.sucesso)
        ticket = container.ticket_repository().get_by_canal_id("canal-1")
        assert ticket.assumido_por_id == vencedor.dados["assumido_por_id"]
