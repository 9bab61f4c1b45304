"""
Testes do Motor de Permissões.

Coverage:
- Máscara efetiva (OR de papéis + adicionais)
- Dono do tenant
- Modo desenvolvedor
- Falha do armazenamento nunca concede acesso
- Conversões de flags
"""

import pytest

from src.core.permissions import (
    ALL_PERMISSIONS,
    DEFAULT_ROLE_PERMISSIONS,
    NO_PERMISSIONS,
    InMemoryIdentityRoleStore,
    PermissionEngine,
    PermissionFlags,
    has_capability,
    names_for,
    to_flags,
)
from src.core.shared.exceptions import PermissionLookupError


@pytest.fixture
def store():
    store = InMemoryIdentityRoleStore()
    store.set_owner("g1", "dono")
    return store


@pytest.fixture
def engine(store):
    return PermissionEngine(store)


class TestPermissoesEfetivas:
    """Testes de get_effective_permissions."""

    def test_or_dos_papeis(self, engine, store):
        """Deve combinar as máscaras de todos os papéis."""
        store.assign_role("g1", "u1", PermissionFlags.TICKET_CLAIM)
        store.assign_role("g1", "u1", PermissionFlags.TICKET_VIEW_ALL)

        mascara = engine.get_effective_permissions("g1", "u1")

        assert mascara == PermissionFlags.TICKET_CLAIM | PermissionFlags.TICKET_VIEW_ALL

    def test_inclui_adicionais(self, engine, store):
        store.assign_role("g1", "u1", PermissionFlags.TICKET_CLAIM)
        store.grant_additional("g1", "u1", PermissionFlags.TICKET_CLOSE_ANY)

        mascara = engine.get_effective_permissions("g1", "u1")

        assert has_capability(mascara, PermissionFlags.TICKET_CLOSE_ANY)
        assert has_capability(mascara, PermissionFlags.TICKET_CLAIM)

    def test_sem_papeis(self, engine):
        assert engine.get_effective_permissions("g1", "ninguem") == NO_PERMISSIONS

    def test_dono_tem_todas(self, engine):
        assert engine.get_effective_permissions("g1", "dono") == ALL_PERMISSIONS

    def test_dono_de_outro_tenant(self, engine):
        """Ser dono de um tenant não dá nada em outro."""
        assert engine.get_effective_permissions("g2", "dono") == NO_PERMISSIONS

    def test_papeis_por_tenant(self, engine, store):
        store.assign_role("g2", "u1", ALL_PERMISSIONS)

        assert engine.get_effective_permissions("g1", "u1") == NO_PERMISSIONS


class TestFalhaDoArmazenamento:
    """Falha de consulta nunca vira acesso."""

    def test_lanca_lookup_error(self, engine, store):
        store.falhar_com = ConnectionError("banco fora")

        with pytest.raises(PermissionLookupError):
            engine.get_effective_permissions("g1", "u1")

    def test_or_none_retorna_vazia(self, engine, store):
        """Deve tratar falha como máscara vazia."""
        store.assign_role("g1", "u1", ALL_PERMISSIONS)
        store.falhar_com = ConnectionError("banco fora")

        assert engine.get_effective_permissions_or_none("g1", "u1") == NO_PERMISSIONS


class TestModoDesenvolvedor:
    def test_mascara_fixa(self, store):
        engine = PermissionEngine(store, dev_mode=True, dev_permissions_hex="0x20")

        assert engine.get_effective_permissions("g1", "qualquer") == PermissionFlags.TICKET_CLAIM

    def test_ignorado_fora_do_modo(self, store):
        engine = PermissionEngine(store, dev_mode=False, dev_permissions_hex="0x20")

        assert engine.get_effective_permissions("g1", "qualquer") == NO_PERMISSIONS

    def test_sem_hex_nao_ativa(self, store):
        engine = PermissionEngine(store, dev_mode=True)

        assert engine.dev_override is None


class TestFlags:
    """Testes das funções puras de flags."""

    def test_to_flags_hex_e_decimal(self):
        assert to_flags("0x30") == PermissionFlags.TICKET_VIEW_ALL | PermissionFlags.TICKET_CLAIM
        assert to_flags("32") == PermissionFlags.TICKET_CLAIM
        assert to_flags(None) == NO_PERMISSIONS

    def test_to_flags_descarta_bits_desconhecidos(self):
        assert to_flags(1 << 40) == NO_PERMISSIONS

    def test_to_flags_negativo(self):
        with pytest.raises(ValueError):
            to_flags(-1)

    def test_has_capability_exige_todos_os_bits(self):
        combinada = PermissionFlags.TICKET_CLAIM | PermissionFlags.TICKET_ASSIGN

        assert has_capability(PermissionFlags.TICKET_CLAIM, PermissionFlags.TICKET_CLAIM)
        assert not has_capability(PermissionFlags.TICKET_CLAIM, combinada)

    def test_names_for(self):
        assert names_for(PermissionFlags.TICKET_CLAIM | PermissionFlags.PANEL_CREATE) == [
            "PANEL_CREATE",
            "TICKET_CLAIM",
        ]

    def test_papel_support_padrao(self):
        support = DEFAULT_ROLE_PERMISSIONS["support"]

        assert has_capability(support, PermissionFlags.TICKET_CLAIM)
        assert not has_capability(support, PermissionFlags.TICKET_CLOSE_ANY)
