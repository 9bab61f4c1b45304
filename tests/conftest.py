"""
Configurações globais do Pytest para o núcleo do TicketsBot.

Este arquivo é carregado automaticamente pelo pytest e
fornece fixtures e configurações compartilhadas:
- Django configurado em memória (SQLite)
- Atores prontos por capacidade
- Container de testes com implementações InMemory
"""

import pytest


def pytest_configure(config):
    """Configura Django antes dos testes."""
    import django
    from django.conf import settings

    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )

    if not settings.configured:
        settings.configure(
            DEBUG=True,
            SECRET_KEY='test-secret-key',
            DATABASES={
                'default': {
                    'ENGINE': 'django.db.backends.sqlite3',
                    'NAME': ':memory:',
                }
            },
            INSTALLED_APPS=[
                'django.contrib.contenttypes',
                'django.contrib.auth',
                'django.contrib.sessions',
                'src.adapters.django_app.tenants',
                'src.adapters.django_app.tickets',
            ],
            MIDDLEWARE=[
                'django.contrib.sessions.middleware.SessionMiddleware',
                'django.contrib.auth.middleware.AuthenticationMiddleware',
                'src.adapters.django_app.tickets.middleware.ActorContextMiddleware',
            ],
            ROOT_URLCONF='src.config.urls',
            DEFAULT_AUTO_FIELD='django.db.models.BigAutoField',
            USE_TZ=True,
            TIME_ZONE='America/Sao_Paulo',
            PASSWORD_HASHERS=['django.contrib.auth.hashers.MD5PasswordHasher'],
            CELERY_TASK_ALWAYS_EAGER=True,
            CELERY_BROKER_URL='memory://',
            OUTBOX_MAX_TENTATIVAS=5,
            EVENT_PUBLISHER_MODE='sync',
            PERMISSIONS_DEV_MODE=False,
            DEV_PERMISSIONS_HEX=None,
            WEB_URL='',
            BOT_WEBHOOK_SECRET='',
            WEBHOOK_TIMEOUT=5.0,
            DISCORD_BOT_TOKEN='test-token',
            DISCORD_API_BASE='https://discord.test/api/v10',
            POSTHOG_API_KEY='',
            POSTHOG_HOST='https://posthog.test',
        )
        django.setup()


# =============================================================================
# Atores
# =============================================================================

TENANT = "g1"


@pytest.fixture
def tenant_id():
    return TENANT


@pytest.fixture
def abertor():
    """Usuário comum, sem capacidades."""
    from src.core.shared.context import ChatPlatformActor

    return ChatPlatformActor(user_id="100", tenant_id=TENANT)


@pytest.fixture
def atendente():
    """Equipe de suporte: pode assumir, ver todos e atribuir."""
    from src.core.permissions.flags import DEFAULT_ROLE_PERMISSIONS
    from src.core.shared.context import ChatPlatformActor

    return ChatPlatformActor(
        user_id="200",
        tenant_id=TENANT,
        permissions=DEFAULT_ROLE_PERMISSIONS["support"],
    )


@pytest.fixture
def outro_atendente():
    from src.core.permissions.flags import DEFAULT_ROLE_PERMISSIONS
    from src.core.shared.context import ChatPlatformActor

    return ChatPlatformActor(
        user_id="201",
        tenant_id=TENANT,
        permissions=DEFAULT_ROLE_PERMISSIONS["support"],
    )


@pytest.fixture
def admin():
    from src.core.permissions.flags import ALL_PERMISSIONS
    from src.core.shared.context import WebActor

    return WebActor(user_id="1", tenant_id=TENANT, permissions=ALL_PERMISSIONS)


@pytest.fixture
def estranho():
    """Membro sem relação com os tickets e sem capacidades."""
    from src.core.shared.context import ChatPlatformActor

    return ChatPlatformActor(user_id="300", tenant_id=TENANT)


@pytest.fixture
def admin_outro_tenant():
    from src.core.permissions.flags import ALL_PERMISSIONS
    from src.core.shared.context import WebActor

    return WebActor(user_id="9", tenant_id="g2", permissions=ALL_PERMISSIONS)


# =============================================================================
# Container InMemory
# =============================================================================

@pytest.fixture
def container():
    """
    Container com infraestrutura InMemory e tenant padrão configurado.

    Instalado como container global durante o teste.
    """
    from src.config.container import create_testing_container, reset_container, set_container
    from src.core.tickets.entities import TenantConfig

    container = create_testing_container()
    container.tenant_repository().add_tenant(
        TenantConfig(tenant_id=TENANT, owner_id="1", categoria_arquivo_id="arquivo")
    )
    container.identity_role_store().set_owner(TENANT, "1")

    set_container(container)
    yield container
    reset_container()


@pytest.fixture
def abrir_ticket(container, abertor):
    """Abre um ticket como `abertor` e retorna o DTO de saída."""
    from src.core.shared.context import provide
    from src.core.tickets.dtos import CriarTicketInputDTO

    def _abrir(ator=None, **kwargs):
        ator = ator or abertor
        dto = CriarTicketInputDTO(tenant_id=ator.tenant_id, **kwargs)
        return provide(ator, container.criar_ticket_service().execute, dto)

    return _abrir
