"""
Fixtures para testes com banco Django.

Django já é configurado no conftest raiz. Aqui ficam:
- Tenant padrão gravado no banco
- Container com repositórios, UoW e outbox Django e colaboradores
  externos em memória
"""

import pytest


@pytest.fixture
def tenant_model(db):
    from src.adapters.django_app.tenants.models import TenantModel

    return TenantModel.objects.create(id="g1", nome="Servidor", owner_id="1", categoria_arquivo_id="arquivo")


@pytest.fixture
def django_container(tenant_model):
    """
    Container de produção com apenas os colaboradores externos trocados.

    Efeitos rodam no próprio processo via on_commit.
    """
    from dependency_injector import providers

    from src.adapters.django_app.events.publishers import LocalEventPublisher
    from src.config.container import Container, reset_container, set_container
    from src.core.tickets import ports

    container = Container()
    container.chat_gateway.override(providers.Singleton(ports.InMemoryChatPlatformGateway))
    container.webhook_notifier.override(providers.Singleton(ports.InMemoryWebhookNotifier))
    container.analytics_client.override(providers.Singleton(ports.InMemoryAnalyticsClient))
    container.scheduler.override(providers.Singleton(ports.InMemoryAutoCloseScheduler))
    container.event_publisher.override(
        providers.Factory(LocalEventPublisher, dispatcher=container.outbox_dispatcher)
    )

    set_container(container)
    yield container
    reset_container()
