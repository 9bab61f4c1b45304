"""
Dependency Injection Container.

Configura e gerencia todas as dependências da aplicação.
Usa dependency-injector para lazy-loading e injeção automática.

Padrões:
- Singleton: Uma instância para toda app (repositories, clientes HTTP)
- Factory: Nova instância por chamada (services, UoW, efeitos)

Os três processos (painel web, worker Celery e bot) usam o mesmo
container; o bot troca apenas o agendador (`usar_agendador_asyncio`).
"""

from dependency_injector import containers, providers
from typing import Optional


def _settings():
    from django.conf import settings
    return settings


def _build_permission_engine(store):
    from src.core.permissions.engine import PermissionEngine

    settings = _settings()
    return PermissionEngine(
        store=store,
        # Override só vale com DEBUG ligado
        dev_mode=getattr(settings, 'PERMISSIONS_DEV_MODE', False) and getattr(settings, 'DEBUG', False),
        dev_permissions_hex=getattr(settings, 'DEV_PERMISSIONS_HEX', None),
    )


def _build_chat_gateway():
    from src.adapters.integrations.chat_platform import DiscordRestGateway

    settings = _settings()
    return DiscordRestGateway(
        token=settings.DISCORD_BOT_TOKEN,
        base_url=settings.DISCORD_API_BASE,
    )


def _build_webhook_notifier():
    from src.adapters.integrations import webhooks

    settings = _settings()
    if not settings.WEB_URL or not settings.BOT_WEBHOOK_SECRET:
        return webhooks.LoggingWebhookNotifier()
    return webhooks.WebhookClient(
        base_url=settings.WEB_URL,
        secret=settings.BOT_WEBHOOK_SECRET,
        timeout=settings.WEBHOOK_TIMEOUT,
    )


def _build_analytics_client():
    from src.adapters.integrations import analytics

    settings = _settings()
    if not settings.POSTHOG_API_KEY:
        return analytics.LoggingAnalyticsClient()
    return analytics.HttpAnalyticsClient(
        api_key=settings.POSTHOG_API_KEY,
        host=settings.POSTHOG_HOST,
    )


def _build_event_publisher(dispatcher):
    from src.adapters.django_app.events.publishers import get_event_publisher

    return get_event_publisher(_settings().EVENT_PUBLISHER_MODE, dispatcher)


def _build_ticket_effects(container, gateway, webhooks, analytics, tenant_repo, ticket_repo):
    from src.core.tickets.effects import TicketEffects, vincular_canal_como_sistema

    return TicketEffects(
        gateway=gateway,
        webhooks=webhooks,
        analytics=analytics,
        tenant_repo=tenant_repo,
        ticket_repo=ticket_repo,
        vincular_canal=vincular_canal_como_sistema(container.vincular_canal_service),
    )


def _build_outbox_dispatcher(effects, event_store):
    from datetime import timedelta

    from src.adapters.django_app.events.publishers import OutboxDispatcher

    return OutboxDispatcher(
        effects=effects,
        event_store=event_store,
        reserva=timedelta(seconds=getattr(_settings(), 'OUTBOX_RESERVA_SEGUNDOS', 300)),
    )


class Container(containers.DeclarativeContainer):
    """
    Container principal de Dependency Injection.

    Organização:
    - Repositories: Persistência (Django ORM)
    - Integrations: Plataforma de chat, webhooks, analytics
    - Events: Outbox, efeitos e publisher
    - Unit of Work: Transações
    - Services: Use Cases

    Example:
        from src.config.container import get_container

        service = get_container().fechar_ticket_service()
        result = service.execute(input_dto)
    """

    __self__ = providers.Self()

    config = providers.Configuration()

    # =========================================================================
    # Repositories (Singleton - uma instância por app)
    # =========================================================================

    ticket_repository = providers.Singleton(
        lambda: __import__(
            'src.adapters.django_app.tickets.repositories',
            fromlist=['DjangoTicketRepository']
        ).DjangoTicketRepository()
    )

    tenant_repository = providers.Singleton(
        lambda: __import__(
            'src.adapters.django_app.tenants.repositories',
            fromlist=['DjangoTenantRepository']
        ).DjangoTenantRepository()
    )

    identity_role_store = providers.Singleton(
        lambda: __import__(
            'src.adapters.django_app.tenants.repositories',
            fromlist=['DjangoIdentityRoleStore']
        ).DjangoIdentityRoleStore()
    )

    permission_engine = providers.Singleton(
        _build_permission_engine,
        store=identity_role_store,
    )

    # =========================================================================
    # Integrations (Singleton - reaproveitam conexões HTTP)
    # =========================================================================

    chat_gateway = providers.Singleton(_build_chat_gateway)

    webhook_notifier = providers.Singleton(_build_webhook_notifier)

    analytics_client = providers.Singleton(_build_analytics_client)

    # =========================================================================
    # Events (outbox + efeitos diferidos)
    # =========================================================================

    event_store = providers.Singleton(
        lambda: __import__(
            'src.adapters.django_app.tickets.repositories',
            fromlist=['DjangoEventStore']
        ).DjangoEventStore()
    )

    ticket_effects = providers.Factory(
        _build_ticket_effects,
        container=__self__,
        gateway=chat_gateway,
        webhooks=webhook_notifier,
        analytics=analytics_client,
        tenant_repo=tenant_repository,
        ticket_repo=ticket_repository,
    )

    outbox_dispatcher = providers.Factory(
        _build_outbox_dispatcher,
        effects=ticket_effects,
        event_store=event_store,
    )

    event_publisher = providers.Factory(
        _build_event_publisher,
        dispatcher=outbox_dispatcher,
    )

    # =========================================================================
    # Unit of Work (Factory - nova instância por operação)
    # =========================================================================

    unit_of_work = providers.Factory(
        lambda event_publisher, event_store: __import__(
            'src.adapters.django_app.shared.unit_of_work',
            fromlist=['DjangoUnitOfWork']
        ).DjangoUnitOfWork(
            event_publisher=event_publisher,
            event_store=event_store,
        ),
        event_publisher=event_publisher,
        event_store=event_store,
    )

    # Timer de fechamento automático (o bot sobrescreve com asyncio)
    scheduler = providers.Singleton(
        lambda: __import__(
            'src.adapters.scheduling.auto_close',
            fromlist=['CeleryAutoCloseScheduler']
        ).CeleryAutoCloseScheduler()
    )

    # =========================================================================
    # Services / Use Cases (Factory - nova instância por chamada)
    # =========================================================================

    criar_ticket_service = providers.Factory(
        lambda ticket_repo, tenant_repo, uow: __import__(
            'src.core.tickets.use_cases',
            fromlist=['CriarTicketService']
        ).CriarTicketService(
            ticket_repo=ticket_repo,
            tenant_repo=tenant_repo,
            uow=uow,
        ),
        ticket_repo=ticket_repository,
        tenant_repo=tenant_repository,
        uow=unit_of_work,
    )

    assumir_ticket_service = providers.Factory(
        lambda ticket_repo, uow: __import__(
            'src.core.tickets.use_cases',
            fromlist=['AssumirTicketService']
        ).AssumirTicketService(ticket_repo=ticket_repo, uow=uow),
        ticket_repo=ticket_repository,
        uow=unit_of_work,
    )

    liberar_ticket_service = providers.Factory(
        lambda ticket_repo, uow: __import__(
            'src.core.tickets.use_cases',
            fromlist=['LiberarTicketService']
        ).LiberarTicketService(ticket_repo=ticket_repo, uow=uow),
        ticket_repo=ticket_repository,
        uow=unit_of_work,
    )

    fechar_ticket_service = providers.Factory(
        lambda ticket_repo, uow, scheduler: __import__(
            'src.core.tickets.use_cases',
            fromlist=['FecharTicketService']
        ).FecharTicketService(ticket_repo=ticket_repo, uow=uow, scheduler=scheduler),
        ticket_repo=ticket_repository,
        uow=unit_of_work,
        scheduler=scheduler,
    )

    solicitar_fechamento_service = providers.Factory(
        lambda ticket_repo, uow, scheduler: __import__(
            'src.core.tickets.use_cases',
            fromlist=['SolicitarFechamentoService']
        ).SolicitarFechamentoService(ticket_repo=ticket_repo, uow=uow, scheduler=scheduler),
        ticket_repo=ticket_repository,
        uow=unit_of_work,
        scheduler=scheduler,
    )

    aprovar_fechamento_service = providers.Factory(
        lambda ticket_repo, uow, fechar_service: __import__(
            'src.core.tickets.use_cases',
            fromlist=['AprovarFechamentoService']
        ).AprovarFechamentoService(ticket_repo=ticket_repo, uow=uow, fechar_service=fechar_service),
        ticket_repo=ticket_repository,
        uow=unit_of_work,
        fechar_service=fechar_ticket_service,
    )

    negar_fechamento_service = providers.Factory(
        lambda ticket_repo, uow, scheduler: __import__(
            'src.core.tickets.use_cases',
            fromlist=['NegarFechamentoService']
        ).NegarFechamentoService(ticket_repo=ticket_repo, uow=uow, scheduler=scheduler),
        ticket_repo=ticket_repository,
        uow=unit_of_work,
        scheduler=scheduler,
    )

    fechar_automaticamente_service = providers.Factory(
        lambda ticket_repo, uow, fechar_service: __import__(
            'src.core.tickets.use_cases',
            fromlist=['FecharAutomaticamenteService']
        ).FecharAutomaticamenteService(ticket_repo=ticket_repo, uow=uow, fechar_service=fechar_service),
        ticket_repo=ticket_repository,
        uow=unit_of_work,
        fechar_service=fechar_ticket_service,
    )

    reabrir_ticket_service = providers.Factory(
        lambda ticket_repo, uow: __import__(
            'src.core.tickets.use_cases',
            fromlist=['ReabrirTicketService']
        ).ReabrirTicketService(ticket_repo=ticket_repo, uow=uow),
        ticket_repo=ticket_repository,
        uow=unit_of_work,
    )

    adicionar_participante_service = providers.Factory(
        lambda ticket_repo, uow: __import__(
            'src.core.tickets.use_cases',
            fromlist=['AdicionarParticipanteService']
        ).AdicionarParticipanteService(ticket_repo=ticket_repo, uow=uow),
        ticket_repo=ticket_repository,
        uow=unit_of_work,
    )

    remover_participante_service = providers.Factory(
        lambda ticket_repo, uow: __import__(
            'src.core.tickets.use_cases',
            fromlist=['RemoverParticipanteService']
        ).RemoverParticipanteService(ticket_repo=ticket_repo, uow=uow),
        ticket_repo=ticket_repository,
        uow=unit_of_work,
    )

    vincular_canal_service = providers.Factory(
        lambda ticket_repo, uow: __import__(
            'src.core.tickets.use_cases',
            fromlist=['VincularCanalService']
        ).VincularCanalService(ticket_repo=ticket_repo, uow=uow),
        ticket_repo=ticket_repository,
        uow=unit_of_work,
    )

    definir_exclusao_fechamento_automatico_service = providers.Factory(
        lambda ticket_repo, uow, scheduler: __import__(
            'src.core.tickets.use_cases',
            fromlist=['DefinirExclusaoFechamentoAutomaticoService']
        ).DefinirExclusaoFechamentoAutomaticoService(ticket_repo=ticket_repo, uow=uow, scheduler=scheduler),
        ticket_repo=ticket_repository,
        uow=unit_of_work,
        scheduler=scheduler,
    )

    # Leitura (sem UoW)
    obter_ticket_service = providers.Factory(
        lambda ticket_repo: __import__(
            'src.core.tickets.use_cases',
            fromlist=['ObterTicketService']
        ).ObterTicketService(ticket_repo=ticket_repo),
        ticket_repo=ticket_repository,
    )

    listar_tickets_service = providers.Factory(
        lambda ticket_repo: __import__(
            'src.core.tickets.use_cases',
            fromlist=['ListarTicketsService']
        ).ListarTicketsService(ticket_repo=ticket_repo),
        ticket_repo=ticket_repository,
    )


# =============================================================================
# Container Global (Singleton)
# =============================================================================

_container: Optional[Container] = None


def get_container() -> Container:
    """
    Retorna instância global do container.

    Cria se não existir (lazy initialization).
    """
    global _container

    if _container is None:
        _container = Container()

    return _container


def set_container(container) -> None:
    """Instala um container pronto (ex: create_testing_container nos testes)."""
    global _container
    _container = container


def reset_container() -> None:
    """
    Reset do container (para testes).

    Permite criar novo container limpo.
    """
    global _container
    _container = None


def usar_agendador_asyncio(container, loop):
    """
    Processo do bot: timers de fechamento automático no event loop.

    Sobrescreve o provider `scheduler` e reagenda os timers pendentes
    gravados no banco.

    Returns:
        AsyncioAutoCloseScheduler instalado
    """
    from src.adapters.scheduling.auto_close import (
        AsyncioAutoCloseScheduler,
        fechar_como_sistema,
        restaurar_agendamentos,
    )

    agendador = AsyncioAutoCloseScheduler(
        loop=loop,
        executar=fechar_como_sistema(container.fechar_automaticamente_service),
    )
    container.scheduler.override(providers.Object(agendador))
    restaurar_agendamentos(container.ticket_repository(), agendador)
    return agendador


# =============================================================================
# Testing Container
# =============================================================================

def create_testing_container() -> Container:
    """
    Container para testes com implementações InMemory.

    Sobrescreve toda a infraestrutura; os services continuam os mesmos
    providers do Container. Efeitos rodam de forma síncrona após o commit.

    Example:
        container = create_testing_container()
        container.tenant_repository().add_tenant(TenantConfig(tenant_id="g1"))
        container.criar_ticket_service().execute(dto)
        assert container.chat_gateway().chamadas
    """
    from src.adapters.django_app.events.publishers import InMemoryEventStore, LocalEventPublisher
    from src.adapters.django_app.shared.unit_of_work import InMemoryUnitOfWork
    from src.core.permissions.engine import PermissionEngine
    from src.core.permissions.ports import InMemoryIdentityRoleStore
    from src.core.tickets import ports

    container = Container()

    container.ticket_repository.override(providers.Singleton(ports.InMemoryTicketRepository))
    container.tenant_repository.override(providers.Singleton(ports.InMemoryTenantRepository))
    container.identity_role_store.override(providers.Singleton(InMemoryIdentityRoleStore))
    container.permission_engine.override(
        providers.Singleton(PermissionEngine, store=container.identity_role_store)
    )

    container.chat_gateway.override(providers.Singleton(ports.InMemoryChatPlatformGateway))
    container.webhook_notifier.override(providers.Singleton(ports.InMemoryWebhookNotifier))
    container.analytics_client.override(providers.Singleton(ports.InMemoryAnalyticsClient))
    container.scheduler.override(providers.Singleton(ports.InMemoryAutoCloseScheduler))

    container.event_store.override(providers.Singleton(InMemoryEventStore))
    container.event_publisher.override(
        providers.Factory(LocalEventPublisher, dispatcher=container.outbox_dispatcher)
    )
    container.unit_of_work.override(
        providers.Factory(
            InMemoryUnitOfWork,
            event_publisher=container.event_publisher,
            event_store=container.event_store,
        )
    )

    return container
