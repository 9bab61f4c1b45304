"""
Middleware de contexto de ator para o painel web.

Cada request autenticado com tenant informado roda dentro de um
`actor_scope(WebActor(...))`. Sem usuário autenticado ou sem tenant,
nenhum ator é estabelecido e as views respondem 401.

Tenant:
    Header `X-Tenant-Id` (o painel envia o servidor selecionado).

Identidade:
    `request.user.username` guarda o snowflake da conta vinculada.

Falha ao consultar papéis resulta em máscara vazia, nunca em acesso.
"""

import logging

from src.core.shared.context import WebActor, actor_scope

logger = logging.getLogger(__name__)

TENANT_HEADER = 'HTTP_X_TENANT_ID'


class ActorContextMiddleware:
    """
    Estabelece o ator ambiente para a duração do request.

    Deve vir depois de AuthenticationMiddleware em settings.MIDDLEWARE.
    """

    def __init__(self, get_response, engine=None):
        self.get_response = get_response
        self._engine = engine

    @property
    def engine(self):
        if self._engine is None:
            from src.config.container import get_container
            self._engine = get_container().permission_engine()
        return self._engine

    def __call__(self, request):
        actor = self.build_actor(request)
        request.actor = actor

        if actor is None:
            return self.get_response(request)

        with actor_scope(actor):
            return self.get_response(request)

    def build_actor(self, request):
        user = getattr(request, 'user', None)
        tenant_id = request.META.get(TENANT_HEADER, '').strip()

        if user is None or not user.is_authenticated or not tenant_id:
            return None

        identidade_id = user.get_username()
        permissoes = self.engine.get_effective_permissions_or_none(tenant_id, identidade_id)
        logger.debug(f"Web actor: {identidade_id}@{tenant_id} -> {int(permissoes):#x}")

        return WebActor(
            user_id=identidade_id,
            tenant_id=tenant_id,
            permissions=permissoes,
            session_ref=getattr(getattr(request, 'session', None), 'session_key', None),
        )
