"""
URL patterns para o domínio de Tickets (API JSON do painel).

Rotas de pedido de fechamento ficam antes de `<pk>` para não conflitar.
"""

from django.urls import path
from . import api_views

app_name = 'tickets'

urlpatterns = [
    # Listagem e criação
    path('api/', api_views.TicketAPIListView.as_view(), name='api_list'),

    # Pedido de fechamento
    path(
        'api/pedidos/<str:pedido_id>/aprovar/',
        api_views.PedidoFechamentoAPIAprovarView.as_view(),
        name='api_pedido_aprovar',
    ),
    path(
        'api/pedidos/<str:pedido_id>/negar/',
        api_views.PedidoFechamentoAPINegarView.as_view(),
        name='api_pedido_negar',
    ),

    # Detalhes e histórico
    path('api/<str:pk>/', api_views.TicketAPIDetailView.as_view(), name='api_detail'),
    path('api/<str:pk>/eventos/', api_views.TicketAPIEventosView.as_view(), name='api_eventos'),

    # Ações
    path('api/<str:pk>/assumir/', api_views.TicketAPIAssumirView.as_view(), name='api_assumir'),
    path('api/<str:pk>/liberar/', api_views.TicketAPILiberarView.as_view(), name='api_liberar'),
    path('api/<str:pk>/fechar/', api_views.TicketAPIFecharView.as_view(), name='api_fechar'),
    path('api/<str:pk>/reabrir/', api_views.TicketAPIReabrirView.as_view(), name='api_reabrir'),
    path(
        'api/<str:pk>/solicitar-fechamento/',
        api_views.TicketAPISolicitarFechamentoView.as_view(),
        name='api_solicitar_fechamento',
    ),
    path(
        'api/<str:pk>/fechamento-automatico/',
        api_views.TicketAPIFechamentoAutomaticoView.as_view(),
        name='api_fechamento_automatico',
    ),

    # Participantes
    path(
        'api/<str:pk>/participantes/',
        api_views.TicketAPIParticipantesView.as_view(),
        name='api_participantes',
    ),
    path(
        'api/<str:pk>/participantes/<str:identidade_id>/',
        api_views.TicketAPIParticipanteDetailView.as_view(),
        name='api_participante_detail',
    ),
]
