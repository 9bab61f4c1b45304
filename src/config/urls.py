"""
URL Configuration para o núcleo do TicketsBot.

Estrutura:
- /tickets/api/ - API JSON de Tickets
- /health/ - Health check (banco)
"""

from django.http import JsonResponse
from django.urls import path, include

from src.adapters.django_app.shared.database import check_database_connection


def health(request):
    resultado = check_database_connection()
    return JsonResponse(resultado, status=200 if resultado['healthy'] else 503)


urlpatterns = [
    # Tickets App
    path('tickets/', include('src.adapters.django_app.tickets.urls')),

    # Health check
    path('health/', health, name='health'),
]
