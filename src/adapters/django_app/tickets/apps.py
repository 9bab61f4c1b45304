"""
Configuração do Django App para Tickets.

Registra a fábrica de UoW usada por `with_transaction` quando nenhum
UoW é passado explicitamente.
"""

from django.apps import AppConfig


class TicketsConfig(AppConfig):
    """Configuração do app Tickets."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'src.adapters.django_app.tickets'
    label = 'tickets'
    verbose_name = 'Ciclo de Vida de Tickets'

    def ready(self):
        from src.config.container import get_container
        from src.core.shared import transaction

        container = get_container()
        transaction.configure(container.unit_of_work)
