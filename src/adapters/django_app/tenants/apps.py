"""
Configuração do Django App para Tenants.
"""

from django.apps import AppConfig


class TenantsConfig(AppConfig):
    """Configuração do app Tenants (servidores, papéis, lista negra)."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'src.adapters.django_app.tenants'
    label = 'tenants'
    verbose_name = 'Servidores e Papéis'
