"""
Configuração do Celery para processamento assíncrono.

O Celery é usado para:
- Executar os efeitos diferidos dos Domain Events (fila events)
- Timers de fechamento automático (tarefas com eta)
- Reprocessar o outbox e limpar eventos antigos (beat)

Arquitetura:
- Broker: RabbitMQ (mensagens entre Django e Workers)
- Backend: Redis (resultados de tarefas)
- Workers: Processos que executam as tarefas

Uso:
    # Iniciar worker
    celery -A src.config.celery worker -l INFO -Q default,events,effects

    # Iniciar beat (tarefas agendadas)
    celery -A src.config.celery beat -l INFO
"""

import os
from celery import Celery
from celery.schedules import crontab
from kombu import Queue, Exchange

# Definir módulo de settings do Django
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'src.config.settings')

# Criar aplicação Celery
app = Celery('ticketsbot')

# Carregar configurações do Django (CELERY_*)
app.config_from_object('django.conf:settings', namespace='CELERY')

app.conf.update(
    # Monitoramento
    worker_send_task_events=True,
    task_send_sent_event=True,
)

# Definir filas
app.conf.task_default_queue = 'default'
app.conf.task_queues = (
    Queue('default', Exchange('default'), routing_key='default'),
    Queue('events', Exchange('events'), routing_key='events.#'),
    Queue('effects', Exchange('effects'), routing_key='effects.#'),
)

# Roteamento de tarefas para filas
app.conf.task_routes = {
    'src.adapters.django_app.events.handlers.dispatch_domain_event': {'queue': 'effects'},
    'src.adapters.django_app.events.handlers.fechar_ticket_automaticamente': {'queue': 'events'},
    'src.adapters.django_app.events.handlers.reprocessar_eventos_pendentes': {'queue': 'events'},
    'src.adapters.django_app.events.handlers.cleanup_old_events': {'queue': 'default'},
}

# Auto-descoberta das tarefas
app.autodiscover_tasks(['src.adapters.django_app.events'], related_name='handlers')

# Tarefas agendadas (beat)
app.conf.beat_schedule = {
    # Drenar o outbox (efeitos não entregues)
    'reprocessar-eventos-pendentes': {
        'task': 'src.adapters.django_app.events.handlers.reprocessar_eventos_pendentes',
        'schedule': 300.0,  # 5 minutos
    },

    # Limpar eventos antigos semanalmente (domingo 3h)
    'cleanup-old-events': {
        'task': 'src.adapters.django_app.events.handlers.cleanup_old_events',
        'schedule': crontab(hour=3, minute=0, day_of_week=0),
    },
}
