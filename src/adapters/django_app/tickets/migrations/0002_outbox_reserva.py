"""
Reserva de entrega e efeitos concluídos no outbox.
"""

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('tickets', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='domaineventmodel',
            name='status',
            field=models.CharField(
                max_length=10,
                choices=[
                    ('pending', 'Pendente'),
                    ('processing', 'Em processamento'),
                    ('delivered', 'Entregue'),
                    ('failed', 'Falhou'),
                ],
                default='pending',
                db_index=True,
            ),
        ),
        migrations.AddField(
            model_name='domaineventmodel',
            name='reservado_em',
            field=models.DateTimeField(null=True, blank=True, help_text='Início da entrega em andamento'),
        ),
        migrations.AddField(
            model_name='domaineventmodel',
            name='efeitos_concluidos',
            field=models.JSONField(
                default=list, blank=True, help_text='Efeitos que já tiveram sucesso (não rodam de novo)'
            ),
        ),
    ]
