# Generated manually for the splits app

import uuid
from django.core.validators import MinValueValidator
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='SplitRecord',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('version', models.PositiveIntegerField(default=1)),
                ('title', models.CharField(max_length=200)),
                ('type', models.CharField(choices=[('content', 'Content'), ('housing', 'Housing'), ('popup', 'Pop-up'), ('other', 'Other')], max_length=20)),
                ('description', models.TextField(blank=True)),
                ('location', models.CharField(blank=True, max_length=200)),
                ('event_date', models.DateField(blank=True, null=True)),
                ('deadline', models.DateField(blank=True, null=True)),
                ('vendor_name', models.CharField(blank=True, max_length=200, null=True)),
                ('vendor_details', models.TextField(blank=True, null=True)),
                ('total_cost', models.PositiveIntegerField(validators=[MinValueValidator(1)])),
                ('slots', models.PositiveIntegerField(validators=[MinValueValidator(2)])),
                ('cost_per_slot', models.PositiveIntegerField()),
                ('filled_slots', models.PositiveIntegerField(default=1)),
                ('organizer_id', models.CharField(max_length=64)),
                ('participants', models.JSONField(default=list)),
                ('status', models.CharField(choices=[('open', 'Open'), ('full', 'Full'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='open', max_length=20)),
                ('created_at', models.DateTimeField()),
                ('updated_at', models.DateTimeField()),
            ],
            options={
                'db_table': 'splits',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'created_at'], name='splits_status_created_idx'),
                    models.Index(fields=['type', 'created_at'], name='splits_type_created_idx'),
                    models.Index(fields=['organizer_id'], name='splits_organizer_idx'),
                ],
            },
        ),
    ]
