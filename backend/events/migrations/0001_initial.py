import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="DomainEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("event_type", models.CharField(db_index=True, help_text="Event type name (e.g., 'transaction.posted')", max_length=100)),
                ("aggregate_type", models.CharField(help_text="Entity type (e.g., 'Transaction')", max_length=50)),
                ("aggregate_id", models.CharField(max_length=64)),
                ("idempotency_key", models.CharField(editable=False, help_text="Unique idempotency key per organization", max_length=255)),
                ("data", models.JSONField(default=dict, help_text="Event data payload")),
                ("occurred_at", models.DateTimeField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("caused_by_user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="caused_events", to=settings.AUTH_USER_MODEL)),
                ("organization", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="events", to="accounts.organization")),
            ],
            options={
                "ordering": ["id"],
                "indexes": [
                    models.Index(fields=["organization", "aggregate_type", "aggregate_id"], name="events_org_aggregate_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("organization", "idempotency_key"), name="uniq_event_organization_idempotency_key"),
                ],
            },
        ),
    ]
