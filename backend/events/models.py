# events/models.py
import uuid

from django.conf import settings
from django.db import models

from accounts.models import Organization
from ledger.errors import ImmutableRecordError


class DomainEvent(models.Model):
    """
    Immutable event record.

    One row per state change of a ledger aggregate. The idempotency key is
    unique per organization so a retried command cannot record the same
    change twice.
    """

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="events",
    )

    public_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Event type name (e.g., 'transaction.posted')",
    )

    aggregate_type = models.CharField(
        max_length=50,
        help_text="Entity type (e.g., 'Transaction')",
    )

    aggregate_id = models.CharField(max_length=64)

    idempotency_key = models.CharField(
        max_length=255,
        editable=False,
        help_text="Unique idempotency key per organization",
    )

    data = models.JSONField(
        default=dict,
        help_text="Event data payload",
    )

    caused_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="caused_events",
    )

    occurred_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "idempotency_key"],
                name="uniq_event_organization_idempotency_key",
            ),
        ]
        indexes = [
            models.Index(fields=["organization", "aggregate_type", "aggregate_id"], name="events_org_aggregate_idx"),
        ]

    def __str__(self):
        return f"{self.event_type} {self.aggregate_type}:{self.aggregate_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableRecordError("Domain events are immutable.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordError("Domain events are never deleted.")
