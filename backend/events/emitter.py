# events/emitter.py
"""
Event emission.

All events go through emit_event so that every payload is validated
against events/types.py and every write is idempotent per organization.

Callers run inside the command's transaction.atomic block: the event row
commits or rolls back together with the ledger rows it describes.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Union

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from events.models import DomainEvent
from events.types import BaseEventData, validate_event_payload

logger = logging.getLogger(__name__)


def emit_event(
    actor,
    event_type: str,
    aggregate_type: str,
    aggregate_id: Any,
    data: Union[Dict[str, Any], BaseEventData],
    *,
    idempotency_key: str,
    occurred_at: Optional[datetime] = None,
) -> DomainEvent:
    """
    Record a domain event in the outbox.

    Args:
        actor: ActorContext supplying organization and causing user
        event_type: Registered event type (see EventTypes)
        aggregate_type: Entity type, e.g. "Transaction"
        aggregate_id: Public id of the entity
        data: Payload dict or BaseEventData instance
        idempotency_key: Unique per organization; a repeat returns the
            existing event instead of writing a second one
        occurred_at: Defaults to now

    Raises:
        InvalidEventPayload: If data doesn't match the schema
        ValueError: If idempotency_key is missing
    """
    if not idempotency_key or not str(idempotency_key).strip():
        raise ValueError("idempotency_key is required")

    if isinstance(data, BaseEventData):
        data = data.to_dict()

    if not getattr(settings, "DISABLE_EVENT_VALIDATION", False):
        validate_event_payload(event_type, data)

    if occurred_at is None:
        occurred_at = timezone.now()

    organization = actor.organization

    # Quick idempotency check (common case)
    existing = DomainEvent.objects.filter(
        organization=organization, idempotency_key=idempotency_key
    ).first()
    if existing:
        return existing

    try:
        with transaction.atomic():
            event = DomainEvent.objects.create(
                organization=organization,
                event_type=event_type,
                aggregate_type=aggregate_type,
                aggregate_id=str(aggregate_id),
                data=data,
                caused_by_user=actor.recorded_user,
                occurred_at=occurred_at,
                idempotency_key=idempotency_key,
            )
    except IntegrityError:
        # Another writer inserted the same key between the check and the insert
        existing = DomainEvent.objects.filter(
            organization=organization, idempotency_key=idempotency_key
        ).first()
        if existing:
            return existing
        raise

    logger.debug(
        "Event recorded",
        extra={
            "event_type": event_type,
            "aggregate_id": str(aggregate_id),
            "organization_id": organization.id,
        },
    )
    return event
