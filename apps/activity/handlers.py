"""Message bus subscribers writing the activity trail."""

from __future__ import annotations

import logging

from django.db import transaction  # type: ignore
from django.utils import timezone  # type: ignore

from shared.application.message_bus import MessageBus, message_bus
from shared.domain.base import DomainEvent

from .models import SystemEvent

logger = logging.getLogger(__name__)


def record_system_event(event: DomainEvent) -> SystemEvent | None:
    """
    Store ``event`` as a SystemEvent.

    Runs after the producing transaction committed; a failure here is
    logged and dropped.
    """

    occurred_at = event.occurred_at
    if timezone.is_naive(occurred_at):
        occurred_at = timezone.make_aware(occurred_at)

    try:
        with transaction.atomic():
            return SystemEvent.objects.create(
                event_id=event.event_id,
                event_type=event.event_type,
                booking_id=getattr(event, "booking_id", None),
                unit_id=getattr(event, "unit_id", None),
                customer_id=getattr(event, "customer_id", None),
                message=event.describe(),
                payload=event.payload(),
                occurred_at=occurred_at,
            )
    except Exception as exc:
        logger.error(
            f"Could not record system event {event.event_type} ({event.event_id}): {exc}",
            exc_info=True,
        )
        return None


def register(bus: MessageBus = message_bus) -> None:
    bus.register_event_handler(DomainEvent, record_system_event)
