"""Unit status services.

``apply_unit_status`` is the writer the booking state machine calls
(check-in -> occupied, check-out -> cleaning). ``set_unit_status`` is the
staff-facing variant that refuses the derived ``occupied`` status and
records temporary holds.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Mapping

from django.db import transaction  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.dateparse import parse_date  # type: ignore

from shared.domain.exceptions import NotFoundError, ValidationError

from .models import TemporaryReservation, Unit

logger = logging.getLogger(__name__)


def get_unit(unit_id, *, lock: bool = False) -> Unit:
    qs = Unit.objects.all()
    if lock:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=unit_id)
    except Unit.DoesNotExist:
        raise NotFoundError(f"Unit {unit_id} not found", unit_id=unit_id)


def apply_unit_status(unit: Unit, status: str) -> None:
    """Write a unit status on behalf of a booking transition."""

    if unit.set_status(status):
        logger.info("Unit %s status -> %s", unit.number, status)


@transaction.atomic
def set_unit_status(unit_id, status: str, hold: Mapping[str, Any] | None = None) -> Unit:
    """
    Set a manual unit status.

    ``reserved`` needs hold details (``customer_name`` and ``reserve_date``)
    and creates a TemporaryReservation next to the status change.
    """

    if status not in Unit.Status.values:
        raise ValidationError(f"Unknown unit status '{status}'", status=status)
    if status not in Unit.MANUAL_STATUSES:
        raise ValidationError(
            f"Status '{status}' is derived from bookings and cannot be set manually",
            status=status,
        )

    unit = get_unit(unit_id, lock=True)

    if status == Unit.Status.RESERVED:
        hold = dict(hold or {})
        customer_name = str(hold.get("customer_name") or "").strip()
        reserve_date = hold.get("reserve_date")
        if isinstance(reserve_date, str):
            reserve_date = parse_date(reserve_date)
        if not customer_name or not reserve_date:
            raise ValidationError(
                "A reservation hold needs customer_name and reserve_date",
                unit_id=unit.pk,
            )
        TemporaryReservation.objects.create(
            unit=unit,
            customer_name=customer_name,
            phone=str(hold.get("phone") or "").strip(),
            reserve_date=reserve_date,
            notes=str(hold.get("notes") or ""),
        )

    apply_unit_status(unit, status)
    return unit


@transaction.atomic
def cancel_reservation(unit_id) -> Unit:
    """Drop every temporary hold of the unit and free it if it was reserved."""

    unit = get_unit(unit_id, lock=True)
    deleted, _ = TemporaryReservation.objects.filter(unit=unit).delete()
    if unit.status == Unit.Status.RESERVED:
        apply_unit_status(unit, Unit.Status.AVAILABLE)
    logger.info("Released %s temporary hold(s) on unit %s", deleted, unit.number)
    return unit


def sync_unit_status(unit: Unit, today: date | None = None) -> str:
    """
    Recompute the derived part of a unit's status for ``today``.

    An active booking covering today makes the unit ``occupied``; an
    ``occupied`` unit no booking covers any more becomes ``available``.
    Cleaning, maintenance and reserved holds are left as staff set them
    unless a booking covers today.
    """

    from apps.bookings.models import Booking  # Local import to prevent circular dependency

    today = today or timezone.localdate()
    covered = Booking.objects.active().filter(
        unit=unit,
        check_in__lte=today,
        check_out__gt=today,
    ).exists()

    if covered:
        if unit.status in (Unit.Status.CLEANING, Unit.Status.MAINTENANCE):
            return unit.status
        apply_unit_status(unit, Unit.Status.OCCUPIED)
    elif unit.status == Unit.Status.OCCUPIED:
        apply_unit_status(unit, Unit.Status.AVAILABLE)
    return unit.status
