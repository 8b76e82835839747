"""Availability checks and booking lookups."""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING

from shared.domain.exceptions import ConflictError, NotFoundError
from shared.domain.value_objects import DateRange
from shared.infrastructure.db import lock_queryset_if_possible

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from .models import Booking

logger = logging.getLogger(__name__)


def _blocking_bookings(unit_id, start: date, end: date, exclude_booking_id=None):
    from .models import Booking  # Local import to prevent circular dependency

    qs = Booking.objects.active().overlapping(unit_id, start, end)
    if exclude_booking_id is not None:
        qs = qs.exclude(pk=exclude_booking_id)
    return qs


def check_availability(unit_id, start: date, end: date, exclude_booking_id=None) -> bool:
    """
    True when no active booking of the unit overlaps ``[start, end)``.

    Database errors propagate; a failed query never reads as "available".
    """

    interval = DateRange(start, end)
    return not _blocking_bookings(
        unit_id,
        interval.start_date,
        interval.end_date,
        exclude_booking_id,
    ).exists()


def ensure_unit_is_available(unit_id, start: date, end: date, *, exclude_booking_id=None) -> None:
    """Raise ConflictError naming every booking that overlaps ``[start, end)``."""

    interval = DateRange(start, end)
    qs = lock_queryset_if_possible(
        _blocking_bookings(unit_id, interval.start_date, interval.end_date, exclude_booking_id)
    )
    conflicts = [
        {
            "booking_number": booking_number,
            "check_in": check_in,
            "check_out": check_out,
        }
        for booking_number, check_in, check_out in qs.values_list(
            "booking_number", "check_in", "check_out"
        )
    ]
    if conflicts:
        logger.warning(
            "Unit %s unavailable for %s: %s",
            unit_id,
            interval,
            ", ".join(c["booking_number"] for c in conflicts),
        )
        raise ConflictError.for_interval(unit_id, interval, conflicts)


def get_booking(booking_id) -> "Booking":
    from .models import Booking  # Local import to prevent circular dependency

    try:
        return Booking.objects.select_related("unit").get(pk=booking_id)
    except Booking.DoesNotExist:
        raise NotFoundError(f"Booking {booking_id} not found", booking_id=booking_id)


def lock_booking(booking_id) -> "Booking":
    """
    Load a booking with a row lock held until the surrounding transaction ends.

    Every mutating operation goes through here, so writers of one booking
    (reschedule, payment, extension) run one after another.
    """

    from .models import Booking  # Local import to prevent circular dependency

    qs = lock_queryset_if_possible(Booking.objects.all())
    try:
        booking = qs.get(pk=booking_id)
    except Booking.DoesNotExist:
        raise NotFoundError(f"Booking {booking_id} not found", booking_id=booking_id)
    return booking
