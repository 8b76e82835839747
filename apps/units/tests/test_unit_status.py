"""Tests for unit status services and the periodic sync task."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from apps.bookings.models import Booking
from apps.units.models import TemporaryReservation, Unit
from apps.units.services import cancel_reservation, set_unit_status, sync_unit_status
from apps.units.tasks import sync_unit_statuses
from shared.domain.exceptions import NotFoundError, ValidationError

pytestmark = pytest.mark.django_db


def test_manual_status_change(unit):
    set_unit_status(unit.pk, Unit.Status.MAINTENANCE)

    unit.refresh_from_db()
    assert unit.status == Unit.Status.MAINTENANCE


def test_occupied_is_derived_from_bookings(unit):
    with pytest.raises(ValidationError):
        set_unit_status(unit.pk, Unit.Status.OCCUPIED)


def test_unknown_status_and_unit(unit):
    with pytest.raises(ValidationError):
        set_unit_status(unit.pk, "flooded")
    with pytest.raises(NotFoundError):
        set_unit_status(unit.pk + 100, Unit.Status.CLEANING)


def test_reserved_needs_hold_details(unit):
    with pytest.raises(ValidationError):
        set_unit_status(unit.pk, Unit.Status.RESERVED, hold={"customer_name": "Sara"})

    set_unit_status(
        unit.pk,
        Unit.Status.RESERVED,
        hold={"customer_name": "Sara", "reserve_date": "2024-05-01", "phone": "+966500000000"},
    )

    unit.refresh_from_db()
    assert unit.status == Unit.Status.RESERVED
    hold = TemporaryReservation.objects.get(unit=unit)
    assert hold.reserve_date == date(2024, 5, 1)


def test_cancel_reservation_frees_unit(unit):
    set_unit_status(unit.pk, Unit.Status.RESERVED, hold={"customer_name": "Sara", "reserve_date": "2024-05-01"})

    cancel_reservation(unit.pk)

    unit.refresh_from_db()
    assert unit.status == Unit.Status.AVAILABLE
    assert not TemporaryReservation.objects.filter(unit=unit).exists()


def test_sync_marks_covered_unit_occupied_and_frees_it_later(unit, today):
    Booking.objects.create(
        customer_id=1,
        unit=unit,
        check_in=today - timedelta(days=1),
        check_out=today + timedelta(days=1),
        status=Booking.Status.CONFIRMED,
    )

    assert sync_unit_status(unit, today) == Unit.Status.OCCUPIED
    assert sync_unit_status(unit, today + timedelta(days=2)) == Unit.Status.AVAILABLE


def test_sync_leaves_cleaning_alone(unit, today):
    set_unit_status(unit.pk, Unit.Status.CLEANING)
    unit.refresh_from_db()

    assert sync_unit_status(unit, today) == Unit.Status.CLEANING


def test_periodic_task_counts_changes(unit, other_unit, today):
    Booking.objects.create(
        customer_id=1,
        unit=unit,
        check_in=today,
        check_out=today + timedelta(days=2),
        status=Booking.Status.CHECKED_IN,
    )

    result = sync_unit_statuses.apply().get()

    assert result == {"checked": 2, "changed": 1, "failed": 0}
    unit.refresh_from_db()
    assert unit.status == Unit.Status.OCCUPIED
