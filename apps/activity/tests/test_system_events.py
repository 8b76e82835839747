"""Committed domain events land in the activity trail."""

from __future__ import annotations

import pytest

from apps.activity.handlers import record_system_event
from apps.activity.models import SystemEvent
from apps.bookings.application.command_handlers import CheckInCommand, CheckInHandler
from apps.bookings.domain.events import BookingCreated
from apps.finances.services import record_payment

pytestmark = pytest.mark.django_db


def test_booking_events_are_recorded_after_commit(make_booking, period, cash_method, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        booking = make_booking()
    with django_capture_on_commit_callbacks(execute=True):
        record_payment(booking.pk, "1150", cash_method.pk)
    with django_capture_on_commit_callbacks(execute=True):
        CheckInHandler().handle(CheckInCommand(booking_id=booking.pk))

    types = list(SystemEvent.objects.filter(booking_id=booking.pk).order_by("id").values_list("event_type", flat=True))
    assert types == [
        "booking_created",
        "booking_confirmed",
        "payment_recorded",
        "payment_settled",
        "booking_checked_in",
    ]
    created = SystemEvent.objects.get(booking_id=booking.pk, event_type="booking_created")
    assert booking.booking_number in created.message
    assert created.payload["total_price"] == "1150.00"


def test_rejected_command_records_nothing(make_booking, django_capture_on_commit_callbacks):
    booking = make_booking()

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        with pytest.raises(Exception):
            CheckInHandler().handle(CheckInCommand(booking_id=booking.pk))

    assert callbacks == []
    assert not SystemEvent.objects.filter(event_type="booking_checked_in").exists()


def test_duplicate_event_is_logged_not_raised(make_booking):
    booking = make_booking()
    event = BookingCreated(
        booking_id=booking.pk,
        booking_number=booking.booking_number,
        unit_id=booking.unit_id,
        customer_id=booking.customer_id,
        check_in=booking.check_in,
        check_out=booking.check_out,
        status=booking.status,
        total_price=booking.total_price,
    )

    assert record_system_event(event) is not None
    assert record_system_event(event) is None
    assert SystemEvent.objects.filter(event_id=event.event_id).count() == 1
