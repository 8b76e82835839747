"""Shared pytest fixtures: a unit, an open period, the seeded cash desk."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from apps.bookings.application.command_handlers import CreateBookingCommand, CreateBookingHandler
from apps.bookings.domain.pricing import Pricing
from apps.finances.models import Account, PaymentMethod
from apps.finances.periods import open_period
from apps.units.models import Unit


@pytest.fixture
def today():
    return timezone.localdate()


@pytest.fixture
def unit(db):
    return Unit.objects.create(number="101", unit_type="Studio", floor=1)


@pytest.fixture
def other_unit(db):
    return Unit.objects.create(number="102", unit_type="Studio", floor=1)


@pytest.fixture
def period(db, today):
    return open_period(today - timedelta(days=30), today + timedelta(days=90), "Current")


@pytest.fixture
def cash_method(db):
    account, _ = Account.objects.get_or_create(
        role=Account.Role.CASH,
        defaults={"code": "1000", "name": "Cash on hand"},
    )
    method, _ = PaymentMethod.objects.get_or_create(
        code="cash",
        defaults={"name": "Cash desk", "account": account},
    )
    return method


@pytest.fixture
def make_booking(unit, today):
    """Create a booking through the command handler (amounts 1000 + 150 VAT)."""

    def _make(
        start_offset=1,
        nights=3,
        *,
        booking_unit=None,
        subtotal="1000.00",
        tax="150.00",
        deposit="0",
        deposit_method_id=None,
        customer_id=7,
    ):
        check_in = today + timedelta(days=start_offset)
        pricing = Pricing.build(
            subtotal=subtotal,
            tax_amount=tax,
            total_price=Decimal(subtotal) + Decimal(tax),
            deposit_amount=deposit,
        )
        return CreateBookingHandler().handle(
            CreateBookingCommand(
                customer_id=customer_id,
                unit_id=(booking_unit or unit).pk,
                check_in=check_in,
                check_out=check_in + timedelta(days=nights),
                pricing=pricing,
                deposit_method_id=deposit_method_id,
            )
        )

    return _make


@pytest.fixture
def api_client(db):
    user = get_user_model().objects.create_user(username="frontdesk", password="FrontDesk123")
    client = APIClient()
    client.force_authenticate(user)
    return client
