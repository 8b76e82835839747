"""Tests for the trial balance and the customer statement."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from apps.bookings.application.command_handlers import CheckInCommand, CheckInHandler
from apps.bookings.application.reversals import CancelBookingCommand, CancelBookingHandler
from apps.finances.models import Account
from apps.finances.services import record_payment, statement, trial_balance
from shared.domain.exceptions import ValidationError

pytestmark = pytest.mark.django_db


@pytest.fixture
def stay(make_booking, period, cash_method):
    """Deposit of 300 at creation, then check-in issues the 1150 invoice."""
    booking = make_booking(start_offset=0, nights=3, deposit="300", deposit_method_id=cash_method.pk)
    CheckInHandler().handle(CheckInCommand(booking_id=booking.pk))
    booking.refresh_from_db()
    return booking


def _by_role(report):
    return {row["role"]: row for row in report["accounts"]}


def test_trial_balance_is_balanced(stay, cash_method):
    record_payment(stay.pk, "850", cash_method.pk)

    report = trial_balance()

    assert report["is_balanced"]
    assert report["total_debit"] == report["total_credit"]
    rows = _by_role(report)
    assert rows[Account.Role.CASH]["debit"] == Decimal("1150.00")
    assert rows[Account.Role.REVENUE]["credit"] == Decimal("1000.00")
    assert rows[Account.Role.VAT_PAYABLE]["credit"] == Decimal("150.00")
    assert rows[Account.Role.RECEIVABLE]["debit"] == Decimal("1150.00")


def test_trial_balance_lists_untouched_accounts(db):
    report = trial_balance()

    assert {row["code"] for row in report["accounts"]} >= {"1000", "1100", "2100", "2200", "4000"}
    assert report["total_debit"] == report["total_credit"] == Decimal("0.00")


def test_trial_balance_ignores_later_entries(stay, today):
    report = trial_balance(as_of=today - timedelta(days=1))

    assert report["total_debit"] == Decimal("0.00")
    assert report["is_balanced"]


def test_trial_balance_skips_cancelled_bookings(make_booking, period, cash_method):
    booking = make_booking(deposit="300", deposit_method_id=cash_method.pk)
    CancelBookingHandler().handle(CancelBookingCommand(booking_id=booking.pk))

    report = trial_balance()

    assert report["total_debit"] == report["total_credit"] == Decimal("0.00")


def test_statement_keeps_a_running_balance(stay, cash_method):
    record_payment(stay.pk, "850", cash_method.pk)

    report = statement(stay.customer_id)

    assert [entry["transaction_type"] for entry in report["entries"]] == [
        "advance_payment",
        "invoice_issue",
        "payment",
    ]
    assert [entry["balance"] for entry in report["entries"]] == [
        Decimal("-300.00"),
        Decimal("850.00"),
        Decimal("0.00"),
    ]
    assert report["opening_balance"] == Decimal("0.00")
    assert report["closing_balance"] == Decimal("0.00")


def test_statement_folds_earlier_entries_into_opening_balance(stay, today):
    report = statement(stay.customer_id, start=today + timedelta(days=1))

    assert report["entries"] == []
    assert report["opening_balance"] == report["closing_balance"] == Decimal("850.00")


def test_statement_is_per_customer(stay):
    assert statement(stay.customer_id + 1)["entries"] == []


def test_statement_rejects_inverted_range(today):
    with pytest.raises(ValidationError):
        statement(7, start=today, end=today - timedelta(days=1))
