"""Extensions, extension cancellation and full booking cancellation."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from unittest import mock

import pytest

from apps.bookings.application.command_handlers import (
    CheckInCommand,
    CheckInHandler,
    DelayCommand,
    DelayHandler,
    RescheduleCommand,
    RescheduleHandler,
)
from apps.bookings.application.reversals import (
    CancelBookingCommand,
    CancelBookingHandler,
    CancelExtensionCommand,
    CancelExtensionHandler,
    ExtendBookingCommand,
    ExtendBookingHandler,
)
from apps.bookings.models import Booking
from apps.finances.models import Invoice, LedgerTransaction, Payment
from apps.finances.services import booking_balance, record_payment
from shared.domain.exceptions import (
    ConflictError,
    ImmutableError,
    InvalidTransitionError,
    PartialReversalError,
    ValidationError,
)

pytestmark = pytest.mark.django_db


@pytest.fixture
def checked_in(make_booking, period, cash_method):
    booking = make_booking(start_offset=0, nights=3, deposit="300", deposit_method_id=cash_method.pk)
    CheckInHandler().handle(CheckInCommand(booking_id=booking.pk))
    booking.refresh_from_db()
    return booking


def _extend(booking, nights=5, amount="500", tax_mode="standard"):
    return ExtendBookingHandler().handle(
        ExtendBookingCommand(
            booking_id=booking.pk,
            new_check_out=booking.check_out + timedelta(days=nights),
            incremental_amount=Decimal(amount),
            tax_mode=tax_mode,
        )
    )


# ===== Extension =====

def test_extension_issues_tagged_invoice(checked_in):
    old_check_out = checked_in.check_out

    invoice = _extend(checked_in)

    checked_in.refresh_from_db()
    assert invoice.kind == Invoice.Kind.EXTENSION
    assert invoice.invoice_number == f"INV-{checked_in.booking_number}-EXT-1"
    assert invoice.status == Invoice.Status.POSTED
    assert (invoice.tax_amount, invoice.total_amount) == (Decimal("75.00"), Decimal("575.00"))
    assert (invoice.period_start, invoice.period_end) == (old_check_out, checked_in.check_out)
    assert checked_in.check_out == old_check_out + timedelta(days=5)
    assert booking_balance(checked_in).total == Decimal("1725.00")


def test_exempt_extension_has_no_tax(checked_in):
    invoice = _extend(checked_in, tax_mode="exempt")

    assert (invoice.tax_amount, invoice.total_amount) == (Decimal("0.00"), Decimal("500.00"))


def test_extension_of_uninvoiced_booking_stays_draft(make_booking):
    booking = make_booking()

    invoice = _extend(booking, nights=2, amount="200")

    assert invoice.status == Invoice.Status.DRAFT
    assert not LedgerTransaction.objects.filter(booking=booking).exists()


def test_extension_into_next_booking_conflicts(checked_in, make_booking):
    make_booking(start_offset=5, nights=2)

    with pytest.raises(ConflictError):
        _extend(checked_in, nights=5)

    checked_in.refresh_from_db()
    assert checked_in.invoices.filter(kind=Invoice.Kind.EXTENSION).count() == 0


def test_extension_needs_later_check_out(checked_in):
    with pytest.raises(ValidationError):
        ExtendBookingHandler().handle(
            ExtendBookingCommand(
                booking_id=checked_in.pk,
                new_check_out=checked_in.check_out,
                incremental_amount=Decimal("100"),
            )
        )


# ===== Extension cancellation =====

def test_cancel_extension_is_scoped_to_its_invoice(checked_in, cash_method):
    main = checked_in.invoices.get(kind=Invoice.Kind.MAIN)
    main_total = main.total_amount
    main_paid = main.paid_amount
    old_check_out = checked_in.check_out
    extension = _extend(checked_in)
    record_payment(checked_in.pk, "575", cash_method.pk, invoice_id=extension.pk)

    cancelled = CancelExtensionHandler().handle(CancelExtensionCommand(invoice_id=extension.pk))

    assert cancelled.status == Invoice.Status.VOID
    credit = LedgerTransaction.objects.get(
        transaction_type=LedgerTransaction.Type.CREDIT_NOTE,
        source_id=extension.pk,
    )
    assert credit.amount == Decimal("575.00")
    assert credit.tax_amount == Decimal("75.00")
    assert not extension.payments.filter(status=Payment.Status.POSTED).exists()

    main.refresh_from_db()
    checked_in.refresh_from_db()
    assert main.status != Invoice.Status.VOID
    assert (main.total_amount, main.paid_amount) == (main_total, main_paid)
    assert Payment.objects.filter(invoice=main, status=Payment.Status.POSTED).count() == 1
    assert checked_in.check_out == old_check_out
    assert booking_balance(checked_in).total == main_total


def test_cancel_extension_twice_is_rejected(checked_in):
    extension = _extend(checked_in)
    CancelExtensionHandler().handle(CancelExtensionCommand(invoice_id=extension.pk))

    with pytest.raises(ImmutableError):
        CancelExtensionHandler().handle(CancelExtensionCommand(invoice_id=extension.pk))


def test_cancel_draft_extension_still_posts_credit_note(make_booking, period):
    booking = make_booking(nights=3)
    old_check_out = booking.check_out
    extension = _extend(booking, nights=5, amount="500")

    cancelled = CancelExtensionHandler().handle(CancelExtensionCommand(invoice_id=extension.pk))

    assert cancelled.status == Invoice.Status.VOID
    entries = LedgerTransaction.objects.filter(source_id=extension.pk, booking=booking)
    issue = entries.get(transaction_type=LedgerTransaction.Type.INVOICE_ISSUE)
    credit = entries.get(transaction_type=LedgerTransaction.Type.CREDIT_NOTE)
    assert credit.amount == issue.amount == Decimal("575.00")
    assert credit.tax_amount == Decimal("75.00")

    booking.refresh_from_db()
    assert booking.check_out == old_check_out
    assert booking.invoices.get(kind=Invoice.Kind.MAIN).status == Invoice.Status.DRAFT


def test_delay_moves_draft_extension_with_the_stay(make_booking, period):
    booking = make_booking(start_offset=1, nights=3)
    extension = _extend(booking, nights=2, amount="200")

    delayed = DelayHandler().handle(DelayCommand(booking_id=booking.pk, days=2))

    extension.refresh_from_db()
    assert extension.period_end == delayed.check_out
    assert extension.period_start == delayed.check_out - timedelta(days=2)

    CancelExtensionHandler().handle(CancelExtensionCommand(invoice_id=extension.pk))

    booking.refresh_from_db()
    assert booking.check_in == delayed.check_in
    assert booking.check_out - booking.check_in == timedelta(days=3)


def test_reschedule_too_short_for_extension_is_rejected(make_booking, today):
    booking = make_booking(start_offset=1, nights=3)
    _extend(booking, nights=2, amount="200")

    with pytest.raises(ValidationError):
        RescheduleHandler().handle(
            RescheduleCommand(
                booking_id=booking.pk,
                check_in=today + timedelta(days=10),
                check_out=today + timedelta(days=11),
            )
        )

    booking.refresh_from_db()
    assert (booking.check_in, booking.check_out) == (today + timedelta(days=1), today + timedelta(days=6))


def test_main_invoice_is_not_an_extension(checked_in):
    main = checked_in.invoices.get(kind=Invoice.Kind.MAIN)

    with pytest.raises(ValidationError):
        CancelExtensionHandler().handle(CancelExtensionCommand(invoice_id=main.pk))


def test_failed_refund_leaves_extension_open(checked_in, cash_method):
    extension = _extend(checked_in)
    record_payment(checked_in.pk, "575", cash_method.pk, invoice_id=extension.pk)

    with mock.patch(
        "apps.bookings.application.reversals.finance.refund_payment",
        side_effect=ValidationError("terminal offline"),
    ):
        with pytest.raises(PartialReversalError) as excinfo:
            CancelExtensionHandler().handle(CancelExtensionCommand(invoice_id=extension.pk))

    assert excinfo.value.to_dict()["context"]["failed"] == 1
    extension.refresh_from_db()
    assert extension.status == Invoice.Status.PAID
    assert not LedgerTransaction.objects.filter(transaction_type=LedgerTransaction.Type.CREDIT_NOTE).exists()


# ===== Full cancellation =====

def test_cancel_booking_reverses_and_archives_everything(checked_in, cash_method):
    record_payment(checked_in.pk, "200", cash_method.pk)
    originals = list(LedgerTransaction.objects.filter(booking=checked_in).values_list("pk", flat=True))

    booking = CancelBookingHandler().handle(CancelBookingCommand(booking_id=checked_in.pk, reason="Guest request"))

    assert booking.status == Booking.Status.CANCELLED
    assert booking.cancelled_at is not None
    assert "Guest request" in booking.notes
    mirrors = LedgerTransaction.objects.filter(reverses_id__in=originals)
    assert mirrors.count() == len(originals)
    assert not LedgerTransaction.objects.live().filter(booking=booking).exists()
    assert not booking.invoices.exclude(status=Invoice.Status.VOID).exists()
    assert not booking.payments.exclude(status=Payment.Status.VOID).exists()


def test_cancelled_booking_is_terminal(make_booking, period, cash_method):
    booking = make_booking()
    CancelBookingHandler().handle(CancelBookingCommand(booking_id=booking.pk))

    with pytest.raises(InvalidTransitionError):
        CancelBookingHandler().handle(CancelBookingCommand(booking_id=booking.pk))
    with pytest.raises(ImmutableError):
        record_payment(booking.pk, "100", cash_method.pk)
