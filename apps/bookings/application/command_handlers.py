"""
Booking Command Handlers

These are the use cases for the booking domain.
They orchestrate domain operations within transactions.

Commands:
- CreateBookingCommand: Create a new booking (optionally with a deposit)
- CheckInCommand: Check in a guest, issuing the main invoice
- CheckOutCommand: Check out a guest, refunding settled deposits
- IssueInvoiceCommand: Issue the main invoice without checking in
- RescheduleCommand / DelayCommand: Move booking dates
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional
import logging

from django.db import DatabaseError, transaction
from django.utils import timezone

from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import DomainError, ImmutableError, ValidationError
from shared.domain.value_objects import DateRange
from apps.bookings.domain.events import (
    BookingCheckedIn,
    BookingCheckedOut,
    BookingCreated,
    BookingRescheduled,
    UnitNeedsCleaning,
)
from apps.bookings.domain.lifecycle import (
    BookingStatus,
    ensure_dates_mutable,
    ensure_transition,
    initial_status,
)
from apps.bookings.domain.pricing import Pricing
from apps.bookings.models import Booking
from apps.bookings.services import ensure_unit_is_available, lock_booking
from apps.finances import services as finance
from apps.finances.domain.events import DepositRefunded
from apps.finances.models import Invoice
from apps.finances.periods import require_open_period
from apps.units.models import Unit
from apps.units.services import apply_unit_status, get_unit, sync_unit_status

logger = logging.getLogger(__name__)


# ===== Commands =====

@dataclass
class CreateBookingCommand:
    """
    Command to create a new booking

    Amounts come from the external pricing component.
    """
    customer_id: int
    unit_id: int
    check_in: date
    check_out: date
    pricing: Pricing
    booking_type: str = Booking.Type.DAILY
    deposit_method_id: Optional[int] = None
    notes: str = ''


@dataclass
class CheckInCommand:
    booking_id: int


@dataclass
class CheckOutCommand:
    booking_id: int


@dataclass
class IssueInvoiceCommand:
    """Command to issue the main invoice ahead of check-in"""
    booking_id: int


@dataclass
class RescheduleCommand:
    booking_id: int
    check_in: date
    check_out: date


@dataclass
class DelayCommand:
    """Command to push both dates back by ``days``"""
    booking_id: int
    days: int


@dataclass
class CheckoutResult:
    """Outcome of a checkout with the per-deposit refund results"""
    booking: Booking
    refunds: List[dict] = field(default_factory=list)

    @property
    def failed_refunds(self) -> List[dict]:
        return [item for item in self.refunds if not item['ok']]


def _identity(booking: Booking) -> dict:
    return finance.event_identity(booking)


def _ensure_not_cancelled(booking: Booking) -> None:
    if booking.status == BookingStatus.CANCELLED:
        raise ImmutableError(
            f"Booking {booking.booking_number} is cancelled",
            booking_number=booking.booking_number,
        )


# ===== Command Handlers =====

class CreateBookingHandler:
    """
    Handler for CreateBooking command

    Double booking prevention (defense in depth):
    1. Lock the unit row (SELECT FOR UPDATE) inside the transaction
    2. Application-level overlap query, raising ConflictError with details
    3. Store-level guard (exclusion constraint / trigger) at write time
    """

    def handle(self, command: CreateBookingCommand) -> Booking:
        logger.info(
            f"Creating booking for unit {command.unit_id}, "
            f"customer {command.customer_id}, dates {command.check_in} - {command.check_out}"
        )

        dates = DateRange(command.check_in, command.check_out)
        pricing = command.pricing
        pricing.validate()
        if command.booking_type not in Booking.Type.values:
            raise ValidationError(f"Unknown booking type '{command.booking_type}'")

        deposit = pricing.deposit_amount
        if deposit > 0 and command.deposit_method_id is None:
            raise ValidationError("A deposit needs a payment method")

        with DjangoUnitOfWork() as uow:
            unit = get_unit(command.unit_id, lock=True)
            ensure_unit_is_available(unit.pk, dates.start_date, dates.end_date)

            today = timezone.localdate()
            method = None
            if deposit > 0:
                # Fail before anything is written
                require_open_period(today)
                method = finance.get_payment_method(command.deposit_method_id)

            booking = Booking.objects.create(
                customer_id=command.customer_id,
                unit=unit,
                check_in=dates.start_date,
                check_out=dates.end_date,
                status=initial_status(deposit).value,
                booking_type=command.booking_type,
                subtotal=pricing.subtotal,
                discount_amount=pricing.discount_amount,
                tax_amount=pricing.tax_amount,
                total_price=pricing.total_price,
                additional_services=pricing.services_as_list(),
                notes=command.notes,
            )
            main_invoice = finance.create_main_invoice(booking)

            if deposit > 0:
                finance.apply_payment(
                    uow,
                    booking,
                    deposit,
                    method,
                    today,
                    invoice=main_invoice,
                    description=f"Deposit {booking.booking_number}",
                )

            sync_unit_status(unit)
            uow.add_event(BookingCreated(
                **_identity(booking),
                check_in=booking.check_in,
                check_out=booking.check_out,
                status=booking.status,
                total_price=booking.total_price,
            ))

        logger.info(f"Booking created successfully: {booking.booking_number} (ID: {booking.pk})")
        return booking


class IssueInvoiceHandler:
    """Handler for issuing the main invoice (the invoice half of check-in)"""

    def handle(self, command: IssueInvoiceCommand):
        logger.info(f"Issuing main invoice for booking {command.booking_id}")

        with DjangoUnitOfWork():
            booking = lock_booking(command.booking_id)
            _ensure_not_cancelled(booking)
            today = timezone.localdate()
            require_open_period(today)
            invoice = finance.issue_booking_invoices(booking, today)

        logger.info(f"Invoice {invoice.invoice_number} issued for booking {booking.booking_number}")
        return invoice


class CheckInHandler:
    """Handler for checking in guest (CONFIRMED -> CHECKED_IN)"""

    def handle(self, command: CheckInCommand) -> Booking:
        logger.info(f"Checking in booking {command.booking_id}")

        with DjangoUnitOfWork() as uow:
            booking = lock_booking(command.booking_id)
            ensure_transition(booking.booking_number, booking.status, BookingStatus.CHECKED_IN)

            today = timezone.localdate()
            require_open_period(today)
            invoice = finance.issue_booking_invoices(booking, today)

            booking.transition_to(BookingStatus.CHECKED_IN)
            apply_unit_status(booking.unit, Unit.Status.OCCUPIED)

            uow.add_event(BookingCheckedIn(**_identity(booking), invoice_number=invoice.invoice_number))

        logger.info(f"Booking {booking.booking_number} checked in successfully")
        return booking


class CheckOutHandler:
    """
    Handler for checking out guest (CHECKED_IN -> CHECKED_OUT)

    Once the balance is settled, every deposit still held (a posted
    payment backed by a live advance_payment entry) is refunded. Refunds
    run one by one in their own savepoint; a failed refund is reported on
    the result and does not undo the checkout.
    """

    def handle(self, command: CheckOutCommand) -> CheckoutResult:
        logger.info(f"Checking out booking {command.booking_id}")

        with DjangoUnitOfWork() as uow:
            booking = lock_booking(command.booking_id)
            booking.transition_to(BookingStatus.CHECKED_OUT)
            apply_unit_status(booking.unit, Unit.Status.CLEANING)

            result = CheckoutResult(booking=booking)
            balance = finance.booking_balance(booking)
            if balance.remaining <= 0 and finance.rentals_setting('REFUND_DEPOSIT_ON_CHECKOUT'):
                result.refunds = self._refund_deposits(uow, booking)

            uow.add_event(BookingCheckedOut(
                **_identity(booking),
                remaining_amount=finance.booking_balance(booking).remaining,
                refunded_deposits=len([r for r in result.refunds if r['ok']]),
            ))
            uow.add_event(UnitNeedsCleaning(**_identity(booking), unit_number=booking.unit.number))

        if result.failed_refunds:
            logger.warning(
                f"Booking {booking.booking_number} checked out with "
                f"{len(result.failed_refunds)} failed deposit refund(s)"
            )
        logger.info(f"Booking {booking.booking_number} checked out successfully")
        return result

    def _refund_deposits(self, uow: DjangoUnitOfWork, booking: Booking) -> List[dict]:
        results = []
        today = timezone.localdate()
        for payment in finance.refundable_deposits(booking):
            try:
                with transaction.atomic():
                    entry = finance.refund_payment(
                        payment,
                        today,
                        description=f"Deposit refund {booking.booking_number}",
                    )
            except (DomainError, DatabaseError) as exc:
                logger.error(
                    f"Deposit refund of payment {payment.pk} failed: {exc}",
                    exc_info=True,
                )
                results.append({'payment_id': payment.pk, 'ok': False, 'error': str(exc)})
                continue

            uow.add_event(DepositRefunded(
                **_identity(booking),
                payment_id=payment.pk,
                transaction_id=entry.pk,
                amount=payment.amount,
            ))
            results.append({'payment_id': payment.pk, 'ok': True, 'transaction_id': entry.pk})
        return results


class RescheduleHandler:
    """
    Handler for moving booking dates

    Allowed only before check-in and before any invoice was posted or paid.
    The new interval is re-validated against other bookings of the unit.
    """

    def handle(self, command: RescheduleCommand) -> Booking:
        logger.info(
            f"Rescheduling booking {command.booking_id} to {command.check_in} - {command.check_out}"
        )
        dates = DateRange(command.check_in, command.check_out)
        return self._move(command.booking_id, lambda booking: dates)

    def _move(self, booking_id, new_dates) -> Booking:
        """``new_dates`` maps the locked booking to its new interval."""
        with DjangoUnitOfWork() as uow:
            booking = lock_booking(booking_id)
            dates = new_dates(booking)
            ensure_dates_mutable(
                booking.booking_number,
                booking.status,
                booking.invoices.values_list('invoice_number', 'status'),
            )
            ensure_unit_is_available(
                booking.unit_id,
                dates.start_date,
                dates.end_date,
                exclude_booking_id=booking.pk,
            )
            extensions = self._shifted_extensions(booking, dates)

            old_check_in, old_check_out = booking.check_in, booking.check_out
            booking.check_in = dates.start_date
            booking.check_out = dates.end_date
            booking.save(update_fields=['check_in', 'check_out', 'updated_at'])
            for invoice in extensions:
                invoice.save(update_fields=['period_start', 'period_end', 'updated_at'])
            sync_unit_status(booking.unit)

            uow.add_event(BookingRescheduled(
                **_identity(booking),
                old_check_in=old_check_in,
                old_check_out=old_check_out,
                check_in=booking.check_in,
                check_out=booking.check_out,
            ))

        logger.info(f"Booking {booking.booking_number} moved to {dates}")
        return booking

    @staticmethod
    def _shifted_extensions(booking, dates) -> list:
        """
        Draft extension invoices moved along with the check-out

        Extension nights stay at the tail of the stay; a new interval too
        short to hold them is rejected before anything is written.
        """
        shift = dates.end_date - booking.check_out
        invoices = list(
            booking.invoices.filter(
                kind=Invoice.Kind.EXTENSION,
                period_start__isnull=False,
            ).exclude(status=Invoice.Status.VOID)
        )
        for invoice in invoices:
            invoice.period_start += shift
            invoice.period_end += shift
            if invoice.period_start < dates.start_date:
                raise ValidationError(
                    f"Stay {dates} is too short to keep extension {invoice.invoice_number}",
                    invoice_number=invoice.invoice_number,
                )
        return invoices


class DelayHandler(RescheduleHandler):
    """Handler for delaying a booking by whole days"""

    def handle(self, command: DelayCommand) -> Booking:
        logger.info(f"Delaying booking {command.booking_id} by {command.days} day(s)")
        if isinstance(command.days, bool) or not isinstance(command.days, int) or command.days <= 0:
            raise ValidationError(f"Delay must be a positive number of days, got {command.days}")

        return self._move(command.booking_id, lambda booking: booking.date_range.shift(command.days))
