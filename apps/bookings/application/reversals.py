"""
Extension & Cancellation Handlers

Commands:
- ExtendBookingCommand: Push check-out back with an extension invoice
- CancelExtensionCommand: Scoped reversal of one extension invoice
- CancelBookingCommand: Full reversal of a booking

Every check (availability, period, state) runs before the first write,
so a rejected command leaves booking and unit untouched.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
import logging

from django.db import DatabaseError
from django.utils import timezone

from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import (
    DomainError,
    ImmutableError,
    PartialReversalError,
    ValidationError,
)
from apps.bookings.domain.events import BookingCancelled, BookingExtended, ExtensionCancelled
from apps.bookings.domain.lifecycle import BookingStatus, ensure_transition, is_active
from apps.bookings.domain.pricing import TaxMode, extension_amounts
from apps.bookings.models import Booking
from apps.bookings.services import ensure_unit_is_available, lock_booking
from apps.finances import services as finance
from apps.finances.ledger import archive_transactions, post_transaction, reverse_transaction
from apps.finances.models import Invoice, LedgerTransaction, Payment
from apps.finances.periods import require_open_period
from apps.units.services import sync_unit_status

logger = logging.getLogger(__name__)


# ===== Commands =====

@dataclass
class ExtendBookingCommand:
    """
    Command to extend a stay

    ``incremental_amount`` is the net price of the added nights, computed
    by the pricing component.
    """
    booking_id: int
    new_check_out: date
    incremental_amount: Decimal
    tax_mode: str = TaxMode.STANDARD


@dataclass
class CancelExtensionCommand:
    invoice_id: int


@dataclass
class CancelBookingCommand:
    booking_id: int
    reason: str = ''


# ===== Command Handlers =====

class ExtendBookingHandler:
    """
    Handler for extending a booking

    The extension invoice is issued right away when the booking is already
    invoiced; otherwise it stays a draft and is issued at check-in.
    """

    def handle(self, command: ExtendBookingCommand) -> Invoice:
        logger.info(f"Extending booking {command.booking_id} to {command.new_check_out}")

        tax, total = extension_amounts(
            command.incremental_amount,
            command.tax_mode,
            finance.rentals_setting('VAT_RATE'),
        )

        with DjangoUnitOfWork() as uow:
            booking = lock_booking(command.booking_id)
            if not is_active(booking.status):
                raise ImmutableError(
                    f"Booking {booking.booking_number} cannot be extended in status {booking.status}",
                    booking_number=booking.booking_number,
                    status=booking.status,
                )

            interval = booking.date_range.extension_to(command.new_check_out)
            ensure_unit_is_available(
                booking.unit_id,
                interval.start_date,
                interval.end_date,
                exclude_booking_id=booking.pk,
            )

            today = timezone.localdate()
            invoiced = booking.invoices.filter(
                status__in=[Invoice.Status.POSTED, Invoice.Status.PAID],
            ).exists()
            if invoiced:
                require_open_period(today)

            invoice = Invoice.objects.create(
                booking=booking,
                invoice_number=finance.extension_invoice_number(booking),
                kind=Invoice.Kind.EXTENSION,
                status=Invoice.Status.DRAFT,
                subtotal=total - tax,
                tax_amount=tax,
                total_amount=total,
                period_start=interval.start_date,
                period_end=interval.end_date,
            )
            if invoiced:
                finance.post_invoice(invoice, today)

            old_check_out = booking.check_out
            booking.check_out = interval.end_date
            booking.save(update_fields=['check_out', 'updated_at'])

            uow.add_event(BookingExtended(
                **finance.event_identity(booking),
                invoice_number=invoice.invoice_number,
                old_check_out=old_check_out,
                check_out=booking.check_out,
                total_amount=invoice.total_amount,
            ))

        logger.info(
            f"Booking {booking.booking_number} extended to {booking.check_out} "
            f"with invoice {invoice.invoice_number}"
        )
        return invoice


class CancelExtensionHandler:
    """
    Handler for scoped reversal of one extension invoice

    1. Refund and void every posted payment of the invoice, one at a time;
       failures are collected and reported together (PartialReversalError)
    2. Issue the invoice if it is still a draft, post a credit note for its
       total, void it and take its nights off the check-out

    No other invoice or payment of the booking is touched.
    """

    def handle(self, command: CancelExtensionCommand) -> Invoice:
        logger.info(f"Cancelling extension invoice {command.invoice_id}")

        invoice = finance.get_invoice(command.invoice_id)
        if not invoice.is_extension:
            raise ValidationError(
                f"Invoice {invoice.invoice_number} is not an extension invoice",
                invoice_number=invoice.invoice_number,
            )
        if invoice.status == Invoice.Status.VOID:
            raise ImmutableError(
                f"Extension invoice {invoice.invoice_number} is already void",
                invoice_number=invoice.invoice_number,
            )

        today = timezone.localdate()
        require_open_period(today)

        results = self._refund_payments(invoice, today)
        failed = [item for item in results if not item['ok']]
        if failed:
            raise PartialReversalError(
                f"{len(failed)} of {len(results)} payment refund(s) failed for "
                f"{invoice.invoice_number}; the invoice stays open",
                results,
            )

        with DjangoUnitOfWork() as uow:
            booking = lock_booking(invoice.booking_id)
            invoice = finance.get_invoice(invoice.pk, lock=True)

            # A draft is issued first so the credit note always offsets a receivable.
            finance.post_invoice(invoice, today)
            post_transaction(
                LedgerTransaction.Type.CREDIT_NOTE,
                source_type=LedgerTransaction.SourceType.INVOICE,
                source_id=invoice.pk,
                booking=booking,
                amount=invoice.total_amount,
                tax_amount=invoice.tax_amount,
                customer_id=booking.customer_id,
                transaction_date=today,
                description=f"Credit note for {invoice.invoice_number}",
            )

            invoice.status = Invoice.Status.VOID
            invoice.voided_at = timezone.now()
            invoice.save(update_fields=['status', 'voided_at', 'updated_at'])
            finance.recompute_invoice_paid(invoice)

            nights = invoice.nights
            if nights and booking.check_out - timedelta(days=nights) > booking.check_in:
                booking.check_out -= timedelta(days=nights)
                booking.save(update_fields=['check_out', 'updated_at'])
                sync_unit_status(booking.unit)

            uow.add_event(ExtensionCancelled(
                **finance.event_identity(booking),
                invoice_number=invoice.invoice_number,
                refunded_payments=len(results),
                check_out=booking.check_out,
            ))

        logger.info(f"Extension {invoice.invoice_number} cancelled, {len(results)} payment(s) refunded")
        return invoice

    def _refund_payments(self, invoice: Invoice, today: date) -> list:
        results = []
        payment_ids = list(
            invoice.payments.filter(status=Payment.Status.POSTED).order_by('id').values_list('pk', flat=True)
        )
        for payment_id in payment_ids:
            try:
                with DjangoUnitOfWork():
                    lock_booking(invoice.booking_id)
                    payment = Payment.objects.select_related('method', 'invoice', 'booking').get(pk=payment_id)
                    if payment.status != Payment.Status.POSTED:
                        results.append({'payment_id': payment_id, 'ok': True, 'skipped': True})
                        continue
                    entry = finance.refund_payment(
                        payment,
                        today,
                        description=f"Refund for cancelled extension {invoice.invoice_number}",
                    )
            except (DomainError, DatabaseError) as exc:
                logger.error(f"Refund of payment {payment_id} failed: {exc}", exc_info=True)
                results.append({'payment_id': payment_id, 'ok': False, 'error': str(exc)})
                continue
            results.append({'payment_id': payment_id, 'ok': True, 'transaction_id': entry.pk})
        return results


class CancelBookingHandler:
    """
    Handler for cancelling a booking (full reversal)

    In one transaction: mirror every live ledger entry, archive originals
    and mirrors, void invoices and payments, mark the booking cancelled.
    Archived entries drop out of live ledger views.
    """

    def handle(self, command: CancelBookingCommand) -> Booking:
        logger.info(f"Cancelling booking {command.booking_id}, reason: {command.reason}")

        with DjangoUnitOfWork() as uow:
            booking = lock_booking(command.booking_id)
            old_status = booking.status
            ensure_transition(booking.booking_number, booking.status, BookingStatus.CANCELLED)

            live = list(LedgerTransaction.objects.live().filter(booking=booking).order_by('id'))
            today = timezone.localdate()
            if live:
                require_open_period(today)

            mirrors = [
                reverse_transaction(entry, today, f"Cancellation of booking {booking.booking_number}")
                for entry in live
            ]
            archive_transactions(live + mirrors)

            now = timezone.now()
            booking.invoices.exclude(status=Invoice.Status.VOID).update(
                status=Invoice.Status.VOID,
                voided_at=now,
                updated_at=now,
            )
            booking.payments.filter(status=Payment.Status.POSTED).update(
                status=Payment.Status.VOID,
                voided_at=now,
            )

            booking.transition_to(BookingStatus.CANCELLED)
            booking.cancelled_at = now
            if command.reason:
                booking.notes = f"{booking.notes}\nCancelled: {command.reason}".strip()
            booking.save(update_fields=['cancelled_at', 'notes', 'updated_at'])
            sync_unit_status(booking.unit)

            uow.add_event(BookingCancelled(
                **finance.event_identity(booking),
                old_status=old_status,
                reversed_transactions=len(live),
            ))

        logger.info(f"Booking {booking.booking_number} cancelled successfully")
        return booking
