"""
Invoice, payment and balance services.

Callers own the transaction: the booking command handlers wrap these in a
DjangoUnitOfWork and pass it in so events go out after commit.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from django.conf import settings  # type: ignore
from django.db import DatabaseError, models, transaction  # type: ignore
from django.db.models.functions import Coalesce  # type: ignore
from django.utils import timezone  # type: ignore

from apps.bookings.domain.events import BookingConfirmed
from apps.bookings.domain.lifecycle import BookingStatus
from apps.bookings.services import lock_booking
from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import ImmutableError, NotFoundError, ValidationError
from shared.domain.value_objects import quantize_amount

from .domain.events import PaymentRecorded, PaymentSettled
from .domain.reconciliation import BookingBalance, compute_balance
from .ledger import post_transaction
from .models import Account, Invoice, LedgerLine, LedgerTransaction, Payment, PaymentMethod
from .periods import require_open_period

logger = logging.getLogger(__name__)

# Ledger legs that make up a customer's own account.
CUSTOMER_ROLES = (Account.Role.RECEIVABLE, Account.Role.CUSTOMER_DEPOSITS)
ZERO_AMOUNT = models.Value(Decimal("0.00"), output_field=models.DecimalField(max_digits=14, decimal_places=2))


def rentals_setting(name: str):
    defaults = {
        "CURRENCY": "SAR",
        "VAT_RATE": "0.15",
        "INVOICE_PREFIX": "INV",
        "EXTENSION_TAG": "EXT",
        "REFUND_DEPOSIT_ON_CHECKOUT": True,
    }
    return getattr(settings, "RENTALS", {}).get(name, defaults[name])


def event_identity(booking) -> dict:
    return {
        "booking_id": booking.pk,
        "booking_number": booking.booking_number,
        "unit_id": booking.unit_id,
        "customer_id": booking.customer_id,
    }


# ===== Lookups =====

def get_invoice(invoice_id, *, lock: bool = False) -> Invoice:
    qs = Invoice.objects.select_related("booking")
    if lock:
        qs = qs.select_for_update(of=("self",))
    try:
        return qs.get(pk=invoice_id)
    except Invoice.DoesNotExist:
        raise NotFoundError(f"Invoice {invoice_id} not found", invoice_id=invoice_id)


def get_payment_method(method_id) -> PaymentMethod:
    try:
        return PaymentMethod.objects.select_related("account").get(pk=method_id, is_active=True)
    except PaymentMethod.DoesNotExist:
        raise NotFoundError(f"Payment method {method_id} not found", method_id=method_id)


def main_invoice_for(booking) -> Optional[Invoice]:
    return booking.invoices.filter(kind=Invoice.Kind.MAIN).first()


def has_invoice_issue(booking) -> bool:
    return LedgerTransaction.objects.live().filter(
        booking=booking,
        transaction_type=LedgerTransaction.Type.INVOICE_ISSUE,
    ).exists()


def booking_balance(booking) -> BookingBalance:
    """Balance from non-void invoices and live ledger entries of the booking."""

    totals = booking.invoices.exclude(status=Invoice.Status.VOID).values_list("total_amount", flat=True)
    entries = (
        LedgerTransaction.objects.live()
        .filter(booking=booking)
        .prefetch_related("lines")
    )
    return compute_balance(
        totals,
        [
            (entry.transaction_type, [(line.debit, line.credit) for line in entry.lines.all()])
            for entry in entries
        ],
    )


# ===== Invoices =====

def main_invoice_number(booking) -> str:
    return f"{rentals_setting('INVOICE_PREFIX')}-{booking.booking_number}"


def extension_invoice_number(booking) -> str:
    sequence = booking.invoices.filter(kind=Invoice.Kind.EXTENSION).count() + 1
    return f"{main_invoice_number(booking)}-{rentals_setting('EXTENSION_TAG')}-{sequence}"


def create_main_invoice(booking, status: str = Invoice.Status.DRAFT) -> Invoice:
    """Main invoice carrying the booking's pricing."""

    invoice = Invoice.objects.create(
        booking=booking,
        invoice_number=main_invoice_number(booking),
        kind=Invoice.Kind.MAIN,
        status=status,
        subtotal=booking.total_price - booking.tax_amount,
        tax_amount=booking.tax_amount,
        total_amount=booking.total_price,
        issue_date=timezone.localdate() if status != Invoice.Status.DRAFT else None,
    )
    logger.info("Created %s main invoice %s", status, invoice.invoice_number)
    return invoice


def post_invoice(invoice: Invoice, posting_date: date) -> Optional[LedgerTransaction]:
    """
    Move a draft invoice to posted and post its ``invoice_issue`` once.

    Returns the new ledger entry, or None when one already existed.
    """

    if invoice.status == Invoice.Status.VOID:
        raise ImmutableError(
            f"Invoice {invoice.invoice_number} is void and cannot be issued",
            invoice_number=invoice.invoice_number,
        )
    if invoice.status == Invoice.Status.DRAFT:
        invoice.status = Invoice.Status.POSTED
        invoice.issue_date = posting_date
        invoice.save(update_fields=["status", "issue_date", "updated_at"])

    already_issued = LedgerTransaction.objects.live().filter(
        transaction_type=LedgerTransaction.Type.INVOICE_ISSUE,
        source_type=LedgerTransaction.SourceType.INVOICE,
        source_id=invoice.pk,
    ).exists()
    if already_issued or invoice.total_amount <= 0:
        return None

    booking = invoice.booking
    return post_transaction(
        LedgerTransaction.Type.INVOICE_ISSUE,
        source_type=LedgerTransaction.SourceType.INVOICE,
        source_id=invoice.pk,
        booking=booking,
        amount=invoice.total_amount,
        tax_amount=invoice.tax_amount,
        customer_id=booking.customer_id,
        transaction_date=posting_date,
        description=f"Invoice {invoice.invoice_number}",
    )


def issue_booking_invoices(booking, posting_date: date) -> Invoice:
    """
    Ensure a posted main invoice exists and every draft invoice is issued.

    Safe to repeat: the main invoice is unique per booking and each
    invoice gets a single ``invoice_issue`` entry.
    """

    main = main_invoice_for(booking)
    if main is None:
        main = create_main_invoice(booking, status=Invoice.Status.POSTED)

    for invoice in booking.invoices.exclude(status=Invoice.Status.VOID).order_by("id"):
        post_invoice(invoice, posting_date)
        recompute_invoice_paid(invoice)
    return main


def recompute_invoice_paid(invoice: Invoice) -> Invoice:
    """Paid amount from the invoice's posted payments; flips posted <-> paid."""

    paid = sum(
        invoice.payments.filter(status=Payment.Status.POSTED).values_list("amount", flat=True),
        Decimal("0.00"),
    )
    status = invoice.status
    if status in (Invoice.Status.POSTED, Invoice.Status.PAID):
        settled = invoice.total_amount > 0 and paid >= invoice.total_amount
        status = Invoice.Status.PAID if settled else Invoice.Status.POSTED

    if paid != invoice.paid_amount or status != invoice.status:
        invoice.paid_amount = paid
        invoice.status = status
        invoice.save(update_fields=["paid_amount", "status", "updated_at"])
    return invoice


# ===== Payments =====

def apply_payment(
    uow: DjangoUnitOfWork,
    booking,
    amount,
    method: PaymentMethod,
    payment_date: date,
    *,
    invoice: Invoice | None = None,
    reference: str = "",
    description: str = "",
) -> LedgerTransaction:
    """
    Post a payment for an already locked booking.

    The type is ``payment`` once the booking has an ``invoice_issue``
    entry, ``advance_payment`` before that. The Payment receipt row is
    secondary: if it cannot be written the ledger entry stands.
    """

    amount = quantize_amount(amount)
    if amount <= 0:
        raise ValidationError(f"Payment amount must be positive, got {amount}", amount=str(amount))
    if booking.status == BookingStatus.CANCELLED:
        raise ImmutableError(
            f"Booking {booking.booking_number} is cancelled; payments are not accepted",
            booking_number=booking.booking_number,
        )
    require_open_period(payment_date)

    if invoice is None:
        invoice = booking.invoices.exclude(status=Invoice.Status.VOID).filter(kind=Invoice.Kind.MAIN).first()
    elif invoice.booking_id != booking.pk or invoice.status == Invoice.Status.VOID:
        raise ValidationError(
            f"Invoice {invoice.invoice_number} cannot take payments for booking {booking.booking_number}",
            invoice_number=invoice.invoice_number,
        )

    before = booking_balance(booking)
    transaction_type = (
        LedgerTransaction.Type.PAYMENT if has_invoice_issue(booking) else LedgerTransaction.Type.ADVANCE_PAYMENT
    )
    entry = post_transaction(
        transaction_type,
        source_type=LedgerTransaction.SourceType.INVOICE if invoice else LedgerTransaction.SourceType.BOOKING,
        source_id=invoice.pk if invoice else booking.pk,
        booking=booking,
        amount=amount,
        customer_id=booking.customer_id,
        method=method,
        transaction_date=payment_date,
        description=description or f"{transaction_type.replace('_', ' ').capitalize()} {booking.booking_number}",
    )

    try:
        with transaction.atomic():
            Payment.objects.create(
                booking=booking,
                invoice=invoice,
                customer_id=booking.customer_id,
                method=method,
                amount=amount,
                payment_date=payment_date,
                reference=reference,
                ledger_transaction_id=entry.pk,
            )
    except DatabaseError as exc:
        logger.error(
            "Payment receipt for ledger transaction #%s could not be stored: %s",
            entry.pk,
            exc,
            exc_info=True,
        )
    else:
        if invoice is not None:
            recompute_invoice_paid(invoice)

    identity = event_identity(booking)
    if booking.status == BookingStatus.PENDING_DEPOSIT:
        booking.transition_to(BookingStatus.CONFIRMED)
        uow.add_event(BookingConfirmed(**identity, transaction_id=entry.pk))
        logger.info(f"Booking {booking.booking_number} confirmed by first payment")

    uow.add_event(PaymentRecorded(
        **identity,
        transaction_id=entry.pk,
        transaction_type=transaction_type,
        amount=amount,
        payment_date=payment_date,
    ))

    after = booking_balance(booking)
    if before.remaining > 0 and after.remaining <= 0:
        uow.add_event(PaymentSettled(**identity, transaction_id=entry.pk, remaining_amount=after.remaining))

    return entry


def record_payment(
    booking_id,
    amount,
    method_id,
    payment_date: date | None = None,
    *,
    invoice_id=None,
    reference: str = "",
    description: str = "",
) -> LedgerTransaction:
    """Record a payment against a booking (optionally a specific invoice)."""

    payment_date = payment_date or timezone.localdate()
    logger.info(f"Recording payment of {amount} for booking {booking_id}")

    with DjangoUnitOfWork() as uow:
        booking = lock_booking(booking_id)
        method = get_payment_method(method_id)
        invoice = get_invoice(invoice_id) if invoice_id is not None else None
        entry = apply_payment(
            uow,
            booking,
            amount,
            method,
            payment_date,
            invoice=invoice,
            reference=reference,
            description=description,
        )
    return entry


def refund_payment(payment: Payment, refund_date: date, description: str = "") -> LedgerTransaction:
    """
    Post a refund for a posted payment and void it.

    A refunded advance is taken back out of customer deposits; a refunded
    regular payment out of receivables.
    """

    if payment.status != Payment.Status.POSTED:
        raise ImmutableError(f"Payment {payment.pk} is already void", payment_id=payment.pk)

    original = None
    if payment.ledger_transaction_id:
        original = LedgerTransaction.objects.filter(pk=payment.ledger_transaction_id).first()
    refund_of_advance = bool(
        original and original.transaction_type == LedgerTransaction.Type.ADVANCE_PAYMENT
    )

    entry = post_transaction(
        LedgerTransaction.Type.REFUND,
        source_type=LedgerTransaction.SourceType.PAYMENT,
        source_id=payment.pk,
        booking=payment.booking,
        amount=payment.amount,
        customer_id=payment.customer_id,
        method=payment.method,
        transaction_date=refund_date,
        description=description or f"Refund of payment {payment.pk}",
        refund_of_advance=refund_of_advance,
    )

    payment.status = Payment.Status.VOID
    payment.voided_at = timezone.now()
    payment.save(update_fields=["status", "voided_at"])
    if payment.invoice_id:
        recompute_invoice_paid(payment.invoice)

    logger.info("Refunded payment %s with ledger transaction #%s", payment.pk, entry.pk)
    return entry


def refundable_deposits(booking) -> List[Payment]:
    """Posted payments whose ledger entry is a live ``advance_payment``."""

    advance_ids = LedgerTransaction.objects.live().filter(
        booking=booking,
        transaction_type=LedgerTransaction.Type.ADVANCE_PAYMENT,
    ).values_list("pk", flat=True)
    return list(
        Payment.objects.select_related("method", "invoice", "booking")
        .filter(
            booking=booking,
            status=Payment.Status.POSTED,
            ledger_transaction_id__in=list(advance_ids),
        )
        .order_by("id")
    )


# ===== Reports =====

def trial_balance(as_of: Optional[date] = None) -> dict:
    """
    Debit and credit totals per account from live ledger lines.

    Lines dated after ``as_of`` are left out. Every account of the chart
    appears, untouched ones with zero totals.
    """

    line_filter = models.Q(lines__transaction__archived_at__isnull=True)
    if as_of is not None:
        line_filter &= models.Q(lines__transaction__transaction_date__lte=as_of)

    accounts = Account.objects.annotate(
        total_debit=Coalesce(models.Sum("lines__debit", filter=line_filter), ZERO_AMOUNT),
        total_credit=Coalesce(models.Sum("lines__credit", filter=line_filter), ZERO_AMOUNT),
    ).order_by("code")

    rows = []
    for account in accounts:
        rows.append({
            "account_id": account.pk,
            "code": account.code,
            "name": account.name,
            "role": account.role,
            "debit": account.total_debit,
            "credit": account.total_credit,
            "balance": account.total_debit - account.total_credit,
        })

    total_debit = sum((row["debit"] for row in rows), Decimal("0.00"))
    total_credit = sum((row["credit"] for row in rows), Decimal("0.00"))
    return {
        "as_of": as_of,
        "accounts": rows,
        "total_debit": total_debit,
        "total_credit": total_credit,
        "is_balanced": total_debit == total_credit,
    }


def statement(customer_id: int, start: Optional[date] = None, end: Optional[date] = None) -> dict:
    """
    Customer account statement with a running balance.

    Only the customer-facing legs count (receivable and customer deposits),
    signed debit minus credit: a positive balance is owed by the customer,
    a negative one is held for them. Entries before ``start`` fold into the
    opening balance.
    """

    if start and end and start > end:
        raise ValidationError(
            f"Statement start {start} is after its end {end}",
            start=str(start),
            end=str(end),
        )

    lines = LedgerLine.objects.filter(
        transaction__customer_id=customer_id,
        transaction__archived_at__isnull=True,
        account__role__in=CUSTOMER_ROLES,
    )
    if end is not None:
        lines = lines.filter(transaction__transaction_date__lte=end)

    opening = Decimal("0.00")
    if start is not None:
        before = lines.filter(transaction__transaction_date__lt=start).aggregate(
            debit=models.Sum("debit"),
            credit=models.Sum("credit"),
        )
        opening = (before["debit"] or Decimal("0.00")) - (before["credit"] or Decimal("0.00"))
        lines = lines.filter(transaction__transaction_date__gte=start)

    entries = []
    balance = opening
    rows = (
        lines.values(
            "transaction_id",
            "transaction__transaction_date",
            "transaction__transaction_type",
            "transaction__booking_id",
            "transaction__description",
        )
        .annotate(debit=models.Sum("debit"), credit=models.Sum("credit"))
        .order_by("transaction__transaction_date", "transaction_id")
    )
    for row in rows:
        balance += row["debit"] - row["credit"]
        entries.append({
            "transaction_id": row["transaction_id"],
            "date": row["transaction__transaction_date"],
            "transaction_type": row["transaction__transaction_type"],
            "booking_id": row["transaction__booking_id"],
            "description": row["transaction__description"],
            "debit": row["debit"],
            "credit": row["credit"],
            "balance": balance,
        })

    return {
        "customer_id": customer_id,
        "start": start,
        "end": end,
        "opening_balance": opening,
        "entries": entries,
        "total_debit": sum((entry["debit"] for entry in entries), Decimal("0.00")),
        "total_credit": sum((entry["credit"] for entry in entries), Decimal("0.00")),
        "closing_balance": balance,
    }
