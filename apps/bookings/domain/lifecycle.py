"""
Booking Lifecycle

Finite state machine for bookings and the guards that decide whether a
booking may still change its dates.

State transitions:
- create -> PENDING_DEPOSIT (no deposit) or CONFIRMED (deposit > 0)
- PENDING_DEPOSIT -> CONFIRMED (first payment > 0)
- CONFIRMED -> CHECKED_IN (main invoice posted)
- CHECKED_IN -> CHECKED_OUT (unit goes to cleaning)
- PENDING_DEPOSIT / CONFIRMED / CHECKED_IN -> CANCELLED (full reversal)

CHECKED_OUT and CANCELLED accept no further transitions.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Iterable, Tuple

from shared.domain.exceptions import ImmutableError, InvalidTransitionError


class BookingStatus(str, Enum):
    PENDING_DEPOSIT = 'pending_deposit'   # Created without deposit
    CONFIRMED = 'confirmed'               # Deposit or first payment received
    CHECKED_IN = 'checked_in'             # Guest occupies the unit
    CHECKED_OUT = 'checked_out'           # Guest left, unit needs cleaning
    CANCELLED = 'cancelled'               # Fully reversed (terminal)


class BookingType(str, Enum):
    DAILY = 'daily'
    YEARLY = 'yearly'


# Statuses that hold the unit: no two of them may overlap on one unit.
ACTIVE_STATUSES = (
    BookingStatus.PENDING_DEPOSIT,
    BookingStatus.CONFIRMED,
    BookingStatus.CHECKED_IN,
)

# Statuses in which check-in/check-out dates may still move.
DATE_MUTABLE_STATUSES = (
    BookingStatus.PENDING_DEPOSIT,
    BookingStatus.CONFIRMED,
)

# Invoice statuses that freeze the booking dates.
BLOCKING_INVOICE_STATUSES = ('posted', 'paid')

TRANSITIONS = {
    BookingStatus.PENDING_DEPOSIT: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.CHECKED_IN, BookingStatus.CANCELLED},
    BookingStatus.CHECKED_IN: {BookingStatus.CHECKED_OUT, BookingStatus.CANCELLED},
    BookingStatus.CHECKED_OUT: set(),
    BookingStatus.CANCELLED: set(),
}


def coerce_status(value) -> BookingStatus:
    """Accept enum members, Django choices or plain strings."""
    if isinstance(value, BookingStatus):
        return value
    return BookingStatus(str(value))


def can_transition(current: str, target: str) -> bool:
    return coerce_status(target) in TRANSITIONS[coerce_status(current)]


def ensure_transition(booking_number: str, current: str, target: str) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is an edge."""
    if not can_transition(current, target):
        raise InvalidTransitionError(
            booking_number,
            coerce_status(current).value,
            coerce_status(target).value,
        )


def is_active(status: str) -> bool:
    return coerce_status(status) in ACTIVE_STATUSES


def initial_status(deposit_amount: Decimal) -> BookingStatus:
    """Status a new booking starts in, decided by its initial deposit."""
    if deposit_amount and Decimal(deposit_amount) > 0:
        return BookingStatus.CONFIRMED
    return BookingStatus.PENDING_DEPOSIT


def ensure_dates_mutable(
    booking_number: str,
    status: str,
    invoices: Iterable[Tuple[str, str]],
) -> None:
    """
    Guard for reschedule and delay.

    ``invoices`` yields ``(invoice_number, invoice_status)`` pairs. Dates
    are frozen once the stay started or ended, or as soon as any invoice
    was posted or paid.
    """
    if coerce_status(status) not in DATE_MUTABLE_STATUSES:
        raise ImmutableError(
            f"Booking {booking_number} dates cannot change in status {coerce_status(status).value}",
            booking_number=booking_number,
            status=coerce_status(status).value,
        )

    blocking = [
        f"{number} ({invoice_status})"
        for number, invoice_status in invoices
        if invoice_status in BLOCKING_INVOICE_STATUSES
    ]
    if blocking:
        raise ImmutableError(
            f"Booking {booking_number} dates cannot change after invoicing: "
            f"{', '.join(blocking)}; void the invoice first",
            booking_number=booking_number,
            invoices=blocking,
        )
