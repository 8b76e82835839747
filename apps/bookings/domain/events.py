"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after successful transaction commits.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from shared.domain.base import DomainEvent


@dataclass
class BookingEvent(DomainEvent):
    """Common identity of every booking event."""
    booking_id: int
    booking_number: str
    unit_id: int
    customer_id: int


# ===== Lifecycle Events =====

@dataclass
class BookingCreated(BookingEvent):
    """
    Event: A new booking was created

    Status is pending_deposit, or confirmed when a deposit came with it.
    """
    check_in: date
    check_out: date
    status: str
    total_price: Decimal

    event_type = "booking_created"

    def describe(self) -> str:
        return (
            f"Booking {self.booking_number} created for [{self.check_in}, {self.check_out}) "
            f"({self.status}, total {self.total_price})"
        )


@dataclass
class BookingConfirmed(BookingEvent):
    """Event: First payment received (PENDING_DEPOSIT -> CONFIRMED)"""
    transaction_id: int

    event_type = "booking_confirmed"

    def describe(self) -> str:
        return f"Booking {self.booking_number} confirmed by transaction {self.transaction_id}"


@dataclass
class BookingCheckedIn(BookingEvent):
    """Event: Guest has checked in (CONFIRMED -> CHECKED_IN)"""
    invoice_number: str

    event_type = "booking_checked_in"

    def describe(self) -> str:
        return f"Booking {self.booking_number} checked in, invoice {self.invoice_number} posted"


@dataclass
class BookingCheckedOut(BookingEvent):
    """Event: Guest has checked out (CHECKED_IN -> CHECKED_OUT)"""
    remaining_amount: Decimal
    refunded_deposits: int

    event_type = "booking_checked_out"

    def describe(self) -> str:
        return (
            f"Booking {self.booking_number} checked out, remaining {self.remaining_amount}, "
            f"{self.refunded_deposits} deposit(s) refunded"
        )


@dataclass
class UnitNeedsCleaning(BookingEvent):
    """
    Event: Unit was released by a checkout

    Triggers:
    - Housekeeping queue
    """
    unit_number: str

    event_type = "room_needs_cleaning"

    def describe(self) -> str:
        return f"Unit {self.unit_number} needs cleaning after booking {self.booking_number}"


@dataclass
class BookingCancelled(BookingEvent):
    """
    Event: Booking was cancelled (full reversal)

    Every live ledger entry of the booking was mirrored and archived.
    """
    old_status: str
    reversed_transactions: int

    event_type = "booking_cancelled"

    def describe(self) -> str:
        return (
            f"Booking {self.booking_number} cancelled from {self.old_status}, "
            f"{self.reversed_transactions} ledger entr(y/ies) reversed"
        )


# ===== Date Events =====

@dataclass
class BookingRescheduled(BookingEvent):
    """Event: Dates moved by reschedule or delay"""
    old_check_in: date
    old_check_out: date
    check_in: date
    check_out: date

    event_type = "booking_rescheduled"

    def describe(self) -> str:
        return (
            f"Booking {self.booking_number} moved from [{self.old_check_in}, {self.old_check_out}) "
            f"to [{self.check_in}, {self.check_out})"
        )


@dataclass
class BookingExtended(BookingEvent):
    """Event: Check-out pushed back with an extension invoice"""
    invoice_number: str
    old_check_out: date
    check_out: date
    total_amount: Decimal

    event_type = "booking_extended"

    def describe(self) -> str:
        return (
            f"Booking {self.booking_number} extended to {self.check_out} "
            f"with invoice {self.invoice_number} ({self.total_amount})"
        )


@dataclass
class ExtensionCancelled(BookingEvent):
    """Event: Extension invoice reversed (scoped reversal)"""
    invoice_number: str
    refunded_payments: int
    check_out: date

    event_type = "extension_cancelled"

    def describe(self) -> str:
        return (
            f"Extension {self.invoice_number} of booking {self.booking_number} cancelled, "
            f"{self.refunded_payments} payment(s) refunded"
        )
