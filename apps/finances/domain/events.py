"""
Finance Domain Events

Published after commit, like the booking events they extend.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from apps.bookings.domain.events import BookingEvent


@dataclass
class PaymentRecorded(BookingEvent):
    """Event: Cash received and posted to the ledger"""
    transaction_id: int
    transaction_type: str
    amount: Decimal
    payment_date: date

    event_type = "payment_recorded"

    def describe(self) -> str:
        return (
            f"{self.transaction_type.replace('_', ' ').capitalize()} of {self.amount} "
            f"recorded for booking {self.booking_number}"
        )


@dataclass
class PaymentSettled(BookingEvent):
    """
    Event: A payment brought the remaining balance to zero or below

    Triggers:
    - Front desk notification
    """
    transaction_id: int
    remaining_amount: Decimal

    event_type = "payment_settled"

    def describe(self) -> str:
        return f"Booking {self.booking_number} fully settled (remaining {self.remaining_amount})"


@dataclass
class DepositRefunded(BookingEvent):
    """Event: Deposit returned on checkout"""
    payment_id: int
    transaction_id: int
    amount: Decimal

    event_type = "deposit_refunded"

    def describe(self) -> str:
        return f"Deposit {self.amount} refunded for booking {self.booking_number}"
