"""
Ledger Reconciliation

Classifies ledger transactions into settlement contributions and derives
the paid / remaining balance of a booking. Works on plain values so the
rules can be tested without a database.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Tuple

from shared.domain.base import ValueObject

from .posting_rules import ADVANCE_PAYMENT, PAYMENT, REFUND, ZERO

# (debit, credit) of one ledger line
LineAmounts = Tuple[Decimal, Decimal]


def contribution(transaction_type: str, lines: Iterable[LineAmounts]) -> Decimal:
    """
    Contribution of one transaction to the paid amount.

    Payments count their largest debit, refunds subtract their largest
    credit. Invoice issues and credit notes move debt, not cash.
    """
    lines = list(lines)
    if transaction_type in (ADVANCE_PAYMENT, PAYMENT):
        return max((debit for debit, _ in lines), default=ZERO)
    if transaction_type == REFUND:
        return -max((credit for _, credit in lines), default=ZERO)
    return ZERO


@dataclass(frozen=True)
class BookingBalance(ValueObject):
    total: Decimal
    paid: Decimal

    @property
    def remaining(self) -> Decimal:
        return self.total - self.paid

    @property
    def amount_to_request(self) -> Decimal:
        """What the front desk should still ask for; never negative."""
        return max(ZERO, self.remaining)

    @property
    def is_settled(self) -> bool:
        return self.remaining <= 0

    def to_dict(self) -> dict:
        return {
            'total': str(self.total),
            'paid': str(self.paid),
            'remaining': str(self.remaining),
            'amount_to_request': str(self.amount_to_request),
        }


def compute_balance(
    invoice_totals: Iterable[Decimal],
    transactions: Iterable[Tuple[str, Iterable[LineAmounts]]],
) -> BookingBalance:
    """
    ``invoice_totals`` are the totals of non-void invoices; ``transactions``
    are ``(type, lines)`` pairs of the booking's live ledger entries.
    """
    total = sum((Decimal(t) for t in invoice_totals), ZERO)
    paid = sum((contribution(kind, lines) for kind, lines in transactions), ZERO)
    return BookingBalance(total=total, paid=paid)
