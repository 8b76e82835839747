"""
Posting Rules

Pure double-entry rules: which account roles a transaction type debits
and credits. Accounts are resolved by the ledger service; the ``cash``
role stands for the payment method's own account.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Sequence

from shared.domain.exceptions import UnbalancedEntryError, ValidationError
from shared.domain.value_objects import quantize_amount

ADVANCE_PAYMENT = "advance_payment"
PAYMENT = "payment"
INVOICE_ISSUE = "invoice_issue"
REFUND = "refund"
CREDIT_NOTE = "credit_note"

TRANSACTION_TYPES = (ADVANCE_PAYMENT, PAYMENT, INVOICE_ISSUE, REFUND, CREDIT_NOTE)

# Types that move money through a payment method.
CASH_TYPES = (ADVANCE_PAYMENT, PAYMENT, REFUND)

CASH = "cash"
RECEIVABLE = "receivable"
CUSTOMER_DEPOSITS = "customer_deposits"
REVENUE = "revenue"
VAT_PAYABLE = "vat_payable"

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class Leg:
    role: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO

    def mirrored(self) -> "Leg":
        return Leg(self.role, debit=self.credit, credit=self.debit)


def legs_for(
    transaction_type: str,
    amount,
    tax_amount=ZERO,
    *,
    refund_of_advance: bool = False,
) -> List[Leg]:
    """
    Balanced legs of a transaction.

    invoice_issue  Dr receivable total; Cr revenue net; Cr VAT tax
    advance_payment Dr cash; Cr customer deposits
    payment        Dr cash; Cr receivable
    refund         Dr customer deposits (advance) or receivable; Cr cash
    credit_note    Dr revenue net; Dr VAT tax; Cr receivable
    """
    amount = quantize_amount(amount)
    tax = quantize_amount(tax_amount or ZERO)
    if amount <= 0:
        raise ValidationError(f"Transaction amount must be positive, got {amount}", amount=str(amount))
    if tax < 0 or tax > amount:
        raise ValidationError(
            f"Tax {tax} must lie between 0 and the amount {amount}",
            amount=str(amount),
            tax_amount=str(tax),
        )

    if transaction_type == INVOICE_ISSUE:
        legs = [Leg(RECEIVABLE, debit=amount), Leg(REVENUE, credit=amount - tax)]
        if tax:
            legs.append(Leg(VAT_PAYABLE, credit=tax))
        return legs
    if transaction_type == CREDIT_NOTE:
        legs = [Leg(REVENUE, debit=amount - tax)]
        if tax:
            legs.append(Leg(VAT_PAYABLE, debit=tax))
        legs.append(Leg(RECEIVABLE, credit=amount))
        return legs
    if transaction_type == ADVANCE_PAYMENT:
        return [Leg(CASH, debit=amount), Leg(CUSTOMER_DEPOSITS, credit=amount)]
    if transaction_type == PAYMENT:
        return [Leg(CASH, debit=amount), Leg(RECEIVABLE, credit=amount)]
    if transaction_type == REFUND:
        settled = CUSTOMER_DEPOSITS if refund_of_advance else RECEIVABLE
        return [Leg(settled, debit=amount), Leg(CASH, credit=amount)]

    raise ValidationError(f"Unknown transaction type '{transaction_type}'", transaction_type=transaction_type)


def ensure_balanced(legs: Sequence) -> None:
    debits = sum((leg.debit for leg in legs), ZERO)
    credits = sum((leg.credit for leg in legs), ZERO)
    if debits != credits or debits == ZERO:
        raise UnbalancedEntryError(debits, credits)


def reversal_type(transaction_type: str, debits_deposits: bool = False) -> str:
    """
    Type of the mirrored entry that cancels ``transaction_type``.

    A mirrored refund puts money back where it came from: the deposit
    liability for a refunded advance, receivables otherwise.
    """
    if transaction_type == INVOICE_ISSUE:
        return CREDIT_NOTE
    if transaction_type == CREDIT_NOTE:
        return INVOICE_ISSUE
    if transaction_type in (ADVANCE_PAYMENT, PAYMENT):
        return REFUND
    if transaction_type == REFUND:
        return ADVANCE_PAYMENT if debits_deposits else PAYMENT
    raise ValidationError(f"Unknown transaction type '{transaction_type}'", transaction_type=transaction_type)
