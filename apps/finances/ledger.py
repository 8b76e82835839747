"""
Ledger posting.

``post_transaction`` writes a header and its balancing lines in one
database transaction; callers treat any exception as "no financial effect".
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List

from django.db import transaction  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.exceptions import ValidationError
from shared.domain.value_objects import quantize_amount

from .domain import posting_rules
from .domain.posting_rules import Leg, ensure_balanced, legs_for
from .models import Account, LedgerLine, LedgerTransaction, PaymentMethod
from .periods import require_open_period

logger = logging.getLogger(__name__)


def _accounts_by_role() -> Dict[str, Account]:
    return {account.role: account for account in Account.objects.exclude(role__isnull=True)}


def _resolve(legs: Iterable[Leg], method: PaymentMethod | None) -> List[tuple]:
    accounts = _accounts_by_role()
    resolved = []
    for leg in legs:
        if leg.role == posting_rules.CASH and method is not None:
            account = method.account
        else:
            account = accounts.get(leg.role)
        if account is None:
            raise ValidationError(
                f"No account configured for role '{leg.role}'; seed the chart of accounts",
                role=leg.role,
            )
        resolved.append((account, leg))
    return resolved


def _write(header: LedgerTransaction, resolved: List[tuple], description: str) -> LedgerTransaction:
    header.save()
    LedgerLine.objects.bulk_create(
        [
            LedgerLine(
                transaction=header,
                account=account,
                debit=leg.debit,
                credit=leg.credit,
                description=description,
            )
            for account, leg in resolved
        ]
    )
    return header


@transaction.atomic
def post_transaction(
    transaction_type: str,
    *,
    source_type: str,
    source_id: int,
    amount,
    transaction_date: date,
    booking=None,
    customer_id: int | None = None,
    method: PaymentMethod | None = None,
    description: str = "",
    tax_amount=Decimal("0.00"),
    refund_of_advance: bool = False,
) -> LedgerTransaction:
    """
    Post a balanced transaction dated ``transaction_date``.

    Raises NoOpenPeriodError when no open period covers the date and
    ValidationError for unknown types, bad amounts or missing accounts.
    """

    if transaction_type in posting_rules.CASH_TYPES and method is None:
        raise ValidationError(
            f"A {transaction_type} needs a payment method",
            transaction_type=transaction_type,
        )
    require_open_period(transaction_date)

    legs = legs_for(transaction_type, amount, tax_amount, refund_of_advance=refund_of_advance)
    ensure_balanced(legs)
    resolved = _resolve(legs, method)

    header = LedgerTransaction(
        transaction_type=transaction_type,
        source_type=source_type,
        source_id=source_id,
        booking=booking,
        amount=quantize_amount(amount),
        tax_amount=quantize_amount(tax_amount or 0),
        customer_id=customer_id,
        method=method,
        transaction_date=transaction_date,
        description=description[:255],
    )
    _write(header, resolved, description[:255])
    logger.info(
        "Posted %s #%s amount=%s source=%s:%s",
        transaction_type,
        header.pk,
        header.amount,
        source_type,
        source_id,
    )
    return header


@transaction.atomic
def reverse_transaction(
    original: LedgerTransaction,
    transaction_date: date,
    description: str = "",
) -> LedgerTransaction:
    """Post the mirror image of ``original`` (every debit becomes a credit)."""

    require_open_period(transaction_date)

    lines = list(original.lines.select_related("account"))
    legs = [Leg(line.account.role or "", debit=line.debit, credit=line.credit).mirrored() for line in lines]
    ensure_balanced(legs)
    debits_deposits = any(
        line.debit > 0 and line.account.role == posting_rules.CUSTOMER_DEPOSITS for line in lines
    )

    text = (description or f"Reversal of {original.transaction_type} #{original.pk}")[:255]
    header = LedgerTransaction(
        transaction_type=posting_rules.reversal_type(original.transaction_type, debits_deposits),
        source_type=original.source_type,
        source_id=original.source_id,
        booking_id=original.booking_id,
        amount=original.amount,
        tax_amount=original.tax_amount,
        customer_id=original.customer_id,
        method_id=original.method_id,
        transaction_date=transaction_date,
        description=text,
        reverses=original,
    )
    resolved = [(line.account, leg) for line, leg in zip(lines, legs)]
    _write(header, resolved, text)
    logger.info("Reversed ledger transaction #%s with #%s", original.pk, header.pk)
    return header


def archive_transactions(transactions: Iterable[LedgerTransaction]) -> int:
    """Hide entries from live ledger views; the rows themselves stay."""

    now = timezone.now()
    count = 0
    for entry in transactions:
        if entry.archived_at is None:
            entry.archived_at = now
            entry.save(update_fields=["archived_at"])
            count += 1
    return count
