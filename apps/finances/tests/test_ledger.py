"""Tests for ledger posting, reversal and immutability."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from apps.finances.ledger import archive_transactions, post_transaction, reverse_transaction
from apps.finances.models import Account, LedgerLine, LedgerTransaction
from apps.finances.periods import close_period, open_period
from shared.domain.exceptions import ImmutableError, NoOpenPeriodError, ValidationError

pytestmark = pytest.mark.django_db

POSTING_DATE = date(2024, 1, 10)


@pytest.fixture
def january(db):
    return open_period(date(2024, 1, 1), date(2024, 1, 31), "January")


def _totals(entry):
    lines = list(entry.lines.all())
    return sum((line.debit for line in lines), Decimal("0")), sum((line.credit for line in lines), Decimal("0"))


def test_invoice_issue_posts_balanced_lines(january):
    entry = post_transaction(
        LedgerTransaction.Type.INVOICE_ISSUE,
        source_type=LedgerTransaction.SourceType.INVOICE,
        source_id=1,
        amount="1150",
        tax_amount="150",
        transaction_date=POSTING_DATE,
    )

    debits, credits = _totals(entry)
    assert debits == credits == Decimal("1150.00")
    roles = set(entry.lines.values_list("account__role", flat=True))
    assert roles == {Account.Role.RECEIVABLE, Account.Role.REVENUE, Account.Role.VAT_PAYABLE}


def test_cash_leg_uses_payment_method_account(january, cash_method):
    entry = post_transaction(
        LedgerTransaction.Type.PAYMENT,
        source_type=LedgerTransaction.SourceType.BOOKING,
        source_id=1,
        amount="200",
        method=cash_method,
        transaction_date=POSTING_DATE,
    )

    assert entry.lines.filter(account=cash_method.account, debit=Decimal("200.00")).exists()


def test_cash_types_need_a_method(january):
    with pytest.raises(ValidationError):
        post_transaction(
            LedgerTransaction.Type.PAYMENT,
            source_type=LedgerTransaction.SourceType.BOOKING,
            source_id=1,
            amount="200",
            transaction_date=POSTING_DATE,
        )


def test_posting_outside_open_period_writes_nothing(january):
    close_period(january.pk)

    with pytest.raises(NoOpenPeriodError):
        post_transaction(
            LedgerTransaction.Type.INVOICE_ISSUE,
            source_type=LedgerTransaction.SourceType.INVOICE,
            source_id=1,
            amount="100",
            transaction_date=POSTING_DATE,
        )
    assert not LedgerTransaction.objects.exists()


def test_reversal_mirrors_every_line(january, cash_method):
    original = post_transaction(
        LedgerTransaction.Type.ADVANCE_PAYMENT,
        source_type=LedgerTransaction.SourceType.BOOKING,
        source_id=1,
        amount="300",
        method=cash_method,
        transaction_date=POSTING_DATE,
    )

    mirror = reverse_transaction(original, POSTING_DATE)

    assert mirror.transaction_type == LedgerTransaction.Type.REFUND
    assert mirror.reverses_id == original.pk
    original_lines = {(line.account_id, line.debit, line.credit) for line in original.lines.all()}
    mirror_lines = {(line.account_id, line.credit, line.debit) for line in mirror.lines.all()}
    assert original_lines == mirror_lines


def test_entries_are_append_only(january):
    entry = post_transaction(
        LedgerTransaction.Type.INVOICE_ISSUE,
        source_type=LedgerTransaction.SourceType.INVOICE,
        source_id=1,
        amount="100",
        transaction_date=POSTING_DATE,
    )

    entry.amount = Decimal("1.00")
    with pytest.raises(ImmutableError):
        entry.save()
    with pytest.raises(ImmutableError):
        entry.delete()
    line = LedgerLine.objects.filter(transaction=entry).first()
    with pytest.raises(ImmutableError):
        line.save()


def test_archiving_hides_entries_from_live_views(january):
    entry = post_transaction(
        LedgerTransaction.Type.INVOICE_ISSUE,
        source_type=LedgerTransaction.SourceType.INVOICE,
        source_id=1,
        amount="100",
        transaction_date=POSTING_DATE,
    )

    assert archive_transactions([entry]) == 1
    assert archive_transactions([entry]) == 0
    assert not LedgerTransaction.objects.live().exists()
    assert LedgerTransaction.objects.filter(pk=entry.pk).exists()
