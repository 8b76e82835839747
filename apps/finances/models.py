"""Financial domain models: periods, chart of accounts, invoices, payments, ledger."""

from __future__ import annotations

from decimal import Decimal

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.exceptions import ImmutableError
from shared.infrastructure.db import MAIN_INVOICE_CONSTRAINT


class AccountingPeriod(models.Model):
    """Date range (both ends inclusive) during which postings are permitted."""

    class Status(models.TextChoices):
        OPEN = "open", _("Open")
        CLOSED = "closed", _("Closed")

    name = models.CharField(max_length=100)
    start_date = models.DateField()
    end_date = models.DateField()
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.OPEN)
    closed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Accounting period")
        verbose_name_plural = _("Accounting periods")
        ordering = ["-start_date"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gte=models.F("start_date")),
                name="period_valid_dates",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} [{self.start_date} .. {self.end_date}] ({self.status})"


class Account(models.Model):
    """Chart of accounts entry. Posting rules address accounts by role."""

    class Role(models.TextChoices):
        CASH = "cash", _("Cash")
        RECEIVABLE = "receivable", _("Accounts receivable")
        CUSTOMER_DEPOSITS = "customer_deposits", _("Customer deposits")
        REVENUE = "revenue", _("Rental revenue")
        VAT_PAYABLE = "vat_payable", _("VAT payable")

    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=255)
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        null=True,
        blank=True,
        unique=True,
        help_text=_("Fixed role used by the posting rules; empty for ordinary accounts."),
    )

    class Meta:
        verbose_name = _("Account")
        verbose_name_plural = _("Accounts")
        ordering = ["code"]

    def __str__(self) -> str:
        return f"{self.code} {self.name}"


class PaymentMethod(models.Model):
    """Cash desk, card terminal or bank transfer, booked to its own account."""

    code = models.SlugField(max_length=30, unique=True)
    name = models.CharField(max_length=100)
    account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name="payment_methods")
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name = _("Payment method")
        verbose_name_plural = _("Payment methods")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Invoice(models.Model):
    """Main or extension invoice of a booking."""

    class Kind(models.TextChoices):
        MAIN = "main", _("Main")
        EXTENSION = "extension", _("Extension")

    class Status(models.TextChoices):
        DRAFT = "draft", _("Draft")
        POSTED = "posted", _("Posted")
        PAID = "paid", _("Paid")
        VOID = "void", _("Void")

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="invoices",
    )
    invoice_number = models.CharField(max_length=60, unique=True)
    kind = models.CharField(max_length=10, choices=Kind.choices, default=Kind.MAIN)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.DRAFT)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    period_start = models.DateField(null=True, blank=True)
    period_end = models.DateField(null=True, blank=True)
    issue_date = models.DateField(null=True, blank=True)
    voided_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Invoice")
        verbose_name_plural = _("Invoices")
        ordering = ["booking_id", "created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["booking"],
                condition=models.Q(kind="main"),
                name=MAIN_INVOICE_CONSTRAINT,
            ),
        ]

    def __str__(self) -> str:
        return f"{self.invoice_number} ({self.status})"

    @property
    def is_extension(self) -> bool:
        return self.kind == self.Kind.EXTENSION

    @property
    def nights(self) -> int:
        """Nights billed by the invoice, 0 when it carries no period."""
        if not (self.period_start and self.period_end):
            return 0
        return (self.period_end - self.period_start).days


class Payment(models.Model):
    """
    Printable receipt of a cash movement.

    The ledger transaction is the source of truth; ``ledger_transaction_id``
    is a lookup-only reference to it.
    """

    class Status(models.TextChoices):
        POSTED = "posted", _("Posted")
        VOID = "void", _("Void")

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="payments",
    )
    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payments",
    )
    customer_id = models.BigIntegerField(db_index=True)
    method = models.ForeignKey(PaymentMethod, on_delete=models.PROTECT, related_name="payments")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_date = models.DateField()
    reference = models.CharField(max_length=100, blank=True)
    ledger_transaction_id = models.BigIntegerField(null=True, blank=True, db_index=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.POSTED)
    voided_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Payment")
        verbose_name_plural = _("Payments")
        ordering = ["payment_date", "id"]

    def __str__(self) -> str:
        return f"Payment {self.pk} of {self.amount} for booking {self.booking_id} ({self.status})"


class LedgerTransactionQuerySet(models.QuerySet):
    def live(self):
        """Entries shown in ledger views (archived ones belong to cancelled bookings)."""
        return self.filter(archived_at__isnull=True)

    def of_type(self, transaction_type: str):
        return self.filter(transaction_type=transaction_type)


class LedgerTransaction(models.Model):
    """
    Header of a balanced double entry.

    Append-only: corrections are new entries pointing at the original
    through ``reverses``. ``archived_at`` is the one column that may change.
    """

    class Type(models.TextChoices):
        ADVANCE_PAYMENT = "advance_payment", _("Advance payment")
        PAYMENT = "payment", _("Payment")
        INVOICE_ISSUE = "invoice_issue", _("Invoice issue")
        REFUND = "refund", _("Refund")
        CREDIT_NOTE = "credit_note", _("Credit note")

    class SourceType(models.TextChoices):
        BOOKING = "booking", _("Booking")
        INVOICE = "invoice", _("Invoice")
        PAYMENT = "payment", _("Payment")

    transaction_type = models.CharField(max_length=20, choices=Type.choices)
    source_type = models.CharField(max_length=10, choices=SourceType.choices)
    source_id = models.BigIntegerField()
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_transactions",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    customer_id = models.BigIntegerField(null=True, blank=True, db_index=True)
    method = models.ForeignKey(
        PaymentMethod,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_transactions",
    )
    transaction_date = models.DateField()
    description = models.CharField(max_length=255, blank=True)
    reverses = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="reversals",
    )
    archived_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = LedgerTransactionQuerySet.as_manager()

    class Meta:
        verbose_name = _("Ledger transaction")
        verbose_name_plural = _("Ledger transactions")
        ordering = ["transaction_date", "id"]
        indexes = [
            models.Index(fields=["source_type", "source_id"], name="ledger_source_idx"),
            models.Index(fields=["booking", "transaction_type"], name="ledger_booking_type_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.transaction_type} {self.amount} on {self.transaction_date}"

    def save(self, *args, **kwargs):  # type: ignore
        if not self._state.adding:
            update_fields = kwargs.get("update_fields")
            if not update_fields or set(update_fields) != {"archived_at"}:
                raise ImmutableError(
                    f"Ledger transaction {self.pk} is immutable; post a correcting entry instead",
                    transaction_id=self.pk,
                )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):  # type: ignore
        raise ImmutableError(
            f"Ledger transaction {self.pk} cannot be deleted",
            transaction_id=self.pk,
        )


class LedgerLine(models.Model):
    """One debit or credit leg of a ledger transaction."""

    transaction = models.ForeignKey(
        LedgerTransaction,
        on_delete=models.PROTECT,
        related_name="lines",
    )
    account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name="lines")
    debit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    credit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    description = models.CharField(max_length=255, blank=True)

    class Meta:
        verbose_name = _("Ledger line")
        verbose_name_plural = _("Ledger lines")
        ordering = ["id"]

    def __str__(self) -> str:
        return f"{self.account_id} Dr {self.debit} Cr {self.credit}"

    def save(self, *args, **kwargs):  # type: ignore
        if not self._state.adding:
            raise ImmutableError(f"Ledger line {self.pk} is immutable", line_id=self.pk)
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):  # type: ignore
        raise ImmutableError(f"Ledger line {self.pk} cannot be deleted", line_id=self.pk)
