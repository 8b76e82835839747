"""Booking domain models."""

from __future__ import annotations

import secrets
from decimal import Decimal

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.value_objects import DateRange

from .domain.lifecycle import (
    ACTIVE_STATUSES,
    BookingStatus,
    BookingType,
    coerce_status,
    ensure_transition,
)


class BookingQuerySet(models.QuerySet):
    def active(self):
        """Bookings that hold their unit (pending_deposit, confirmed, checked_in)."""
        return self.filter(status__in=Booking.ACTIVE_STATUSES)

    def overlapping(self, unit_id, start, end):
        """Half-open overlap: ``check_in < end AND check_out > start``."""
        return self.filter(unit_id=unit_id, check_in__lt=end, check_out__gt=start)


class Booking(models.Model):
    """Reservation of one unit over ``[check_in, check_out)``."""

    class Status(models.TextChoices):
        PENDING_DEPOSIT = BookingStatus.PENDING_DEPOSIT.value, _("Awaiting deposit")
        CONFIRMED = BookingStatus.CONFIRMED.value, _("Confirmed")
        CHECKED_IN = BookingStatus.CHECKED_IN.value, _("Checked in")
        CHECKED_OUT = BookingStatus.CHECKED_OUT.value, _("Checked out")
        CANCELLED = BookingStatus.CANCELLED.value, _("Cancelled")

    class Type(models.TextChoices):
        DAILY = BookingType.DAILY.value, _("Daily")
        YEARLY = BookingType.YEARLY.value, _("Yearly")

    ACTIVE_STATUSES = [status.value for status in ACTIVE_STATUSES]

    booking_number = models.CharField(max_length=20, unique=True, editable=False)
    customer_id = models.BigIntegerField(
        db_index=True,
        help_text=_("Customer identifier in the customer registry."),
    )
    unit = models.ForeignKey(
        "units.Unit",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    check_in = models.DateField()
    check_out = models.DateField()
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING_DEPOSIT,
    )
    booking_type = models.CharField(
        max_length=10,
        choices=Type.choices,
        default=Type.DAILY,
    )
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    additional_services = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BookingQuerySet.as_manager()

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(check_out__gt=models.F("check_in")),
                name="booking_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["unit", "check_in", "check_out"], name="booking_unit_dates_idx"),
            models.Index(fields=["status"], name="booking_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.booking_number} for unit {self.unit_id}"

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding and not self.booking_number:
            self.booking_number = self.generate_booking_number()
        super().save(*args, **kwargs)

    @staticmethod
    def generate_booking_number() -> str:
        return f"BK{secrets.token_hex(4).upper()}"

    @property
    def date_range(self) -> DateRange:
        return DateRange(self.check_in, self.check_out)

    @property
    def is_active(self) -> bool:
        return self.status in self.ACTIVE_STATUSES

    def transition_to(self, status: str) -> None:
        """Move along a state machine edge and persist the status."""
        ensure_transition(self.booking_number, self.status, status)
        self.status = coerce_status(status).value
        self.save(update_fields=["status", "updated_at"])
