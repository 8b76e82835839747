"""Unit domain models."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Unit(models.Model):
    """A rentable unit (room, apartment) of a hotel."""

    class Status(models.TextChoices):
        AVAILABLE = "available", _("Available")
        OCCUPIED = "occupied", _("Occupied")
        CLEANING = "cleaning", _("Needs cleaning")
        MAINTENANCE = "maintenance", _("Under maintenance")
        RESERVED = "reserved", _("Temporarily reserved")

    #: Statuses staff may set by hand; ``occupied`` is always derived.
    MANUAL_STATUSES = (Status.AVAILABLE, Status.CLEANING, Status.MAINTENANCE, Status.RESERVED)

    number = models.CharField(max_length=20, unique=True)
    unit_type = models.CharField(
        max_length=100,
        blank=True,
        help_text=_("Catalog label of the unit type (managed outside this service)."),
    )
    floor = models.SmallIntegerField(null=True, blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.AVAILABLE,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Unit")
        verbose_name_plural = _("Units")
        ordering = ["number"]
        indexes = [models.Index(fields=["status"], name="units_unit_status_idx")]

    def __str__(self) -> str:
        return f"Unit {self.number} ({self.status})"

    def set_status(self, status: str) -> bool:
        """Persist a new status; returns False when nothing changed."""
        if self.status == status:
            return False
        self.status = status
        self.save(update_fields=["status", "updated_at"])
        return True


class TemporaryReservation(models.Model):
    """Non-booking hold on a unit (phone reservation awaiting a customer)."""

    unit = models.ForeignKey(
        Unit,
        on_delete=models.CASCADE,
        related_name="temporary_reservations",
    )
    customer_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=32, blank=True)
    reserve_date = models.DateField()
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Temporary reservation")
        verbose_name_plural = _("Temporary reservations")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Hold on {self.unit_id} for {self.customer_name} ({self.reserve_date})"
