"""System event model.

A read-only trail of what happened to bookings, units and payments
(booking created, payment settled, room needs cleaning, ...).
"""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class SystemEvent(models.Model):
    """One committed domain event."""

    event_id = models.UUIDField(unique=True)
    event_type = models.CharField(max_length=50, db_index=True)
    booking_id = models.BigIntegerField(null=True, blank=True, db_index=True)
    unit_id = models.BigIntegerField(null=True, blank=True)
    customer_id = models.BigIntegerField(null=True, blank=True)
    message = models.TextField()
    payload = models.JSONField(default=dict, blank=True)
    occurred_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("System event")
        verbose_name_plural = _("System events")
        ordering = ["-occurred_at", "-id"]

    def __str__(self) -> str:
        return f"{self.event_type}: {self.message}"
