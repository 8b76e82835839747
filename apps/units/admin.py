"""Admin registration for units."""

from __future__ import annotations

from django.contrib import admin

from .models import TemporaryReservation, Unit


class TemporaryReservationInline(admin.TabularInline):
    model = TemporaryReservation
    extra = 0


@admin.register(Unit)
class UnitAdmin(admin.ModelAdmin):
    list_display = ("number", "unit_type", "floor", "status", "updated_at")
    list_filter = ("status", "unit_type")
    search_fields = ("number",)
    inlines = [TemporaryReservationInline]
