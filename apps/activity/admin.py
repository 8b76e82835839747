"""Admin registration for the activity trail."""

from __future__ import annotations

from django.contrib import admin

from .models import SystemEvent


@admin.register(SystemEvent)
class SystemEventAdmin(admin.ModelAdmin):
    list_display = ("event_type", "booking_id", "unit_id", "message", "occurred_at")
    list_filter = ("event_type",)
    search_fields = ("message",)
    readonly_fields = [field.name for field in SystemEvent._meta.fields]

    def has_add_permission(self, request):  # type: ignore
        return False

    def has_change_permission(self, request, obj=None):  # type: ignore
        return False
