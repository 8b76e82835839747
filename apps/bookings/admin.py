"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_number",
        "unit",
        "customer_id",
        "status",
        "check_in",
        "check_out",
        "total_price",
        "created_at",
    )
    list_filter = ("status", "booking_type", "check_in", "check_out")
    search_fields = ("booking_number", "unit__number")
    readonly_fields = (
        "booking_number",
        "status",
        "check_in",
        "check_out",
        "subtotal",
        "discount_amount",
        "tax_amount",
        "total_price",
        "cancelled_at",
        "created_at",
        "updated_at",
    )
