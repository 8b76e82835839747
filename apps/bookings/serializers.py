"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.finances.serializers import InvoiceSerializer

from .application.command_handlers import CreateBookingCommand
from .application.reversals import ExtendBookingCommand
from .domain.pricing import Pricing, TaxMode
from .models import Booking

AMOUNT = {"max_digits": 12, "decimal_places": 2, "min_value": 0}


class ExtraServiceSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    amount = serializers.DecimalField(**AMOUNT)


class BookingSerializer(serializers.ModelSerializer):
    """Detailed booking representation."""

    unit_number = serializers.ReadOnlyField(source="unit.number")
    invoices = InvoiceSerializer(many=True, read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_number",
            "customer_id",
            "unit",
            "unit_number",
            "check_in",
            "check_out",
            "status",
            "booking_type",
            "subtotal",
            "discount_amount",
            "tax_amount",
            "total_price",
            "additional_services",
            "notes",
            "invoices",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class BookingCreateSerializer(serializers.Serializer):
    """Booking request with amounts priced by the pricing component."""

    customer_id = serializers.IntegerField(min_value=1)
    unit = serializers.IntegerField(min_value=1)
    check_in = serializers.DateField()
    check_out = serializers.DateField()
    booking_type = serializers.ChoiceField(choices=Booking.Type.choices, default=Booking.Type.DAILY)
    subtotal = serializers.DecimalField(**AMOUNT)
    discount_amount = serializers.DecimalField(**AMOUNT, default=0)
    tax_amount = serializers.DecimalField(**AMOUNT, default=0)
    total_price = serializers.DecimalField(**AMOUNT)
    additional_services = ExtraServiceSerializer(many=True, required=False, default=list)
    deposit_amount = serializers.DecimalField(**AMOUNT, default=0)
    deposit_method = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):  # type: ignore
        if attrs["check_in"] >= attrs["check_out"]:
            raise serializers.ValidationError("Check-out must be after check-in.")
        return attrs

    def to_command(self) -> CreateBookingCommand:
        data = self.validated_data
        pricing = Pricing.build(
            subtotal=data["subtotal"],
            total_price=data["total_price"],
            discount_amount=data["discount_amount"],
            tax_amount=data["tax_amount"],
            additional_services=data["additional_services"],
            deposit_amount=data["deposit_amount"],
        )
        return CreateBookingCommand(
            customer_id=data["customer_id"],
            unit_id=data["unit"],
            check_in=data["check_in"],
            check_out=data["check_out"],
            pricing=pricing,
            booking_type=data["booking_type"],
            deposit_method_id=data.get("deposit_method"),
            notes=data["notes"],
        )


class AvailabilityQuerySerializer(serializers.Serializer):
    unit = serializers.IntegerField(min_value=1)
    start = serializers.DateField()
    end = serializers.DateField()
    exclude_booking = serializers.IntegerField(min_value=1, required=False)

    def validate(self, attrs):  # type: ignore
        if attrs["start"] >= attrs["end"]:
            raise serializers.ValidationError("end must be after start.")
        return attrs


class RescheduleSerializer(serializers.Serializer):
    check_in = serializers.DateField()
    check_out = serializers.DateField()


class DelaySerializer(serializers.Serializer):
    days = serializers.IntegerField(min_value=1)


class ExtendSerializer(serializers.Serializer):
    new_check_out = serializers.DateField()
    incremental_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    tax_mode = serializers.ChoiceField(
        choices=[mode.value for mode in TaxMode],
        default=TaxMode.STANDARD.value,
    )

    def to_command(self, booking_id) -> ExtendBookingCommand:
        data = self.validated_data
        return ExtendBookingCommand(
            booking_id=booking_id,
            new_check_out=data["new_check_out"],
            incremental_amount=data["incremental_amount"],
            tax_mode=data["tax_mode"],
        )


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class PaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    method = serializers.IntegerField(min_value=1)
    payment_date = serializers.DateField(required=False)
    invoice = serializers.IntegerField(min_value=1, required=False)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
