"""Serializers for units."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import TemporaryReservation, Unit


class TemporaryReservationSerializer(serializers.ModelSerializer):
    class Meta:
        model = TemporaryReservation
        fields = ["id", "customer_name", "phone", "reserve_date", "notes", "created_at"]
        read_only_fields = ["id", "created_at"]


class UnitSerializer(serializers.ModelSerializer):
    temporary_reservations = TemporaryReservationSerializer(many=True, read_only=True)

    class Meta:
        model = Unit
        fields = ["id", "number", "unit_type", "floor", "status", "temporary_reservations", "updated_at"]
        read_only_fields = ["id", "status", "temporary_reservations", "updated_at"]


class SetStatusSerializer(serializers.Serializer):
    """Manual status change; ``hold`` is required for ``reserved``."""

    status = serializers.ChoiceField(choices=Unit.Status.choices)
    hold = TemporaryReservationSerializer(required=False)
