"""API views for units and their housekeeping status."""

from __future__ import annotations

from rest_framework import permissions, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .models import Unit
from .serializers import SetStatusSerializer, UnitSerializer
from .services import cancel_reservation, set_unit_status


class UnitViewSet(viewsets.ReadOnlyModelViewSet):
    """Units; statuses change only through the actions below or bookings."""

    queryset = Unit.objects.prefetch_related("temporary_reservations").all()
    serializer_class = UnitSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status", "unit_type", "floor"]

    def _respond(self, unit: Unit) -> Response:
        return Response(self.get_serializer(self.get_queryset().get(pk=unit.pk)).data)

    @action(detail=True, methods=["post"], url_path="set-status")
    def set_status(self, request, pk=None):  # type: ignore
        payload = SetStatusSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        unit = set_unit_status(
            self.get_object().pk,
            payload.validated_data["status"],
            hold=payload.validated_data.get("hold"),
        )
        return self._respond(unit)

    @action(detail=True, methods=["post"], url_path="cancel-reservation")
    def cancel_reservation(self, request, pk=None):  # type: ignore
        unit = cancel_reservation(self.get_object().pk)
        return self._respond(unit)
