"""API views for the booking domain.

Every mutating action delegates to a command handler; domain errors are
rendered by the project-wide exception handler.
"""

from __future__ import annotations

from django.utils import timezone  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.finances.serializers import InvoiceSerializer, LedgerTransactionSerializer, PaymentSerializer
from apps.finances.services import booking_balance, record_payment

from .application.command_handlers import (
    CheckInCommand,
    CheckInHandler,
    CheckOutCommand,
    CheckOutHandler,
    CreateBookingHandler,
    DelayCommand,
    DelayHandler,
    IssueInvoiceCommand,
    IssueInvoiceHandler,
    RescheduleCommand,
    RescheduleHandler,
)
from .application.reversals import CancelBookingCommand, CancelBookingHandler, ExtendBookingHandler
from .models import Booking
from .serializers import (
    AvailabilityQuerySerializer,
    BookingCreateSerializer,
    BookingSerializer,
    CancelSerializer,
    DelaySerializer,
    ExtendSerializer,
    PaymentCreateSerializer,
    RescheduleSerializer,
)
from .services import check_availability


class BookingViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Bookings with their lifecycle actions."""

    queryset = Booking.objects.select_related("unit").prefetch_related("invoices").all()
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status", "unit", "customer_id", "booking_type"]

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return BookingCreateSerializer
        return BookingSerializer

    def _respond(self, booking: Booking, http_status=status.HTTP_200_OK) -> Response:
        booking = self.get_queryset().get(pk=booking.pk)
        return Response(BookingSerializer(booking, context=self.get_serializer_context()).data, status=http_status)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = CreateBookingHandler().handle(serializer.to_command())
        return self._respond(booking, status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"])
    def availability(self, request):  # type: ignore
        query = AvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        data = query.validated_data
        available = check_availability(
            data["unit"],
            data["start"],
            data["end"],
            exclude_booking_id=data.get("exclude_booking"),
        )
        return Response({
            "unit": data["unit"],
            "start": data["start"],
            "end": data["end"],
            "available": available,
        })

    @action(detail=True, methods=["post"], url_path="check-in")
    def check_in(self, request, pk=None):  # type: ignore
        booking = CheckInHandler().handle(CheckInCommand(booking_id=self.get_object().pk))
        return self._respond(booking)

    @action(detail=True, methods=["post"], url_path="check-out")
    def check_out(self, request, pk=None):  # type: ignore
        result = CheckOutHandler().handle(CheckOutCommand(booking_id=self.get_object().pk))
        response = self._respond(result.booking)
        response.data = {**response.data, "deposit_refunds": result.refunds}
        return response

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        payload = CancelSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        booking = CancelBookingHandler().handle(
            CancelBookingCommand(booking_id=self.get_object().pk, reason=payload.validated_data["reason"])
        )
        return self._respond(booking)

    @action(detail=True, methods=["post"])
    def reschedule(self, request, pk=None):  # type: ignore
        payload = RescheduleSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        booking = RescheduleHandler().handle(
            RescheduleCommand(booking_id=self.get_object().pk, **payload.validated_data)
        )
        return self._respond(booking)

    @action(detail=True, methods=["post"])
    def delay(self, request, pk=None):  # type: ignore
        payload = DelaySerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        booking = DelayHandler().handle(
            DelayCommand(booking_id=self.get_object().pk, days=payload.validated_data["days"])
        )
        return self._respond(booking)

    @action(detail=True, methods=["post"])
    def extend(self, request, pk=None):  # type: ignore
        payload = ExtendSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        invoice = ExtendBookingHandler().handle(payload.to_command(self.get_object().pk))
        return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="issue-invoice")
    def issue_invoice(self, request, pk=None):  # type: ignore
        invoice = IssueInvoiceHandler().handle(IssueInvoiceCommand(booking_id=self.get_object().pk))
        invoice.refresh_from_db()
        return Response(InvoiceSerializer(invoice).data)

    @action(detail=True, methods=["get"])
    def balance(self, request, pk=None):  # type: ignore
        booking = self.get_object()
        return Response({"booking": booking.pk, **booking_balance(booking).to_dict()})

    @action(detail=True, methods=["get", "post"])
    def payments(self, request, pk=None):  # type: ignore
        booking = self.get_object()
        if request.method == "GET":
            return Response(PaymentSerializer(booking.payments.select_related("method"), many=True).data)

        payload = PaymentCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data
        entry = record_payment(
            booking.pk,
            data["amount"],
            data["method"],
            data.get("payment_date") or timezone.localdate(),
            invoice_id=data.get("invoice"),
            reference=data["reference"],
        )
        booking.refresh_from_db()
        return Response(
            {
                "transaction": LedgerTransactionSerializer(entry).data,
                "booking_status": booking.status,
                "balance": booking_balance(booking).to_dict(),
            },
            status=status.HTTP_201_CREATED,
        )
