"""API views for invoices, accounting periods and the live ledger.

Invoices and ledger entries are read-only over the API: they change only
through booking commands (check-in, extension, cancellation) so the
ledger stays balanced.
"""

from __future__ import annotations

from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.application.reversals import CancelExtensionCommand, CancelExtensionHandler

from .models import AccountingPeriod, Invoice, LedgerTransaction
from .periods import close_period, open_period, reopen_period
from .serializers import (
    AccountingPeriodSerializer,
    InvoiceSerializer,
    LedgerTransactionSerializer,
    StatementQuerySerializer,
    TrialBalanceQuerySerializer,
)
from .services import statement, trial_balance


class InvoiceViewSet(viewsets.ReadOnlyModelViewSet):
    """Invoices of all bookings."""

    queryset = Invoice.objects.select_related("booking").all()
    serializer_class = InvoiceSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["booking", "kind", "status"]

    @action(detail=True, methods=["post"], url_path="cancel-extension")
    def cancel_extension(self, request, pk=None):  # type: ignore
        invoice = CancelExtensionHandler().handle(CancelExtensionCommand(invoice_id=self.get_object().pk))
        return Response(self.get_serializer(invoice).data, status=status.HTTP_200_OK)


class AccountingPeriodViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Open, close and reopen accounting periods."""

    queryset = AccountingPeriod.objects.all()
    serializer_class = AccountingPeriodSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status"]

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        period = open_period(
            data["start_date"],
            data["end_date"],
            data.get("name", ""),
            allow_overlap=data["allow_overlap"],
        )
        return Response(self.get_serializer(period).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def close(self, request, pk=None):  # type: ignore
        period = close_period(self.get_object().pk)
        return Response(self.get_serializer(period).data)

    @action(detail=True, methods=["post"])
    def reopen(self, request, pk=None):  # type: ignore
        allow_overlap = str(request.data.get("allow_overlap", "")).lower() in ("1", "true", "yes")
        period = reopen_period(self.get_object().pk, allow_overlap=allow_overlap)
        return Response(self.get_serializer(period).data)


class LedgerTransactionViewSet(viewsets.ReadOnlyModelViewSet):
    """Live ledger: entries of cancelled bookings are archived and hidden."""

    queryset = (
        LedgerTransaction.objects.live()
        .select_related("method")
        .prefetch_related("lines__account")
    )
    serializer_class = LedgerTransactionSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["booking", "transaction_type", "source_type", "transaction_date"]

    @action(detail=False, methods=["get"], url_path="trial-balance")
    def trial_balance(self, request):  # type: ignore
        query = TrialBalanceQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        return Response(trial_balance(query.validated_data.get("as_of")))

    @action(detail=False, methods=["get"])
    def statement(self, request):  # type: ignore
        query = StatementQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        data = query.validated_data
        return Response(statement(data["customer_id"], data.get("start"), data.get("end")))
