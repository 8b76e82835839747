"""URL routing for the finances domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import AccountingPeriodViewSet, InvoiceViewSet, LedgerTransactionViewSet

router = DefaultRouter()
router.register(r"invoices", InvoiceViewSet, basename="invoice")
router.register(r"periods", AccountingPeriodViewSet, basename="period")
router.register(r"transactions", LedgerTransactionViewSet, basename="ledger-transaction")

urlpatterns = [
    path("", include(router.urls)),
]
