"""Integration tests for invoices, periods and the ledger API."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.application.command_handlers import (
    CheckInCommand,
    CheckInHandler,
    CreateBookingCommand,
    CreateBookingHandler,
)
from apps.bookings.application.reversals import ExtendBookingCommand, ExtendBookingHandler
from apps.bookings.domain.pricing import Pricing
from apps.finances.models import AccountingPeriod, PaymentMethod
from apps.finances.periods import open_period
from apps.units.models import Unit


class AccountingPeriodAPITests(APITestCase):
    def setUp(self) -> None:
        self.user = get_user_model().objects.create_user(username="accountant", password="Accountant123")
        self.client.force_authenticate(self.user)
        self.list_url = reverse("period-list")

    def test_open_close_reopen(self) -> None:
        created = self.client.post(
            self.list_url,
            {"name": "January", "start_date": "2024-01-01", "end_date": "2024-01-31"},
            format="json",
        )
        self.assertEqual(created.status_code, status.HTTP_201_CREATED, created.data)
        period_id = created.data["id"]

        closed = self.client.post(reverse("period-close", args=[period_id]))
        self.assertEqual(closed.status_code, status.HTTP_200_OK, closed.data)
        self.assertEqual(closed.data["status"], AccountingPeriod.Status.CLOSED)

        reopened = self.client.post(reverse("period-reopen", args=[period_id]))
        self.assertEqual(reopened.status_code, status.HTTP_200_OK, reopened.data)
        self.assertEqual(reopened.data["status"], AccountingPeriod.Status.OPEN)

    def test_overlap_is_rejected_unless_allowed(self) -> None:
        open_period(date(2024, 1, 1), date(2024, 1, 31))
        payload = {"start_date": "2024-01-15", "end_date": "2024-02-15"}

        rejected = self.client.post(self.list_url, payload, format="json")
        self.assertEqual(rejected.status_code, status.HTTP_400_BAD_REQUEST, rejected.data)
        self.assertEqual(rejected.data["code"], "VALIDATION_ERROR")

        allowed = self.client.post(self.list_url, {**payload, "allow_overlap": True}, format="json")
        self.assertEqual(allowed.status_code, status.HTTP_201_CREATED, allowed.data)


class InvoiceAPITests(APITestCase):
    def setUp(self) -> None:
        self.user = get_user_model().objects.create_user(username="cashier", password="Cashier123")
        self.client.force_authenticate(self.user)
        today = timezone.localdate()
        open_period(today - timedelta(days=10), today + timedelta(days=60), "Current")
        self.unit = Unit.objects.create(number="301")
        cash = PaymentMethod.objects.get(code="cash")
        self.booking = CreateBookingHandler().handle(
            CreateBookingCommand(
                customer_id=5,
                unit_id=self.unit.pk,
                check_in=today,
                check_out=today + timedelta(days=2),
                pricing=Pricing.build(subtotal="800", tax_amount="120", total_price="920", deposit_amount="920"),
                deposit_method_id=cash.pk,
            )
        )
        CheckInHandler().handle(CheckInCommand(booking_id=self.booking.pk))

    def test_cancel_extension_endpoint(self) -> None:
        extension = ExtendBookingHandler().handle(
            ExtendBookingCommand(
                booking_id=self.booking.pk,
                new_check_out=self.booking.check_out + timedelta(days=1),
                incremental_amount=Decimal("100"),
            )
        )

        response = self.client.post(reverse("invoice-cancel-extension", args=[extension.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], "void")

        ledger = self.client.get(reverse("ledger-transaction-list"), {"booking": self.booking.pk})
        types = [entry["transaction_type"] for entry in ledger.data]
        self.assertEqual(types.count("credit_note"), 1)
        for entry in ledger.data:
            debits = sum(Decimal(line["debit"]) for line in entry["lines"])
            credits = sum(Decimal(line["credit"]) for line in entry["lines"])
            self.assertEqual(debits, credits)

    def test_main_invoice_cannot_be_cancelled_as_extension(self) -> None:
        main = self.booking.invoices.get()

        response = self.client.post(reverse("invoice-cancel-extension", args=[main.pk]))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)

    def test_invoice_listing_filters_by_booking(self) -> None:
        response = self.client.get(reverse("invoice-list"), {"booking": self.booking.pk})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([invoice["kind"] for invoice in response.data], ["main"])
        self.assertEqual(response.data[0]["status"], "paid")


class LedgerReportAPITests(APITestCase):
    def setUp(self) -> None:
        self.user = get_user_model().objects.create_user(username="auditor", password="Auditor123")
        self.client.force_authenticate(self.user)
        today = timezone.localdate()
        open_period(today - timedelta(days=10), today + timedelta(days=60), "Current")
        unit = Unit.objects.create(number="302")
        booking = CreateBookingHandler().handle(
            CreateBookingCommand(
                customer_id=5,
                unit_id=unit.pk,
                check_in=today,
                check_out=today + timedelta(days=2),
                pricing=Pricing.build(subtotal="800", tax_amount="120", total_price="920", deposit_amount="920"),
                deposit_method_id=PaymentMethod.objects.get(code="cash").pk,
            )
        )
        CheckInHandler().handle(CheckInCommand(booking_id=booking.pk))

    def test_trial_balance_endpoint(self) -> None:
        response = self.client.get(reverse("ledger-transaction-trial-balance"))

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertTrue(response.data["is_balanced"])
        self.assertEqual(Decimal(str(response.data["total_debit"])), Decimal("1840.00"))
        self.assertEqual(response.data["total_debit"], response.data["total_credit"])

    def test_trial_balance_rejects_bad_date(self) -> None:
        response = self.client.get(reverse("ledger-transaction-trial-balance"), {"as_of": "yesterday"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_statement_endpoint(self) -> None:
        response = self.client.get(reverse("ledger-transaction-statement"), {"customer_id": 5})

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(
            [entry["transaction_type"] for entry in response.data["entries"]],
            ["advance_payment", "invoice_issue"],
        )
        self.assertEqual(Decimal(str(response.data["closing_balance"])), Decimal("0.00"))

    def test_statement_needs_customer(self) -> None:
        response = self.client.get(reverse("ledger-transaction-statement"))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
