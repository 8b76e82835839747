"""Integration tests for booking API endpoints."""

from __future__ import annotations

from datetime import date, timedelta

from django.contrib.auth import get_user_model
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.finances.models import PaymentMethod
from apps.finances.periods import open_period
from apps.units.models import Unit


class BookingAPITests(APITestCase):
    """Covers creation, conflicts, payments and the domain error mapping."""

    def setUp(self) -> None:
        self.user = get_user_model().objects.create_user(username="frontdesk", password="FrontDesk123")
        self.unit = Unit.objects.create(number="201", unit_type="Suite", floor=2)
        self.cash = PaymentMethod.objects.get(code="cash")
        self.client.force_authenticate(self.user)
        self.list_url = reverse("booking-list")

    def _open_period(self) -> None:
        today = timezone.localdate()
        open_period(today - timedelta(days=30), today + timedelta(days=90), "Current", allow_overlap=True)

    def _payload(self, check_in: date, check_out: date, **extra) -> dict:
        payload = {
            "customer_id": 42,
            "unit": self.unit.id,
            "check_in": str(check_in),
            "check_out": str(check_out),
            "subtotal": "1000.00",
            "tax_amount": "150.00",
            "total_price": "1150.00",
        }
        payload.update(extra)
        return payload

    def _create(self, offset: int = 1, nights: int = 3, **extra):
        check_in = timezone.localdate() + timedelta(days=offset)
        return self.client.post(
            self.list_url,
            self._payload(check_in, check_in + timedelta(days=nights), **extra),
            format="json",
        )

    def test_create_booking(self) -> None:
        response = self._create()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["status"], Booking.Status.PENDING_DEPOSIT)
        self.assertEqual(len(response.data["invoices"]), 1)
        self.assertEqual(response.data["invoices"][0]["status"], "draft")

    def test_requires_authentication(self) -> None:
        self.client.force_authenticate(None)

        response = self.client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_overlap_returns_conflict(self) -> None:
        self.assertEqual(self._create(offset=1, nights=4).status_code, status.HTTP_201_CREATED)

        response = self._create(offset=3, nights=4)

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["code"], "BOOKING_CONFLICT")
        self.assertEqual(len(response.data["context"]["conflicts"]), 1)

    def test_inconsistent_pricing_is_rejected(self) -> None:
        response = self._create(total_price="999.00")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["code"], "VALIDATION_ERROR")

    def test_reversed_dates_fail_serializer_validation(self) -> None:
        check_in = timezone.localdate() + timedelta(days=3)

        response = self.client.post(self.list_url, self._payload(check_in, check_in), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)

    def test_availability_query(self) -> None:
        self._create(offset=1, nights=3)
        start = timezone.localdate() + timedelta(days=2)
        url = reverse("booking-availability")

        busy = self.client.get(url, {"unit": self.unit.id, "start": str(start), "end": str(start + timedelta(days=2))})
        free = self.client.get(
            url,
            {"unit": self.unit.id, "start": str(start + timedelta(days=2)), "end": str(start + timedelta(days=4))},
        )

        self.assertEqual(busy.status_code, status.HTTP_200_OK, busy.data)
        self.assertFalse(busy.data["available"])
        self.assertTrue(free.data["available"])

    def test_payment_without_open_period(self) -> None:
        booking_id = self._create().data["id"]

        response = self.client.post(
            reverse("booking-payments", args=[booking_id]),
            {"amount": "100.00", "method": self.cash.id},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["code"], "NO_OPEN_PERIOD")

    def test_payment_confirms_and_reports_balance(self) -> None:
        self._open_period()
        booking_id = self._create().data["id"]

        response = self.client.post(
            reverse("booking-payments", args=[booking_id]),
            {"amount": "400.00", "method": self.cash.id, "reference": "R-1"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["booking_status"], Booking.Status.CONFIRMED)
        self.assertEqual(response.data["transaction"]["transaction_type"], "advance_payment")
        self.assertEqual(response.data["balance"]["remaining"], "750.00")

        listing = self.client.get(reverse("booking-payments", args=[booking_id]))
        self.assertEqual(len(listing.data), 1)
        self.assertEqual(listing.data[0]["reference"], "R-1")

    def test_reschedule_after_invoice_returns_conflict(self) -> None:
        self._open_period()
        booking_id = self._create().data["id"]
        issue = self.client.post(reverse("booking-issue-invoice", args=[booking_id]))
        self.assertEqual(issue.status_code, status.HTTP_200_OK, issue.data)
        self.assertEqual(issue.data["status"], "posted")

        check_in = timezone.localdate() + timedelta(days=10)
        response = self.client.post(
            reverse("booking-reschedule", args=[booking_id]),
            {"check_in": str(check_in), "check_out": str(check_in + timedelta(days=2))},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["code"], "BOOKING_IMMUTABLE")

    def test_check_in_of_unconfirmed_booking(self) -> None:
        self._open_period()
        booking_id = self._create().data["id"]

        response = self.client.post(reverse("booking-check-in", args=[booking_id]))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["code"], "INVALID_TRANSITION")

    def test_full_stay(self) -> None:
        self._open_period()
        booking_id = self._create(deposit_amount="1150.00", deposit_method=self.cash.id).data["id"]

        check_in = self.client.post(reverse("booking-check-in", args=[booking_id]))
        self.assertEqual(check_in.status_code, status.HTTP_200_OK, check_in.data)
        self.assertEqual(check_in.data["status"], Booking.Status.CHECKED_IN)

        balance = self.client.get(reverse("booking-balance", args=[booking_id]))
        self.assertEqual(balance.data["remaining"], "0.00")

        check_out = self.client.post(reverse("booking-check-out", args=[booking_id]))
        self.assertEqual(check_out.status_code, status.HTTP_200_OK, check_out.data)
        self.assertEqual(check_out.data["status"], Booking.Status.CHECKED_OUT)
        self.assertEqual(len(check_out.data["deposit_refunds"]), 1)
        self.unit.refresh_from_db()
        self.assertEqual(self.unit.status, Unit.Status.CLEANING)

    def test_extend_and_cancel(self) -> None:
        self._open_period()
        booking_id = self._create().data["id"]
        check_out = Booking.objects.get(pk=booking_id).check_out

        extend = self.client.post(
            reverse("booking-extend", args=[booking_id]),
            {"new_check_out": str(check_out + timedelta(days=2)), "incremental_amount": "200.00"},
            format="json",
        )
        self.assertEqual(extend.status_code, status.HTTP_201_CREATED, extend.data)
        self.assertEqual(extend.data["total_amount"], "230.00")

        cancel = self.client.post(reverse("booking-cancel", args=[booking_id]), {"reason": "Plans changed"}, format="json")
        self.assertEqual(cancel.status_code, status.HTTP_200_OK, cancel.data)
        self.assertEqual(cancel.data["status"], Booking.Status.CANCELLED)
        self.assertTrue(all(invoice["status"] == "void" for invoice in cancel.data["invoices"]))

    def test_unknown_booking(self) -> None:
        response = self.client.post(reverse("booking-check-in", args=[999999]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
