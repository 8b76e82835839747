"""Tests for the pricing contract and extension amounts."""

from __future__ import annotations

from decimal import Decimal

import pytest

from apps.bookings.domain.pricing import Pricing, TaxMode, extension_amounts
from shared.domain.exceptions import ValidationError


def test_consistent_breakdown_is_accepted():
    pricing = Pricing.build(
        subtotal="1000",
        discount_amount="100",
        tax_amount="150",
        additional_services=[{"name": "Breakfast", "amount": "50"}],
        total_price="1100",
    )

    assert pricing.services_total == Decimal("50.00")
    assert pricing.net_amount == Decimal("950.00")
    assert pricing.services_as_list() == [{"name": "Breakfast", "amount": "50.00"}]


def test_total_mismatch_is_rejected():
    with pytest.raises(ValidationError) as excinfo:
        Pricing.build(subtotal="1000", tax_amount="150", total_price="1000")

    assert excinfo.value.context["expected"] == "1150.00"


def test_discount_cannot_exceed_priced_amount():
    with pytest.raises(ValidationError):
        Pricing.build(subtotal="100", discount_amount="200", total_price="-100")


def test_negative_or_non_numeric_amounts_are_rejected():
    with pytest.raises(ValidationError):
        Pricing.build(subtotal="-1", total_price="-1")
    with pytest.raises(ValidationError):
        Pricing.build(subtotal="abc", total_price="0")


def test_service_needs_a_name():
    with pytest.raises(ValidationError):
        Pricing.build(subtotal="10", total_price="15", additional_services=[{"amount": "5"}])


def test_standard_extension_adds_vat():
    assert extension_amounts(Decimal("500"), TaxMode.STANDARD, "0.15") == (
        Decimal("75.00"),
        Decimal("575.00"),
    )


def test_exempt_extension_has_no_tax():
    assert extension_amounts("500", "exempt", "0.15") == (Decimal("0.00"), Decimal("500.00"))


def test_extension_needs_positive_amount_and_known_mode():
    with pytest.raises(ValidationError):
        extension_amounts("0", TaxMode.STANDARD, "0.15")
    with pytest.raises(ValidationError):
        extension_amounts("100", "reduced", "0.15")
