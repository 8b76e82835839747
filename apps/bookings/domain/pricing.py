"""
Pricing Contract

Amounts are computed by an external pricing component and handed to the
booking core as a ``Pricing`` value object. The core only checks that the
numbers are consistent; it never derives rates itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Iterable, List, Tuple

from shared.domain.base import ValueObject
from shared.domain.exceptions import ValidationError
from shared.domain.value_objects import quantize_amount


def _amount(value, name: str) -> Decimal:
    try:
        amount = quantize_amount(value if value is not None else 0)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{name} must be a number, got {value!r}", field=name)
    if amount < 0:
        raise ValidationError(f"{name} cannot be negative ({amount})", field=name)
    return amount


class TaxMode(str, Enum):
    STANDARD = 'standard'   # VAT added on top of the incremental amount
    EXEMPT = 'exempt'       # Invoice normalised to zero tax


@dataclass(frozen=True)
class ExtraService(ValueObject):
    name: str
    amount: Decimal

    @classmethod
    def from_dict(cls, data) -> 'ExtraService':
        name = str(data.get('name') or '').strip()
        if not name:
            raise ValidationError("Additional service needs a name")
        return cls(name=name, amount=_amount(data.get('amount'), f"Service '{name}' amount"))

    def to_dict(self) -> dict:
        return {'name': self.name, 'amount': str(self.amount)}


@dataclass(frozen=True)
class Pricing(ValueObject):
    """
    Price breakdown of a booking.

    ``total_price`` must equal ``subtotal - discount_amount + services +
    tax_amount`` to the cent. ``deposit_amount`` is the advance collected
    at creation (zero means the booking waits for a deposit).
    """
    subtotal: Decimal
    total_price: Decimal
    discount_amount: Decimal = Decimal('0.00')
    tax_amount: Decimal = Decimal('0.00')
    additional_services: Tuple[ExtraService, ...] = field(default_factory=tuple)
    deposit_amount: Decimal = Decimal('0.00')

    @classmethod
    def build(
        cls,
        subtotal,
        total_price,
        discount_amount=0,
        tax_amount=0,
        additional_services: Iterable = (),
        deposit_amount=0,
    ) -> 'Pricing':
        services = tuple(
            item if isinstance(item, ExtraService) else ExtraService.from_dict(item)
            for item in additional_services or ()
        )
        pricing = cls(
            subtotal=_amount(subtotal, 'subtotal'),
            total_price=_amount(total_price, 'total_price'),
            discount_amount=_amount(discount_amount, 'discount_amount'),
            tax_amount=_amount(tax_amount, 'tax_amount'),
            additional_services=services,
            deposit_amount=_amount(deposit_amount, 'deposit_amount'),
        )
        pricing.validate()
        return pricing

    @property
    def services_total(self) -> Decimal:
        return sum((s.amount for s in self.additional_services), Decimal('0.00'))

    @property
    def net_amount(self) -> Decimal:
        """Total without tax (what revenue is credited with)."""
        return self.total_price - self.tax_amount

    def validate(self) -> None:
        if self.discount_amount > self.subtotal + self.services_total:
            raise ValidationError(
                f"Discount {self.discount_amount} exceeds the priced amount "
                f"{self.subtotal + self.services_total}"
            )
        expected = self.subtotal - self.discount_amount + self.services_total + self.tax_amount
        if expected != self.total_price:
            raise ValidationError(
                f"total_price {self.total_price} does not match subtotal - discount + "
                f"services + tax = {expected}",
                expected=str(expected),
                total_price=str(self.total_price),
            )

    def services_as_list(self) -> List[dict]:
        return [s.to_dict() for s in self.additional_services]


def extension_amounts(incremental, tax_mode, vat_rate) -> Tuple[Decimal, Decimal]:
    """
    ``(tax, total)`` of an extension invoice.

    Standard mode adds ``round(incremental * vat_rate, 2)``; exempt mode
    normalises the invoice to zero tax.
    """
    amount = _amount(incremental, 'incremental_amount')
    if amount <= 0:
        raise ValidationError("Extension amount must be greater than zero", amount=str(amount))

    try:
        mode = tax_mode if isinstance(tax_mode, TaxMode) else TaxMode(str(tax_mode))
    except ValueError:
        raise ValidationError(f"Unknown tax mode '{tax_mode}'", tax_mode=str(tax_mode))
    if mode is TaxMode.EXEMPT:
        return Decimal('0.00'), amount
    tax = quantize_amount(amount * Decimal(str(vat_rate)))
    return tax, amount + tax
