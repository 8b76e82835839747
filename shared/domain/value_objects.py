"""
Common Value Objects

Value objects used across multiple domains:
- DateRange: Half-open range of dates (check-in to check-out)
- quantize_amount: Monetary rounding to the cent
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP

from shared.domain.base import ValueObject
from shared.domain.exceptions import ValidationError

CENT = Decimal("0.01")


def quantize_amount(value) -> Decimal:
    """Round a monetary value half-up to two decimal places."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class DateRange(ValueObject):
    """
    Date range value object

    Represents a range from start_date (inclusive) to end_date (exclusive).
    Used for booking periods, availability checks and extension intervals.
    """
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.start_date is None or self.end_date is None:
            raise ValidationError("Both start and end dates are required")
        if self.start_date >= self.end_date:
            raise ValidationError(
                f"Start date ({self.start_date}) must be before end date ({self.end_date})"
            )

    def overlaps_with(self, other: 'DateRange') -> bool:
        """
        Check if this range overlaps with another

        Note: end_date is exclusive, so adjacent ranges don't overlap.

        Examples:
            - DateRange(25, 28) overlaps with DateRange(27, 30) -> True
            - DateRange(25, 28) overlaps with DateRange(28, 31) -> False (adjacent)
        """
        if not isinstance(other, DateRange):
            raise TypeError("Can only check overlap with another DateRange")

        # Overlap formula: start1 < end2 AND end1 > start2
        return (self.start_date < other.end_date and
                self.end_date > other.start_date)

    def contains(self, check_date: date) -> bool:
        """start_date is inclusive, end_date is exclusive"""
        return self.start_date <= check_date < self.end_date

    def shift(self, days: int) -> 'DateRange':
        """Move both ends by the same number of days."""
        delta = timedelta(days=days)
        return DateRange(self.start_date + delta, self.end_date + delta)

    def extension_to(self, new_end: date) -> 'DateRange':
        """
        The interval an extension adds: ``[end_date, new_end)``.

        Raises ValidationError when new_end does not lie after the current end.
        """
        if new_end <= self.end_date:
            raise ValidationError(
                f"New check-out ({new_end}) must be after current check-out ({self.end_date})"
            )
        return DateRange(self.end_date, new_end)

    def __len__(self) -> int:
        """Number of nights in this range"""
        return (self.end_date - self.start_date).days

    def __str__(self):
        return f"[{self.start_date.isoformat()}, {self.end_date.isoformat()})"

    def __repr__(self):
        return f"DateRange({self.start_date}, {self.end_date})"
