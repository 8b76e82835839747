"""
Domain Exceptions

Every error raised by the booking and finance domains derives from
DomainError and carries a machine-readable ``code``. Messages always name
the concrete cause (conflicting interval, missing period, blocking invoice).

    DomainError
    ├── ConflictError          interval overlap on a unit
    ├── ImmutableError         mutation forbidden by financial state
    ├── NoOpenPeriodError      posting date outside any open period
    ├── ValidationError        malformed interval / missing fields
    │   ├── InvalidTransitionError
    │   └── UnbalancedEntryError
    ├── NotFoundError
    ├── PartialReversalError   reversal batch finished with failed items
    └── RemoteFailure          store / collaborator call failed
"""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable


class DomainError(Exception):
    """Base exception for all booking and ledger errors."""

    code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code, "detail": self.message}
        if self.context:
            data["context"] = {key: _plain(value) for key, value in self.context.items()}
        return data


def _plain(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


class ConflictError(DomainError):
    """Requested interval overlaps an active booking of the same unit."""

    code: str = "BOOKING_CONFLICT"

    @classmethod
    def for_interval(cls, unit_id, interval, conflicts: Iterable[dict] = ()) -> "ConflictError":
        conflicts = list(conflicts)
        if conflicts:
            described = ", ".join(
                f"{c['booking_number']} [{c['check_in']}, {c['check_out']})" for c in conflicts
            )
            message = f"Unit {unit_id} is not available for {interval}: overlaps {described}"
        else:
            message = f"Unit {unit_id} is not available for {interval}"
        return cls(message, unit_id=unit_id, interval=str(interval), conflicts=conflicts)


class ImmutableError(DomainError):
    """Booking dates cannot change once financial documents were issued."""

    code: str = "BOOKING_IMMUTABLE"


class NoOpenPeriodError(DomainError):
    """No open accounting period covers the posting date."""

    code: str = "NO_OPEN_PERIOD"

    def __init__(self, posting_date: date):
        self.posting_date = posting_date
        super().__init__(
            f"No open accounting period for {posting_date.isoformat()}; open a period first",
            posting_date=posting_date,
        )


class ValidationError(DomainError):
    """Malformed input: bad interval, missing field, inconsistent amounts."""

    code: str = "VALIDATION_ERROR"


class InvalidTransitionError(ValidationError):
    """Status change is not an edge of the booking state machine."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, booking_number: str, current: str, target: str):
        super().__init__(
            f"Booking {booking_number} cannot move from {current} to {target}",
            booking_number=booking_number,
            current=current,
            target=target,
        )


class UnbalancedEntryError(ValidationError):
    """Ledger lines do not balance."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits, credits):
        super().__init__(
            f"Unbalanced ledger transaction: debits={debits}, credits={credits}",
            debits=debits,
            credits=credits,
        )


class NotFoundError(DomainError):
    code: str = "NOT_FOUND"


class PartialReversalError(DomainError):
    """Some items of a reversal batch failed; ``results`` lists every item."""

    code: str = "PARTIAL_REVERSAL"

    def __init__(self, message: str, results: list[dict]):
        self.results = results
        failed = [r for r in results if not r.get("ok")]
        super().__init__(message, failed=len(failed), results=results)


class RemoteFailure(DomainError):
    """The store or another collaborator failed; no automatic retry."""

    code: str = "REMOTE_FAILURE"
