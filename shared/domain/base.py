"""
Base Domain Classes

Building blocks shared by the booking and finance domains:
- ValueObject: Immutable objects compared by value
- DomainEvent: Events that represent something that happened
"""

from abc import ABC
from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects

    Value objects are immutable and have no identity.
    Two value objects are equal if all their attributes are equal.
    """
    pass


def _serialize(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, ValueObject):
        return {f.name: _serialize(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    return value


@dataclass
class DomainEvent:
    """
    Base class for domain events

    Domain events are recorded inside a unit of work and published to the
    message bus only after the surrounding database transaction commits.
    Subclasses declare their payload as dataclass fields.
    """

    #: Machine name stored in the activity log (``booking_created`` etc.).
    event_type = "domain_event"

    def __post_init__(self):
        self.event_id: UUID = uuid4()
        self.occurred_at: datetime = datetime.now()

    def payload(self) -> dict:
        """Event-specific fields, JSON-ready."""
        return {f.name: _serialize(getattr(self, f.name)) for f in fields(self)}

    def describe(self) -> str:
        """Human readable line for the activity log."""
        return self.event_type.replace("_", " ")

    def to_dict(self) -> dict:
        """Convert event to dictionary for serialization"""
        return {
            'event_id': str(self.event_id),
            'event_type': self.event_type,
            'occurred_at': self.occurred_at.isoformat(),
            'payload': self.payload(),
        }
