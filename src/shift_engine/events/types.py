"""Domain event types for scheduling operations.

Events are immutable records of what happened. They drive the notifications
sent to admins and employees (new time-off requests, approvals, rejections)
and give reporting consumers a change feed.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class EventCategory(str, Enum):
    """Event categories."""

    SHIFT = "shift"
    TIME_OFF = "time_off"
    LEAVE = "leave"
    PAYROLL = "payroll"


@dataclass(frozen=True)
class EventMetadata:
    """Metadata attached to every domain event."""

    event_id: UUID
    timestamp: datetime
    correlation_id: UUID
    actor_id: UUID | None
    source_service: str
    version: int = 1

    @classmethod
    def create(
        cls,
        actor_id: UUID | None = None,
        correlation_id: UUID | None = None,
        source_service: str = "shift_engine",
    ) -> EventMetadata:
        """Create metadata with auto-generated fields."""
        return cls(
            event_id=uuid4(),
            timestamp=datetime.now(timezone.utc),
            correlation_id=correlation_id or uuid4(),
            actor_id=actor_id,
            source_service=source_service,
        )


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    metadata: EventMetadata

    @property
    def event_type(self) -> str:
        """Event type name for routing."""
        return self.__class__.__name__

    @property
    def category(self) -> EventCategory:
        """Event category, carried in the serialized form."""
        raise NotImplementedError("Subclasses must define category")

    def to_dict(self) -> dict[str, Any]:
        """Serialize event to dictionary."""
        data = _serialize(asdict(self))
        data["event_type"] = self.event_type
        data["category"] = self.category.value
        return data

    def to_json(self) -> str:
        """Serialize event to JSON string."""
        return json.dumps(self.to_dict(), default=str)


def _serialize(obj: Any) -> Any:
    """Recursively serialize objects for JSON compatibility."""
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_serialize(v) for v in obj]
    elif isinstance(obj, UUID):
        return str(obj)
    elif isinstance(obj, (datetime, date, time)):
        return obj.isoformat()
    elif isinstance(obj, Decimal):
        return str(obj)
    elif isinstance(obj, Enum):
        return obj.value
    return obj


# =============================================================================
# Shift Events
# =============================================================================


@dataclass(frozen=True)
class ShiftAssigned(DomainEvent):
    """An admin assigned a single shift."""

    shift_id: UUID
    employee_id: UUID
    shift_date: date
    hours: Decimal

    @property
    def category(self) -> EventCategory:
        return EventCategory.SHIFT


@dataclass(frozen=True)
class ShiftsGenerated(DomainEvent):
    """A recurring rule was expanded into shifts."""

    recurring_rule_id: UUID
    employee_id: UUID
    shift_count: int
    first_date: date | None
    last_date: date | None

    @property
    def category(self) -> EventCategory:
        return EventCategory.SHIFT


@dataclass(frozen=True)
class ShiftAccepted(DomainEvent):
    shift_id: UUID
    employee_id: UUID

    @property
    def category(self) -> EventCategory:
        return EventCategory.SHIFT


@dataclass(frozen=True)
class ShiftDeclined(DomainEvent):
    """A shift was declined, possibly after having been accepted."""

    shift_id: UUID
    employee_id: UUID
    decline_type: str
    reason: str
    hours_charged: Decimal
    was_previously_accepted: bool

    @property
    def category(self) -> EventCategory:
        return EventCategory.SHIFT


# =============================================================================
# Time-Off Events
# =============================================================================


@dataclass(frozen=True)
class TimeOffRequested(DomainEvent):
    request_id: UUID
    employee_id: UUID
    request_type: str
    start_date: date
    end_date: date

    @property
    def category(self) -> EventCategory:
        return EventCategory.TIME_OFF


@dataclass(frozen=True)
class TimeOffApproved(DomainEvent):
    request_id: UUID
    employee_id: UUID
    request_type: str
    hours_charged: Decimal

    @property
    def category(self) -> EventCategory:
        return EventCategory.TIME_OFF


@dataclass(frozen=True)
class TimeOffRejected(DomainEvent):
    request_id: UUID
    employee_id: UUID
    request_type: str

    @property
    def category(self) -> EventCategory:
        return EventCategory.TIME_OFF


# =============================================================================
# Leave & Payroll Events
# =============================================================================


@dataclass(frozen=True)
class LeaveBalanceChanged(DomainEvent):
    employee_id: UUID
    bucket: str
    delta_hours: Decimal
    balance_after: Decimal

    @property
    def category(self) -> EventCategory:
        return EventCategory.LEAVE


@dataclass(frozen=True)
class PayPeriodClosed(DomainEvent):
    pay_period_id: UUID
    payout_count: int
    total_gross: Decimal
    totals_hash: str

    @property
    def category(self) -> EventCategory:
        return EventCategory.PAYROLL
