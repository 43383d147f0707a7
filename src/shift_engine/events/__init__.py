"""Domain events package."""

from shift_engine.events.emitter import (
    EventBatch,
    EventCollector,
    EventEmitter,
    EventPublisher,
    log_event,
)
from shift_engine.events.types import (
    DomainEvent,
    EventCategory,
    EventMetadata,
    LeaveBalanceChanged,
    PayPeriodClosed,
    ShiftAccepted,
    ShiftAssigned,
    ShiftDeclined,
    ShiftsGenerated,
    TimeOffApproved,
    TimeOffRejected,
    TimeOffRequested,
)

__all__ = [
    "DomainEvent",
    "EventBatch",
    "EventCategory",
    "EventCollector",
    "EventEmitter",
    "EventMetadata",
    "EventPublisher",
    "LeaveBalanceChanged",
    "PayPeriodClosed",
    "ShiftAccepted",
    "ShiftAssigned",
    "ShiftDeclined",
    "ShiftsGenerated",
    "TimeOffApproved",
    "TimeOffRejected",
    "TimeOffRequested",
    "log_event",
]
