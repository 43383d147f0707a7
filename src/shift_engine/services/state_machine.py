"""Status state machines for shifts, time-off requests and pay periods."""

from __future__ import annotations

from enum import Enum

from shift_engine.errors import InvalidStateError


class ShiftStatus(str, Enum):
    """Shift status values."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


class TimeOffStatus(str, Enum):
    """Time-off request status values."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PayPeriodStatus(str, Enum):
    """Pay period status values."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class _StateMachine:
    VALID_TRANSITIONS: dict[str, list[str]] = {}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidStateError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidStateError(from_status, to_status)


class ShiftStateMachine(_StateMachine):
    """State machine for shift status transitions.

    Allowed transitions:
    - PENDING → ACCEPTED
    - PENDING → DECLINED
    - ACCEPTED → DECLINED (cancel after accept)

    DECLINED is terminal.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        ShiftStatus.PENDING: [ShiftStatus.ACCEPTED, ShiftStatus.DECLINED],
        ShiftStatus.ACCEPTED: [ShiftStatus.DECLINED],
        ShiftStatus.DECLINED: [],
    }

    # Statuses that occupy the employee's time
    ACTIVE = {ShiftStatus.PENDING, ShiftStatus.ACCEPTED}

    # Statuses whose hours count toward payroll
    PAYABLE = {ShiftStatus.PENDING, ShiftStatus.ACCEPTED}

    @classmethod
    def is_cancel_after_accept(cls, from_status: str, to_status: str) -> bool:
        """Check if this transition declines an already accepted shift."""
        return from_status == ShiftStatus.ACCEPTED and to_status == ShiftStatus.DECLINED

    @classmethod
    def is_active(cls, status: str) -> bool:
        return status in cls.ACTIVE


class TimeOffStateMachine(_StateMachine):
    """State machine for time-off requests.

    Allowed transitions:
    - PENDING → APPROVED
    - PENDING → REJECTED

    Withdrawal of a PENDING request deletes it rather than transitioning.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        TimeOffStatus.PENDING: [TimeOffStatus.APPROVED, TimeOffStatus.REJECTED],
        TimeOffStatus.APPROVED: [],
        TimeOffStatus.REJECTED: [],
    }

    @classmethod
    def can_withdraw(cls, status: str) -> bool:
        return status == TimeOffStatus.PENDING


class PayPeriodStateMachine(_StateMachine):
    """OPEN → CLOSED, one way."""

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayPeriodStatus.OPEN: [PayPeriodStatus.CLOSED],
        PayPeriodStatus.CLOSED: [],
    }
