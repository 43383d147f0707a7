"""Exception types raised by the shift engine."""

from __future__ import annotations

from typing import Any


class ShiftEngineError(Exception):
    """Base class for all engine errors."""


class ValidationError(ShiftEngineError):
    """Raised for malformed input (time ranges, missing reasons, bad types)."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InvalidRangeError(ValidationError):
    """Raised when a date range ends before it starts."""

    def __init__(self, start: Any, end: Any):
        self.start = start
        self.end = end
        super().__init__(f"End date {end} is before start date {start}", field="end_date")


class InsufficientBalanceError(ValidationError):
    """Raised when a debit would overdraw a leave balance and overdraw is disabled."""

    def __init__(self, employee_id: Any, bucket: str, requested: Any, remaining: Any):
        self.employee_id = employee_id
        self.bucket = bucket
        self.requested = requested
        self.remaining = remaining
        super().__init__(
            f"Employee {employee_id} has {remaining} {bucket.lower()} hours remaining, "
            f"cannot debit {requested}",
            field="hours",
        )


class InvalidStateError(ShiftEngineError):
    """Raised when a state transition is not allowed from the current status."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class NotFoundError(ShiftEngineError):
    """Raised when a shift, rule, request, period or employee does not exist."""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class PermissionDeniedError(ShiftEngineError):
    """Raised when the calling actor may not perform an operation."""
