"""Type definitions shared by the scheduling services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from shift_engine.models import Shift, TimeOffRequest


class DeclineType(str, Enum):
    """Leave category charged when a shift is not worked."""

    UNPAID = "UNPAID"
    SICK_DAY = "SICK_DAY"
    VACATION_DAY = "VACATION_DAY"


class LeaveBucket(str, Enum):
    """Leave balance buckets."""

    SICK = "SICK"
    VACATION = "VACATION"


class TimeOffType(str, Enum):
    """Time-off request types."""

    VACATION = "VACATION"
    SICK = "SICK"
    UNPAID = "UNPAID"


class EmploymentType(str, Enum):
    HOURLY = "HOURLY"
    SALARY = "SALARY"


class PayFrequency(str, Enum):
    BI_WEEKLY = "BI_WEEKLY"
    SEMI_MONTHLY = "SEMI_MONTHLY"
    MONTHLY = "MONTHLY"


class DayPortion(str, Enum):
    """Per-day selection made when submitting time off."""

    FULL = "FULL"
    HALF = "HALF"


# Leave bucket charged by each decline type (UNPAID charges nothing)
DECLINE_BUCKETS: dict[DeclineType, LeaveBucket] = {
    DeclineType.SICK_DAY: LeaveBucket.SICK,
    DeclineType.VACATION_DAY: LeaveBucket.VACATION,
}

TIME_OFF_BUCKETS: dict[TimeOffType, LeaveBucket] = {
    TimeOffType.SICK: LeaveBucket.SICK,
    TimeOffType.VACATION: LeaveBucket.VACATION,
}


@dataclass(frozen=True)
class ShiftDraft:
    """A shift instance before persistence."""

    employee_id: UUID
    shift_date: date
    start_time: time
    end_time: time
    hours: Decimal
    notes: str | None = None
    recurring_rule_id: UUID | None = None


@dataclass(frozen=True)
class ConflictResult:
    """Outcome of a conflict check. Returned, never raised."""

    employee_id: UUID
    shift_date: date
    start_time: time
    end_time: time
    conflicting_shift: Shift | None = None
    time_off_request: TimeOffRequest | None = None

    @property
    def has_conflict(self) -> bool:
        return self.conflicting_shift is not None or self.time_off_request is not None

    def describe(self) -> dict[str, Any]:
        """Serializable summary for callers that must surface the conflict."""
        data: dict[str, Any] = {
            "employee_id": str(self.employee_id),
            "shift_date": self.shift_date.isoformat(),
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
        }
        if self.conflicting_shift is not None:
            data["conflicting_shift_id"] = str(self.conflicting_shift.shift_id)
            data["conflicting_range"] = (
                f"{self.conflicting_shift.start_time.isoformat()}-"
                f"{self.conflicting_shift.end_time.isoformat()}"
            )
        if self.time_off_request is not None:
            data["time_off_request_id"] = str(self.time_off_request.request_id)
        return data


@dataclass(frozen=True)
class DaySelection:
    """One calendar day picked in a time-off submission."""

    day: date
    portion: DayPortion = DayPortion.FULL


@dataclass(frozen=True)
class TimeOffDraft:
    """A request produced by submission batching."""

    start_date: date
    end_date: date
    hours: Decimal | None  # None = full day(s)


@dataclass
class CalendarDay:
    """Reconciled view of one employee's date."""

    day: date
    shifts: list[Shift] = field(default_factory=list)
    time_off_status: str | None = None  # 'approved', 'pending' or None
    time_off_request_id: UUID | None = None

    @property
    def blocked(self) -> bool:
        """Only approved time off occupies the date."""
        return self.time_off_status == "approved"


@dataclass(frozen=True)
class PayrollLine:
    """Gross pay for one employee over a pay period."""

    employee_id: UUID
    employment_type: EmploymentType
    total_hours: Decimal
    rate: Decimal
    gross_amount: Decimal
    display_name: str | None = None

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "employee_id": str(self.employee_id),
            "employment_type": self.employment_type.value,
            "total_hours": str(self.total_hours),
            "rate": str(self.rate),
            "gross_amount": str(self.gross_amount),
        }
