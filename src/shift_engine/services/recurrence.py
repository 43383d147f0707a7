"""Recurring shift expansion.

A recurring rule names a weekday (0 = Sunday ... 6 = Saturday), a time pair
and a date range. Expansion yields one shift per matching weekday from the
first match on or after ``start_date`` through ``end_date`` inclusive. When
no end date is given the range is bounded by the configured horizon
(``RECURRENCE_HORIZON_MONTHS`` months after the start date).
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from shift_engine.config import DEFAULT_RECURRENCE_HORIZON_MONTHS
from shift_engine.errors import InvalidRangeError, ValidationError
from shift_engine.services.types import ShiftDraft

if TYPE_CHECKING:
    from shift_engine.models import RecurringRule

HOURS_PRECISION = Decimal("0.01")


def compute_hours(start_time: time, end_time: time) -> Decimal:
    """Hours between two times of the same day, rounded to 2 places.

    Raises ValidationError unless end_time is strictly after start_time.
    """
    if end_time <= start_time:
        raise ValidationError(
            f"End time {end_time.isoformat()} must be after start time {start_time.isoformat()}",
            field="end_time",
        )
    anchor = date(2000, 1, 1)
    delta = datetime.combine(anchor, end_time) - datetime.combine(anchor, start_time)
    hours = Decimal(delta.total_seconds()) / Decimal(3600)
    return hours.quantize(HOURS_PRECISION, rounding=ROUND_HALF_UP)


def add_months(day: date, months: int) -> date:
    """Shift a date by whole months, clamping to the end of shorter months."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def sunday_based_weekday(day: date) -> int:
    """Weekday with 0 = Sunday, matching the stored day_of_week convention."""
    return (day.weekday() + 1) % 7


def resolve_end_date(
    start_date: date,
    end_date: date | None,
    horizon_months: int = DEFAULT_RECURRENCE_HORIZON_MONTHS,
) -> date:
    """Return the effective inclusive end of a recurring rule."""
    if end_date is None:
        return add_months(start_date, horizon_months)
    if end_date < start_date:
        raise InvalidRangeError(start_date, end_date)
    return end_date


def first_occurrence(day_of_week: int, start_date: date) -> date:
    """First date on or after start_date falling on day_of_week."""
    offset = (day_of_week - sunday_based_weekday(start_date)) % 7
    return start_date + timedelta(days=offset)


def occurrence_dates(day_of_week: int, start_date: date, end_date: date) -> list[date]:
    """All dates in [start_date, end_date] falling on day_of_week, ascending."""
    if not 0 <= day_of_week <= 6:
        raise ValidationError(f"day_of_week must be 0-6, got {day_of_week}", field="day_of_week")
    if end_date < start_date:
        raise InvalidRangeError(start_date, end_date)

    dates: list[date] = []
    current = first_occurrence(day_of_week, start_date)
    while current <= end_date:
        dates.append(current)
        current += timedelta(days=7)
    return dates


def expand_rule(rule: RecurringRule) -> list[ShiftDraft]:
    """Expand a persisted rule into shift drafts.

    Re-running on the same rule yields the same dates; identities are
    assigned only when the drafts are persisted.
    """
    hours = compute_hours(rule.start_time, rule.end_time)
    return [
        ShiftDraft(
            employee_id=rule.employee_id,
            shift_date=shift_date,
            start_time=rule.start_time,
            end_time=rule.end_time,
            hours=hours,
            notes=rule.notes,
            recurring_rule_id=rule.recurring_rule_id,
        )
        for shift_date in occurrence_dates(rule.day_of_week, rule.start_date, rule.end_date)
    ]
