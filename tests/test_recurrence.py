"""Tests for recurring shift expansion."""

from datetime import date, time, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given, strategies as st

from shift_engine.errors import InvalidRangeError, ValidationError
from shift_engine.models import RecurringRule
from shift_engine.services.recurrence import (
    add_months,
    compute_hours,
    expand_rule,
    first_occurrence,
    occurrence_dates,
    resolve_end_date,
    sunday_based_weekday,
)


class TestComputeHours:
    def test_whole_hours(self):
        assert compute_hours(time(9, 0), time(17, 0)) == Decimal("8.00")

    def test_fractional_hours_round_half_up(self):
        # 20 minutes = 0.3333...
        assert compute_hours(time(9, 0), time(9, 20)) == Decimal("0.33")
        # 50 minutes = 0.8333...
        assert compute_hours(time(9, 0), time(9, 50)) == Decimal("0.83")
        assert compute_hours(time(8, 30), time(12, 45)) == Decimal("4.25")

    def test_end_must_be_after_start(self):
        with pytest.raises(ValidationError):
            compute_hours(time(12, 0), time(12, 0))
        with pytest.raises(ValidationError):
            compute_hours(time(22, 0), time(6, 0))


class TestDates:
    def test_sunday_is_zero(self):
        assert sunday_based_weekday(date(2026, 1, 4)) == 0  # Sunday
        assert sunday_based_weekday(date(2026, 1, 5)) == 1  # Monday
        assert sunday_based_weekday(date(2026, 1, 10)) == 6  # Saturday

    def test_add_months_clamps_to_month_end(self):
        assert add_months(date(2026, 1, 31), 1) == date(2026, 2, 28)
        assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)
        assert add_months(date(2026, 3, 15), 3) == date(2026, 6, 15)

    def test_resolve_end_date_defaults_to_horizon(self):
        assert resolve_end_date(date(2026, 1, 1), None) == date(2026, 4, 1)
        assert resolve_end_date(date(2026, 1, 1), None, horizon_months=1) == date(2026, 2, 1)

    def test_resolve_end_date_rejects_inverted_range(self):
        with pytest.raises(InvalidRangeError):
            resolve_end_date(date(2026, 2, 1), date(2026, 1, 1))

    def test_first_occurrence_on_start_date(self):
        monday = date(2026, 1, 5)
        assert first_occurrence(1, monday) == monday
        assert first_occurrence(0, monday) == date(2026, 1, 11)


class TestOccurrenceDates:
    def test_mondays_in_january(self):
        dates = occurrence_dates(1, date(2026, 1, 1), date(2026, 1, 31))
        assert dates == [
            date(2026, 1, 5),
            date(2026, 1, 12),
            date(2026, 1, 19),
            date(2026, 1, 26),
        ]

    def test_end_date_inclusive(self):
        dates = occurrence_dates(1, date(2026, 1, 5), date(2026, 1, 12))
        assert dates == [date(2026, 1, 5), date(2026, 1, 12)]

    def test_no_match_in_short_range(self):
        # Tue..Thu contains no Sunday
        assert occurrence_dates(0, date(2026, 1, 6), date(2026, 1, 8)) == []

    def test_invalid_day_of_week(self):
        with pytest.raises(ValidationError):
            occurrence_dates(7, date(2026, 1, 1), date(2026, 1, 31))

    def test_inverted_range(self):
        with pytest.raises(InvalidRangeError):
            occurrence_dates(1, date(2026, 2, 1), date(2026, 1, 1))

    @given(
        day_of_week=st.integers(min_value=0, max_value=6),
        start=st.dates(min_value=date(2000, 1, 1), max_value=date(2100, 1, 1)),
        span=st.integers(min_value=0, max_value=400),
    )
    def test_count_and_weekday(self, day_of_week, start, span):
        end = start + timedelta(days=span)
        dates = occurrence_dates(day_of_week, start, end)

        first = first_occurrence(day_of_week, start)
        expected = 0 if first > end else (end - first).days // 7 + 1
        assert len(dates) == expected
        assert all(sunday_based_weekday(d) == day_of_week for d in dates)
        assert all(start <= d <= end for d in dates)
        assert dates == sorted(dates)
        assert len(set(dates)) == len(dates)

    @given(
        day_of_week=st.integers(min_value=0, max_value=6),
        start=st.dates(min_value=date(2000, 1, 1), max_value=date(2100, 1, 1)),
    )
    def test_deterministic(self, day_of_week, start):
        end = resolve_end_date(start, None)
        assert occurrence_dates(day_of_week, start, end) == occurrence_dates(
            day_of_week, start, end
        )


class TestExpandRule:
    def test_drafts_inherit_rule_fields(self):
        rule = RecurringRule(
            recurring_rule_id=uuid4(),
            employee_id=uuid4(),
            day_of_week=3,  # Wednesday
            start_time=time(7, 30),
            end_time=time(15, 0),
            hours=Decimal("7.50"),
            start_date=date(2026, 1, 1),
            end_date=date(2026, 1, 31),
            notes="Toddler room",
        )

        drafts = expand_rule(rule)

        assert [d.shift_date for d in drafts] == [
            date(2026, 1, 7),
            date(2026, 1, 14),
            date(2026, 1, 21),
            date(2026, 1, 28),
        ]
        for draft in drafts:
            assert draft.employee_id == rule.employee_id
            assert draft.start_time == time(7, 30)
            assert draft.end_time == time(15, 0)
            assert draft.hours == Decimal("7.50")
            assert draft.notes == "Toddler room"
            assert draft.recurring_rule_id == rule.recurring_rule_id
