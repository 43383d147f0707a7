"""Shift overlap detection.

Two time ranges on the same date conflict when
``candidate.start < existing.end and candidate.end > existing.start``.
Touching endpoints do not conflict. Declined shifts never conflict.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, time
from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shift_engine.models import Shift, TimeOffRequest
from shift_engine.services.state_machine import ShiftStateMachine, ShiftStatus, TimeOffStatus
from shift_engine.services.types import ConflictResult


def ranges_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    """Half-open interval overlap."""
    return start_a < end_b and end_a > start_b


def find_conflict(
    start_time: time,
    end_time: time,
    existing: Iterable[Shift],
    exclude_shift_id: UUID | None = None,
) -> Shift | None:
    """Return the first existing shift that overlaps the candidate range.

    ``existing`` must already be restricted to one employee and one date.
    """
    for shift in sorted(existing, key=lambda s: s.start_time):
        if exclude_shift_id is not None and shift.shift_id == exclude_shift_id:
            continue
        if not ShiftStateMachine.is_active(shift.status):
            continue
        if ranges_overlap(start_time, end_time, shift.start_time, shift.end_time):
            return shift
    return None


class ConflictDetector:
    """Checks candidate shifts against an employee's calendar.

    Results are advisory. Callers decide whether to proceed.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def check(
        self,
        employee_id: UUID,
        shift_date: date,
        start_time: time,
        end_time: time,
        exclude_shift_id: UUID | None = None,
    ) -> ConflictResult:
        """Check one candidate shift."""
        results = await self.check_dates(
            employee_id, [shift_date], start_time, end_time, exclude_shift_id
        )
        return results[0]

    async def check_dates(
        self,
        employee_id: UUID,
        dates: list[date],
        start_time: time,
        end_time: time,
        exclude_shift_id: UUID | None = None,
    ) -> list[ConflictResult]:
        """Check the same time range on several dates (recurring creation)."""
        if not dates:
            return []

        shifts_by_date = await self._active_shifts_by_date(employee_id, dates)
        time_off = await self._approved_time_off(employee_id, min(dates), max(dates))

        results: list[ConflictResult] = []
        for shift_date in dates:
            conflicting = find_conflict(
                start_time,
                end_time,
                shifts_by_date.get(shift_date, []),
                exclude_shift_id,
            )
            covering = next((r for r in time_off if r.covers(shift_date)), None)
            results.append(
                ConflictResult(
                    employee_id=employee_id,
                    shift_date=shift_date,
                    start_time=start_time,
                    end_time=end_time,
                    conflicting_shift=conflicting,
                    time_off_request=covering,
                )
            )
        return results

    async def _active_shifts_by_date(
        self, employee_id: UUID, dates: list[date]
    ) -> dict[date, list[Shift]]:
        result = await self.session.execute(
            select(Shift).where(
                Shift.employee_id == employee_id,
                Shift.shift_date.in_(dates),
                Shift.status != ShiftStatus.DECLINED.value,
            )
        )
        grouped: dict[date, list[Shift]] = defaultdict(list)
        for shift in result.scalars().all():
            grouped[shift.shift_date].append(shift)
        return grouped

    async def _approved_time_off(
        self, employee_id: UUID, start: date, end: date
    ) -> list[TimeOffRequest]:
        result = await self.session.execute(
            select(TimeOffRequest).where(
                TimeOffRequest.employee_id == employee_id,
                TimeOffRequest.status == TimeOffStatus.APPROVED.value,
                TimeOffRequest.start_date <= end,
                TimeOffRequest.end_date >= start,
            )
        )
        return list(result.scalars().all())
