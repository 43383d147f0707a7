"""Time-off request workflow.

Requests move PENDING → APPROVED | REJECTED. A PENDING request can be
withdrawn by its owner, which deletes it. Approval of a SICK or VACATION
request debits the leave ledger; UNPAID requests never touch balances.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shift_engine.config import Settings, get_settings
from shift_engine.errors import InvalidRangeError, InvalidStateError, NotFoundError, ValidationError
from shift_engine.events import (
    EventMetadata,
    EventPublisher,
    TimeOffApproved,
    TimeOffRejected,
    TimeOffRequested,
)
from shift_engine.models import AuditEvent, Employee, Shift, TimeOffRequest
from shift_engine.services.authorization import Actor, require_admin, require_owner
from shift_engine.services.leave_ledger import LeaveLedger
from shift_engine.services.state_machine import TimeOffStateMachine, TimeOffStatus
from shift_engine.services.types import (
    TIME_OFF_BUCKETS,
    CalendarDay,
    DayPortion,
    DaySelection,
    TimeOffDraft,
    TimeOffType,
)

logger = logging.getLogger(__name__)


def batch_day_selections(
    selections: Iterable[DaySelection],
    half_day_hours: Decimal,
) -> list[TimeOffDraft]:
    """Turn per-day selections into request drafts.

    Runs of consecutive FULL days collapse into one full-day draft spanning
    the run. Each HALF day becomes its own single-day draft carrying
    ``half_day_hours``. A lone FULL day is a one-day run.
    """
    ordered = sorted(selections, key=lambda s: s.day)
    if not ordered:
        raise ValidationError("At least one day must be selected", field="days")

    seen: set[date] = set()
    for selection in ordered:
        if selection.day in seen:
            raise ValidationError(
                f"Day {selection.day.isoformat()} selected more than once", field="days"
            )
        seen.add(selection.day)

    drafts: list[TimeOffDraft] = []
    run_start: date | None = None
    run_end: date | None = None

    def close_run() -> None:
        nonlocal run_start, run_end
        if run_start is not None:
            drafts.append(TimeOffDraft(start_date=run_start, end_date=run_end, hours=None))
        run_start = run_end = None

    for selection in ordered:
        if DayPortion(selection.portion) == DayPortion.HALF:
            close_run()
            drafts.append(
                TimeOffDraft(start_date=selection.day, end_date=selection.day, hours=half_day_hours)
            )
            continue

        if run_end is not None and selection.day == run_end + timedelta(days=1):
            run_end = selection.day
        else:
            close_run()
            run_start = run_end = selection.day

    close_run()
    return drafts


def validate_request(
    start_date: date | None,
    end_date: date | None,
    request_type: str,
    hours: Decimal | None,
) -> TimeOffType:
    """Check a request's fields and return its parsed type."""
    if start_date is None or end_date is None:
        raise ValidationError("Start date and end date are required", field="start_date")
    if end_date < start_date:
        raise InvalidRangeError(start_date, end_date)
    try:
        parsed = TimeOffType(request_type)
    except ValueError:
        raise ValidationError(
            f"Invalid request type {request_type!r}", field="request_type"
        ) from None
    if hours is not None:
        if Decimal(hours) <= 0:
            raise ValidationError("Hours must be positive", field="hours")
        if start_date != end_date:
            raise ValidationError(
                "Hourly requests must be for a single date", field="hours"
            )
    return parsed


class TimeOffService:
    """Submission, review and calendar views for time-off requests."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        emitter: EventPublisher | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.emitter = emitter
        self.ledger = LeaveLedger(session, self.settings, emitter)

    async def get_request(self, request_id: UUID) -> TimeOffRequest:
        request = await self.session.get(TimeOffRequest, request_id, populate_existing=True)
        if request is None:
            raise NotFoundError("TimeOffRequest", request_id)
        return request

    async def list_requests(
        self,
        *,
        employee_id: UUID | None = None,
        status: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[TimeOffRequest]:
        """Requests filtered by owner, status and overlap with a date range."""
        query = select(TimeOffRequest)
        if employee_id is not None:
            query = query.where(TimeOffRequest.employee_id == employee_id)
        if status is not None:
            try:
                query = query.where(TimeOffRequest.status == TimeOffStatus(status).value)
            except ValueError:
                raise ValidationError(f"Unknown request status {status!r}", field="status") from None
        if start_date is not None:
            query = query.where(TimeOffRequest.end_date >= start_date)
        if end_date is not None:
            query = query.where(TimeOffRequest.start_date <= end_date)
        query = query.order_by(TimeOffRequest.start_date, TimeOffRequest.created_at).execution_options(
            populate_existing=True
        )

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def submit(
        self,
        start_date: date,
        end_date: date,
        request_type: str,
        hours: Decimal | None = None,
        reason: str | None = None,
        *,
        actor: Actor,
    ) -> TimeOffRequest:
        """Create one PENDING request for the actor."""
        parsed_type = validate_request(start_date, end_date, request_type, hours)
        await self._require_employee(actor.employee_id)

        request = self._create(actor, start_date, end_date, parsed_type, hours, reason)
        await self.session.flush()
        self._announce(request, actor)
        return request

    async def submit_selections(
        self,
        selections: Iterable[DaySelection],
        request_type: str,
        reason: str | None = None,
        *,
        actor: Actor,
    ) -> list[TimeOffRequest]:
        """Batch per-day selections and create one request per draft."""
        drafts = batch_day_selections(selections, self.settings.half_day_hours)
        for draft in drafts:
            validate_request(draft.start_date, draft.end_date, request_type, draft.hours)
        parsed_type = TimeOffType(request_type)
        await self._require_employee(actor.employee_id)

        requests = [
            self._create(
                actor, draft.start_date, draft.end_date, parsed_type, draft.hours, reason
            )
            for draft in drafts
        ]
        await self.session.flush()
        for request in requests:
            self._announce(request, actor)
        logger.info(
            "Submitted %d time-off request(s) for %s from %d selected day(s)",
            len(requests),
            actor.employee_id,
            sum(r.day_count for r in requests),
        )
        return requests

    async def approve(
        self,
        request_id: UUID,
        note: str | None = None,
        *,
        actor: Actor,
    ) -> TimeOffRequest:
        """PENDING → APPROVED, debiting leave for SICK and VACATION requests."""
        require_admin(actor, "approve time-off requests")
        request = await self.get_request(request_id)
        await self._transition(request, TimeOffStatus.APPROVED, note, actor)

        hours_charged = self.hours_to_charge(request)
        bucket = TIME_OFF_BUCKETS.get(TimeOffType(request.request_type))
        if bucket is not None:
            await self.ledger.debit(
                request.employee_id,
                bucket,
                hours_charged,
                source_type="time_off_request",
                source_id=request.request_id,
                note=request.reason,
                actor_id=actor.employee_id,
            )
        else:
            hours_charged = Decimal("0")

        logger.info(
            "Time-off request %s approved, %s hours charged",
            request.request_id,
            hours_charged,
        )
        self._emit(
            TimeOffApproved(
                metadata=EventMetadata.create(actor_id=actor.employee_id),
                request_id=request.request_id,
                employee_id=request.employee_id,
                request_type=request.request_type,
                hours_charged=hours_charged,
            )
        )
        return request

    async def reject(
        self,
        request_id: UUID,
        note: str | None = None,
        *,
        actor: Actor,
    ) -> TimeOffRequest:
        """PENDING → REJECTED. Balances are never touched."""
        require_admin(actor, "reject time-off requests")
        request = await self.get_request(request_id)
        await self._transition(request, TimeOffStatus.REJECTED, note, actor)

        logger.info("Time-off request %s rejected", request.request_id)
        self._emit(
            TimeOffRejected(
                metadata=EventMetadata.create(actor_id=actor.employee_id),
                request_id=request.request_id,
                employee_id=request.employee_id,
                request_type=request.request_type,
            )
        )
        return request

    async def withdraw(self, request_id: UUID, *, actor: Actor) -> None:
        """Delete the actor's own PENDING request."""
        request = await self.get_request(request_id)
        require_owner(actor, request.employee_id, "withdraw time-off requests")
        if not TimeOffStateMachine.can_withdraw(request.status):
            raise InvalidStateError(
                request.status, "WITHDRAWN", "Only pending requests can be withdrawn"
            )

        result = await self.session.execute(
            TimeOffRequest.__table__.delete().where(
                TimeOffRequest.request_id == request_id,
                TimeOffRequest.status == TimeOffStatus.PENDING.value,
            )
        )
        if result.rowcount == 0:
            raise InvalidStateError(
                request.status, "WITHDRAWN", "Request status changed concurrently"
            )
        self.session.expunge(request)
        self._record_audit(request_id, "withdrawn", actor)
        await self.session.flush()
        logger.info("Time-off request %s withdrawn", request_id)

    async def calendar(
        self, employee_id: UUID, start_date: date, end_date: date
    ) -> list[CalendarDay]:
        """One entry per date with the employee's shifts and time-off marker.

        APPROVED requests mark every date of their range as approved. PENDING
        requests show as pending where nothing is approved. REJECTED requests
        are ignored.
        """
        if end_date < start_date:
            raise InvalidRangeError(start_date, end_date)

        days: dict[date, CalendarDay] = {}
        current = start_date
        while current <= end_date:
            days[current] = CalendarDay(day=current)
            current += timedelta(days=1)

        shift_rows = await self.session.execute(
            select(Shift)
            .where(
                Shift.employee_id == employee_id,
                Shift.shift_date >= start_date,
                Shift.shift_date <= end_date,
            )
            .order_by(Shift.shift_date, Shift.start_time)
        )
        for shift in shift_rows.scalars().all():
            days[shift.shift_date].shifts.append(shift)

        requests = await self.list_requests(
            employee_id=employee_id, start_date=start_date, end_date=end_date
        )
        for request in requests:
            if request.status == TimeOffStatus.REJECTED:
                continue
            marker = "approved" if request.status == TimeOffStatus.APPROVED else "pending"
            for day in days.values():
                if not request.covers(day.day):
                    continue
                if day.time_off_status == "approved":
                    continue
                day.time_off_status = marker
                day.time_off_request_id = request.request_id

        return list(days.values())

    def hours_to_charge(self, request: TimeOffRequest) -> Decimal:
        """Explicit hours, or one full day per date in the range."""
        if request.hours is not None:
            return Decimal(request.hours)
        return self.settings.full_day_hours * request.day_count

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _create(
        self,
        actor: Actor,
        start_date: date,
        end_date: date,
        request_type: TimeOffType,
        hours: Decimal | None,
        reason: str | None,
    ) -> TimeOffRequest:
        request = TimeOffRequest(
            employee_id=actor.employee_id,
            start_date=start_date,
            end_date=end_date,
            request_type=request_type.value,
            hours=hours,
            status=TimeOffStatus.PENDING.value,
            reason=reason,
        )
        self.session.add(request)
        return request

    async def _transition(
        self,
        request: TimeOffRequest,
        to_status: TimeOffStatus,
        note: str | None,
        actor: Actor,
    ) -> None:
        from_status = request.status
        TimeOffStateMachine.validate_transition(from_status, to_status)

        result = await self.session.execute(
            update(TimeOffRequest)
            .where(
                TimeOffRequest.request_id == request.request_id,
                TimeOffRequest.status == from_status,
            )
            .values(
                status=to_status.value,
                review_note=note,
                reviewed_by=actor.employee_id,
                reviewed_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.refresh(request)
        if result.rowcount == 0:
            raise InvalidStateError(
                request.status, to_status.value, "Request status changed concurrently"
            )
        self._record_audit(
            request.request_id,
            f"status_change:{from_status}:{to_status.value}",
            actor,
            {"note": note} if note else None,
        )

    async def _require_employee(self, employee_id: UUID) -> None:
        if await self.session.get(Employee, employee_id) is None:
            raise NotFoundError("Employee", employee_id)

    def _announce(self, request: TimeOffRequest, actor: Actor) -> None:
        self._record_audit(request.request_id, "submitted", actor)
        self._emit(
            TimeOffRequested(
                metadata=EventMetadata.create(actor_id=actor.employee_id),
                request_id=request.request_id,
                employee_id=request.employee_id,
                request_type=request.request_type,
                start_date=request.start_date,
                end_date=request.end_date,
            )
        )

    def _record_audit(
        self,
        request_id: UUID,
        action: str,
        actor: Actor,
        details: dict | None = None,
    ) -> None:
        self.session.add(
            AuditEvent(
                actor_employee_id=actor.employee_id,
                entity_type="time_off_request",
                entity_id=request_id,
                action=action,
                after_json=details,
            )
        )

    def _emit(self, event) -> None:
        if self.emitter is not None:
            self.emitter.emit(event)
