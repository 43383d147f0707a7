"""Shift service - lifecycle orchestrator for shifts and recurring rules."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shift_engine.config import Settings, get_settings
from shift_engine.database import acquire_xact_lock
from shift_engine.errors import InvalidStateError, NotFoundError, ValidationError
from shift_engine.events import (
    EventMetadata,
    EventPublisher,
    ShiftAccepted,
    ShiftAssigned,
    ShiftDeclined,
    ShiftsGenerated,
)
from shift_engine.models import AuditEvent, Employee, PayPeriod, RecurringRule, Shift
from shift_engine.services.authorization import (
    Actor,
    require_admin,
    require_owner,
    require_owner_or_admin,
)
from shift_engine.services.conflict_detector import ConflictDetector
from shift_engine.services.leave_ledger import LeaveLedger
from shift_engine.services.recurrence import (
    compute_hours,
    expand_rule,
    occurrence_dates,
    resolve_end_date,
)
from shift_engine.services.state_machine import PayPeriodStatus, ShiftStateMachine, ShiftStatus
from shift_engine.services.types import DECLINE_BUCKETS, ConflictResult, DeclineType

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ShiftService:
    """Service for managing the shift lifecycle.

    Operations:
    - assign: admin creates a single PENDING shift
    - create_recurring: admin stores a weekly rule and expands it into shifts
    - accept / bulk_accept / accept_range: employee confirms PENDING shifts
    - decline: PENDING or ACCEPTED → DECLINED, charging the leave ledger
    - update_shift / delete_shift: admin edits of unlocked shifts

    Status changes are compare-and-set updates conditioned on the status the
    caller observed, so two concurrent transitions on one shift cannot both
    succeed.
    """

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
        self.conflicts = ConflictDetector(session)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_shift(self, shift_id: UUID) -> Shift:
        shift = await self.session.get(Shift, shift_id, populate_existing=True)
        if shift is None:
            raise NotFoundError("Shift", shift_id)
        return shift

    async def get_rule(self, rule_id: UUID) -> RecurringRule:
        rule = await self.session.get(RecurringRule, rule_id)
        if rule is None:
            raise NotFoundError("RecurringRule", rule_id)
        return rule

    async def list_shifts(
        self,
        *,
        employee_id: UUID | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        status: str | None = None,
    ) -> list[Shift]:
        """List shifts filtered by employee, inclusive date range and status."""
        query = select(Shift)
        if employee_id is not None:
            query = query.where(Shift.employee_id == employee_id)
        if start_date is not None:
            query = query.where(Shift.shift_date >= start_date)
        if end_date is not None:
            query = query.where(Shift.shift_date <= end_date)
        if status is not None:
            try:
                query = query.where(Shift.status == ShiftStatus(status).value)
            except ValueError:
                raise ValidationError(f"Unknown shift status {status!r}", field="status") from None
        query = query.order_by(Shift.shift_date, Shift.start_time).execution_options(
            populate_existing=True
        )

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def check_conflict(
        self,
        employee_id: UUID,
        shift_date: date,
        start_time: time,
        end_time: time,
        exclude_shift_id: UUID | None = None,
    ) -> ConflictResult:
        """Advisory conflict check for a single candidate shift."""
        compute_hours(start_time, end_time)
        await self._lock_employee(employee_id)
        return await self.conflicts.check(
            employee_id, shift_date, start_time, end_time, exclude_shift_id
        )

    async def check_recurring_conflicts(
        self,
        employee_id: UUID,
        day_of_week: int,
        start_time: time,
        end_time: time,
        start_date: date,
        end_date: date | None = None,
    ) -> list[ConflictResult]:
        """Conflicts for every date a recurring rule would generate."""
        compute_hours(start_time, end_time)
        await self._lock_employee(employee_id)
        effective_end = resolve_end_date(
            start_date, end_date, self.settings.recurrence_horizon_months
        )
        dates = occurrence_dates(day_of_week, start_date, effective_end)
        results = await self.conflicts.check_dates(employee_id, dates, start_time, end_time)
        return [r for r in results if r.has_conflict]

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def assign(
        self,
        employee_id: UUID,
        shift_date: date,
        start_time: time,
        end_time: time,
        notes: str | None = None,
        *,
        actor: Actor,
    ) -> Shift:
        """Create a single PENDING shift.

        Conflicts are not checked here; callers consult check_conflict first.
        Dates inside a CLOSED pay period are refused.
        """
        require_admin(actor, "assign shifts")
        hours = compute_hours(start_time, end_time)
        await self._require_employee(employee_id)
        await self._lock_employee(employee_id)
        await self._ensure_dates_open([shift_date])

        shift = Shift(
            employee_id=employee_id,
            shift_date=shift_date,
            start_time=start_time,
            end_time=end_time,
            hours=hours,
            status=ShiftStatus.PENDING.value,
            notes=notes,
            created_by=actor.employee_id,
        )
        self.session.add(shift)
        await self.session.flush()

        await self._record_audit(shift.shift_id, "assigned", actor, {"hours": str(hours)})
        logger.info(
            "Assigned shift %s to %s on %s (%s hours)",
            shift.shift_id,
            employee_id,
            shift_date,
            hours,
        )
        self._emit(
            ShiftAssigned(
                metadata=EventMetadata.create(actor_id=actor.employee_id),
                shift_id=shift.shift_id,
                employee_id=employee_id,
                shift_date=shift_date,
                hours=hours,
            )
        )
        return shift

    async def create_recurring(
        self,
        employee_id: UUID,
        day_of_week: int,
        start_time: time,
        end_time: time,
        start_date: date,
        end_date: date | None = None,
        notes: str | None = None,
        *,
        actor: Actor,
    ) -> tuple[RecurringRule, list[Shift]]:
        """Store a recurring rule and generate its shifts in one transaction.

        Every call creates new shift identities, even for a rule identical to
        one generated before.
        """
        require_admin(actor, "create recurring shifts")
        hours = compute_hours(start_time, end_time)
        effective_end = resolve_end_date(
            start_date, end_date, self.settings.recurrence_horizon_months
        )
        if not 0 <= day_of_week <= 6:
            raise ValidationError(
                f"day_of_week must be 0-6, got {day_of_week}", field="day_of_week"
            )
        await self._require_employee(employee_id)

        await self._lock_employee(employee_id)
        await self._ensure_dates_open(occurrence_dates(day_of_week, start_date, effective_end))

        rule = RecurringRule(
            employee_id=employee_id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            hours=hours,
            start_date=start_date,
            end_date=effective_end,
            notes=notes,
            created_by=actor.employee_id,
        )
        self.session.add(rule)
        await self.session.flush()

        shifts = [
            Shift(
                employee_id=draft.employee_id,
                shift_date=draft.shift_date,
                start_time=draft.start_time,
                end_time=draft.end_time,
                hours=draft.hours,
                status=ShiftStatus.PENDING.value,
                notes=draft.notes,
                recurring_rule_id=draft.recurring_rule_id,
                created_by=actor.employee_id,
            )
            for draft in expand_rule(rule)
        ]
        self.session.add_all(shifts)
        await self.session.flush()

        await self._record_audit(
            rule.recurring_rule_id,
            "recurring_generated",
            actor,
            {"count": len(shifts), "end_date": effective_end.isoformat()},
            entity_type="recurring_rule",
        )
        logger.info(
            "Generated %d shifts for rule %s (%s to %s)",
            len(shifts),
            rule.recurring_rule_id,
            start_date,
            effective_end,
        )
        self._emit(
            ShiftsGenerated(
                metadata=EventMetadata.create(actor_id=actor.employee_id),
                recurring_rule_id=rule.recurring_rule_id,
                employee_id=employee_id,
                shift_count=len(shifts),
                first_date=shifts[0].shift_date if shifts else None,
                last_date=shifts[-1].shift_date if shifts else None,
            )
        )
        return rule, shifts

    async def delete_rule(self, rule_id: UUID, *, actor: Actor) -> None:
        """Delete a rule. Shifts it generated remain as independent records."""
        require_admin(actor, "delete recurring rules")
        rule = await self.get_rule(rule_id)
        await self.session.execute(
            update(Shift)
            .where(Shift.recurring_rule_id == rule_id)
            .values(recurring_rule_id=None)
            .execution_options(synchronize_session=False)
        )
        await self.session.delete(rule)
        await self.session.flush()
        await self._record_audit(rule_id, "deleted", actor, entity_type="recurring_rule")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def accept(self, shift_id: UUID, *, actor: Actor) -> Shift:
        """PENDING → ACCEPTED."""
        shift = await self.get_shift(shift_id)
        require_owner(actor, shift.employee_id, "accept shifts")
        return await self._accept_loaded(shift, actor)

    async def bulk_accept(self, shift_ids: Iterable[UUID], *, actor: Actor) -> list[Shift]:
        """Accept several shifts, all of which must be the actor's and PENDING."""
        ids = list(dict.fromkeys(shift_ids))
        if not ids:
            raise ValidationError("No shift IDs provided", field="shift_ids")

        shifts = [await self.get_shift(shift_id) for shift_id in ids]
        for shift in shifts:
            require_owner(actor, shift.employee_id, "accept shifts")
        return [await self._accept_loaded(shift, actor) for shift in shifts]

    async def accept_range(
        self, start_date: date, end_date: date, *, actor: Actor
    ) -> list[Shift]:
        """Accept every PENDING shift of the actor dated within the range."""
        if end_date < start_date:
            raise ValidationError("Start date cannot be after end date", field="end_date")
        pending = await self.list_shifts(
            employee_id=actor.employee_id,
            start_date=start_date,
            end_date=end_date,
            status=ShiftStatus.PENDING.value,
        )
        accepted = []
        for shift in pending:
            if shift.is_locked:
                continue
            accepted.append(await self._accept_loaded(shift, actor))
        return accepted

    async def decline(
        self,
        shift_id: UUID,
        decline_type: DeclineType | str,
        reason: str,
        *,
        actor: Actor,
    ) -> Shift:
        """PENDING or ACCEPTED → DECLINED, debiting leave for SICK_DAY/VACATION_DAY.

        The debit is applied without checking the remaining balance.
        """
        try:
            decline_type = DeclineType(decline_type)
        except ValueError:
            raise ValidationError(
                f"Valid decline type required, got {decline_type!r}", field="decline_type"
            ) from None
        if not reason or not reason.strip():
            raise ValidationError("Decline reason required", field="reason")

        shift = await self.get_shift(shift_id)
        require_owner_or_admin(actor, shift.employee_id, "decline shifts")

        from_status = shift.status
        self._ensure_unlocked(shift, ShiftStatus.DECLINED)
        ShiftStateMachine.validate_transition(from_status, ShiftStatus.DECLINED)
        was_accepted = ShiftStateMachine.is_cancel_after_accept(from_status, ShiftStatus.DECLINED)

        await self._compare_and_set(
            shift,
            from_status,
            ShiftStatus.DECLINED,
            decline_type=decline_type.value,
            decline_reason=reason.strip(),
            responded_at=_now(),
            was_previously_accepted=was_accepted,
        )

        bucket = DECLINE_BUCKETS.get(decline_type)
        hours_charged = shift.hours if bucket is not None else Decimal("0")
        if bucket is not None:
            await self.ledger.debit(
                shift.employee_id,
                bucket,
                shift.hours,
                source_type="shift",
                source_id=shift.shift_id,
                note=reason.strip(),
                actor_id=actor.employee_id,
            )

        await self._record_audit(
            shift.shift_id,
            f"status_change:{from_status}:{ShiftStatus.DECLINED.value}",
            actor,
            {
                "decline_type": decline_type.value,
                "reason": reason.strip(),
                "was_previously_accepted": was_accepted,
            },
        )
        logger.info(
            "Shift %s declined (%s) from %s, %s hours charged",
            shift.shift_id,
            decline_type.value,
            from_status,
            hours_charged,
        )
        self._emit(
            ShiftDeclined(
                metadata=EventMetadata.create(actor_id=actor.employee_id),
                shift_id=shift.shift_id,
                employee_id=shift.employee_id,
                decline_type=decline_type.value,
                reason=reason.strip(),
                hours_charged=hours_charged,
                was_previously_accepted=was_accepted,
            )
        )
        return shift

    # ------------------------------------------------------------------
    # Admin edits
    # ------------------------------------------------------------------

    async def update_shift(
        self,
        shift_id: UUID,
        *,
        actor: Actor,
        shift_date: date | None = None,
        start_time: time | None = None,
        end_time: time | None = None,
        notes: str | None = None,
    ) -> Shift:
        """Edit date, times or notes of a PENDING or ACCEPTED shift."""
        require_admin(actor, "edit shifts")
        shift = await self.get_shift(shift_id)
        if shift.is_locked:
            raise InvalidStateError(shift.status, shift.status, "Shift is locked by a closed pay period")
        if not ShiftStateMachine.is_active(shift.status):
            raise InvalidStateError(shift.status, shift.status, "Declined shifts cannot be edited")
        await self._lock_employee(shift.employee_id)
        if shift_date is not None and shift_date != shift.shift_date:
            await self._ensure_dates_open([shift_date])

        new_start = start_time or shift.start_time
        new_end = end_time or shift.end_time
        shift.hours = compute_hours(new_start, new_end)
        shift.start_time = new_start
        shift.end_time = new_end
        if shift_date is not None:
            shift.shift_date = shift_date
        if notes is not None:
            shift.notes = notes
        await self.session.flush()

        await self._record_audit(shift.shift_id, "updated", actor, {"hours": str(shift.hours)})
        return shift

    async def delete_shift(self, shift_id: UUID, *, actor: Actor) -> None:
        """Remove a shift. Leave already charged for it is not refunded."""
        require_admin(actor, "delete shifts")
        shift = await self.get_shift(shift_id)
        if shift.is_locked:
            raise InvalidStateError(shift.status, shift.status, "Shift is locked by a closed pay period")
        await self.session.delete(shift)
        await self.session.flush()
        await self._record_audit(shift_id, "deleted", actor)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _accept_loaded(self, shift: Shift, actor: Actor) -> Shift:
        from_status = shift.status
        self._ensure_unlocked(shift, ShiftStatus.ACCEPTED)
        ShiftStateMachine.validate_transition(from_status, ShiftStatus.ACCEPTED)

        now = _now()
        await self._compare_and_set(
            shift,
            from_status,
            ShiftStatus.ACCEPTED,
            responded_at=now,
            accepted_at=now,
        )
        await self._record_audit(
            shift.shift_id,
            f"status_change:{from_status}:{ShiftStatus.ACCEPTED.value}",
            actor,
        )
        logger.info("Shift %s accepted by %s", shift.shift_id, actor.employee_id)
        self._emit(
            ShiftAccepted(
                metadata=EventMetadata.create(actor_id=actor.employee_id),
                shift_id=shift.shift_id,
                employee_id=shift.employee_id,
            )
        )
        return shift

    async def _compare_and_set(
        self,
        shift: Shift,
        from_status: str,
        to_status: ShiftStatus,
        **values,
    ) -> None:
        """Conditional status update; fails if another caller moved the shift first."""
        result = await self.session.execute(
            update(Shift)
            .where(
                Shift.shift_id == shift.shift_id,
                Shift.status == from_status,
                Shift.locked_by_pay_period_id.is_(None),
            )
            .values(status=to_status.value, **values)
            .execution_options(synchronize_session=False)
        )
        await self.session.refresh(shift)
        if result.rowcount == 0:
            raise InvalidStateError(
                shift.status,
                to_status.value,
                "Shift status changed concurrently",
            )

    @staticmethod
    def _ensure_unlocked(shift: Shift, to_status: ShiftStatus) -> None:
        if shift.is_locked:
            raise InvalidStateError(
                shift.status,
                to_status.value,
                "Shift is locked by a closed pay period",
            )

    async def _lock_employee(self, employee_id: UUID) -> None:
        """Serialize conflict checks and shift writes for one employee."""
        await acquire_xact_lock(self.session, f"shift-engine:employee:{employee_id}")

    async def _ensure_dates_open(self, dates: list[date]) -> None:
        """Refuse dates covered by a CLOSED pay period; its payouts are final."""
        if not dates:
            return
        result = await self.session.execute(
            select(PayPeriod).where(
                PayPeriod.status == PayPeriodStatus.CLOSED.value,
                PayPeriod.start_date <= max(dates),
                PayPeriod.end_date >= min(dates),
            )
        )
        for period in result.scalars():
            for day in dates:
                if period.start_date <= day <= period.end_date:
                    raise InvalidStateError(
                        PayPeriodStatus.CLOSED.value,
                        ShiftStatus.PENDING.value,
                        f"{day} falls in closed pay period {period.name!r}",
                    )

    async def _require_employee(self, employee_id: UUID) -> Employee:
        employee = await self.session.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        return employee

    async def _record_audit(
        self,
        entity_id: UUID,
        action: str,
        actor: Actor | None = None,
        details: dict | None = None,
        entity_type: str = "shift",
    ) -> None:
        """Record an audit event for a shift or rule action."""
        self.session.add(
            AuditEvent(
                actor_employee_id=actor.employee_id if actor else None,
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                after_json=details,
            )
        )

    def _emit(self, event) -> None:
        if self.emitter is not None:
            self.emitter.emit(event)
