"""Pay period service - orchestrator for period setup and close."""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shift_engine.config import Settings, get_settings
from shift_engine.database import acquire_xact_lock
from shift_engine.errors import InvalidRangeError, InvalidStateError, NotFoundError, ValidationError
from shift_engine.events import EventMetadata, EventPublisher, PayPeriodClosed
from shift_engine.models import AuditEvent, PayPeriod, Payout, Shift
from shift_engine.services.authorization import Actor, require_admin
from shift_engine.services.directory import EmployeeDirectory, SqlEmployeeDirectory
from shift_engine.services.locking_service import LockingService
from shift_engine.services.payroll_aggregator import aggregate, total_gross
from shift_engine.services.recurrence import add_months
from shift_engine.services.state_machine import PayPeriodStateMachine, PayPeriodStatus
from shift_engine.services.types import EmploymentType, PayFrequency, PayrollLine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClosePreview:
    """What closing a period would pay, without persisting anything."""

    period: PayPeriod
    lines: list[PayrollLine]

    @property
    def hourly_lines(self) -> list[PayrollLine]:
        return [line for line in self.lines if line.employment_type == EmploymentType.HOURLY]

    @property
    def salaried_lines(self) -> list[PayrollLine]:
        return [line for line in self.lines if line.employment_type == EmploymentType.SALARY]

    @property
    def total_gross(self) -> Decimal:
        return total_gross(self.lines)


def _month_end(day: date) -> date:
    return date(day.year, day.month, calendar.monthrange(day.year, day.month)[1])


def next_period_bounds(frequency: PayFrequency, start: date) -> tuple[date, date, str, date]:
    """Return (start, end, name, next_start) for the period beginning at ``start``."""
    if frequency == PayFrequency.BI_WEEKLY:
        end = start + timedelta(days=13)
        name = f"{start:%b} {start.day} - {end:%b} {end.day}, {end.year}"
        return start, end, name, start + timedelta(days=14)

    if frequency == PayFrequency.MONTHLY:
        end = _month_end(start)
        return start, end, f"{start:%B %Y}", end + timedelta(days=1)

    # SEMI_MONTHLY: 1st-15th, then 16th (or the given start) to month end
    if start.day == 1:
        end = date(start.year, start.month, 15)
        return start, end, f"{start:%B %Y} (1st Half)", date(start.year, start.month, 16)
    end = _month_end(start)
    return start, end, f"{start:%B %Y} (2nd Half)", end + timedelta(days=1)


class PayPeriodService:
    """Service for pay period lifecycle.

    Closing a period:
    1. Acquires a transaction-scoped lock on the period
    2. Aggregates payroll lines from the period's shifts
    3. Persists one Payout per line
    4. Locks the period's shifts
    5. Finalizes status with a conditional update
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        emitter: EventPublisher | None = None,
        directory: EmployeeDirectory | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.emitter = emitter
        self.directory = directory or SqlEmployeeDirectory(session)
        self.locking_service = LockingService(session)

    async def get_period(self, pay_period_id: UUID) -> PayPeriod:
        period = await self.session.get(PayPeriod, pay_period_id, populate_existing=True)
        if period is None:
            raise NotFoundError("PayPeriod", pay_period_id)
        return period

    async def list_periods(self, status: str | None = None) -> list[PayPeriod]:
        query = select(PayPeriod)
        if status is not None:
            try:
                query = query.where(PayPeriod.status == PayPeriodStatus(status).value)
            except ValueError:
                raise ValidationError(f"Unknown period status {status!r}", field="status") from None
        result = await self.session.execute(query.order_by(PayPeriod.start_date.desc()))
        return list(result.scalars().all())

    async def create_period(
        self,
        name: str,
        start_date: date,
        end_date: date,
        frequency: str | None = None,
        *,
        actor: Actor,
    ) -> PayPeriod:
        """Create an OPEN period. Overlapping an existing period is an error."""
        require_admin(actor, "create pay periods")
        if not name or not name.strip():
            raise ValidationError("Name is required", field="name")
        if end_date < start_date:
            raise InvalidRangeError(start_date, end_date)
        parsed = self._parse_frequency(frequency) if frequency else None

        overlapping = await self._find_overlap(start_date, end_date)
        if overlapping is not None:
            raise ValidationError(
                f"Pay period overlaps with existing period {overlapping.name!r}",
                field="start_date",
            )

        period = PayPeriod(
            name=name.strip(),
            start_date=start_date,
            end_date=end_date,
            frequency=parsed.value if parsed else None,
            status=PayPeriodStatus.OPEN.value,
        )
        self.session.add(period)
        await self.session.flush()
        self._record_audit(period.pay_period_id, "created", actor)
        logger.info("Created pay period %s (%s to %s)", period.name, start_date, end_date)
        return period

    async def generate_periods(
        self,
        frequency: str,
        start_date: date,
        *,
        actor: Actor,
    ) -> list[PayPeriod]:
        """Create consecutive periods over the configured horizon.

        Periods that would overlap an existing one are skipped.
        """
        require_admin(actor, "generate pay periods")
        parsed = self._parse_frequency(frequency)
        limit = add_months(start_date, self.settings.pay_period_generation_months)

        await acquire_xact_lock(self.session, "shift-engine:pay-period-generation")

        created: list[PayPeriod] = []
        current = start_date
        while current < limit:
            period_start, period_end, name, current = next_period_bounds(parsed, current)
            if await self._find_overlap(period_start, period_end) is not None:
                logger.debug("Skipping %s: overlaps an existing period", name)
                continue
            period = PayPeriod(
                name=name,
                start_date=period_start,
                end_date=period_end,
                frequency=parsed.value,
                status=PayPeriodStatus.OPEN.value,
            )
            self.session.add(period)
            await self.session.flush()
            created.append(period)

        for period in created:
            self._record_audit(period.pay_period_id, "generated", actor)
        logger.info("Generated %d %s pay periods from %s", len(created), parsed.value, start_date)
        return created

    async def preview(self, pay_period_id: UUID) -> ClosePreview:
        """Aggregate payroll for a period without changing it."""
        period = await self.get_period(pay_period_id)
        return ClosePreview(period=period, lines=await self._aggregate(period))

    async def close(self, pay_period_id: UUID, *, actor: Actor) -> PayPeriod:
        """OPEN → CLOSED. A second close fails with InvalidStateError."""
        require_admin(actor, "close pay periods")
        period = await self.get_period(pay_period_id)
        PayPeriodStateMachine.validate_transition(period.status, PayPeriodStatus.CLOSED)

        await acquire_xact_lock(self.session, f"shift-engine:pay-period:{pay_period_id}")

        closed_at = datetime.now(timezone.utc)
        result = await self.session.execute(
            update(PayPeriod)
            .where(
                PayPeriod.pay_period_id == pay_period_id,
                PayPeriod.status == PayPeriodStatus.OPEN.value,
            )
            .values(
                status=PayPeriodStatus.CLOSED.value,
                closed_at=closed_at,
                closed_by=actor.employee_id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.refresh(period)
            raise InvalidStateError(
                period.status,
                PayPeriodStatus.CLOSED.value,
                "Status changed during close",
            )

        lines = await self._aggregate(period)
        for line in lines:
            # Salaried payouts are flat; hours are not part of the frozen record
            hourly = line.employment_type == EmploymentType.HOURLY
            self.session.add(
                Payout(
                    pay_period_id=pay_period_id,
                    employee_id=line.employee_id,
                    employment_type=line.employment_type.value,
                    total_hours=line.total_hours if hourly else Decimal("0"),
                    hourly_rate=line.rate if hourly else Decimal("0"),
                    gross_amount=line.gross_amount,
                    deductions=Decimal("0"),
                    net_amount=line.gross_amount,
                )
            )

        locked_count = await self.locking_service.lock_shifts_for_period(period)
        totals_hash = self.locking_service.compute_totals_hash(lines)
        await self.session.execute(
            update(PayPeriod)
            .where(PayPeriod.pay_period_id == pay_period_id)
            .values(totals_hash=totals_hash)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        await self.session.refresh(period)

        gross = total_gross(lines)
        self._record_audit(
            pay_period_id,
            "closed",
            actor,
            {
                "payout_count": len(lines),
                "total_gross": str(gross),
                "locked_shifts": locked_count,
                "totals_hash": totals_hash,
            },
        )
        logger.info(
            "Closed pay period %s: %d payouts, gross %s, %d shifts locked",
            period.name,
            len(lines),
            gross,
            locked_count,
        )
        if self.emitter is not None:
            self.emitter.emit(
                PayPeriodClosed(
                    metadata=EventMetadata.create(actor_id=actor.employee_id),
                    pay_period_id=pay_period_id,
                    payout_count=len(lines),
                    total_gross=gross,
                    totals_hash=totals_hash,
                )
            )
        return period

    async def get_payouts(self, pay_period_id: UUID) -> list[Payout]:
        """Payouts frozen when the period closed."""
        await self.get_period(pay_period_id)
        result = await self.session.execute(
            select(Payout)
            .where(Payout.pay_period_id == pay_period_id)
            .order_by(Payout.employment_type, Payout.employee_id)
        )
        return list(result.scalars().all())

    async def _aggregate(self, period: PayPeriod) -> list[PayrollLine]:
        employees = await self.directory.list_active(period.frequency)
        shifts = await self.session.execute(
            select(Shift)
            .where(
                Shift.shift_date >= period.start_date,
                Shift.shift_date <= period.end_date,
            )
            .execution_options(populate_existing=True)
        )
        return aggregate(period, employees, shifts.scalars().all())

    async def _find_overlap(self, start_date: date, end_date: date) -> PayPeriod | None:
        result = await self.session.execute(
            select(PayPeriod)
            .where(PayPeriod.start_date <= end_date, PayPeriod.end_date >= start_date)
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _parse_frequency(frequency: str) -> PayFrequency:
        try:
            return PayFrequency(frequency)
        except ValueError:
            raise ValidationError(f"Invalid frequency {frequency!r}", field="frequency") from None

    def _record_audit(
        self,
        pay_period_id: UUID,
        action: str,
        actor: Actor,
        details: dict | None = None,
    ) -> None:
        self.session.add(
            AuditEvent(
                actor_employee_id=actor.employee_id,
                entity_type="pay_period",
                entity_id=pay_period_id,
                action=action,
                after_json=details,
            )
        )
