"""Leave balance ledger.

Owns every employee's sick and vacation hour balances. Each mutation is a
single atomic ``UPDATE ... SET x = x - :hours`` so concurrent debits for the
same employee serialize in the database instead of overwriting each other,
and each one appends a LeaveTransaction row.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shift_engine.config import Settings, get_settings
from shift_engine.errors import InsufficientBalanceError, NotFoundError, ValidationError
from shift_engine.events import EventMetadata, EventPublisher, LeaveBalanceChanged
from shift_engine.models import Employee, LeaveBalance, LeaveTransaction
from shift_engine.services.types import LeaveBucket

logger = logging.getLogger(__name__)

HOURS_PRECISION = Decimal("0.01")


def _quantize(hours: Decimal) -> Decimal:
    return Decimal(hours).quantize(HOURS_PRECISION, rounding=ROUND_HALF_UP)


class LeaveLedger:
    """Sick/vacation balance holder with debit and credit operations."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        emitter: EventPublisher | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.emitter = emitter

    @staticmethod
    def _column(bucket: LeaveBucket):
        if LeaveBucket(bucket) == LeaveBucket.SICK:
            return LeaveBalance.sick_hours_remaining
        return LeaveBalance.vacation_hours_remaining

    async def get_balance(self, employee_id: UUID) -> LeaveBalance:
        """Load the current balance row, refreshed from the database."""
        result = await self.session.execute(
            select(LeaveBalance)
            .where(LeaveBalance.employee_id == employee_id)
            .execution_options(populate_existing=True)
        )
        balance = result.scalar_one_or_none()
        if balance is None:
            raise NotFoundError("LeaveBalance", employee_id)
        return balance

    async def remaining(self, employee_id: UUID, bucket: LeaveBucket) -> Decimal:
        column = self._column(bucket)
        value = await self.session.scalar(
            select(column).where(LeaveBalance.employee_id == employee_id)
        )
        if value is None:
            raise NotFoundError("LeaveBalance", employee_id)
        return Decimal(value)

    async def provision(self, employee: Employee) -> LeaveBalance:
        """Create the balance row for a newly provisioned employee.

        Annual day allotments are converted to hours at the full-day rate.
        """
        existing = await self.session.get(
            LeaveBalance, employee.employee_id, populate_existing=True
        )
        if existing is not None:
            return existing

        full_day = self.settings.full_day_hours
        balance = LeaveBalance(
            employee_id=employee.employee_id,
            sick_hours_remaining=_quantize(full_day * employee.annual_sick_days),
            vacation_hours_remaining=_quantize(full_day * employee.annual_vacation_days),
        )
        self.session.add(balance)
        await self.session.flush()
        logger.info(
            "Provisioned leave balance for %s: sick=%s vacation=%s",
            employee.employee_id,
            balance.sick_hours_remaining,
            balance.vacation_hours_remaining,
        )
        return balance

    async def debit(
        self,
        employee_id: UUID,
        bucket: LeaveBucket,
        hours: Decimal,
        *,
        source_type: str = "manual",
        source_id: UUID | None = None,
        note: str | None = None,
        actor_id: UUID | None = None,
    ) -> Decimal:
        """Subtract hours from a bucket and return the new remaining value.

        The debit is not checked against the remaining balance unless
        negative balances are disabled in settings.
        """
        return await self._apply(
            employee_id,
            LeaveBucket(bucket),
            -self._positive(hours),
            source_type=source_type,
            source_id=source_id,
            note=note,
            actor_id=actor_id,
        )

    async def credit(
        self,
        employee_id: UUID,
        bucket: LeaveBucket,
        hours: Decimal,
        *,
        source_type: str = "manual",
        source_id: UUID | None = None,
        note: str | None = None,
        actor_id: UUID | None = None,
    ) -> Decimal:
        """Add hours to a bucket and return the new remaining value."""
        return await self._apply(
            employee_id,
            LeaveBucket(bucket),
            self._positive(hours),
            source_type=source_type,
            source_id=source_id,
            note=note,
            actor_id=actor_id,
        )

    async def roll_over_year(self, employee_id: UUID, actor_id: UUID | None = None) -> LeaveBalance:
        """Apply the annual boundary to one employee.

        With carryover enabled the new allotment is added to what remains;
        otherwise the balance is reset to the allotment.
        """
        employee = await self.session.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        balance = await self.get_balance(employee_id)

        full_day = self.settings.full_day_hours
        allotments = {
            LeaveBucket.SICK: _quantize(full_day * employee.annual_sick_days),
            LeaveBucket.VACATION: _quantize(full_day * employee.annual_vacation_days),
        }
        current = {
            LeaveBucket.SICK: Decimal(balance.sick_hours_remaining),
            LeaveBucket.VACATION: Decimal(balance.vacation_hours_remaining),
        }

        for bucket, allotment in allotments.items():
            target = current[bucket] + allotment if employee.carryover_enabled else allotment
            delta = target - current[bucket]
            if delta == 0:
                continue
            await self._apply(
                employee_id,
                bucket,
                delta,
                source_type="rollover",
                note="carryover" if employee.carryover_enabled else "reset",
                actor_id=actor_id,
            )

        return await self.get_balance(employee_id)

    async def history(self, employee_id: UUID) -> list[LeaveTransaction]:
        """All ledger mutations for an employee, oldest first."""
        result = await self.session.execute(
            select(LeaveTransaction)
            .where(LeaveTransaction.employee_id == employee_id)
            .order_by(LeaveTransaction.recorded_at)
        )
        return list(result.scalars().all())

    @staticmethod
    def _positive(hours: Decimal) -> Decimal:
        value = _quantize(Decimal(hours))
        if value <= 0:
            raise ValidationError("Hours must be a positive number", field="hours")
        return value

    async def _apply(
        self,
        employee_id: UUID,
        bucket: LeaveBucket,
        delta: Decimal,
        *,
        source_type: str,
        source_id: UUID | None = None,
        note: str | None = None,
        actor_id: UUID | None = None,
    ) -> Decimal:
        column = self._column(bucket)
        stmt = update(LeaveBalance).where(LeaveBalance.employee_id == employee_id)
        if delta < 0 and not self.settings.allow_negative_leave_balance:
            stmt = stmt.where(column >= -delta)

        result = await self.session.execute(
            stmt.values({column.key: column + delta}).execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            remaining = await self.remaining(employee_id, bucket)  # raises NotFoundError
            raise InsufficientBalanceError(employee_id, bucket.value, -delta, remaining)

        balance_after = await self.remaining(employee_id, bucket)
        if balance_after < 0:
            logger.warning(
                "Leave balance for %s (%s) is negative: %s",
                employee_id,
                bucket.value,
                balance_after,
            )

        self.session.add(
            LeaveTransaction(
                employee_id=employee_id,
                bucket=bucket.value,
                delta_hours=delta,
                balance_after=balance_after,
                source_type=source_type,
                source_id=source_id,
                note=note,
            )
        )
        await self.session.flush()

        logger.info(
            "Leave %s for %s: %s hours, %s remaining",
            bucket.value,
            employee_id,
            delta,
            balance_after,
        )
        if self.emitter is not None:
            self.emitter.emit(
                LeaveBalanceChanged(
                    metadata=EventMetadata.create(actor_id=actor_id),
                    employee_id=employee_id,
                    bucket=bucket.value,
                    delta_hours=delta,
                    balance_after=balance_after,
                )
            )
        return balance_after
