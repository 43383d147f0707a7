"""Shift and recurring rule models."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shift_engine.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from shift_engine.models.employee import Employee


class RecurringRule(Base, TimestampMixin):
    """Weekly template that expands into dated shifts."""

    __tablename__ = "recurring_rule"

    recurring_rule_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    employee_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    # 0 = Sunday ... 6 = Saturday
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    hours: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="recurring_rule_dow_check"),
        CheckConstraint("end_time > start_time", name="recurring_rule_times_check"),
        CheckConstraint("end_date >= start_date", name="recurring_rule_dates_check"),
    )


class Shift(Base, TimestampMixin):
    """A single dated work assignment."""

    __tablename__ = "shift"

    shift_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    shift_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    hours: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="PENDING")
    decline_type: Mapped[str | None] = mapped_column(String, nullable=True)
    decline_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    recurring_rule_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("recurring_rule.recurring_rule_id", ondelete="SET NULL"),
        nullable=True,
    )
    created_by: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    was_previously_accepted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Locking
    locked_by_pay_period_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("pay_period.pay_period_id"),
        nullable=True,
    )
    locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'ACCEPTED', 'DECLINED')",
            name="shift_status_check",
        ),
        CheckConstraint(
            "decline_type IS NULL OR decline_type IN ('UNPAID', 'SICK_DAY', 'VACATION_DAY')",
            name="shift_decline_type_check",
        ),
        CheckConstraint("end_time > start_time", name="shift_times_check"),
        CheckConstraint("hours > 0", name="shift_hours_check"),
        Index("ix_shift_employee_date", "employee_id", "shift_date"),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="shifts")

    @property
    def is_locked(self) -> bool:
        return self.locked_by_pay_period_id is not None
