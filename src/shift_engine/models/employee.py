"""Employee directory mirror and leave balance models."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shift_engine.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from shift_engine.models.scheduling import Shift


class Employee(Base, TimestampMixin):
    """Employee record as published by the external directory."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    display_name: Mapped[str] = mapped_column(String, nullable=False)
    employment_type: Mapped[str] = mapped_column(String, nullable=False, default="HOURLY")
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    salary_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    pay_frequency: Mapped[str | None] = mapped_column(String, nullable=True)
    annual_sick_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    annual_vacation_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    carryover_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "employment_type IN ('HOURLY', 'SALARY')",
            name="employee_employment_type_check",
        ),
        CheckConstraint(
            "pay_frequency IS NULL OR pay_frequency IN ('BI_WEEKLY', 'SEMI_MONTHLY', 'MONTHLY')",
            name="employee_pay_frequency_check",
        ),
    )

    # Relationships
    leave_balance: Mapped[LeaveBalance | None] = relationship(back_populates="employee")
    shifts: Mapped[list[Shift]] = relationship(back_populates="employee")


class LeaveBalance(Base, TimestampMixin):
    """Remaining sick and vacation hours for one employee."""

    __tablename__ = "leave_balance"

    employee_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        primary_key=True,
    )
    sick_hours_remaining: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    vacation_hours_remaining: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="leave_balance")


class LeaveTransaction(Base, TimestampMixin):
    """Append-only record of a leave balance mutation."""

    __tablename__ = "leave_transaction"

    leave_transaction_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    employee_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    bucket: Mapped[str] = mapped_column(String, nullable=False)
    delta_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    source_type: Mapped[str] = mapped_column(String, nullable=False, default="manual")
    source_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    note: Mapped[str | None] = mapped_column(String, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("bucket IN ('SICK', 'VACATION')", name="leave_transaction_bucket_check"),
        CheckConstraint(
            "source_type IN ('shift', 'time_off_request', 'rollover', 'manual')",
            name="leave_transaction_source_type_check",
        ),
    )
