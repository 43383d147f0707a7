"""Time-off request model."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from shift_engine.models.base import Base, TimestampMixin


class TimeOffRequest(Base, TimestampMixin):
    """Employee request for one or more days (or a partial day) off."""

    __tablename__ = "time_off_request"

    request_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    request_type: Mapped[str] = mapped_column(String, nullable=False)
    # NULL means full day(s)
    hours: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="PENDING")
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    review_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "request_type IN ('VACATION', 'SICK', 'UNPAID')",
            name="time_off_request_type_check",
        ),
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="time_off_request_status_check",
        ),
        CheckConstraint("end_date >= start_date", name="time_off_request_dates_check"),
        CheckConstraint("hours IS NULL OR hours > 0", name="time_off_request_hours_check"),
        Index("ix_time_off_employee_dates", "employee_id", "start_date", "end_date"),
    )

    @property
    def is_full_day(self) -> bool:
        return self.hours is None

    @property
    def day_count(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date
