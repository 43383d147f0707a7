"""Pydantic schemas for API request/response models."""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from shift_engine.services.types import EmploymentType


# ============================================================================
# Shift schemas
# ============================================================================


class ShiftCreate(BaseModel):
    """Schema for assigning a single shift."""

    employee_id: UUID
    shift_date: date
    start_time: time
    end_time: time
    notes: str | None = None
    override: bool = False


class ShiftUpdate(BaseModel):
    """Schema for editing a shift. Omitted fields are unchanged."""

    shift_date: date | None = None
    start_time: time | None = None
    end_time: time | None = None
    notes: str | None = None


class ShiftResponse(BaseModel):
    """Schema for shift response."""

    model_config = ConfigDict(from_attributes=True)

    shift_id: UUID
    employee_id: UUID
    shift_date: date
    start_time: time
    end_time: time
    hours: Decimal
    status: str
    decline_type: str | None = None
    decline_reason: str | None = None
    notes: str | None = None
    recurring_rule_id: UUID | None = None
    responded_at: datetime | None = None
    accepted_at: datetime | None = None
    was_previously_accepted: bool = False
    locked_by_pay_period_id: UUID | None = None
    created_at: datetime


class ShiftListResponse(BaseModel):
    items: list[ShiftResponse]
    total: int


class DeclineRequest(BaseModel):
    """Schema for declining a shift."""

    decline_type: str
    reason: str = Field(..., min_length=1)


class BulkAcceptRequest(BaseModel):
    shift_ids: list[UUID] = Field(..., min_length=1)


class AcceptRangeRequest(BaseModel):
    start_date: date
    end_date: date


# ============================================================================
# Recurring rule schemas
# ============================================================================


class RecurringRuleCreate(BaseModel):
    """Schema for creating a recurring weekly rule. day_of_week 0 = Sunday."""

    employee_id: UUID
    day_of_week: int = Field(..., ge=0, le=6)
    start_time: time
    end_time: time
    start_date: date
    end_date: date | None = None
    notes: str | None = None
    override: bool = False


class RecurringRuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    recurring_rule_id: UUID
    employee_id: UUID
    day_of_week: int
    start_time: time
    end_time: time
    hours: Decimal
    start_date: date
    end_date: date
    notes: str | None = None


class RecurringCreateResponse(BaseModel):
    rule: RecurringRuleResponse
    shifts: list[ShiftResponse]
    count: int


class ConflictItem(BaseModel):
    employee_id: UUID
    shift_date: date
    start_time: time
    end_time: time
    conflicting_shift_id: UUID | None = None
    conflicting_range: str | None = None
    time_off_request_id: UUID | None = None


class ConflictCheckResponse(BaseModel):
    has_conflict: bool
    conflicts: list[ConflictItem]


# ============================================================================
# Time-off schemas
# ============================================================================


class TimeOffCreate(BaseModel):
    """Schema for submitting one time-off request."""

    start_date: date
    end_date: date
    request_type: str
    hours: Decimal | None = None
    reason: str | None = None


class DaySelectionIn(BaseModel):
    day: date
    portion: str = "FULL"


class TimeOffSelectionsCreate(BaseModel):
    """Schema for submitting per-day selections, batched server-side."""

    days: list[DaySelectionIn] = Field(..., min_length=1)
    request_type: str
    reason: str | None = None


class ReviewRequest(BaseModel):
    note: str | None = None


class TimeOffResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    request_id: UUID
    employee_id: UUID
    start_date: date
    end_date: date
    request_type: str
    hours: Decimal | None = None
    status: str
    reason: str | None = None
    review_note: str | None = None
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    created_at: datetime


class TimeOffListResponse(BaseModel):
    items: list[TimeOffResponse]
    total: int


class CalendarDayResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day: date
    shifts: list[ShiftResponse]
    time_off_status: str | None = None
    time_off_request_id: UUID | None = None
    blocked: bool


# ============================================================================
# Pay period schemas
# ============================================================================


class PayPeriodCreate(BaseModel):
    name: str = Field(..., min_length=1)
    start_date: date
    end_date: date
    frequency: str | None = None


class PayPeriodGenerate(BaseModel):
    frequency: str
    start_date: date


class PayPeriodResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pay_period_id: UUID
    name: str
    start_date: date
    end_date: date
    frequency: str | None = None
    status: str
    closed_at: datetime | None = None
    closed_by: UUID | None = None
    totals_hash: str | None = None


class PayrollLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    display_name: str | None = None
    employment_type: EmploymentType
    total_hours: Decimal
    rate: Decimal
    gross_amount: Decimal


class ClosePreviewResponse(BaseModel):
    period: PayPeriodResponse
    hourly_employees: list[PayrollLineResponse]
    salaried_employees: list[PayrollLineResponse]
    total_count: int
    total_gross: Decimal


class PayoutResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payout_id: UUID
    pay_period_id: UUID
    employee_id: UUID
    employment_type: str
    total_hours: Decimal
    hourly_rate: Decimal
    gross_amount: Decimal
    deductions: Decimal
    net_amount: Decimal


# ============================================================================
# Leave balance schemas
# ============================================================================


class LeaveBalanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    sick_hours_remaining: Decimal
    vacation_hours_remaining: Decimal


class LeaveAdjustment(BaseModel):
    """Manual credit or debit of a leave bucket."""

    bucket: str
    hours: Decimal = Field(..., gt=0)
    operation: str = Field("credit", pattern="^(credit|debit)$")
    note: str | None = None


class LeaveTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    leave_transaction_id: UUID
    bucket: str
    delta_hours: Decimal
    balance_after: Decimal
    source_type: str
    source_id: UUID | None = None
    note: str | None = None
    recorded_at: datetime


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
