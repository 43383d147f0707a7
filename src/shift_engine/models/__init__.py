"""ORM models."""

from shift_engine.models.base import Base, TimestampMixin
from shift_engine.models.employee import Employee, LeaveBalance, LeaveTransaction
from shift_engine.models.payroll import AuditEvent, PayPeriod, Payout
from shift_engine.models.scheduling import RecurringRule, Shift
from shift_engine.models.time_off import TimeOffRequest

__all__ = [
    "AuditEvent",
    "Base",
    "Employee",
    "LeaveBalance",
    "LeaveTransaction",
    "PayPeriod",
    "Payout",
    "RecurringRule",
    "Shift",
    "TimeOffRequest",
    "TimestampMixin",
]
