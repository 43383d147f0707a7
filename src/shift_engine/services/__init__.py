"""Shift engine services."""

from shift_engine.services.authorization import Actor, Role
from shift_engine.services.conflict_detector import ConflictDetector
from shift_engine.services.directory import EmployeeDirectory, SqlEmployeeDirectory
from shift_engine.services.leave_ledger import LeaveLedger
from shift_engine.services.locking_service import LockingService
from shift_engine.services.pay_period_service import ClosePreview, PayPeriodService
from shift_engine.services.shift_service import ShiftService
from shift_engine.services.state_machine import (
    PayPeriodStatus,
    ShiftStateMachine,
    ShiftStatus,
    TimeOffStateMachine,
    TimeOffStatus,
)
from shift_engine.services.time_off_service import TimeOffService

__all__ = [
    "Actor",
    "ClosePreview",
    "ConflictDetector",
    "EmployeeDirectory",
    "LeaveLedger",
    "LockingService",
    "PayPeriodService",
    "PayPeriodStatus",
    "Role",
    "ShiftService",
    "ShiftStateMachine",
    "ShiftStatus",
    "SqlEmployeeDirectory",
    "TimeOffService",
    "TimeOffStateMachine",
    "TimeOffStatus",
]
