"""Pay period aggregation.

Sums shift hours per employee over a pay period and prices them:

- HOURLY: gross = total_hours × hourly_rate, rounded half-up to cents
- SALARY: gross = the flat per-period salary amount, regardless of hours

PENDING and ACCEPTED shifts count; DECLINED shifts were not worked and are
excluded. Only active employees are included, restricted to the period's pay
frequency when the period has one.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable
from uuid import UUID

from shift_engine.models import Employee, PayPeriod, Shift
from shift_engine.services.state_machine import ShiftStateMachine
from shift_engine.services.types import EmploymentType, PayrollLine

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def round_to_cents(amount: Decimal) -> Decimal:
    """Round to cents, half-up."""
    return Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


def employee_in_scope(employee: Employee, period: PayPeriod) -> bool:
    """Whether an employee is paid in this period."""
    if not employee.is_active:
        return False
    if period.frequency and employee.pay_frequency != period.frequency:
        return False
    return True


def sum_hours_by_employee(
    shifts: Iterable[Shift], period: PayPeriod
) -> dict[UUID, Decimal]:
    """Total payable hours per employee for shifts dated within the period."""
    totals: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    for shift in shifts:
        if not period.start_date <= shift.shift_date <= period.end_date:
            continue
        if shift.status not in ShiftStateMachine.PAYABLE:
            continue
        totals[shift.employee_id] += Decimal(shift.hours)
    return totals


def aggregate(
    period: PayPeriod,
    employees: Iterable[Employee],
    shifts: Iterable[Shift],
) -> list[PayrollLine]:
    """Produce one PayrollLine per in-scope employee, hourly first then salaried.

    Lines are ordered by display name within each group so the output (and
    any hash computed over it) is deterministic.
    """
    totals = sum_hours_by_employee(shifts, period)
    hourly: list[PayrollLine] = []
    salaried: list[PayrollLine] = []

    for employee in employees:
        if not employee_in_scope(employee, period):
            continue

        total_hours = round_to_cents(totals.get(employee.employee_id, ZERO))
        if EmploymentType(employee.employment_type) == EmploymentType.SALARY:
            salary = round_to_cents(employee.salary_amount or ZERO)
            salaried.append(
                PayrollLine(
                    employee_id=employee.employee_id,
                    employment_type=EmploymentType.SALARY,
                    total_hours=total_hours,
                    rate=salary,
                    gross_amount=salary,
                    display_name=employee.display_name,
                )
            )
        else:
            rate = round_to_cents(employee.hourly_rate or ZERO)
            hourly.append(
                PayrollLine(
                    employee_id=employee.employee_id,
                    employment_type=EmploymentType.HOURLY,
                    total_hours=total_hours,
                    rate=rate,
                    gross_amount=round_to_cents(total_hours * rate),
                    display_name=employee.display_name,
                )
            )

    def sort_key(line: PayrollLine) -> tuple[str, str]:
        return (line.display_name or "", str(line.employee_id))

    return sorted(hourly, key=sort_key) + sorted(salaried, key=sort_key)


def total_gross(lines: Iterable[PayrollLine]) -> Decimal:
    return round_to_cents(sum((line.gross_amount for line in lines), ZERO))
