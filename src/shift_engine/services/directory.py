"""Employee directory seam.

The employee directory is owned by an external system. The engine reads
employment type, pay rate and activity through this protocol; the SQL
implementation reads the locally mirrored Employee table.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shift_engine.errors import NotFoundError
from shift_engine.models import Employee


class EmployeeDirectory(Protocol):
    """Read access to employee records."""

    async def get(self, employee_id: UUID) -> Employee: ...

    async def list_active(self, pay_frequency: str | None = None) -> list[Employee]: ...


class SqlEmployeeDirectory:
    """Directory backed by the mirrored ``employee`` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, employee_id: UUID) -> Employee:
        employee = await self.session.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        return employee

    async def list_active(self, pay_frequency: str | None = None) -> list[Employee]:
        query = select(Employee).where(Employee.is_active.is_(True))
        if pay_frequency is not None:
            query = query.where(Employee.pay_frequency == pay_frequency)
        result = await self.session.execute(query.order_by(Employee.display_name))
        return list(result.scalars().all())
