"""Pytest fixtures for shift engine tests."""

from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shift_engine.config import Settings
from shift_engine.events import EventCollector, EventEmitter
from shift_engine.models import Base, Employee, PayPeriod, Shift
from shift_engine.services import (
    LeaveLedger,
    PayPeriodService,
    ShiftService,
    TimeOffService,
)
from shift_engine.services.authorization import Actor, Role
from shift_engine.services.recurrence import compute_hours

# Use in-memory SQLite for tests (with async support)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    """Create a fresh test database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        engine_version="test",
        host="127.0.0.1",
        port=8000,
        debug=False,
    )


@pytest.fixture
def collector() -> EventCollector:
    return EventCollector()


@pytest.fixture
def emitter(collector: EventCollector) -> EventEmitter:
    emitter = EventEmitter()
    emitter.on_all(collector)
    return emitter


# =============================================================================
# Employees
# =============================================================================


async def make_employee(
    session: AsyncSession,
    settings: Settings,
    *,
    display_name: str,
    employment_type: str = "HOURLY",
    hourly_rate: Decimal | None = Decimal("20.00"),
    salary_amount: Decimal | None = None,
    pay_frequency: str | None = "BI_WEEKLY",
    annual_sick_days: int = 5,
    annual_vacation_days: int = 10,
    carryover_enabled: bool = False,
    is_active: bool = True,
) -> Employee:
    """Insert an employee and provision its leave balance."""
    employee = Employee(
        employee_id=uuid4(),
        display_name=display_name,
        employment_type=employment_type,
        hourly_rate=hourly_rate,
        salary_amount=salary_amount,
        pay_frequency=pay_frequency,
        annual_sick_days=annual_sick_days,
        annual_vacation_days=annual_vacation_days,
        carryover_enabled=carryover_enabled,
        is_active=is_active,
    )
    session.add(employee)
    await session.flush()
    await LeaveLedger(session, settings).provision(employee)
    return employee


@pytest.fixture
async def admin_employee(session: AsyncSession, settings: Settings) -> Employee:
    return await make_employee(session, settings, display_name="Alex Admin", pay_frequency=None)


@pytest.fixture
async def hourly_employee(session: AsyncSession, settings: Settings) -> Employee:
    """Hourly employee at $20/h with 40 sick and 80 vacation hours."""
    return await make_employee(session, settings, display_name="Harper Hourly")


@pytest.fixture
async def other_employee(session: AsyncSession, settings: Settings) -> Employee:
    return await make_employee(session, settings, display_name="Olive Other")


@pytest.fixture
async def salaried_employee(session: AsyncSession, settings: Settings) -> Employee:
    return await make_employee(
        session,
        settings,
        display_name="Sam Salaried",
        employment_type="SALARY",
        hourly_rate=None,
        salary_amount=Decimal("2000.00"),
    )


@pytest.fixture
def admin(admin_employee: Employee) -> Actor:
    return Actor(employee_id=admin_employee.employee_id, role=Role.ADMIN)


@pytest.fixture
def worker(hourly_employee: Employee) -> Actor:
    return Actor(employee_id=hourly_employee.employee_id, role=Role.EMPLOYEE)


@pytest.fixture
def other_worker(other_employee: Employee) -> Actor:
    return Actor(employee_id=other_employee.employee_id, role=Role.EMPLOYEE)


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def ledger(session: AsyncSession, settings: Settings, emitter: EventEmitter) -> LeaveLedger:
    return LeaveLedger(session, settings, emitter)


@pytest.fixture
def shift_service(session: AsyncSession, settings: Settings, emitter: EventEmitter) -> ShiftService:
    return ShiftService(session, settings, emitter)


@pytest.fixture
def time_off_service(
    session: AsyncSession, settings: Settings, emitter: EventEmitter
) -> TimeOffService:
    return TimeOffService(session, settings, emitter)


@pytest.fixture
def pay_period_service(
    session: AsyncSession, settings: Settings, emitter: EventEmitter
) -> PayPeriodService:
    return PayPeriodService(session, settings, emitter)


# =============================================================================
# Builders
# =============================================================================


def build_shift(
    employee: Employee,
    shift_date: date,
    start: time,
    end: time,
    status: str = "PENDING",
) -> Shift:
    """Unpersisted shift for pure-function tests."""
    return Shift(
        shift_id=uuid4(),
        employee_id=employee.employee_id,
        shift_date=shift_date,
        start_time=start,
        end_time=end,
        hours=compute_hours(start, end),
        status=status,
    )


def build_period(
    start: date,
    end: date,
    frequency: str | None = None,
    status: str = "OPEN",
) -> PayPeriod:
    return PayPeriod(
        pay_period_id=uuid4(),
        name=f"{start.isoformat()} - {end.isoformat()}",
        start_date=start,
        end_date=end,
        frequency=frequency,
        status=status,
    )
