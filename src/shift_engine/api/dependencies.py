"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from shift_engine.config import Settings, get_settings
from shift_engine.database import init_db
from shift_engine.events import EventBatch
from shift_engine.services import (
    LeaveLedger,
    PayPeriodService,
    ShiftService,
    TimeOffService,
)
from shift_engine.services.authorization import Actor, Role


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_event_batch(request: Request) -> AsyncGenerator[EventBatch, None]:
    """Collect the request's events and publish them once the handler returns.

    Routes commit before returning, so events reach handlers only for work
    that was persisted. A request that raises drops its events.
    """
    with request.app.state.emitter.batch() as batch:
        yield batch


async def get_actor(
    x_employee_id: Annotated[str | None, Header()] = None,
    x_role: Annotated[str | None, Header()] = None,
) -> Actor:
    """Build the calling actor from the auth layer's headers."""
    if not x_employee_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Employee-ID header is required",
        )
    try:
        employee_id = UUID(x_employee_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Employee-ID format",
        )
    try:
        role = Role((x_role or Role.EMPLOYEE.value).upper())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Role value",
        )
    return Actor(employee_id=employee_id, role=role)


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
CurrentActor = Annotated[Actor, Depends(get_actor)]
Events = Annotated[EventBatch, Depends(get_event_batch)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def get_shift_service(db: DbSession, emitter: Events, settings: AppSettings) -> ShiftService:
    return ShiftService(db, settings, emitter)


def get_time_off_service(
    db: DbSession, emitter: Events, settings: AppSettings
) -> TimeOffService:
    return TimeOffService(db, settings, emitter)


def get_pay_period_service(
    db: DbSession, emitter: Events, settings: AppSettings
) -> PayPeriodService:
    return PayPeriodService(db, settings, emitter)


def get_leave_ledger(db: DbSession, emitter: Events, settings: AppSettings) -> LeaveLedger:
    return LeaveLedger(db, settings, emitter)


ShiftSvc = Annotated[ShiftService, Depends(get_shift_service)]
TimeOffSvc = Annotated[TimeOffService, Depends(get_time_off_service)]
PayPeriodSvc = Annotated[PayPeriodService, Depends(get_pay_period_service)]
Ledger = Annotated[LeaveLedger, Depends(get_leave_ledger)]
