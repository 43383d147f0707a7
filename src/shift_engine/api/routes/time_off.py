"""Time-off request endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from shift_engine.api.dependencies import CurrentActor, DbSession, TimeOffSvc
from shift_engine.api.schemas import (
    CalendarDayResponse,
    ErrorResponse,
    ReviewRequest,
    TimeOffCreate,
    TimeOffListResponse,
    TimeOffResponse,
    TimeOffSelectionsCreate,
)
from shift_engine.errors import ValidationError
from shift_engine.services.authorization import require_owner_or_admin
from shift_engine.services.types import DayPortion, DaySelection

router = APIRouter(prefix="/time-off", tags=["time-off"])


@router.get("", response_model=TimeOffListResponse)
async def list_requests(
    service: TimeOffSvc,
    actor: CurrentActor,
    employee_id: UUID | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    from_date: Annotated[date | None, Query(alias="from")] = None,
    to_date: Annotated[date | None, Query(alias="to")] = None,
) -> TimeOffListResponse:
    """List requests. Employees only see their own."""
    if not actor.is_admin:
        employee_id = actor.employee_id
    requests = await service.list_requests(
        employee_id=employee_id,
        status=status_filter,
        start_date=from_date,
        end_date=to_date,
    )
    return TimeOffListResponse(
        items=[TimeOffResponse.model_validate(r) for r in requests],
        total=len(requests),
    )


@router.post(
    "",
    response_model=TimeOffResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def submit_request(
    db: DbSession,
    service: TimeOffSvc,
    actor: CurrentActor,
    payload: TimeOffCreate,
) -> TimeOffResponse:
    request = await service.submit(
        payload.start_date,
        payload.end_date,
        payload.request_type,
        payload.hours,
        payload.reason,
        actor=actor,
    )
    await db.commit()
    return TimeOffResponse.model_validate(request)


@router.post(
    "/selections",
    response_model=TimeOffListResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def submit_selections(
    db: DbSession,
    service: TimeOffSvc,
    actor: CurrentActor,
    payload: TimeOffSelectionsCreate,
) -> TimeOffListResponse:
    """Submit FULL/HALF day picks; contiguous FULL days become one request."""
    try:
        selections = [DaySelection(day=d.day, portion=DayPortion(d.portion)) for d in payload.days]
    except ValueError:
        raise ValidationError("Portion must be FULL or HALF", field="portion") from None
    requests = await service.submit_selections(
        selections, payload.request_type, payload.reason, actor=actor
    )
    await db.commit()
    return TimeOffListResponse(
        items=[TimeOffResponse.model_validate(r) for r in requests],
        total=len(requests),
    )


@router.get(
    "/calendar/{employee_id}",
    response_model=list[CalendarDayResponse],
)
async def calendar(
    service: TimeOffSvc,
    actor: CurrentActor,
    employee_id: Annotated[UUID, Path()],
    from_date: Annotated[date, Query(alias="from")],
    to_date: Annotated[date, Query(alias="to")],
) -> list[CalendarDayResponse]:
    """Per-day view of shifts and time off for one employee."""
    require_owner_or_admin(actor, employee_id, "view this calendar")
    days = await service.calendar(employee_id, from_date, to_date)
    return [CalendarDayResponse.model_validate(d) for d in days]


@router.post(
    "/{request_id}/approve",
    response_model=TimeOffResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def approve_request(
    db: DbSession,
    service: TimeOffSvc,
    actor: CurrentActor,
    request_id: Annotated[UUID, Path()],
    payload: ReviewRequest | None = None,
) -> TimeOffResponse:
    request = await service.approve(
        request_id, payload.note if payload else None, actor=actor
    )
    await db.commit()
    return TimeOffResponse.model_validate(request)


@router.post(
    "/{request_id}/reject",
    response_model=TimeOffResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def reject_request(
    db: DbSession,
    service: TimeOffSvc,
    actor: CurrentActor,
    request_id: Annotated[UUID, Path()],
    payload: ReviewRequest | None = None,
) -> TimeOffResponse:
    request = await service.reject(
        request_id, payload.note if payload else None, actor=actor
    )
    await db.commit()
    return TimeOffResponse.model_validate(request)


@router.delete(
    "/{request_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def withdraw_request(
    db: DbSession,
    service: TimeOffSvc,
    actor: CurrentActor,
    request_id: Annotated[UUID, Path()],
) -> None:
    """Withdraw (delete) the caller's own pending request."""
    await service.withdraw(request_id, actor=actor)
    await db.commit()
