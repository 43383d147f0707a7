"""Shift API endpoints."""

from datetime import date, time
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status
from fastapi.responses import JSONResponse

from shift_engine.api.dependencies import CurrentActor, DbSession, ShiftSvc
from shift_engine.api.schemas import (
    AcceptRangeRequest,
    BulkAcceptRequest,
    ConflictCheckResponse,
    ConflictItem,
    DeclineRequest,
    ErrorResponse,
    ShiftCreate,
    ShiftListResponse,
    ShiftResponse,
    ShiftUpdate,
)
from shift_engine.errors import NotFoundError
from shift_engine.services.authorization import require_admin
from shift_engine.services.types import ConflictResult

router = APIRouter(prefix="/shifts", tags=["shifts"])


def conflict_response(conflicts: list[ConflictResult]) -> JSONResponse:
    """409 carrying the conflicts the caller must confirm with ``override``."""
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "detail": "Schedule conflict detected; resubmit with override=true to proceed",
            "code": "SCHEDULE_CONFLICT",
            "context": {"conflicts": [c.describe() for c in conflicts]},
        },
    )


# ============================================================================
# Queries
# ============================================================================


@router.get("", response_model=ShiftListResponse)
async def list_shifts(
    service: ShiftSvc,
    actor: CurrentActor,
    employee_id: UUID | None = None,
    from_date: Annotated[date | None, Query(alias="from")] = None,
    to_date: Annotated[date | None, Query(alias="to")] = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> ShiftListResponse:
    """List shifts. Employees only see their own."""
    if not actor.is_admin:
        employee_id = actor.employee_id
    shifts = await service.list_shifts(
        employee_id=employee_id,
        start_date=from_date,
        end_date=to_date,
        status=status_filter,
    )
    return ShiftListResponse(
        items=[ShiftResponse.model_validate(s) for s in shifts],
        total=len(shifts),
    )


@router.get(
    "/conflicts",
    response_model=ConflictCheckResponse,
)
async def check_conflict(
    service: ShiftSvc,
    actor: CurrentActor,
    employee_id: UUID,
    shift_date: date,
    start_time: time,
    end_time: time,
    exclude_shift_id: UUID | None = None,
) -> ConflictCheckResponse:
    """Advisory conflict check for a candidate shift."""
    require_admin(actor, "check schedule conflicts")
    result = await service.check_conflict(
        employee_id, shift_date, start_time, end_time, exclude_shift_id
    )
    conflicts = [ConflictItem(**result.describe())] if result.has_conflict else []
    return ConflictCheckResponse(has_conflict=result.has_conflict, conflicts=conflicts)


@router.get(
    "/{shift_id}",
    response_model=ShiftResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_shift(
    service: ShiftSvc,
    actor: CurrentActor,
    shift_id: Annotated[UUID, Path()],
) -> ShiftResponse:
    shift = await service.get_shift(shift_id)
    if not (actor.is_admin or actor.owns(shift.employee_id)):
        raise NotFoundError("Shift", shift_id)
    return ShiftResponse.model_validate(shift)


# ============================================================================
# Admin operations
# ============================================================================


@router.post(
    "",
    response_model=ShiftResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def assign_shift(
    db: DbSession,
    service: ShiftSvc,
    actor: CurrentActor,
    payload: ShiftCreate,
):
    """Assign a shift. Conflicts are refused unless ``override`` is set."""
    require_admin(actor, "assign shifts")
    if not payload.override:
        result = await service.check_conflict(
            payload.employee_id, payload.shift_date, payload.start_time, payload.end_time
        )
        if result.has_conflict:
            return conflict_response([result])

    shift = await service.assign(
        payload.employee_id,
        payload.shift_date,
        payload.start_time,
        payload.end_time,
        payload.notes,
        actor=actor,
    )
    await db.commit()
    return ShiftResponse.model_validate(shift)


@router.patch(
    "/{shift_id}",
    response_model=ShiftResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_shift(
    db: DbSession,
    service: ShiftSvc,
    actor: CurrentActor,
    shift_id: Annotated[UUID, Path()],
    payload: ShiftUpdate,
) -> ShiftResponse:
    shift = await service.update_shift(
        shift_id,
        actor=actor,
        shift_date=payload.shift_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        notes=payload.notes,
    )
    await db.commit()
    return ShiftResponse.model_validate(shift)


@router.delete(
    "/{shift_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_shift(
    db: DbSession,
    service: ShiftSvc,
    actor: CurrentActor,
    shift_id: Annotated[UUID, Path()],
) -> None:
    await service.delete_shift(shift_id, actor=actor)
    await db.commit()


# ============================================================================
# Shift State Transitions
# ============================================================================


@router.post(
    "/{shift_id}/accept",
    response_model=ShiftResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def accept_shift(
    db: DbSession,
    service: ShiftSvc,
    actor: CurrentActor,
    shift_id: Annotated[UUID, Path()],
) -> ShiftResponse:
    shift = await service.accept(shift_id, actor=actor)
    await db.commit()
    return ShiftResponse.model_validate(shift)


@router.post(
    "/{shift_id}/decline",
    response_model=ShiftResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def decline_shift(
    db: DbSession,
    service: ShiftSvc,
    actor: CurrentActor,
    shift_id: Annotated[UUID, Path()],
    payload: DeclineRequest,
) -> ShiftResponse:
    """Decline a shift, charging sick or vacation leave when requested."""
    shift = await service.decline(
        shift_id, payload.decline_type, payload.reason, actor=actor
    )
    await db.commit()
    return ShiftResponse.model_validate(shift)


@router.post("/bulk-accept", response_model=ShiftListResponse)
async def bulk_accept(
    db: DbSession,
    service: ShiftSvc,
    actor: CurrentActor,
    payload: BulkAcceptRequest,
) -> ShiftListResponse:
    shifts = await service.bulk_accept(payload.shift_ids, actor=actor)
    await db.commit()
    return ShiftListResponse(
        items=[ShiftResponse.model_validate(s) for s in shifts],
        total=len(shifts),
    )


@router.post("/accept-range", response_model=ShiftListResponse)
async def accept_range(
    db: DbSession,
    service: ShiftSvc,
    actor: CurrentActor,
    payload: AcceptRangeRequest,
) -> ShiftListResponse:
    """Accept all of the caller's pending shifts in a date range."""
    shifts = await service.accept_range(payload.start_date, payload.end_date, actor=actor)
    await db.commit()
    return ShiftListResponse(
        items=[ShiftResponse.model_validate(s) for s in shifts],
        total=len(shifts),
    )
