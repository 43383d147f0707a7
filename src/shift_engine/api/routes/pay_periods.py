"""Pay period API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from shift_engine.api.dependencies import CurrentActor, DbSession, PayPeriodSvc
from shift_engine.api.schemas import (
    ClosePreviewResponse,
    ErrorResponse,
    PayPeriodCreate,
    PayPeriodGenerate,
    PayPeriodResponse,
    PayoutResponse,
    PayrollLineResponse,
)
from shift_engine.services.authorization import require_admin

router = APIRouter(prefix="/pay-periods", tags=["pay-periods"])


# ============================================================================
# Pay Period CRUD
# ============================================================================


@router.get("", response_model=list[PayPeriodResponse])
async def list_periods(
    service: PayPeriodSvc,
    actor: CurrentActor,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> list[PayPeriodResponse]:
    periods = await service.list_periods(status_filter)
    return [PayPeriodResponse.model_validate(p) for p in periods]


@router.post(
    "",
    response_model=PayPeriodResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_period(
    db: DbSession,
    service: PayPeriodSvc,
    actor: CurrentActor,
    payload: PayPeriodCreate,
) -> PayPeriodResponse:
    period = await service.create_period(
        payload.name,
        payload.start_date,
        payload.end_date,
        payload.frequency,
        actor=actor,
    )
    await db.commit()
    return PayPeriodResponse.model_validate(period)


@router.post(
    "/generate",
    response_model=list[PayPeriodResponse],
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def generate_periods(
    db: DbSession,
    service: PayPeriodSvc,
    actor: CurrentActor,
    payload: PayPeriodGenerate,
) -> list[PayPeriodResponse]:
    """Generate consecutive periods, skipping any that overlap existing ones."""
    periods = await service.generate_periods(payload.frequency, payload.start_date, actor=actor)
    await db.commit()
    return [PayPeriodResponse.model_validate(p) for p in periods]


@router.get(
    "/{pay_period_id}",
    response_model=PayPeriodResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_period(
    service: PayPeriodSvc,
    actor: CurrentActor,
    pay_period_id: Annotated[UUID, Path()],
) -> PayPeriodResponse:
    return PayPeriodResponse.model_validate(await service.get_period(pay_period_id))


# ============================================================================
# Close
# ============================================================================


@router.get(
    "/{pay_period_id}/close-preview",
    response_model=ClosePreviewResponse,
    responses={404: {"model": ErrorResponse}},
)
async def close_preview(
    service: PayPeriodSvc,
    actor: CurrentActor,
    pay_period_id: Annotated[UUID, Path()],
) -> ClosePreviewResponse:
    """Payroll lines closing this period would produce. Read-only."""
    require_admin(actor, "preview pay period close")
    preview = await service.preview(pay_period_id)
    return ClosePreviewResponse(
        period=PayPeriodResponse.model_validate(preview.period),
        hourly_employees=[PayrollLineResponse.model_validate(line) for line in preview.hourly_lines],
        salaried_employees=[
            PayrollLineResponse.model_validate(line) for line in preview.salaried_lines
        ],
        total_count=len(preview.lines),
        total_gross=preview.total_gross,
    )


@router.post(
    "/{pay_period_id}/close",
    response_model=PayPeriodResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def close_period(
    db: DbSession,
    service: PayPeriodSvc,
    actor: CurrentActor,
    pay_period_id: Annotated[UUID, Path()],
) -> PayPeriodResponse:
    period = await service.close(pay_period_id, actor=actor)
    await db.commit()
    return PayPeriodResponse.model_validate(period)


@router.get(
    "/{pay_period_id}/payouts",
    response_model=list[PayoutResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_payouts(
    service: PayPeriodSvc,
    actor: CurrentActor,
    pay_period_id: Annotated[UUID, Path()],
) -> list[PayoutResponse]:
    require_admin(actor, "view payouts")
    payouts = await service.get_payouts(pay_period_id)
    return [PayoutResponse.model_validate(p) for p in payouts]
