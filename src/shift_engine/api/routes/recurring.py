"""Recurring shift rule endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from shift_engine.api.dependencies import CurrentActor, DbSession, ShiftSvc
from shift_engine.api.routes.shifts import conflict_response
from shift_engine.api.schemas import (
    ErrorResponse,
    RecurringCreateResponse,
    RecurringRuleCreate,
    RecurringRuleResponse,
    ShiftResponse,
)
from shift_engine.errors import NotFoundError
from shift_engine.services.authorization import require_admin

router = APIRouter(prefix="/recurring-rules", tags=["recurring-rules"])


@router.post(
    "",
    response_model=RecurringCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_recurring_rule(
    db: DbSession,
    service: ShiftSvc,
    actor: CurrentActor,
    payload: RecurringRuleCreate,
):
    """Create a weekly rule and generate its shifts.

    Any conflict among the generated dates is refused unless ``override`` is
    set.
    """
    require_admin(actor, "create recurring shifts")
    if not payload.override:
        conflicts = await service.check_recurring_conflicts(
            payload.employee_id,
            payload.day_of_week,
            payload.start_time,
            payload.end_time,
            payload.start_date,
            payload.end_date,
        )
        if conflicts:
            return conflict_response(conflicts)

    rule, shifts = await service.create_recurring(
        payload.employee_id,
        payload.day_of_week,
        payload.start_time,
        payload.end_time,
        payload.start_date,
        payload.end_date,
        payload.notes,
        actor=actor,
    )
    await db.commit()
    return RecurringCreateResponse(
        rule=RecurringRuleResponse.model_validate(rule),
        shifts=[ShiftResponse.model_validate(s) for s in shifts],
        count=len(shifts),
    )


@router.get(
    "/{rule_id}",
    response_model=RecurringRuleResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_recurring_rule(
    service: ShiftSvc,
    actor: CurrentActor,
    rule_id: Annotated[UUID, Path()],
) -> RecurringRuleResponse:
    rule = await service.get_rule(rule_id)
    if not (actor.is_admin or actor.owns(rule.employee_id)):
        raise NotFoundError("RecurringRule", rule_id)
    return RecurringRuleResponse.model_validate(rule)


@router.delete(
    "/{rule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_recurring_rule(
    db: DbSession,
    service: ShiftSvc,
    actor: CurrentActor,
    rule_id: Annotated[UUID, Path()],
) -> None:
    """Delete a rule. Its generated shifts are kept."""
    await service.delete_rule(rule_id, actor=actor)
    await db.commit()
