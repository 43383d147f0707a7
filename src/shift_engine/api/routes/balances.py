"""Leave balance endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path

from shift_engine.api.dependencies import CurrentActor, DbSession, Ledger
from shift_engine.api.schemas import (
    ErrorResponse,
    LeaveAdjustment,
    LeaveBalanceResponse,
    LeaveTransactionResponse,
)
from shift_engine.errors import NotFoundError, ValidationError
from shift_engine.models import Employee
from shift_engine.services.authorization import require_admin, require_owner_or_admin
from shift_engine.services.types import LeaveBucket

router = APIRouter(prefix="/balances", tags=["balances"])


@router.get(
    "/{employee_id}",
    response_model=LeaveBalanceResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_balance(
    ledger: Ledger,
    actor: CurrentActor,
    employee_id: Annotated[UUID, Path()],
) -> LeaveBalanceResponse:
    require_owner_or_admin(actor, employee_id, "view leave balances")
    return LeaveBalanceResponse.model_validate(await ledger.get_balance(employee_id))


@router.get(
    "/{employee_id}/history",
    response_model=list[LeaveTransactionResponse],
)
async def get_history(
    ledger: Ledger,
    actor: CurrentActor,
    employee_id: Annotated[UUID, Path()],
) -> list[LeaveTransactionResponse]:
    require_owner_or_admin(actor, employee_id, "view leave history")
    return [LeaveTransactionResponse.model_validate(t) for t in await ledger.history(employee_id)]


@router.post(
    "/{employee_id}/provision",
    response_model=LeaveBalanceResponse,
    responses={404: {"model": ErrorResponse}},
)
async def provision_balance(
    db: DbSession,
    ledger: Ledger,
    actor: CurrentActor,
    employee_id: Annotated[UUID, Path()],
) -> LeaveBalanceResponse:
    """Create the balance row from the employee's annual allotments."""
    require_admin(actor, "provision leave balances")
    employee = await db.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError("Employee", employee_id)
    balance = await ledger.provision(employee)
    await db.commit()
    return LeaveBalanceResponse.model_validate(balance)


@router.post(
    "/{employee_id}/adjust",
    response_model=LeaveBalanceResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def adjust_balance(
    db: DbSession,
    ledger: Ledger,
    actor: CurrentActor,
    employee_id: Annotated[UUID, Path()],
    payload: LeaveAdjustment,
) -> LeaveBalanceResponse:
    """Manual credit or debit by an admin."""
    require_admin(actor, "adjust leave balances")
    try:
        bucket = LeaveBucket(payload.bucket)
    except ValueError:
        raise ValidationError("Bucket must be SICK or VACATION", field="bucket") from None

    apply = ledger.credit if payload.operation == "credit" else ledger.debit
    await apply(
        employee_id,
        bucket,
        payload.hours,
        source_type="manual",
        note=payload.note,
        actor_id=actor.employee_id,
    )
    balance = await ledger.get_balance(employee_id)
    await db.commit()
    return LeaveBalanceResponse.model_validate(balance)


@router.post(
    "/{employee_id}/rollover",
    response_model=LeaveBalanceResponse,
    responses={404: {"model": ErrorResponse}},
)
async def roll_over(
    db: DbSession,
    ledger: Ledger,
    actor: CurrentActor,
    employee_id: Annotated[UUID, Path()],
) -> LeaveBalanceResponse:
    """Apply the annual carryover or reset for one employee."""
    require_admin(actor, "roll over leave balances")
    balance = await ledger.roll_over_year(employee_id, actor_id=actor.employee_id)
    await db.commit()
    return LeaveBalanceResponse.model_validate(balance)
