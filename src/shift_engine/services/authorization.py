"""Caller identity supplied by the auth/session layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from shift_engine.errors import PermissionDeniedError


class Role(str, Enum):
    ADMIN = "ADMIN"
    EMPLOYEE = "EMPLOYEE"


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of an operation."""

    employee_id: UUID
    role: Role = Role.EMPLOYEE

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def owns(self, employee_id: UUID) -> bool:
        return self.employee_id == employee_id


def require_admin(actor: Actor, operation: str) -> None:
    """Only admins may assign, generate, approve, reject or close."""
    if not actor.is_admin:
        raise PermissionDeniedError(f"Only admins may {operation}")


def require_owner(actor: Actor, employee_id: UUID, operation: str) -> None:
    """Only the owning employee may accept, submit or withdraw."""
    if not actor.owns(employee_id):
        raise PermissionDeniedError(f"Only the owning employee may {operation}")


def require_owner_or_admin(actor: Actor, employee_id: UUID, operation: str) -> None:
    if not (actor.is_admin or actor.owns(employee_id)):
        raise PermissionDeniedError(f"Only the owning employee or an admin may {operation}")
