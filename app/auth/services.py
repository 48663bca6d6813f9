"""Role assignments: the lookup behind the access policy and its admin maintenance."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import ADMIN_ROLES, ensure_role
from app.auth.schemas import Actor, RoleAssignmentCreate, RoleAssignmentResponse
from app.core.enums import AppRole
from app.core.exceptions import IntegrityViolationError, NotFoundError
from app.core.logging import get_logger
from app.core.models import UserRole

logger = get_logger("auth.roles")


async def get_user_role(db: AsyncSession, user_id: UUID) -> Optional[AppRole]:
    """Role for a user; the earliest row wins if duplicates exist."""
    raw = (
        await db.execute(
            select(UserRole.role)
            .where(UserRole.user_id == user_id)
            .order_by(UserRole.created_at, UserRole.id)
            .limit(1)
        )
    ).scalar_one_or_none()
    return AppRole(raw) if raw else None


async def list_role_assignments(
    db: AsyncSession,
    actor: Actor,
    role: Optional[AppRole] = None,
) -> List[RoleAssignmentResponse]:
    ensure_role(actor, ADMIN_ROLES)
    stmt = select(UserRole).order_by(UserRole.created_at)
    if role is not None:
        stmt = stmt.where(UserRole.role == role.value)
    rows = (await db.execute(stmt)).scalars().all()
    return [RoleAssignmentResponse.model_validate(r) for r in rows]


async def assign_role(
    db: AsyncSession,
    actor: Actor,
    payload: RoleAssignmentCreate,
) -> RoleAssignmentResponse:
    ensure_role(actor, ADMIN_ROLES)
    existing = (
        await db.execute(select(UserRole).where(UserRole.user_id == payload.user_id))
    ).scalars().first()
    if existing:
        raise IntegrityViolationError(f"User already has the {existing.role} role")
    row = UserRole(user_id=payload.user_id, role=payload.role.value)
    db.add(row)
    await db.commit()
    await db.refresh(row)
    logger.info(
        "role_assigned",
        extra={"user_id": payload.user_id, "role": payload.role.value, "actor_id": actor.id},
    )
    return RoleAssignmentResponse.model_validate(row)


async def remove_role_assignment(db: AsyncSession, actor: Actor, assignment_id: UUID) -> None:
    ensure_role(actor, ADMIN_ROLES)
    row = await db.get(UserRole, assignment_id)
    if not row:
        raise NotFoundError("Role assignment not found")
    await db.delete(row)
    await db.commit()
    logger.info("role_removed", extra={"assignment_id": assignment_id, "actor_id": actor.id})
