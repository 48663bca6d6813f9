from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import services
from app.auth.dependencies import get_current_actor
from app.auth.rbac import require_roles
from app.auth.schemas import Actor, RoleAssignmentCreate, RoleAssignmentResponse
from app.core.enums import AppRole
from app.core.exceptions import ServiceError
from app.db.session import get_db

router = APIRouter(prefix="/api/v1/auth/roles", tags=["roles"])


@router.post(
    "",
    response_model=RoleAssignmentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(AppRole.admin))],
)
async def assign_role(
    payload: RoleAssignmentCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> RoleAssignmentResponse:
    try:
        return await services.assign_role(db, actor, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[RoleAssignmentResponse],
    dependencies=[Depends(require_roles(AppRole.admin))],
)
async def list_role_assignments(
    role: Optional[AppRole] = Query(None),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> List[RoleAssignmentResponse]:
    try:
        return await services.list_role_assignments(db, actor, role=role)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{assignment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_roles(AppRole.admin))],
)
async def remove_role_assignment(
    assignment_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> None:
    try:
        await services.remove_role_assignment(db, actor, assignment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
