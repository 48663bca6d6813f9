from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import services
from app.auth.rbac import BILLING_ROLES, READ_ROLES, ensure_role
from app.auth.schemas import Actor, RoleAssignmentCreate
from app.auth.security import create_access_token
from app.core.enums import AppRole
from app.core.exceptions import AuthorizationError, IntegrityViolationError
from app.core.models import UserRole


def test_ensure_role() -> None:
    ensure_role(Actor(id=uuid4(), role=AppRole.accountant), BILLING_ROLES)
    ensure_role(Actor(id=uuid4(), role=AppRole.staff), READ_ROLES)
    with pytest.raises(AuthorizationError):
        ensure_role(Actor(id=uuid4(), role=AppRole.staff), BILLING_ROLES)
    with pytest.raises(AuthorizationError):
        ensure_role(Actor(id=uuid4(), role=None), READ_ROLES)


@pytest.mark.asyncio
async def test_earliest_role_wins(db_session: AsyncSession) -> None:
    user_id = uuid4()
    db_session.add(UserRole(user_id=user_id, role="accountant"))
    await db_session.commit()
    db_session.add(UserRole(user_id=user_id, role="admin"))
    await db_session.commit()

    assert await services.get_user_role(db_session, user_id) == AppRole.accountant
    assert await services.get_user_role(db_session, uuid4()) is None


@pytest.mark.asyncio
async def test_assign_role_once(db_session: AsyncSession, admin, accountant) -> None:
    user_id = uuid4()
    created = await services.assign_role(db_session, admin, RoleAssignmentCreate(user_id=user_id, role=AppRole.staff))
    assert created.role == AppRole.staff

    with pytest.raises(IntegrityViolationError):
        await services.assign_role(db_session, admin, RoleAssignmentCreate(user_id=user_id, role=AppRole.admin))
    with pytest.raises(AuthorizationError):
        await services.list_role_assignments(db_session, accountant)

    await services.remove_role_assignment(db_session, admin, created.id)
    assert await services.list_role_assignments(db_session, admin) == []


@pytest.mark.asyncio
async def test_roles_api(client: AsyncClient, auth_headers) -> None:
    admin_headers = await auth_headers(AppRole.admin)
    staff_headers = await auth_headers(AppRole.staff)
    body = {"user_id": str(uuid4()), "role": "accountant"}

    response = await client.post("/api/v1/auth/roles", json=body, headers=staff_headers)
    assert response.status_code == 403

    response = await client.post("/api/v1/auth/roles", json=body, headers=admin_headers)
    assert response.status_code == 201

    response = await client.post("/api/v1/auth/roles", json=body, headers=admin_headers)
    assert response.status_code == 409

    response = await client.get("/api/v1/auth/roles?role=accountant", headers=admin_headers)
    assert response.status_code == 200
    assert [r["user_id"] for r in response.json()] == [body["user_id"]]


@pytest.mark.asyncio
async def test_token_without_role_is_forbidden(client: AsyncClient) -> None:
    token = create_access_token(uuid4())
    response = await client.get("/api/v1/invoices", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_invalid_token_rejected(client: AsyncClient) -> None:
    response = await client.get("/api/v1/reports/dashboard", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_expired_token_rejected(client: AsyncClient, db_session: AsyncSession) -> None:
    user_id = uuid4()
    db_session.add(UserRole(user_id=user_id, role="admin"))
    await db_session.commit()
    token = create_access_token(user_id, expires_minutes=-1)
    response = await client.get("/api/v1/reports/dashboard", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
