from datetime import date
from typing import AsyncGenerator, Awaitable, Callable, Dict
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.auth.schemas import Actor
from app.auth.security import create_access_token
from app.core.enums import AppRole
from app.core.models import Student, UserRole
from app.core.sequences import ensure_sequences
from app.db.session import Base, get_db
from app.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test; StaticPool keeps every session on one connection."""
    eng = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test and override FastAPI dependency."""
    async with session_factory() as session:
        await ensure_sequences(session)

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            async with session_factory() as request_session:
                yield request_session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def admin() -> Actor:
    return Actor(id=uuid4(), role=AppRole.admin)


@pytest.fixture()
def accountant() -> Actor:
    return Actor(id=uuid4(), role=AppRole.accountant)


@pytest.fixture()
def staff() -> Actor:
    return Actor(id=uuid4(), role=AppRole.staff)


@pytest.fixture()
def auth_headers(db_session: AsyncSession) -> Callable[[AppRole], Awaitable[Dict[str, str]]]:
    """Create a user with the given role and return bearer headers for it."""

    async def _make(role: AppRole) -> Dict[str, str]:
        user_id = uuid4()
        db_session.add(UserRole(user_id=user_id, role=role.value))
        await db_session.commit()
        token = create_access_token(user_id)
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture()
def make_student(db_session: AsyncSession) -> Callable[..., Awaitable[Student]]:
    counter = {"n": 0}

    async def _make(class_name: str = "10", section: str = "A", **overrides) -> Student:
        counter["n"] += 1
        data = dict(
            admission_number=f"ADM-{counter['n']:04d}",
            first_name="Student",
            last_name=str(counter["n"]),
            class_name=class_name,
            section=section,
            admission_date=date(2025, 6, 1),
            parent_name="Parent",
            parent_phone="+910000000000",
            is_active=True,
        )
        data.update(overrides)
        student = Student(**data)
        db_session.add(student)
        await db_session.commit()
        await db_session.refresh(student)
        return student

    return _make


