"""
Shared pytest fixtures for shiftdesk tests.

Uses SQLite in-memory with StaticPool so all sessions share one connection,
meaning data written in one session is visible to others (important for HTTP client tests).
"""
import uuid
from datetime import date, time

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

import shiftdesk.models  # noqa – registers all SQLAlchemy models with Base.metadata
from shiftdesk.core.database import Base, get_db
from shiftdesk.core.security import hash_password, create_access_token
from shiftdesk.main import app
from shiftdesk.models.business import Business
from shiftdesk.models.employee import Employee
from shiftdesk.models.shift import Shift
from shiftdesk.models.user import User

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ── Shared engine (function-scoped: fresh DB per test) ───────────────────────

@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,          # single shared connection → all sessions see same data
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield eng

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine) -> AsyncSession:
    """Async DB session for direct data setup and inspection inside tests."""
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


# ── HTTP client fixture ───────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def client(engine) -> AsyncClient:
    """
    FastAPI test client with get_db overridden to use the test engine.
    Each request gets its own session but shares the same underlying connection.
    """
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


# ── Business + users ──────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def business(db) -> Business:
    b = Business(name="Test Diner", slug=f"test-{uuid.uuid4().hex[:8]}")
    db.add(b)
    await db.commit()
    await db.refresh(b)
    return b


async def make_user(db, business, email: str, role: str = "employee") -> User:
    u = User(
        business_id=business.id,
        email=email,
        hashed_password=hash_password("testpass123"),
        role=role,
        is_active=True,
    )
    db.add(u)
    await db.commit()
    await db.refresh(u)
    return u


@pytest_asyncio.fixture
async def admin_user(db, business) -> User:
    return await make_user(db, business, "admin@test.com", role="admin")


@pytest_asyncio.fixture
async def employee_user(db, business) -> User:
    return await make_user(db, business, "employee@test.com")


@pytest_asyncio.fixture
def admin_token(admin_user) -> str:
    return create_access_token(admin_user.id, admin_user.business_id, "admin")


@pytest_asyncio.fixture
def employee_token(employee_user) -> str:
    return create_access_token(employee_user.id, employee_user.business_id, "employee")


# ── Employees + shifts ────────────────────────────────────────────────────────

async def make_employee(db, business, first_name: str, user=None, group=None) -> Employee:
    e = Employee(
        business_id=business.id,
        user_id=user.id if user else None,
        employee_group_id=group.id if group else None,
        first_name=first_name,
        last_name="Tester",
    )
    db.add(e)
    await db.commit()
    await db.refresh(e)
    return e


def _parse(value: str | None) -> time | None:
    if value is None:
        return None
    h, m = map(int, value.split(":"))
    return time(h, m)


async def make_shift(db, business, employee, day: date, start: str, end: str | None, **extra) -> Shift:
    s = Shift(
        business_id=business.id,
        employee_id=employee.id if employee else None,
        date=day,
        start_time=_parse(start),
        end_time=_parse(end),
        **extra,
    )
    db.add(s)
    await db.commit()
    await db.refresh(s)
    return s


@pytest_asyncio.fixture
async def e1(db, business, employee_user) -> Employee:
    """Employee linked to ``employee_user``."""
    return await make_employee(db, business, "Erin", user=employee_user)


@pytest_asyncio.fixture
async def e2(db, business) -> Employee:
    return await make_employee(db, business, "Eli")


@pytest_asyncio.fixture
async def e3(db, business) -> Employee:
    return await make_employee(db, business, "Emma")


# ── Helper ────────────────────────────────────────────────────────────────────

def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
