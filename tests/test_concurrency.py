"""
Concurrent writers against a file-backed SQLite database – each session gets its
own connection, so the version columns and the partial unique index decide who wins.
"""
import asyncio
from datetime import date

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm.exc import StaleDataError

import shiftdesk.models  # noqa – registers all SQLAlchemy models with Base.metadata
from shiftdesk.core.database import Base, get_db
from shiftdesk.core.errors import DuplicateActiveRequest, SchedulingConflict
from shiftdesk.core.security import create_access_token
from shiftdesk.main import app
from shiftdesk.models.business import Business
from shiftdesk.models.shift_exchange import ShiftExchange
from shiftdesk.services.conflict_checker import ConflictChecker
from shiftdesk.services.exchange_ledger import ExchangeLedger
from shiftdesk.services.exchange_resolver import ExchangeResolver
from shiftdesk.services.shift_repository import ShiftRepository
from tests.conftest import auth_headers, make_employee, make_shift, make_user

DAY = date(2025, 6, 10)
EXCHANGES_URL = "/api/v1/shift-exchanges"


@pytest_asyncio.fixture
async def sessions(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'shiftdesk.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(eng, class_=AsyncSession, expire_on_commit=False)

    await eng.dispose()


@pytest_asyncio.fixture
async def staff(sessions):
    """A business with an admin and three employees."""
    async with sessions() as db:
        business = Business(name="Race Diner", slug="race-diner")
        db.add(business)
        await db.commit()
        admin = await make_user(db, business, "admin@race.test", role="admin")
        e1 = await make_employee(db, business, "Erin")
        e2 = await make_employee(db, business, "Eli")
        e3 = await make_employee(db, business, "Emma")
    return business, admin, e1, e2, e3


@pytest_asyncio.fixture
async def file_client(sessions):
    async def override_get_db():
        async with sessions() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def hold_first_check(monkeypatch):
    """Park the first conflict check after it ran until ``release`` is set.

    Whatever runs while it is parked commits in between the parked session's
    check and its write.
    """
    parked, release = asyncio.Event(), asyncio.Event()
    check = ConflictChecker.check

    async def check_then_wait(self, *args, **kwargs):
        result = await check(self, *args, **kwargs)
        if not parked.is_set():
            parked.set()
            await release.wait()
        return result

    monkeypatch.setattr(ConflictChecker, "check", check_then_wait)
    return parked, release


async def _approve(sessions, business_id, request_id, admin_id):
    async with sessions() as session:
        await ExchangeResolver(session, business_id).approve(request_id, admin_id)
        await session.commit()


async def _direct(sessions, business_id, shift_id, employee_id, admin_id):
    async with sessions() as session:
        await ExchangeResolver(session, business_id).direct_exchange(shift_id, employee_id, admin_id)
        await session.commit()


async def _shifts_of(sessions, business_id, employee_id):
    async with sessions() as session:
        shifts = await ShiftRepository(session, business_id).find_shifts_for_employee_on_date(employee_id, DAY)
        return [(s.start_time.isoformat(), s.end_time.isoformat()) for s in shifts]


async def _handover_setup(sessions, staff):
    """E1 offers 09-17 to E2; E3 holds an overlapping 10-14."""
    business, admin, e1, e2, e3 = staff
    async with sessions() as db:
        s1 = await make_shift(db, business, e1, DAY, "09:00", "17:00")
        s3 = await make_shift(db, business, e3, DAY, "10:00", "14:00")
        request = await ExchangeLedger(db, business.id).create_request(s1.id, e1.id, e2.id, "HANDOVER")
        await db.commit()
    return s1, s3, request


# ── Two reassignments onto the same employee ─────────────────────────────────

@pytest.mark.asyncio
async def test_interleaved_reassignments_cannot_double_book(sessions, staff, hold_first_check):
    business, admin, e1, e2, e3 = staff
    s1, s3, request = await _handover_setup(sessions, staff)
    parked, release = hold_first_check

    direct = asyncio.create_task(_direct(sessions, business.id, s3.id, e2.id, admin.id))
    await parked.wait()
    await _approve(sessions, business.id, request.id, admin.id)
    release.set()

    with pytest.raises(StaleDataError):
        await direct

    assert await _shifts_of(sessions, business.id, e2.id) == [("09:00:00", "17:00:00")]
    assert await _shifts_of(sessions, business.id, e3.id) == [("10:00:00", "14:00:00")]


@pytest.mark.asyncio
async def test_racing_reassignments_one_wins(sessions, staff):
    business, admin, e1, e2, e3 = staff
    s1, s3, request = await _handover_setup(sessions, staff)

    results = await asyncio.gather(
        _approve(sessions, business.id, request.id, admin.id),
        _direct(sessions, business.id, s3.id, e2.id, admin.id),
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], (StaleDataError, SchedulingConflict))
    assert len(await _shifts_of(sessions, business.id, e2.id)) == 1


# ── Two approvals of the same request ────────────────────────────────────────

@pytest.mark.asyncio
async def test_interleaved_approvals_second_gets_409(sessions, staff, file_client, hold_first_check):
    business, admin, e1, e2, e3 = staff
    s1, s3, request = await _handover_setup(sessions, staff)
    headers = auth_headers(create_access_token(admin.id, business.id, "admin"))
    url = f"{EXCHANGES_URL}/{request.id}"
    parked, release = hold_first_check

    first = asyncio.create_task(file_client.patch(url, json={"status": "APPROVED"}, headers=headers))
    await parked.wait()
    second = await file_client.patch(url, json={"status": "APPROVED"}, headers=headers)
    release.set()
    first = await first

    assert second.status_code == 200
    assert second.json()["status"] == "APPROVED"
    assert first.status_code == 409
    assert first.json()["error"] == "concurrent_modification"

    async with sessions() as db:
        rows = (await db.execute(select(ShiftExchange).where(ShiftExchange.shift_id == s1.id))).scalars().all()
    assert [r.status for r in rows] == ["APPROVED"]
    assert await _shifts_of(sessions, business.id, e2.id) == [("09:00:00", "17:00:00")]


# ── Concurrent requests for the same shift ───────────────────────────────────

@pytest.mark.asyncio
async def test_concurrent_create_request_exactly_one_pending(sessions, staff):
    business, admin, e1, e2, e3 = staff
    async with sessions() as db:
        shift = await make_shift(db, business, e1, DAY, "09:00", "17:00")

    async def create(target):
        async with sessions() as session:
            request = await ExchangeLedger(session, business.id).create_request(
                shift.id, e1.id, target.id, "HANDOVER",
            )
            await session.commit()
            return request

    results = await asyncio.gather(create(e2), create(e3), return_exceptions=True)

    created = [r for r in results if isinstance(r, ShiftExchange)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(created) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], DuplicateActiveRequest)

    async with sessions() as db:
        pending = await ExchangeLedger(db, business.id).list_pending(shift_id=shift.id)
    assert [r.id for r in pending] == [created[0].id]
