"""
Tests for the exchange resolver – approve/reject state machine, swap and handover
reassignment, direct exchange, release. Covers the documented exchange scenarios.
"""
import uuid
from datetime import date

import pytest
from sqlalchemy import select

from shiftdesk.core.errors import (
    InvalidParticipants, InvalidState, NotFound, SchedulingConflict,
)
from shiftdesk.models.shift_exchange import ShiftExchange
from shiftdesk.services.exchange_ledger import ExchangeLedger
from shiftdesk.services.exchange_resolver import ExchangeResolver
from tests.conftest import make_employee, make_shift

DAY = date(2025, 6, 10)


@pytest.fixture
def ledger(db, business):
    return ExchangeLedger(db, business.id)


@pytest.fixture
def resolver(db, business):
    return ExchangeResolver(db, business.id)


# ── Scenario 1: swap into an overlapping shift ───────────────────────────────

@pytest.mark.asyncio
async def test_swap_with_overlapping_counterpart_conflicts(db, business, ledger, resolver, e1, e2, admin_user):
    s1 = await make_shift(db, business, e1, DAY, "09:00", "17:00")
    s2 = await make_shift(db, business, e2, DAY, "12:00", "20:00")
    request = await ledger.create_request(s1.id, e1.id, e2.id, "SWAP", counterpart_shift_id=s2.id)

    with pytest.raises(SchedulingConflict) as exc:
        await resolver.approve(request.id, admin_user.id)

    assert exc.value.conflict.shift_id == s2.id
    assert exc.value.conflict.time_range == "12:00-20:00"
    assert s1.employee_id == e1.id
    assert s2.employee_id == e2.id
    assert request.status == "PENDING"


# ── Scenario 2: swap without overlap ─────────────────────────────────────────

@pytest.mark.asyncio
async def test_swap_reassigns_both_shifts(db, business, ledger, resolver, e1, e2, admin_user):
    s1 = await make_shift(db, business, e1, DAY, "09:00", "17:00")
    s2 = await make_shift(db, business, e2, DAY, "18:00", "22:00")
    request = await ledger.create_request(s1.id, e1.id, e2.id, "SWAP", counterpart_shift_id=s2.id)

    approved = await resolver.approve(request.id, admin_user.id)
    await db.commit()

    assert approved.status == "APPROVED"
    assert s1.employee_id == e2.id
    assert s2.employee_id == e1.id
    assert approved.exchanged_at is not None


# ── Scenario 3: handover to a free employee ──────────────────────────────────

@pytest.mark.asyncio
async def test_handover_reassigns_shift(db, business, ledger, resolver, e1, e3, admin_user):
    s1 = await make_shift(db, business, e1, DAY, "09:00", "17:00")
    request = await ledger.create_request(s1.id, e1.id, e3.id, "HANDOVER")

    approved = await resolver.approve(request.id, admin_user.id)
    await db.commit()
    await db.refresh(s1)

    assert s1.employee_id == e3.id
    assert approved.status == "APPROVED"
    assert approved.approved_at is not None
    assert approved.approved_by == admin_user.id


@pytest.mark.asyncio
async def test_handover_conflict_leaves_everything_pending(db, business, ledger, resolver, e1, e3, admin_user):
    s1 = await make_shift(db, business, e1, DAY, "09:00", "17:00")
    await make_shift(db, business, e3, DAY, "16:00", "18:00")
    request = await ledger.create_request(s1.id, e1.id, e3.id, "HANDOVER")
    await db.commit()

    with pytest.raises(SchedulingConflict):
        await resolver.approve(request.id, admin_user.id)
    await db.rollback()

    await db.refresh(s1)
    await db.refresh(request)
    assert s1.employee_id == e1.id
    assert request.status == "PENDING"
    assert request.approved_at is None


@pytest.mark.asyncio
async def test_handover_strips_for_sale_marker(db, business, ledger, resolver, e1, e2, admin_user):
    s1 = await make_shift(db, business, e1, DAY, "09:00", "17:00", note="Late start [FOR SALE]")
    request = await ledger.create_request(s1.id, e1.id, e2.id, "HANDOVER")

    await resolver.approve(request.id, admin_user.id)
    assert s1.note == "Late start"


# ── Transitions ──────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_approve_unknown_request(resolver, admin_user):
    with pytest.raises(NotFound):
        await resolver.approve(uuid.uuid4(), admin_user.id)


@pytest.mark.asyncio
async def test_approve_twice_invalid_state(db, business, ledger, resolver, e1, e2, admin_user):
    s1 = await make_shift(db, business, e1, DAY, "09:00", "17:00")
    request = await ledger.create_request(s1.id, e1.id, e2.id, "HANDOVER")
    await resolver.approve(request.id, admin_user.id)

    with pytest.raises(InvalidState):
        await resolver.approve(request.id, admin_user.id)
    with pytest.raises(InvalidState):
        await resolver.reject(request.id, admin_user.id)


@pytest.mark.asyncio
async def test_reject_never_touches_shift(db, business, ledger, resolver, e1, e2, admin_user):
    s1 = await make_shift(db, business, e1, DAY, "09:00", "17:00")
    version_before = s1.version
    request = await ledger.create_request(s1.id, e1.id, e2.id, "HANDOVER")

    rejected = await resolver.reject(request.id, admin_user.id)
    await db.commit()
    await db.refresh(s1)

    assert rejected.status == "REJECTED"
    assert rejected.approved_by == admin_user.id
    assert s1.employee_id == e1.id
    assert s1.version == version_before


@pytest.mark.asyncio
async def test_approve_after_ownership_changed(db, business, ledger, resolver, e1, e2, e3, admin_user):
    s1 = await make_shift(db, business, e1, DAY, "09:00", "17:00")
    request = await ledger.create_request(s1.id, e1.id, e2.id, "HANDOVER")
    s1.employee_id = e3.id
    await db.commit()

    with pytest.raises(InvalidState):
        await resolver.approve(request.id, admin_user.id)


@pytest.mark.asyncio
async def test_cancelled_request_cannot_be_approved(db, business, ledger, resolver, e1, e2, admin_user):
    s1 = await make_shift(db, business, e1, DAY, "09:00", "17:00")
    request = await ledger.create_request(s1.id, e1.id, e2.id, "HANDOVER")
    await ledger.cancel(request.id, admin_user)

    with pytest.raises(InvalidState):
        await resolver.approve(request.id, admin_user.id)


# ── Release ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_release_unlocks_shift(db, business, ledger, resolver, e1, e2, admin_user):
    s1 = await make_shift(db, business, e1, DAY, "09:00", "17:00")
    request = await ledger.create_request(s1.id, e1.id, e2.id, "HANDOVER")
    await resolver.approve(request.id, admin_user.id)

    released = await resolver.release(request.id, admin_user.id)
    assert released.released_at is not None

    again = await ledger.create_request(s1.id, e2.id, e1.id, "HANDOVER")
    assert again.status == "PENDING"


@pytest.mark.asyncio
async def test_release_requires_approved(db, business, ledger, resolver, e1, e2, admin_user):
    s1 = await make_shift(db, business, e1, DAY, "09:00", "17:00")
    request = await ledger.create_request(s1.id, e1.id, e2.id, "HANDOVER")

    with pytest.raises(InvalidState):
        await resolver.release(request.id, admin_user.id)


# ── Direct exchange (Scenario 5 and friends) ─────────────────────────────────

@pytest.mark.asyncio
async def test_direct_exchange_conflict_reports_time_range(db, business, resolver, admin_user):
    e4 = await make_employee(db, business, "Finn")
    e5 = await make_employee(db, business, "Gail")
    s4 = await make_shift(db, business, e4, DAY, "08:00", "16:00")
    s5 = await make_shift(db, business, e5, DAY, "09:00", "12:00")

    with pytest.raises(SchedulingConflict) as exc:
        await resolver.direct_exchange(s4.id, e5.id, admin_user.id)

    assert exc.value.conflict.time_range == "09:00-12:00"
    assert exc.value.to_dict()["conflict"]["time"] == "09:00-12:00"
    assert s4.employee_id == e4.id
    assert s5.employee_id == e5.id
    history = (await db.execute(select(ShiftExchange))).scalars().all()
    assert history == []


@pytest.mark.asyncio
async def test_direct_exchange_writes_history(db, business, resolver, ledger, e1, e2, admin_user):
    s1 = await make_shift(db, business, e1, DAY, "09:00", "17:00")

    shift, record = await resolver.direct_exchange(s1.id, e2.id, admin_user.id)
    await db.commit()

    assert shift.employee_id == e2.id
    assert record.type == "DIRECT"
    assert record.status == "APPROVED"
    assert record.from_employee_id == e1.id
    assert record.to_employee_id == e2.id
    assert record.exchanged_at is not None
    assert [r.id for r in await ledger.history(s1.id)] == [record.id]


@pytest.mark.asyncio
async def test_direct_exchange_to_current_owner(db, business, resolver, e1, admin_user):
    s1 = await make_shift(db, business, e1, DAY, "09:00", "17:00")
    with pytest.raises(InvalidParticipants):
        await resolver.direct_exchange(s1.id, e1.id, admin_user.id)


@pytest.mark.asyncio
async def test_direct_exchange_unassigned_shift(db, business, resolver, e1, admin_user):
    open_shift = await make_shift(db, business, None, DAY, "09:00", "17:00")
    with pytest.raises(InvalidParticipants):
        await resolver.direct_exchange(open_shift.id, e1.id, admin_user.id)


@pytest.mark.asyncio
async def test_direct_exchange_unknown_employee(db, business, resolver, e1, admin_user):
    s1 = await make_shift(db, business, e1, DAY, "09:00", "17:00")
    with pytest.raises(NotFound):
        await resolver.direct_exchange(s1.id, uuid.uuid4(), admin_user.id)


@pytest.mark.asyncio
async def test_direct_exchange_to_inactive_employee(db, business, resolver, e1, e2, admin_user):
    s1 = await make_shift(db, business, e1, DAY, "09:00", "17:00")
    e2.is_active = False
    await db.commit()

    with pytest.raises(InvalidParticipants):
        await resolver.direct_exchange(s1.id, e2.id, admin_user.id)
    assert s1.employee_id == e1.id


@pytest.mark.asyncio
async def test_approve_after_target_deactivated(db, business, ledger, resolver, e1, e2, admin_user):
    s1 = await make_shift(db, business, e1, DAY, "09:00", "17:00")
    request = await ledger.create_request(s1.id, e1.id, e2.id, "HANDOVER")
    e2.is_active = False
    await db.commit()

    with pytest.raises(InvalidParticipants):
        await resolver.approve(request.id, admin_user.id)
    assert s1.employee_id == e1.id
    assert request.status == "PENDING"


@pytest.mark.asyncio
async def test_reassignment_bumps_receiver_version(db, business, resolver, e1, e2, admin_user):
    s1 = await make_shift(db, business, e1, DAY, "09:00", "17:00")
    before = e2.version

    await resolver.direct_exchange(s1.id, e2.id, admin_user.id)
    await db.commit()

    assert e2.version == before + 1
    assert e2.schedule_changed_at is not None
