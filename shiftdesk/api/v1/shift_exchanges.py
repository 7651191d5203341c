"""
Shift exchange API: swap/handover requests and their approval, plus the
direct exchange (drag a shift onto another employee) and per-shift history.
"""
import uuid

from fastapi import APIRouter, Query, status

from shiftdesk.api.deps import DB, CurrentUser, is_privileged, own_employee_id
from shiftdesk.core.errors import NotFound, Unauthorized
from shiftdesk.models.enums import ExchangeStatus
from shiftdesk.schemas.shift import ShiftOut
from shiftdesk.schemas.shift_exchange import (
    DirectExchangeOut, DirectExchangeRequest, ShiftExchangeCreate, ShiftExchangeDecision, ShiftExchangeOut,
)
from shiftdesk.services.exchange_ledger import ExchangeLedger
from shiftdesk.services.exchange_resolver import ExchangeResolver
from shiftdesk.services.shift_repository import ShiftRepository

router = APIRouter(prefix="/shift-exchanges", tags=["shift-exchanges"])
shift_router = APIRouter(prefix="/shifts", tags=["shift-exchanges"])


def _require_privileged(current_user, action: str) -> None:
    if not is_privileged(current_user):
        raise Unauthorized(f"Only admins and managers can {action}")


async def _visible_employee_filter(current_user, db, employee_id: uuid.UUID | None) -> uuid.UUID | None:
    """Employees only ever see requests they are part of."""
    if is_privileged(current_user):
        return employee_id
    own_id = await own_employee_id(current_user, db)
    if own_id is None:
        raise Unauthorized("No employee profile linked to this account")
    return own_id


# ── Requests ─────────────────────────────────────────────────────────────────

@router.post("", response_model=ShiftExchangeOut, status_code=status.HTTP_201_CREATED)
async def create_exchange_request(payload: ShiftExchangeCreate, current_user: CurrentUser, db: DB):
    if is_privileged(current_user):
        from_employee_id = payload.from_employee_id
        if from_employee_id is None:
            shift = await ShiftRepository(db, current_user.business_id).find_shift(payload.shift_id)
            if shift is None:
                raise NotFound("Shift not found")
            from_employee_id = shift.employee_id
    else:
        from_employee_id = await own_employee_id(current_user, db)
        if from_employee_id is None:
            raise Unauthorized("No employee profile linked to this account")

    ledger = ExchangeLedger(db, current_user.business_id)
    request = await ledger.create_request(
        shift_id=payload.shift_id,
        from_employee_id=from_employee_id,
        to_employee_id=payload.to_employee_id,
        type=payload.type,
        reason=payload.reason,
        counterpart_shift_id=payload.counterpart_shift_id,
        requested_by=current_user.id,
    )
    await db.commit()
    await db.refresh(request)
    return request


@router.get("", response_model=list[ShiftExchangeOut])
async def list_exchange_requests(
    current_user: CurrentUser,
    db: DB,
    employee_id: uuid.UUID | None = Query(None),
    shift_id: uuid.UUID | None = Query(None),
    status: ExchangeStatus | None = Query(None),
):
    employee_id = await _visible_employee_filter(current_user, db, employee_id)
    ledger = ExchangeLedger(db, current_user.business_id)
    return await ledger.list_requests(employee_id, shift_id, status.value if status else None)


@router.get("/pending", response_model=list[ShiftExchangeOut])
async def list_pending_requests(
    current_user: CurrentUser,
    db: DB,
    employee_id: uuid.UUID | None = Query(None),
    shift_id: uuid.UUID | None = Query(None),
):
    employee_id = await _visible_employee_filter(current_user, db, employee_id)
    ledger = ExchangeLedger(db, current_user.business_id)
    return await ledger.list_pending(employee_id, shift_id)


@router.get("/{request_id}", response_model=ShiftExchangeOut)
async def get_exchange_request(request_id: uuid.UUID, current_user: CurrentUser, db: DB):
    request = await ExchangeLedger(db, current_user.business_id).get(request_id)
    if not is_privileged(current_user):
        own_id = await own_employee_id(current_user, db)
        if own_id not in (request.from_employee_id, request.to_employee_id):
            raise NotFound("Exchange request not found")
    return request


@router.patch("/{request_id}", response_model=ShiftExchangeOut)
async def decide_exchange_request(
    request_id: uuid.UUID, payload: ShiftExchangeDecision, current_user: CurrentUser, db: DB
):
    """Approve (reassigns the shift) or reject a pending request."""
    _require_privileged(current_user, "approve or reject exchange requests")

    resolver = ExchangeResolver(db, current_user.business_id)
    if payload.status == ExchangeStatus.APPROVED.value:
        request = await resolver.approve(request_id, current_user.id)
    else:
        request = await resolver.reject(request_id, current_user.id)

    await db.commit()
    await db.refresh(request)
    return request


@router.delete("/{request_id}", response_model=ShiftExchangeOut)
async def cancel_exchange_request(request_id: uuid.UUID, current_user: CurrentUser, db: DB):
    ledger = ExchangeLedger(db, current_user.business_id)
    request = await ledger.cancel(request_id, current_user)
    await db.commit()
    await db.refresh(request)
    return request


@router.post("/{request_id}/release", response_model=ShiftExchangeOut)
async def release_exchange_request(request_id: uuid.UUID, current_user: CurrentUser, db: DB):
    """Unlock a shift held by an approved exchange so new requests can be filed."""
    _require_privileged(current_user, "release approved exchanges")

    request = await ExchangeResolver(db, current_user.business_id).release(request_id, current_user.id)
    await db.commit()
    await db.refresh(request)
    return request


# ── Shift-scoped ─────────────────────────────────────────────────────────────

@shift_router.post("/{shift_id}/exchange", response_model=DirectExchangeOut)
async def direct_exchange(
    shift_id: uuid.UUID, payload: DirectExchangeRequest, current_user: CurrentUser, db: DB
):
    _require_privileged(current_user, "exchange shifts directly")

    resolver = ExchangeResolver(db, current_user.business_id)
    shift, record = await resolver.direct_exchange(shift_id, payload.new_employee_id, current_user.id)
    await db.commit()
    await db.refresh(shift)
    return DirectExchangeOut(exchange_id=record.id, shift=ShiftOut.model_validate(shift))


@shift_router.get("/{shift_id}/exchanges", response_model=list[ShiftExchangeOut])
async def shift_exchange_history(shift_id: uuid.UUID, current_user: CurrentUser, db: DB):
    if not is_privileged(current_user):
        # employees only see the history of shifts they currently hold
        shift = await ShiftRepository(db, current_user.business_id).find_shift(shift_id)
        own_id = await own_employee_id(current_user, db)
        if shift is None or own_id is None or shift.employee_id != own_id:
            raise NotFound("Shift not found")
    return await ExchangeLedger(db, current_user.business_id).history(shift_id)
