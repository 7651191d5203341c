import uuid
from datetime import date, datetime

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import select

from shiftdesk.api.deps import DB, CurrentUser, ManagerOrAdmin, is_privileged, own_employee_id
from shiftdesk.core.errors import InvalidState
from shiftdesk.models.employee import Employee
from shiftdesk.models.shift import Shift, FOR_SALE_MARKER
from shiftdesk.schemas.shift import ShiftCreate, ShiftOut, ShiftPunch, ShiftSell, ShiftUpdate
from shiftdesk.services.audit import write_audit
from shiftdesk.services.conflict_checker import ConflictChecker
from shiftdesk.services.shift_repository import ShiftRepository

router = APIRouter(prefix="/shifts", tags=["shifts"])

SCHEDULE_FIELDS = {"employee_id", "date", "start_time", "end_time"}


def _now_time():
    return datetime.now().time().replace(second=0, microsecond=0)


async def _get_shift(shift_id: uuid.UUID, current_user, db) -> Shift:
    """Load a shift the user may act on; employees only see their own."""
    repo = ShiftRepository(db, current_user.business_id)
    shift = await repo.find_shift(shift_id)
    if not shift:
        raise HTTPException(status_code=404, detail="Shift not found")

    if not is_privileged(current_user):
        own_id = await own_employee_id(current_user, db)
        if own_id is None or shift.employee_id != own_id:
            raise HTTPException(status_code=404, detail="Shift not found")
    return shift


async def _ensure_employee(employee_id: uuid.UUID, business_id: uuid.UUID, db) -> None:
    employee = await db.get(Employee, employee_id)
    if employee is None or employee.business_id != business_id:
        raise HTTPException(status_code=404, detail="Employee not found")


async def _check_schedule(shift: Shift, business_id: uuid.UUID, db) -> None:
    if shift.employee_id is None:
        return
    checker = ConflictChecker(ShiftRepository(db, business_id))
    exclude = (shift.id,) if shift.id else ()
    await checker.ensure_free(
        shift.employee_id, shift.date, shift.start_time, shift.end_time, exclude_shift_ids=exclude
    )


# ── Shifts ───────────────────────────────────────────────────────────────────

@router.get("", response_model=list[ShiftOut])
async def list_shifts(
    current_user: CurrentUser,
    db: DB,
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    employee_id: uuid.UUID | None = Query(None),
    approved: bool | None = Query(None),
):
    if not is_privileged(current_user):
        # Non-privileged: only own shifts, any employee_id filter from the client is ignored
        employee_id = await own_employee_id(current_user, db)
        if employee_id is None:
            return []

    repo = ShiftRepository(db, current_user.business_id)
    return await repo.list_shifts(employee_id, from_date, to_date, approved)


@router.get("/active", response_model=ShiftOut | None)
async def get_active_shift(current_user: CurrentUser, db: DB):
    """The caller's open (punched in, not yet out) shift of today, if any."""
    own_id = await own_employee_id(current_user, db)
    if own_id is None:
        return None
    result = await db.execute(
        select(Shift)
        .where(
            Shift.business_id == current_user.business_id,
            Shift.employee_id == own_id,
            Shift.date == date.today(),
            Shift.end_time.is_(None),
        )
        .order_by(Shift.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


@router.post("", response_model=ShiftOut, status_code=status.HTTP_201_CREATED)
async def create_shift(payload: ShiftCreate, current_user: ManagerOrAdmin, db: DB):
    if payload.employee_id:
        await _ensure_employee(payload.employee_id, current_user.business_id, db)

    shift = Shift(business_id=current_user.business_id, **payload.model_dump())
    await _check_schedule(shift, current_user.business_id, db)

    db.add(shift)
    await db.commit()
    await db.refresh(shift)
    return shift


@router.post("/punch", response_model=ShiftOut)
async def punch(payload: ShiftPunch, current_user: CurrentUser, db: DB):
    """Punch clock: ``in`` (re)starts an open shift, ``out`` closes it."""
    shift = await _get_shift(payload.shift_id, current_user, db)

    if shift.end_time is not None:
        detail = (
            "This shift has already been completed" if payload.action == "in"
            else "Already punched out of this shift"
        )
        raise HTTPException(status_code=400, detail=detail)

    old_values = {"start_time": str(shift.start_time), "end_time": None}
    if payload.action == "in":
        shift.start_time = payload.time
    else:
        shift.end_time = payload.time
    await _check_schedule(shift, current_user.business_id, db)

    write_audit(db, business_id=current_user.business_id, user_id=current_user.id,
                entity_type="shift", entity_id=shift.id, action=f"punch_{payload.action}",
                old_values=old_values,
                new_values={"start_time": str(shift.start_time),
                            "end_time": str(shift.end_time) if shift.end_time else None})
    await db.commit()
    await db.refresh(shift)
    return shift


@router.get("/{shift_id}", response_model=ShiftOut)
async def get_shift(shift_id: uuid.UUID, current_user: CurrentUser, db: DB):
    return await _get_shift(shift_id, current_user, db)


@router.put("/{shift_id}", response_model=ShiftOut)
async def update_shift(shift_id: uuid.UUID, payload: ShiftUpdate, current_user: ManagerOrAdmin, db: DB):
    shift = await _get_shift(shift_id, current_user, db)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("employee_id"):
        await _ensure_employee(changes["employee_id"], current_user.business_id, db)

    old_values = {f: str(getattr(shift, f)) for f in changes}
    for field, value in changes.items():
        setattr(shift, field, value)

    if shift.end_time is not None and shift.start_time == shift.end_time:
        raise HTTPException(status_code=422, detail="start_time and end_time must differ")
    if SCHEDULE_FIELDS & changes.keys():
        await _check_schedule(shift, current_user.business_id, db)

    new_values = {f: str(getattr(shift, f)) for f in changes}
    write_audit(db, business_id=current_user.business_id, user_id=current_user.id,
                entity_type="shift", entity_id=shift.id, action="update",
                old_values=old_values, new_values=new_values)

    await db.commit()
    await db.refresh(shift)
    return shift


@router.delete("/{shift_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_shift(shift_id: uuid.UUID, current_user: ManagerOrAdmin, db: DB):
    shift = await _get_shift(shift_id, current_user, db)
    if shift.approved:
        raise InvalidState("Approved shifts cannot be deleted")

    write_audit(db, business_id=current_user.business_id, user_id=current_user.id,
                entity_type="shift", entity_id=shift.id, action="delete",
                old_values={"employee_id": str(shift.employee_id), "date": str(shift.date)})
    await db.delete(shift)
    await db.commit()


@router.patch("/{shift_id}/sell", response_model=ShiftOut)
async def sell_shift(shift_id: uuid.UUID, payload: ShiftSell, current_user: CurrentUser, db: DB):
    """Offer the shift to colleagues by marking its note."""
    shift = await _get_shift(shift_id, current_user, db)

    if shift.date < date.today():
        raise HTTPException(status_code=400, detail="Cannot mark past shifts for sale")
    if shift.is_for_sale:
        raise HTTPException(status_code=400, detail="Shift is already marked for sale")

    old_note = shift.note
    shift.note = f"{shift.note} {FOR_SALE_MARKER}" if shift.note else FOR_SALE_MARKER

    write_audit(db, business_id=current_user.business_id, user_id=current_user.id,
                entity_type="shift", entity_id=shift.id, action="sell",
                old_values={"note": old_note}, new_values={"note": shift.note})
    await db.commit()
    await db.refresh(shift)
    return shift


@router.patch("/{shift_id}/end", response_model=ShiftOut)
async def end_shift(shift_id: uuid.UUID, current_user: CurrentUser, db: DB):
    shift = await _get_shift(shift_id, current_user, db)
    if shift.end_time is not None:
        raise HTTPException(status_code=400, detail="Shift has already ended")

    shift.end_time = _now_time()
    await _check_schedule(shift, current_user.business_id, db)
    await db.commit()
    await db.refresh(shift)
    return shift


@router.post("/{shift_id}/break", response_model=ShiftOut)
async def start_break(shift_id: uuid.UUID, current_user: CurrentUser, db: DB):
    shift = await _get_shift(shift_id, current_user, db)
    shift.break_start = _now_time()
    shift.break_end = None
    await db.commit()
    await db.refresh(shift)
    return shift


@router.patch("/{shift_id}/break", response_model=ShiftOut)
async def end_break(shift_id: uuid.UUID, current_user: CurrentUser, db: DB):
    shift = await _get_shift(shift_id, current_user, db)
    if shift.break_start is None:
        raise HTTPException(status_code=400, detail="No break in progress")
    shift.break_end = _now_time()
    await db.commit()
    await db.refresh(shift)
    return shift
