import uuid
from datetime import date

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import select

from shiftdesk.api.deps import DB, CurrentUser, ManagerOrAdmin
from shiftdesk.models.employee import Employee, EmployeeGroup
from shiftdesk.schemas.employee import EmployeeCreate, EmployeeGroupCreate, EmployeeGroupOut, EmployeeOut
from shiftdesk.schemas.shift import ShiftOut
from shiftdesk.services.shift_repository import ShiftRepository

router = APIRouter(prefix="/employees", tags=["employees"])
groups_router = APIRouter(prefix="/employee-groups", tags=["employees"])


# ── Employee groups ──────────────────────────────────────────────────────────

@groups_router.get("", response_model=list[EmployeeGroupOut])
async def list_groups(current_user: ManagerOrAdmin, db: DB):
    result = await db.execute(
        select(EmployeeGroup)
        .where(EmployeeGroup.business_id == current_user.business_id)
        .order_by(EmployeeGroup.name)
    )
    return result.scalars().all()


@groups_router.post("", response_model=EmployeeGroupOut, status_code=status.HTTP_201_CREATED)
async def create_group(payload: EmployeeGroupCreate, current_user: ManagerOrAdmin, db: DB):
    group = EmployeeGroup(business_id=current_user.business_id, **payload.model_dump())
    db.add(group)
    await db.commit()
    await db.refresh(group)
    return group


# ── Employees ────────────────────────────────────────────────────────────────

async def _get_employee(employee_id: uuid.UUID, business_id: uuid.UUID, db) -> Employee:
    result = await db.execute(
        select(Employee).where(Employee.id == employee_id, Employee.business_id == business_id)
    )
    employee = result.scalar_one_or_none()
    if not employee:
        raise HTTPException(status_code=404, detail="Employee not found")
    return employee


@router.get("", response_model=list[EmployeeOut])
async def list_employees(current_user: CurrentUser, db: DB, active_only: bool = True):
    """All employees of the business; employees need the list to pick exchange partners."""
    query = select(Employee).where(Employee.business_id == current_user.business_id)
    if active_only:
        query = query.where(Employee.is_active == True)  # noqa: E712
    result = await db.execute(query.order_by(Employee.last_name, Employee.first_name))
    return result.scalars().all()


@router.post("", response_model=EmployeeOut, status_code=status.HTTP_201_CREATED)
async def create_employee(payload: EmployeeCreate, current_user: ManagerOrAdmin, db: DB):
    if payload.employee_group_id:
        group = await db.get(EmployeeGroup, payload.employee_group_id)
        if group is None or group.business_id != current_user.business_id:
            raise HTTPException(status_code=404, detail="Employee group not found")

    employee = Employee(business_id=current_user.business_id, **payload.model_dump())
    db.add(employee)
    await db.commit()
    await db.refresh(employee)
    return employee


@router.get("/{employee_id}", response_model=EmployeeOut)
async def get_employee(employee_id: uuid.UUID, current_user: CurrentUser, db: DB):
    return await _get_employee(employee_id, current_user.business_id, db)


@router.get("/{employee_id}/shifts", response_model=list[ShiftOut])
async def list_employee_shifts_on(
    employee_id: uuid.UUID,
    current_user: CurrentUser,
    db: DB,
    on: date = Query(..., description="Calendar day"),
):
    """Shifts of one employee on one day (swap-partner picker)."""
    await _get_employee(employee_id, current_user.business_id, db)
    repo = ShiftRepository(db, current_user.business_id)
    return await repo.find_shifts_for_employee_on_date(employee_id, on)
