"""
Payroll API: periods, hour calculation, entries and payslips.
"""
import uuid

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import Response
from sqlalchemy import select

from shiftdesk.api.deps import DB, ManagerOrAdmin
from shiftdesk.models.business import Business
from shiftdesk.models.employee import Employee
from shiftdesk.models.payroll import PayrollEntry, PayrollPeriod
from shiftdesk.schemas.payroll import (
    CalculateHoursRequest, HoursSummaryOut, PayrollEntryCreate, PayrollEntryOut, PayrollEntryUpdate,
    PayrollPeriodCreate, PayrollPeriodOut, PayrollPeriodUpdate,
)
from shiftdesk.services.payroll_service import PayrollService
from shiftdesk.services.pdf_service import generate_payslip_pdf

periods_router = APIRouter(prefix="/payroll-periods", tags=["payroll"])
entries_router = APIRouter(prefix="/payroll-entries", tags=["payroll"])

VALID_TRANSITIONS = {
    "DRAFT":    ["APPROVED"],
    "APPROVED": ["PAID", "DRAFT"],  # allow reverting
    "PAID":     [],
}


# ── Periods ──────────────────────────────────────────────────────────────────

@periods_router.get("", response_model=list[PayrollPeriodOut])
async def list_periods(current_user: ManagerOrAdmin, db: DB):
    result = await db.execute(
        select(PayrollPeriod)
        .where(PayrollPeriod.business_id == current_user.business_id)
        .order_by(PayrollPeriod.start_date.desc())
    )
    return result.scalars().all()


@periods_router.post("", response_model=PayrollPeriodOut, status_code=status.HTTP_201_CREATED)
async def create_period(payload: PayrollPeriodCreate, current_user: ManagerOrAdmin, db: DB):
    period = PayrollPeriod(business_id=current_user.business_id, **payload.model_dump())
    db.add(period)
    await db.commit()
    await db.refresh(period)
    return period


@periods_router.get("/{period_id}", response_model=PayrollPeriodOut)
async def get_period(period_id: uuid.UUID, current_user: ManagerOrAdmin, db: DB):
    return await PayrollService(db, current_user.business_id).get_period(period_id)


@periods_router.put("/{period_id}", response_model=PayrollPeriodOut)
async def update_period(
    period_id: uuid.UUID, payload: PayrollPeriodUpdate, current_user: ManagerOrAdmin, db: DB
):
    period = await PayrollService(db, current_user.business_id).get_period(period_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(period, field, value)
    await db.commit()
    await db.refresh(period)
    return period


# ── Entries ──────────────────────────────────────────────────────────────────

async def _get_entry(entry_id: uuid.UUID, business_id: uuid.UUID, db) -> PayrollEntry:
    result = await db.execute(
        select(PayrollEntry).where(
            PayrollEntry.id == entry_id,
            PayrollEntry.business_id == business_id,
        )
    )
    entry = result.scalar_one_or_none()
    if not entry:
        raise HTTPException(status_code=404, detail="Payroll entry not found")
    return entry


@entries_router.post("/calculate-hours", response_model=HoursSummaryOut)
async def calculate_hours(payload: CalculateHoursRequest, current_user: ManagerOrAdmin, db: DB):
    """Preview hours and rates from the employee's approved shifts in the period."""
    service = PayrollService(db, current_user.business_id)
    summary = await service.calculate_hours(payload.employee_id, payload.payroll_period_id)
    return HoursSummaryOut.model_validate(summary)


@entries_router.get("", response_model=list[PayrollEntryOut])
async def list_entries(
    current_user: ManagerOrAdmin,
    db: DB,
    payroll_period_id: uuid.UUID | None = None,
    employee_id: uuid.UUID | None = None,
    status: str | None = None,
):
    query = select(PayrollEntry).where(PayrollEntry.business_id == current_user.business_id)
    if payroll_period_id:
        query = query.where(PayrollEntry.payroll_period_id == payroll_period_id)
    if employee_id:
        query = query.where(PayrollEntry.employee_id == employee_id)
    if status:
        query = query.where(PayrollEntry.status == status)

    result = await db.execute(query.order_by(PayrollEntry.created_at.desc()))
    return result.scalars().all()


@entries_router.post("", response_model=PayrollEntryOut, status_code=status.HTTP_201_CREATED)
async def create_entry(payload: PayrollEntryCreate, current_user: ManagerOrAdmin, db: DB):
    """
    Calculate (or recalculate) the entry for one employee and period.
    Creates a new draft or replaces an existing draft; approved/paid entries are locked.
    """
    service = PayrollService(db, current_user.business_id)
    entry = await service.create_entry(
        payload.employee_id,
        payload.payroll_period_id,
        bonuses=payload.bonuses,
        deductions=payload.deductions,
        notes=payload.notes,
    )
    await db.commit()
    await db.refresh(entry)
    return entry


@entries_router.get("/{entry_id}", response_model=PayrollEntryOut)
async def get_entry(entry_id: uuid.UUID, current_user: ManagerOrAdmin, db: DB):
    return await _get_entry(entry_id, current_user.business_id, db)


@entries_router.put("/{entry_id}", response_model=PayrollEntryOut)
async def update_entry(
    entry_id: uuid.UUID, payload: PayrollEntryUpdate, current_user: ManagerOrAdmin, db: DB
):
    """Update status (DRAFT -> APPROVED -> PAID) or notes."""
    entry = await _get_entry(entry_id, current_user.business_id, db)

    if payload.status and payload.status not in VALID_TRANSITIONS.get(entry.status, []):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status change: {entry.status} -> {payload.status}",
        )

    if payload.status:
        entry.status = payload.status
    if payload.notes is not None:
        entry.notes = payload.notes

    await db.commit()
    await db.refresh(entry)
    return entry


@entries_router.get("/{entry_id}/payslip")
async def download_payslip(entry_id: uuid.UUID, current_user: ManagerOrAdmin, db: DB):
    entry = await _get_entry(entry_id, current_user.business_id, db)
    employee = await db.get(Employee, entry.employee_id)
    period = await db.get(PayrollPeriod, entry.payroll_period_id)
    business = await db.get(Business, current_user.business_id)

    pdf_bytes = generate_payslip_pdf(entry, employee, period, business.name if business else "shiftdesk")

    filename = f"payslip-{employee.last_name.lower()}-{period.start_date:%Y-%m-%d}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-cache",
        },
    )
