"""
ShiftRepository: business-scoped queries and writes on shifts.
"""
import uuid
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.models.employee import Employee
from shiftdesk.models.shift import Shift, FOR_SALE_MARKER


def strip_for_sale_marker(note: str | None) -> str | None:
    if not note or FOR_SALE_MARKER not in note:
        return note
    cleaned = note.replace(FOR_SALE_MARKER, "").strip()
    return cleaned or None


class ShiftRepository:

    def __init__(self, db: AsyncSession, business_id: uuid.UUID):
        self.db = db
        self.business_id = business_id

    async def find_shift(self, shift_id: uuid.UUID, for_update: bool = False) -> Shift | None:
        stmt = select(Shift).where(Shift.id == shift_id, Shift.business_id == self.business_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def lock_employee(self, employee_id: uuid.UUID) -> Employee | None:
        """Row-lock the employee and reload it, so its version is the committed one."""
        result = await self.db.execute(
            select(Employee)
            .where(Employee.id == employee_id, Employee.business_id == self.business_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_shifts_for_employee_on_date(self, employee_id: uuid.UUID, day: date) -> list[Shift]:
        return await self.find_shifts_for_employee_between(employee_id, day, day)

    async def find_shifts_for_employee_between(
        self, employee_id: uuid.UUID, from_date: date, to_date: date
    ) -> list[Shift]:
        result = await self.db.execute(
            select(Shift)
            .where(
                Shift.business_id == self.business_id,
                Shift.employee_id == employee_id,
                Shift.date >= from_date,
                Shift.date <= to_date,
            )
            .order_by(Shift.date, Shift.start_time)
        )
        return list(result.scalars().all())

    async def list_shifts(
        self,
        employee_id: uuid.UUID | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
        approved: bool | None = None,
    ) -> list[Shift]:
        conditions = [Shift.business_id == self.business_id]
        if employee_id:
            conditions.append(Shift.employee_id == employee_id)
        if from_date:
            conditions.append(Shift.date >= from_date)
        if to_date:
            conditions.append(Shift.date <= to_date)
        if approved is not None:
            conditions.append(Shift.approved == approved)

        result = await self.db.execute(
            select(Shift).where(*conditions).order_by(Shift.date, Shift.start_time)
        )
        return list(result.scalars().all())

    async def update_shift_assignee(self, shift: Shift, new_employee_id: uuid.UUID) -> Shift:
        """Reassign the shift. A pending sale offer ends with the old ownership."""
        shift.employee_id = new_employee_id
        shift.note = strip_for_sale_marker(shift.note)
        await self.db.flush()
        return shift
