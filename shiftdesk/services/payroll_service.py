"""
PayrollService: hour aggregation over approved shifts and payroll entry creation.

Hours are bucketed per shift: up to ``regular_hours_per_shift`` count as regular,
anything beyond as overtime. Rates come from the shifts' own wages when present,
otherwise from the employee group's defaults.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.core.config import settings
from shiftdesk.core.errors import InvalidState, NotFound
from shiftdesk.models.enums import PayrollEntryStatus, WageType

if TYPE_CHECKING:
    from shiftdesk.models.employee import Employee, EmployeeGroup
    from shiftdesk.models.payroll import PayrollEntry, PayrollPeriod
    from shiftdesk.models.shift import Shift

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OvertimePolicy:
    regular_hours_per_shift: float = 8.0
    overtime_multiplier: float = 1.5

    @classmethod
    def from_settings(cls) -> "OvertimePolicy":
        return cls(
            regular_hours_per_shift=settings.OVERTIME_THRESHOLD_HOURS,
            overtime_multiplier=settings.OVERTIME_MULTIPLIER,
        )


@dataclass
class ShiftHours:
    shift_id: uuid.UUID
    date: date
    hours: float
    break_minutes: int
    break_paid: bool


@dataclass
class HoursSummary:
    total_hours: float = 0.0
    total_shifts: int = 0
    regular_hours: float = 0.0
    overtime_hours: float = 0.0
    regular_rate: float = 0.0
    overtime_rate: float = 0.0
    wage_calculation_method: str = "none"  # shifts | employee_group | none
    shifts_with_wage: int = 0
    shift_details: list[ShiftHours] = field(default_factory=list)

    @property
    def average_rate(self) -> float:
        return self.regular_rate


def _minutes_between(day: date, start, end) -> float:
    start_dt = datetime.combine(day, start)
    end_dt = datetime.combine(day, end)
    if end_dt < start_dt:
        end_dt += timedelta(days=1)
    return (end_dt - start_dt).total_seconds() / 60


def break_minutes(shift) -> float:
    if shift.break_start is None or shift.break_end is None:
        return 0.0
    return _minutes_between(shift.date, shift.break_start, shift.break_end)


def calculate_shift_hours(shift) -> float | None:
    """Worked hours of a closed shift, unpaid break deducted. None while the shift is open."""
    if shift.end_time is None:
        return None
    minutes = _minutes_between(shift.date, shift.start_time, shift.end_time)
    if not shift.break_paid:
        minutes -= break_minutes(shift)
    return round(max(0.0, minutes) / 60, 2)


def _hourly_rate_of(shift, hours: float | None, policy: OvertimePolicy) -> float:
    wage = float(shift.wage)
    if shift.wage_type == WageType.FIXED.value:
        divisor = hours if hours else policy.regular_hours_per_shift
        return wage / divisor
    return wage


def compute_hours(shifts, policy: OvertimePolicy, group=None) -> HoursSummary:
    """Aggregate worked hours and resolve the regular/overtime rates."""
    summary = HoursSummary()
    threshold = policy.regular_hours_per_shift

    rate_total = 0.0
    for shift in shifts:
        hours = calculate_shift_hours(shift)
        if hours is not None:
            summary.total_shifts += 1
            summary.total_hours += hours
            summary.regular_hours += min(hours, threshold)
            summary.overtime_hours += max(0.0, hours - threshold)
            summary.shift_details.append(ShiftHours(
                shift_id=shift.id,
                date=shift.date,
                hours=hours,
                break_minutes=round(break_minutes(shift)),
                break_paid=bool(shift.break_paid),
            ))

        if shift.wage and float(shift.wage) > 0:
            rate_total += _hourly_rate_of(shift, hours, policy)
            summary.shifts_with_wage += 1

    if summary.shifts_with_wage:
        summary.regular_rate = rate_total / summary.shifts_with_wage
        summary.wage_calculation_method = "shifts"
    elif group is not None:
        if group.default_wage_type == WageType.FIXED.value:
            summary.regular_rate = float(group.wage_per_shift or 0) / threshold
        else:
            summary.regular_rate = float(group.hourly_wage or 0)
        summary.wage_calculation_method = "employee_group"

    summary.overtime_rate = summary.regular_rate * policy.overtime_multiplier
    summary.total_hours = round(summary.total_hours, 2)
    summary.regular_hours = round(summary.regular_hours, 2)
    summary.overtime_hours = round(summary.overtime_hours, 2)
    summary.regular_rate = round(summary.regular_rate, 2)
    summary.overtime_rate = round(summary.overtime_rate, 2)
    return summary


class PayrollService:

    def __init__(self, db: AsyncSession, business_id: uuid.UUID, policy: OvertimePolicy | None = None):
        self.db = db
        self.business_id = business_id
        self.policy = policy or OvertimePolicy.from_settings()

    async def get_period(self, period_id: uuid.UUID) -> "PayrollPeriod":
        from shiftdesk.models.payroll import PayrollPeriod
        result = await self.db.execute(
            select(PayrollPeriod).where(
                PayrollPeriod.id == period_id,
                PayrollPeriod.business_id == self.business_id,
            )
        )
        period = result.scalar_one_or_none()
        if period is None:
            raise NotFound("Payroll period not found")
        return period

    async def get_employee(self, employee_id: uuid.UUID) -> "Employee":
        from shiftdesk.models.employee import Employee
        result = await self.db.execute(
            select(Employee).where(
                Employee.id == employee_id,
                Employee.business_id == self.business_id,
            )
        )
        employee = result.scalar_one_or_none()
        if employee is None:
            raise NotFound("Employee not found")
        return employee

    async def _group_of(self, employee: "Employee") -> "EmployeeGroup | None":
        from shiftdesk.models.employee import EmployeeGroup
        if employee.employee_group_id is None:
            return None
        return await self.db.get(EmployeeGroup, employee.employee_group_id)

    async def _approved_shifts(self, employee_id: uuid.UUID, period: "PayrollPeriod") -> list["Shift"]:
        from shiftdesk.models.shift import Shift
        result = await self.db.execute(
            select(Shift)
            .where(
                Shift.business_id == self.business_id,
                Shift.employee_id == employee_id,
                Shift.date >= period.start_date,
                Shift.date <= period.end_date,
                Shift.approved == True,  # noqa: E712
            )
            .order_by(Shift.date, Shift.start_time)
        )
        return list(result.scalars().all())

    async def calculate_hours(self, employee_id: uuid.UUID, period_id: uuid.UUID) -> HoursSummary:
        period = await self.get_period(period_id)
        employee = await self.get_employee(employee_id)
        shifts = await self._approved_shifts(employee.id, period)
        group = await self._group_of(employee)
        return compute_hours(shifts, self.policy, group)

    async def create_entry(
        self,
        employee_id: uuid.UUID,
        period_id: uuid.UUID,
        bonuses: float = 0,
        deductions: float = 0,
        notes: str | None = None,
    ) -> "PayrollEntry":
        """
        Create (or recalculate) the draft entry of one employee for one period.
        Approved/paid entries are locked.
        """
        from shiftdesk.models.payroll import PayrollEntry

        summary = await self.calculate_hours(employee_id, period_id)

        existing_result = await self.db.execute(
            select(PayrollEntry).where(
                PayrollEntry.employee_id == employee_id,
                PayrollEntry.payroll_period_id == period_id,
                PayrollEntry.business_id == self.business_id,
            )
        )
        existing = existing_result.scalar_one_or_none()
        if existing and existing.status != PayrollEntryStatus.DRAFT.value:
            raise InvalidState(f"Payroll entry is locked (status {existing.status})")
        if existing:
            await self.db.delete(existing)
            await self.db.flush()

        gross_pay = (
            summary.regular_hours * summary.regular_rate
            + summary.overtime_hours * summary.overtime_rate
            + float(bonuses)
        )
        entry = PayrollEntry(
            business_id=self.business_id,
            employee_id=employee_id,
            payroll_period_id=period_id,
            total_hours=summary.total_hours,
            regular_hours=summary.regular_hours,
            overtime_hours=summary.overtime_hours,
            regular_rate=summary.regular_rate,
            overtime_rate=summary.overtime_rate,
            bonuses=round(float(bonuses), 2),
            deductions=round(float(deductions), 2),
            gross_pay=round(gross_pay, 2),
            net_pay=round(gross_pay - float(deductions), 2),
            wage_calculation_method=summary.wage_calculation_method,
            status=PayrollEntryStatus.DRAFT.value,
            notes=notes,
        )
        self.db.add(entry)
        await self.db.flush()
        logger.info(
            "Payroll entry for employee %s in period %s: %.2f h, gross %.2f",
            employee_id, period_id, summary.total_hours, entry.gross_pay,
        )
        return entry
