from pydantic import BaseModel, model_validator
import uuid
from datetime import date, datetime
from typing import Optional

from shiftdesk.models.enums import PayrollEntryStatus, PayrollPeriodStatus
from shiftdesk.schemas.base import RequestModel


# ── Periods ──────────────────────────────────────────────────────────────────

class PayrollPeriodCreate(RequestModel):
    name: str
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def validate_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class PayrollPeriodUpdate(RequestModel):
    name: Optional[str] = None
    status: Optional[PayrollPeriodStatus] = None


class PayrollPeriodOut(BaseModel):
    id: uuid.UUID
    business_id: uuid.UUID
    name: str
    start_date: date
    end_date: date
    status: PayrollPeriodStatus
    created_at: datetime

    model_config = {"from_attributes": True}


# ── Hours ────────────────────────────────────────────────────────────────────

class CalculateHoursRequest(RequestModel):
    employee_id: uuid.UUID
    payroll_period_id: uuid.UUID


class ShiftHoursOut(BaseModel):
    shift_id: uuid.UUID
    date: date
    hours: float
    break_minutes: int
    break_paid: bool

    model_config = {"from_attributes": True}


class HoursSummaryOut(BaseModel):
    total_hours: float
    total_shifts: int
    regular_hours: float
    overtime_hours: float
    regular_rate: float
    overtime_rate: float
    average_rate: float
    wage_calculation_method: str
    shifts_with_wage: int
    shift_details: list[ShiftHoursOut]

    model_config = {"from_attributes": True}


# ── Entries ──────────────────────────────────────────────────────────────────

class PayrollEntryCreate(RequestModel):
    employee_id: uuid.UUID
    payroll_period_id: uuid.UUID
    bonuses: float = 0
    deductions: float = 0
    notes: Optional[str] = None


class PayrollEntryUpdate(RequestModel):
    status: Optional[PayrollEntryStatus] = None
    notes: Optional[str] = None


class PayrollEntryOut(BaseModel):
    id: uuid.UUID
    business_id: uuid.UUID
    employee_id: uuid.UUID
    payroll_period_id: uuid.UUID
    total_hours: float
    regular_hours: float
    overtime_hours: float
    regular_rate: float
    overtime_rate: float
    bonuses: float
    deductions: float
    gross_pay: float
    net_pay: float
    wage_calculation_method: str
    status: PayrollEntryStatus
    notes: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}
