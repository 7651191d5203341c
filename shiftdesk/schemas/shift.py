from pydantic import BaseModel, model_validator
import uuid
from datetime import date as Date, datetime as DateTime, time as Time
from typing import Literal, Optional

from shiftdesk.models.enums import ShiftType, WageType
from shiftdesk.schemas.base import RequestModel


def _check_times(start_time: Time | None, end_time: Time | None) -> None:
    if start_time is not None and end_time is not None and start_time == end_time:
        raise ValueError("start_time and end_time must differ")


class ShiftCreate(RequestModel):
    employee_id: Optional[uuid.UUID] = None
    employee_group_id: Optional[uuid.UUID] = None
    date: Date
    start_time: Time
    end_time: Optional[Time] = None
    shift_type: ShiftType = ShiftType.NORMAL
    wage: Optional[float] = None
    wage_type: WageType = WageType.HOURLY
    approved: bool = False
    note: Optional[str] = None
    break_start: Optional[Time] = None
    break_end: Optional[Time] = None
    break_paid: bool = False

    @model_validator(mode="after")
    def validate_times(self):
        _check_times(self.start_time, self.end_time)
        return self


class ShiftUpdate(RequestModel):
    employee_id: Optional[uuid.UUID] = None
    employee_group_id: Optional[uuid.UUID] = None
    date: Optional[Date] = None
    start_time: Optional[Time] = None
    end_time: Optional[Time] = None
    shift_type: Optional[ShiftType] = None
    wage: Optional[float] = None
    wage_type: Optional[WageType] = None
    approved: Optional[bool] = None
    note: Optional[str] = None
    break_start: Optional[Time] = None
    break_end: Optional[Time] = None
    break_paid: Optional[bool] = None

    @model_validator(mode="after")
    def validate_times(self):
        _check_times(self.start_time, self.end_time)
        return self


class ShiftSell(RequestModel):
    status: Literal["FOR_SALE"]


class ShiftPunch(RequestModel):
    shift_id: uuid.UUID
    action: Literal["in", "out"]
    time: Time


class ShiftOut(BaseModel):
    id: uuid.UUID
    business_id: uuid.UUID
    employee_id: Optional[uuid.UUID]
    employee_group_id: Optional[uuid.UUID]
    date: Date
    start_time: Time
    end_time: Optional[Time]
    shift_type: ShiftType
    wage: Optional[float]
    wage_type: WageType
    approved: bool
    note: Optional[str]
    break_start: Optional[Time]
    break_end: Optional[Time]
    break_paid: bool
    is_for_sale: bool
    version: int
    created_at: DateTime
    updated_at: DateTime

    model_config = {"from_attributes": True}
