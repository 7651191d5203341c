from pydantic import BaseModel, Field
import uuid
from datetime import datetime
from typing import Literal, Optional

from shiftdesk.models.enums import ExchangeStatus, ExchangeType
from shiftdesk.schemas.base import RequestModel
from shiftdesk.schemas.shift import ShiftOut


class ShiftExchangeCreate(RequestModel):
    shift_id: uuid.UUID = Field(alias="fromShiftId")
    to_employee_id: uuid.UUID
    type: Literal["SWAP", "HANDOVER"]
    reason: Optional[str] = Field(default=None, alias="requestReason")
    counterpart_shift_id: Optional[uuid.UUID] = Field(default=None, alias="toShiftId")
    # Admins may file on behalf of the shift owner
    from_employee_id: Optional[uuid.UUID] = None


class ShiftExchangeDecision(RequestModel):
    status: Literal["APPROVED", "REJECTED"]


class ShiftExchangeOut(BaseModel):
    id: uuid.UUID
    business_id: uuid.UUID
    shift_id: uuid.UUID
    counterpart_shift_id: Optional[uuid.UUID]
    from_employee_id: uuid.UUID
    to_employee_id: uuid.UUID
    type: ExchangeType
    status: ExchangeStatus
    reason: Optional[str]
    requested_by: Optional[uuid.UUID]
    requested_at: datetime
    approved_by: Optional[uuid.UUID]
    approved_at: Optional[datetime]
    exchanged_at: Optional[datetime]
    released_at: Optional[datetime]

    model_config = {"from_attributes": True}


class DirectExchangeRequest(RequestModel):
    new_employee_id: uuid.UUID


class DirectExchangeOut(BaseModel):
    success: bool = True
    exchange_id: uuid.UUID
    shift: ShiftOut
