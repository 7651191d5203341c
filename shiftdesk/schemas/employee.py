from pydantic import EmailStr, BaseModel
import uuid
from datetime import datetime

from shiftdesk.models.enums import WageType
from shiftdesk.schemas.base import RequestModel


# ── Employee groups ──────────────────────────────────────────────────────────

class EmployeeGroupCreate(RequestModel):
    name: str
    hourly_wage: float = 0
    wage_per_shift: float = 0
    default_wage_type: WageType = WageType.HOURLY


class EmployeeGroupOut(BaseModel):
    id: uuid.UUID
    business_id: uuid.UUID
    name: str
    hourly_wage: float
    wage_per_shift: float
    default_wage_type: WageType
    created_at: datetime

    model_config = {"from_attributes": True}


# ── Employees ────────────────────────────────────────────────────────────────

class EmployeeCreate(RequestModel):
    first_name: str
    last_name: str
    email: EmailStr | None = None
    employee_no: str | None = None
    employee_group_id: uuid.UUID | None = None
    user_id: uuid.UUID | None = None


class EmployeeOut(BaseModel):
    id: uuid.UUID
    business_id: uuid.UUID
    user_id: uuid.UUID | None
    employee_group_id: uuid.UUID | None
    employee_no: str | None
    first_name: str
    last_name: str
    email: str | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
