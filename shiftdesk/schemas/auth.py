from pydantic import BaseModel, EmailStr
import uuid
from datetime import datetime


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    refresh_token: str


class MeOut(BaseModel):
    id: uuid.UUID
    email: str
    role: str
    business_id: uuid.UUID
    employee_id: uuid.UUID | None
    is_active: bool
    last_login_at: datetime | None
