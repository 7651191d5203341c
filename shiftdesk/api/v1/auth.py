import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from shiftdesk.api.deps import DB, CurrentUser, own_employee_id
from shiftdesk.core.security import (
    REFRESH, create_access_token, create_refresh_token, decode_token, verify_password,
)
from shiftdesk.models.user import User
from shiftdesk.schemas.auth import LoginRequest, MeOut, RefreshRequest, Token

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/login", response_model=Token)
async def login(payload: LoginRequest, db: DB):
    result = await db.execute(select(User).where(User.email == payload.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if not user.is_active:
        raise HTTPException(status_code=400, detail="Account is deactivated")

    user.last_login_at = datetime.now(timezone.utc)
    await db.commit()
    logger.info("User %s logged in", user.id)

    access_token = create_access_token(user.id, user.business_id, user.role)
    refresh_token = create_refresh_token(user.id, user.business_id)

    return Token(access_token=access_token, refresh_token=refresh_token)


@router.post("/refresh", response_model=Token)
async def refresh_token(payload: RefreshRequest, db: DB):
    try:
        token_data = decode_token(payload.refresh_token, REFRESH)
        user_id = uuid.UUID(token_data["sub"])
    except (ValueError, KeyError):
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")

    access_token = create_access_token(user.id, user.business_id, user.role)
    new_refresh_token = create_refresh_token(user.id, user.business_id)

    return Token(access_token=access_token, refresh_token=new_refresh_token)


@router.get("/me", response_model=MeOut)
async def get_me(current_user: CurrentUser, db: DB):
    return MeOut(
        id=current_user.id,
        email=current_user.email,
        role=current_user.role,
        business_id=current_user.business_id,
        employee_id=await own_employee_id(current_user, db),
        is_active=current_user.is_active,
        last_login_at=current_user.last_login_at,
    )
