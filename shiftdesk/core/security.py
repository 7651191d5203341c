from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from jose import jwt, JWTError
from passlib.context import CryptContext

from shiftdesk.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS = "access"
REFRESH = "refresh"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _encode(token_type: str, subject: str | UUID, business_id: str | UUID,
            lifetime: timedelta, **claims: Any) -> str:
    payload: dict[str, Any] = {
        "sub": str(subject),
        "business_id": str(business_id),
        "exp": datetime.now(timezone.utc) + lifetime,
        "type": token_type,
        **claims,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(
    subject: str | UUID,
    business_id: str | UUID,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(ACCESS, subject, business_id, lifetime, role=role)


def create_refresh_token(subject: str | UUID, business_id: str | UUID) -> str:
    return _encode(REFRESH, subject, business_id,
                   timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def decode_token(token: str, expected_type: str = ACCESS) -> dict[str, Any]:
    """Decode a signed token; raises ValueError when it is invalid or of the wrong type."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        raise ValueError(f"Invalid token: {e}") from e
    if payload.get("type") != expected_type:
        raise ValueError(f"Expected a {expected_type} token")
    return payload
