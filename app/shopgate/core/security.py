from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from app.shopgate.core.config import settings

ACCESS_TOKEN_TYPE = "access"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
# auto_error is off so a missing header surfaces as INVALID_TOKEN, not a bare 401.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/login", auto_error=False)


class TokenData(BaseModel):
    """Identity claims only. Role and status are re-read from the store on every request."""

    sub: str
    role: str
    email: str
    typ: str = ACCESS_TOKEN_TYPE


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(claims: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"typ": ACCESS_TOKEN_TYPE, **claims, "iat": issued_at, "exp": issued_at + lifetime}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_user_access_token(user, expires_delta: Optional[timedelta] = None) -> str:
    claims = {"sub": str(user.id), "role": user.role, "email": user.email}
    return create_access_token(claims, expires_delta=expires_delta)


def decode_token(token: str) -> TokenData:
    """Raises JWTError for bad signatures, expiry, or tokens of another type."""
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("typ", ACCESS_TOKEN_TYPE) != ACCESS_TOKEN_TYPE:
        raise JWTError("Unexpected token type")
    return TokenData.model_validate(payload)
