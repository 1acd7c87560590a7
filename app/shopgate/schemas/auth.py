from pydantic import BaseModel, EmailStr, Field

from app.shopgate.core.config import settings


class LoginRequest(BaseModel):
    model_config = {"json_schema_extra": {"example": {"email": "owner@example.com", "password": "OwnerPass123"}}}

    email: EmailStr
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(default_factory=lambda: settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60)
    trace_id: str


class UserResponse(BaseModel):
    id: str
    email: EmailStr
    name: str
    role: str
    status: str
    trace_id: str

    @classmethod
    def from_user(cls, user, trace_id: str) -> "UserResponse":
        return cls(
            id=str(user.id),
            email=user.email,
            name=user.name,
            role=user.role,
            status=user.status,
            trace_id=trace_id,
        )
