from fastapi import APIRouter, Depends, Request

from app.shopgate.core.deps import get_current_user
from app.shopgate.db.session import get_db
from app.shopgate.schemas.auth import LoginRequest, TokenResponse, UserResponse
from app.shopgate.schemas.errors import error_responses
from app.shopgate.services.auth import AuthService

router = APIRouter()


@router.post("/auth/login", response_model=TokenResponse, summary="Login", responses=error_responses(401, 403))
def login(request: Request, payload: LoginRequest, db=Depends(get_db)):
    _, token = AuthService(db).login(payload.email, payload.password)
    return TokenResponse(access_token=token, trace_id=getattr(request.state, "trace_id", ""))


@router.get("/me", response_model=UserResponse, summary="Current user", responses=error_responses(401))
def me(request: Request, user=Depends(get_current_user)):
    # Inactive users may still read their own profile; status is reported, not enforced.
    return UserResponse.from_user(user, getattr(request.state, "trace_id", ""))
