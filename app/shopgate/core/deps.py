import uuid

from fastapi import Depends, Query, Request
from jose import JWTError
from pydantic import ValidationError

from app.shopgate.core.context import Principal, TenantScope
from app.shopgate.core.enums import Role
from app.shopgate.core.error_catalog import AppError, ErrorCatalog
from app.shopgate.core.security import TokenData, decode_token, oauth2_scheme
from app.shopgate.db.session import get_db
from app.shopgate.repos.users import UserRepository
from app.shopgate.services.shop_context import ShopContextResolver


def get_current_token_data(token: str | None = Depends(oauth2_scheme)) -> TokenData:
    if not token:
        raise AppError(ErrorCatalog.INVALID_TOKEN)
    try:
        return decode_token(token)
    except (JWTError, ValidationError, TypeError) as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc


def get_current_user(
    request: Request,
    token_data: TokenData = Depends(get_current_token_data),
    db=Depends(get_db),
):
    try:
        user_id = uuid.UUID(token_data.sub)
    except ValueError as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc

    user = UserRepository(db).get_by_id(user_id)
    if user is None:
        raise AppError(ErrorCatalog.INVALID_TOKEN)
    request.state.user_id = str(user.id)
    return user


def get_current_principal(user=Depends(get_current_user)) -> Principal:
    # Status comes from the store, never from the token claims.
    return Principal.from_user(user)


def require_active_principal(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_active:
        raise AppError(ErrorCatalog.USER_INACTIVE)
    return principal


def require_super_admin(principal: Principal = Depends(require_active_principal)) -> Principal:
    if principal.role != Role.SUPER_ADMIN:
        raise AppError(ErrorCatalog.ACCESS_DENIED, details={"message": "Super admin only"})
    return principal


def _resolve_scope(request: Request, principal: Principal, shop_id, db) -> TenantScope:
    scope = ShopContextResolver(db).resolve(principal, shop_id)
    request.state.shop_id = str(scope.shop_id)
    return scope


def get_tenant_scope(
    request: Request,
    shop_id: uuid.UUID | None = Query(default=None, description="Shop to act in; defaults to the first accessible shop."),
    principal: Principal = Depends(require_active_principal),
    db=Depends(get_db),
) -> TenantScope:
    return _resolve_scope(request, principal, shop_id, db)


def get_path_tenant_scope(
    request: Request,
    shop_id: uuid.UUID,
    principal: Principal = Depends(require_active_principal),
    db=Depends(get_db),
) -> TenantScope:
    return _resolve_scope(request, principal, shop_id, db)


__all__ = [
    "get_current_token_data",
    "get_current_user",
    "get_current_principal",
    "require_active_principal",
    "require_super_admin",
    "get_tenant_scope",
    "get_path_tenant_scope",
]
