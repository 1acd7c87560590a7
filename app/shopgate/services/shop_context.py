from __future__ import annotations

import uuid

from app.shopgate.core.context import Principal, TenantScope
from app.shopgate.core.error_catalog import AppError, ErrorCatalog
from app.shopgate.core.enums import Role
from app.shopgate.repos.shops import ShopRepository


class ShopContextResolver:
    """Single enforcement point for shop isolation."""

    def __init__(self, db):
        self.repo = ShopRepository(db)

    def accessible_shops(self, principal: Principal):
        if principal.role == Role.SUPER_ADMIN:
            return self.repo.list_active()
        if principal.role == Role.SHOP_OWNER:
            return self.repo.list_active_owned_by(principal.id)
        if principal.role == Role.SHOP_WORKER:
            return self.repo.list_active_for_worker(principal.id)
        raise ValueError(f"Unhandled role: {principal.role!r}")

    def resolve(self, principal: Principal, requested_shop_id: uuid.UUID | str | None = None) -> TenantScope:
        if not principal.is_active:
            raise AppError(ErrorCatalog.USER_INACTIVE)

        shops = self.accessible_shops(principal)
        accessible_ids = tuple(shop.id for shop in shops)

        if requested_shop_id is not None:
            shop_id = _as_uuid(requested_shop_id)
            match = next((shop for shop in shops if shop.id == shop_id), None)
            if match is None:
                raise AppError(ErrorCatalog.ACCESS_DENIED, details={"shop_id": str(requested_shop_id)})
            return _scope(match, principal, accessible_ids)

        if not shops:
            raise AppError(ErrorCatalog.NO_ACCESSIBLE_TENANT)
        return _scope(shops[0], principal, accessible_ids)


def _scope(shop, principal: Principal, accessible_ids: tuple[uuid.UUID, ...]) -> TenantScope:
    return TenantScope(
        shop_id=shop.id,
        owner_id=shop.owner_id,
        principal=principal,
        accessible_shop_ids=accessible_ids,
    )


def _as_uuid(value: uuid.UUID | str) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None
