from fastapi import APIRouter, Depends, Request

from app.shopgate.core.context import Principal, TenantScope
from app.shopgate.core.deps import get_tenant_scope, require_active_principal
from app.shopgate.core.enums import Permission, SystemModule
from app.shopgate.db.session import get_db
from app.shopgate.schemas.shops import CatalogResponse, CurrentShopResponse, ShopItem, ShopListResponse
from app.shopgate.services.records import RECORD_TYPES
from app.shopgate.services.shop_context import ShopContextResolver

router = APIRouter()


def _shop_item(shop, principal: Principal) -> ShopItem:
    return ShopItem(
        id=str(shop.id),
        name=shop.name,
        code=shop.code,
        owner_id=str(shop.owner_id),
        status=shop.status,
        is_owner=shop.owner_id == principal.id,
    )


@router.get("/shops", response_model=ShopListResponse, summary="Shops the caller can access")
def list_shops(
    request: Request,
    principal: Principal = Depends(require_active_principal),
    db=Depends(get_db),
):
    shops = ShopContextResolver(db).accessible_shops(principal)
    return ShopListResponse(
        shops=[_shop_item(shop, principal) for shop in shops],
        trace_id=getattr(request.state, "trace_id", ""),
    )


@router.get("/shops/current", response_model=CurrentShopResponse, summary="Resolve the active shop")
def current_shop(
    request: Request,
    scope: TenantScope = Depends(get_tenant_scope),
    db=Depends(get_db),
):
    shops = {shop.id: shop for shop in ShopContextResolver(db).accessible_shops(scope.principal)}
    return CurrentShopResponse(
        shop=_shop_item(shops[scope.shop_id], scope.principal),
        role=scope.principal.role.value,
        accessible_shop_ids=[str(shop_id) for shop_id in scope.accessible_shop_ids],
        trace_id=getattr(request.state, "trace_id", ""),
    )


@router.get("/catalog", response_model=CatalogResponse, summary="Modules, permissions and approval tables")
def catalog(request: Request, _principal: Principal = Depends(require_active_principal)):
    return CatalogResponse(
        modules=[module.value for module in SystemModule],
        permissions=[permission.value for permission in Permission],
        tables={name: record_type.module.value for name, record_type in RECORD_TYPES.items()},
        trace_id=getattr(request.state, "trace_id", ""),
    )
