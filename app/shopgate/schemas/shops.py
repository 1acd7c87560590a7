from pydantic import BaseModel, Field


class ShopItem(BaseModel):
    id: str
    name: str
    code: str
    owner_id: str
    status: str
    is_owner: bool = Field(..., description="True when the caller owns this shop.")


class ShopListResponse(BaseModel):
    shops: list[ShopItem]
    trace_id: str


class CurrentShopResponse(BaseModel):
    shop: ShopItem
    role: str
    accessible_shop_ids: list[str]
    trace_id: str


class CatalogResponse(BaseModel):
    modules: list[str]
    permissions: list[str]
    tables: dict[str, str] = Field(..., description="Approval-eligible table name mapped to its governing module.")
    trace_id: str
