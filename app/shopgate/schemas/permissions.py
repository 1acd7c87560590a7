from pydantic import BaseModel, Field

from app.shopgate.core.enums import Permission, SystemModule


class ModuleGrant(BaseModel):
    module: SystemModule
    permissions: list[Permission] = Field(..., min_length=1)


class ReplaceGrantsRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "example": {
                "grants": [
                    {"module": "PRODUCT_MANAGEMENT", "permissions": ["VIEW", "CREATE"]},
                    {"module": "CUSTOMER_MANAGEMENT", "permissions": ["MANAGE"]},
                ],
                "reason": "Promoted to senior sales",
            }
        }
    }

    grants: list[ModuleGrant] = Field(default_factory=list)
    reason: str | None = Field(default=None, max_length=1000)


class WorkerGrantsResponse(BaseModel):
    shop_id: str
    user_id: str
    grants: list[ModuleGrant]
    trace_id: str


class EffectivePermissionsResponse(BaseModel):
    shop_id: str
    user_id: str
    role: str
    modules: dict[str, list[str]] = Field(..., description="Actions the caller may perform without approval, per module.")
    trace_id: str
