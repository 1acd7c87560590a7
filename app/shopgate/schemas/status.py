from pydantic import BaseModel, Field

from app.shopgate.core.enums import PrincipalStatus, ShopStatus


class UserStatusRequest(BaseModel):
    status: PrincipalStatus
    reason: str | None = Field(default=None, max_length=1000)


class ShopStatusRequest(BaseModel):
    status: ShopStatus
    reason: str | None = Field(default=None, max_length=1000)


class AssignmentStatusRequest(BaseModel):
    is_active: bool
    reason: str | None = Field(default=None, max_length=1000)


class CascadeChangeItem(BaseModel):
    entity_type: str
    entity_id: str
    old: str
    new: str


class CascadeResponse(BaseModel):
    changed: bool
    changes: list[CascadeChangeItem]
    counts: dict[str, int]
    trace_id: str
