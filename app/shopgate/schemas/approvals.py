from datetime import datetime

from pydantic import BaseModel, Field

from app.shopgate.core.enums import ChangeType, DecisionOutcome


class SubmitApprovalRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "example": {
                "type": "UPDATE",
                "table_name": "Product",
                "record_id": "1f6c3a52-0a57-4f3a-9a43-3c54f1b2d1a0",
                "request_data": {"selling_price": "89.99"},
                "reason": "Price correction",
            }
        }
    }

    type: ChangeType
    table_name: str = Field(..., min_length=1, max_length=64)
    record_id: str | None = Field(default=None, max_length=64)
    request_data: dict = Field(default_factory=dict)
    reason: str | None = Field(default=None, max_length=1000)


class DecisionRequest(BaseModel):
    outcome: DecisionOutcome
    note: str | None = Field(default=None, max_length=1000)


class ApprovalRequestItem(BaseModel):
    id: str
    shop_id: str
    requested_by: str
    type: str
    table_name: str
    record_id: str | None
    request_data: dict | None = Field(default=None, description="Omitted when the reader lacks VIEW on the module.")
    reason: str | None
    status: str
    reviewed_by: str | None
    review_note: str | None
    failure_reason: str | None
    applied_record_id: str | None
    created_at: datetime
    decided_at: datetime | None


class ApprovalResponse(BaseModel):
    request: ApprovalRequestItem
    trace_id: str


class ApprovalListResponse(BaseModel):
    rows: list[ApprovalRequestItem]
    total: int
    limit: int
    offset: int
    trace_id: str
