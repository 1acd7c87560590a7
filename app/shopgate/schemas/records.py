import uuid
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _Payload(BaseModel):
    model_config = ConfigDict(extra="forbid")


class _PartialPayload(_Payload):
    @model_validator(mode="after")
    def ensure_not_empty(self):
        if not self.model_fields_set:
            raise ValueError("at least one field must be provided")
        return self


class DeleteRecordData(BaseModel):
    """Deletes carry no field changes; any snapshot the client sends is ignored."""

    model_config = ConfigDict(extra="ignore")


class ProductCreate(_Payload):
    name: str = Field(..., min_length=1, max_length=255)
    sku: str = Field(..., min_length=1, max_length=100)
    category_id: uuid.UUID | None = None
    brand_id: uuid.UUID | None = None
    cost_price: Decimal = Field(default=Decimal("0"), ge=0)
    selling_price: Decimal = Field(default=Decimal("0"), ge=0)
    stock_quantity: int = Field(default=0, ge=0)
    status: Literal["ACTIVE", "INACTIVE", "DISCONTINUED"] = "ACTIVE"


class ProductUpdate(_PartialPayload):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    sku: str | None = Field(default=None, min_length=1, max_length=100)
    category_id: uuid.UUID | None = None
    brand_id: uuid.UUID | None = None
    cost_price: Decimal | None = Field(default=None, ge=0)
    selling_price: Decimal | None = Field(default=None, ge=0)
    stock_quantity: int | None = Field(default=None, ge=0)
    status: Literal["ACTIVE", "INACTIVE", "DISCONTINUED"] | None = None


class CategoryCreate(_Payload):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None


class CategoryUpdate(_PartialPayload):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None


class BrandCreate(_Payload):
    name: str = Field(..., min_length=1, max_length=255)


class BrandUpdate(_PartialPayload):
    name: str | None = Field(default=None, min_length=1, max_length=255)


class InventoryItemCreate(_Payload):
    product_id: uuid.UUID
    imei: str | None = Field(default=None, max_length=32)
    status: Literal["IN_STOCK", "RESERVED", "SOLD", "DEFECTIVE"] = "IN_STOCK"


class InventoryItemUpdate(_PartialPayload):
    imei: str | None = Field(default=None, max_length=32)
    status: Literal["IN_STOCK", "RESERVED", "SOLD", "DEFECTIVE"] | None = None


class CustomerCreate(_Payload):
    name: str = Field(..., min_length=1, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    email: str | None = Field(default=None, max_length=255)


class CustomerUpdate(_PartialPayload):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    email: str | None = Field(default=None, max_length=255)


class SupplierCreate(_Payload):
    name: str = Field(..., min_length=1, max_length=255)
    contact_person: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    email: str | None = Field(default=None, max_length=255)


class SupplierUpdate(_PartialPayload):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    contact_person: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    email: str | None = Field(default=None, max_length=255)


class RecordMutationRequest(BaseModel):
    data: dict = Field(default_factory=dict, description="Field values for the change, validated per table.")
    reason: str | None = Field(default=None, max_length=1000)


class RecordMutationResponse(BaseModel):
    outcome: Literal["applied", "submitted_for_approval"]
    table_name: str
    record_id: str | None = None
    approval_request_id: str | None = None
    message: str
    trace_id: str


class RecordResponse(BaseModel):
    table_name: str
    record_id: str
    data: dict
    trace_id: str
