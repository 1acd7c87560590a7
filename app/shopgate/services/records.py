"""Registry of approval-eligible tables and the code that applies changes to them.

Each table declares which permission module governs it and which payload
schema a change of each type must satisfy. Payloads are stored in JSON form
and validated again right before they are written.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ValidationError
from sqlalchemy import inspect, select
from sqlalchemy.exc import IntegrityError

from app.shopgate.core.enums import ChangeType, SystemModule
from app.shopgate.core.error_catalog import AppError, ErrorCatalog
from app.shopgate.db.models import Brand, Category, Customer, InventoryItem, Product, Supplier
from app.shopgate.schemas.records import (
    BrandCreate,
    BrandUpdate,
    CategoryCreate,
    CategoryUpdate,
    CustomerCreate,
    CustomerUpdate,
    DeleteRecordData,
    InventoryItemCreate,
    InventoryItemUpdate,
    ProductCreate,
    ProductUpdate,
    SupplierCreate,
    SupplierUpdate,
)


@dataclass(frozen=True)
class RecordType:
    table_name: str
    model: type
    module: SystemModule
    create_schema: type[BaseModel]
    update_schema: type[BaseModel]
    references: dict[str, type] = field(default_factory=dict)

    def schema_for(self, change_type: ChangeType) -> type[BaseModel]:
        if change_type == ChangeType.CREATE:
            return self.create_schema
        if change_type == ChangeType.UPDATE:
            return self.update_schema
        return DeleteRecordData

    @property
    def non_nullable_fields(self) -> set[str]:
        return {
            name
            for name, info in self.create_schema.model_fields.items()
            if info.is_required() or info.default is not None
        }


RECORD_TYPES: dict[str, RecordType] = {
    record_type.table_name: record_type
    for record_type in (
        RecordType(
            "Product",
            Product,
            SystemModule.PRODUCT_MANAGEMENT,
            ProductCreate,
            ProductUpdate,
            references={"category_id": Category, "brand_id": Brand},
        ),
        RecordType("Category", Category, SystemModule.PRODUCT_MANAGEMENT, CategoryCreate, CategoryUpdate),
        RecordType("Brand", Brand, SystemModule.PRODUCT_MANAGEMENT, BrandCreate, BrandUpdate),
        RecordType(
            "InventoryItem",
            InventoryItem,
            SystemModule.INVENTORY_MANAGEMENT,
            InventoryItemCreate,
            InventoryItemUpdate,
            references={"product_id": Product},
        ),
        RecordType("Customer", Customer, SystemModule.CUSTOMER_MANAGEMENT, CustomerCreate, CustomerUpdate),
        RecordType("Supplier", Supplier, SystemModule.SUPPLIER_MANAGEMENT, SupplierCreate, SupplierUpdate),
    )
}


@dataclass
class AppliedChange:
    table_name: str
    record_id: str
    before: dict | None
    after: dict | None


class ChangeTargetError(Exception):
    """The stored change can no longer be applied to the current data."""

    MISSING_TARGET = "missing_target"
    MISSING_REFERENCE = "missing_reference"
    CONSTRAINT = "constraint"

    def __init__(self, kind: str, message: str, details: dict | None = None):
        super().__init__(message)
        self.kind = kind
        self.details = details or {}


def get_record_type(table_name: str) -> RecordType:
    record_type = RECORD_TYPES.get(table_name)
    if record_type is None:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={"message": "Unsupported table", "table_name": table_name, "supported": sorted(RECORD_TYPES)},
        )
    return record_type


def validate_change(
    change_type: ChangeType,
    table_name: str,
    record_id: str | None,
    data: dict | None,
) -> tuple[RecordType, dict]:
    """Validate a proposed change and return its JSON-safe normalized payload."""
    record_type = get_record_type(table_name)
    if change_type == ChangeType.CREATE and record_id:
        raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "record_id must be empty for CREATE"})
    if change_type in (ChangeType.UPDATE, ChangeType.DELETE):
        if not record_id:
            raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "record_id is required"})
        _parse_record_id(record_id)
    payload = _parse_payload(record_type, change_type, data or {})
    if change_type == ChangeType.UPDATE:
        nulled = sorted(name for name in record_type.non_nullable_fields if name in payload and payload[name] is None)
        if nulled:
            raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "Fields cannot be null", "fields": nulled})
    return record_type, payload


def snapshot(record) -> dict:
    mapper = inspect(record).mapper
    return jsonable_encoder({column.key: getattr(record, column.key) for column in mapper.column_attrs})


class RecordService:
    def __init__(self, db):
        self.db = db

    def exists_in_shop(self, table_name: str, record_id: str, shop_id: uuid.UUID) -> bool:
        record_type = get_record_type(table_name)
        return self._load(record_type, _parse_record_id(record_id), shop_id) is not None

    def get(self, table_name: str, record_id: str, shop_id: uuid.UUID) -> dict:
        record = self._load(get_record_type(table_name), _parse_record_id(record_id), shop_id)
        if record is None:
            raise AppError(ErrorCatalog.NOT_FOUND, details={"table_name": table_name, "record_id": str(record_id)})
        return snapshot(record)

    def apply(
        self,
        *,
        shop_id: uuid.UUID,
        change_type: ChangeType,
        table_name: str,
        record_id: str | None,
        data: dict,
    ) -> AppliedChange:
        """Apply a validated change inside the caller's transaction.

        Raises ``ChangeTargetError`` when the target row or a referenced row is
        missing from the shop, or when the store rejects the write.
        """
        record_type, payload = validate_change(change_type, table_name, record_id, data)
        values = record_type.schema_for(change_type).model_validate(payload).model_dump(exclude_unset=True)
        self._check_references(record_type, values, shop_id)

        try:
            if change_type == ChangeType.CREATE:
                record = record_type.model(shop_id=shop_id, **values)
                self.db.add(record)
                self.db.flush()
                return AppliedChange(table_name, str(record.id), None, snapshot(record))

            record = self._load(record_type, _parse_record_id(record_id), shop_id, for_update=True)
            if record is None:
                raise ChangeTargetError(
                    ChangeTargetError.MISSING_TARGET,
                    "Target record no longer exists",
                    {"table_name": table_name, "record_id": record_id},
                )
            before = snapshot(record)
            if change_type == ChangeType.UPDATE:
                for name, value in values.items():
                    setattr(record, name, value)
                if hasattr(record, "updated_at"):
                    record.updated_at = datetime.utcnow()
                self.db.flush()
                return AppliedChange(table_name, str(record.id), before, snapshot(record))

            self.db.delete(record)
            self.db.flush()
            return AppliedChange(table_name, str(record_id), before, None)
        except IntegrityError as exc:
            raise ChangeTargetError(
                ChangeTargetError.CONSTRAINT,
                "Change violates a data constraint",
                {"table_name": table_name, "error": exc.orig.__class__.__name__ if exc.orig else "IntegrityError"},
            ) from exc

    def _load(self, record_type: RecordType, record_id: uuid.UUID, shop_id: uuid.UUID, *, for_update: bool = False):
        model = record_type.model
        stmt = select(model).where(model.id == record_id, model.shop_id == shop_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalars().first()

    def _check_references(self, record_type: RecordType, values: dict, shop_id: uuid.UUID) -> None:
        for name, model in record_type.references.items():
            referenced_id = values.get(name)
            if referenced_id is None:
                continue
            stmt = select(model.id).where(model.id == referenced_id, model.shop_id == shop_id)
            if self.db.execute(stmt).first() is None:
                raise ChangeTargetError(
                    ChangeTargetError.MISSING_REFERENCE,
                    "Referenced record does not exist in this shop",
                    {"field": name, "record_id": str(referenced_id)},
                )


def _parse_payload(record_type: RecordType, change_type: ChangeType, data: dict) -> dict:
    schema = record_type.schema_for(change_type)
    try:
        parsed = schema.model_validate(data)
    except ValidationError as exc:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={
                "message": "Invalid change payload",
                "table_name": record_type.table_name,
                "errors": jsonable_encoder(exc.errors(include_url=False, include_context=False)),
            },
        ) from exc
    return parsed.model_dump(mode="json", exclude_unset=True)


def _parse_record_id(record_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(record_id))
    except ValueError as exc:
        raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "Invalid record_id"}) from exc
