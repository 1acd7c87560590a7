from datetime import datetime

from pydantic import BaseModel


class AuditEntryItem(BaseModel):
    id: str
    actor_id: str
    shop_id: str | None
    action: str
    table_name: str
    record_id: str
    changes: dict
    created_at: datetime


class AuditPageResponse(BaseModel):
    entries: list[AuditEntryItem]
    next_cursor: str | None
    trace_id: str
