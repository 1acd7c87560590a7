from __future__ import annotations

import base64
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator

from fastapi.encoders import jsonable_encoder

from app.shopgate.core.error_catalog import AppError, ErrorCatalog
from app.shopgate.db.models import AuditLogEntry
from app.shopgate.repos.audit import AuditRepository


@dataclass(frozen=True)
class AuditQuery:
    actor_id: uuid.UUID | None = None
    shop_id: uuid.UUID | None = None
    table_name: str | None = None
    record_id: str | None = None
    action: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None


@dataclass
class AuditPage:
    entries: list[AuditLogEntry]
    next_cursor: str | None


def build_changes(
    before: dict | None,
    after: dict | None,
    *,
    reason: str | None = None,
    changed_by: str | None = None,
    context: dict | None = None,
) -> dict:
    """Field-level diff between two snapshots.

    Fields present on only one side are reported with the other side as None;
    unchanged fields are omitted.
    """
    before = jsonable_encoder(before or {})
    after = jsonable_encoder(after or {})
    fields = []
    for name in sorted(set(before) | set(after)):
        old_value = before.get(name)
        new_value = after.get(name)
        if old_value == new_value:
            continue
        fields.append({"field": name, "old_value": old_value, "new_value": new_value})
    changes: dict = {"fields": fields}
    if reason is not None:
        changes["reason"] = reason
    if changed_by is not None:
        changes["changed_by"] = changed_by
    if context:
        changes["context"] = jsonable_encoder(context)
    return changes


def encode_cursor(entry: AuditLogEntry) -> str:
    raw = f"{entry.created_at.isoformat()}|{entry.id}"
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> tuple[datetime, uuid.UUID]:
    try:
        raw = base64.urlsafe_b64decode(cursor.encode("ascii")).decode("utf-8")
        created_at, entry_id = raw.split("|", 1)
        return datetime.fromisoformat(created_at), uuid.UUID(entry_id)
    except (ValueError, UnicodeDecodeError) as exc:
        raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "Invalid cursor"}) from exc


class AuditTrail:
    """Append-only audit sink.

    ``record`` only stages the entry on the caller's transaction. It never
    commits and never swallows errors: a failed audit write must abort the
    mutation it describes.
    """

    def __init__(self, db):
        self.repo = AuditRepository(db)

    def record(
        self,
        *,
        actor_id: uuid.UUID,
        action: str,
        table_name: str,
        record_id: str,
        changes: dict,
        shop_id: uuid.UUID | None = None,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            actor_id=actor_id,
            shop_id=shop_id,
            action=str(getattr(action, "value", action)),
            table_name=table_name,
            record_id=str(record_id),
            changes=jsonable_encoder(changes),
            created_at=datetime.utcnow(),
        )
        return self.repo.add(entry)

    def query(self, filters: AuditQuery, *, limit: int = 50, cursor: str | None = None) -> AuditPage:
        after = decode_cursor(cursor) if cursor else None
        rows = self.repo.list_page(
            actor_id=filters.actor_id,
            shop_id=filters.shop_id,
            table_name=filters.table_name,
            record_id=filters.record_id,
            action=filters.action,
            date_from=filters.date_from,
            date_to=filters.date_to,
            after=after,
            limit=limit + 1,
        )
        entries = list(rows[:limit])
        next_cursor = encode_cursor(entries[-1]) if len(rows) > limit and entries else None
        return AuditPage(entries=entries, next_cursor=next_cursor)

    def iterate(self, filters: AuditQuery, *, page_size: int = 100, cursor: str | None = None) -> Iterator[AuditLogEntry]:
        while True:
            page = self.query(filters, limit=page_size, cursor=cursor)
            yield from page.entries
            if page.next_cursor is None:
                return
            cursor = page.next_cursor
