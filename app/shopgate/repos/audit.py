from datetime import datetime

from sqlalchemy import and_, or_, select

from app.shopgate.db.models import AuditLogEntry


class AuditRepository:
    def __init__(self, db):
        self.db = db

    def add(self, entry: AuditLogEntry) -> AuditLogEntry:
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_page(
        self,
        *,
        actor_id=None,
        shop_id=None,
        table_name: str | None = None,
        record_id: str | None = None,
        action: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        after: tuple[datetime, object] | None = None,
        limit: int = 50,
    ):
        stmt = select(AuditLogEntry)
        if actor_id is not None:
            stmt = stmt.where(AuditLogEntry.actor_id == actor_id)
        if shop_id is not None:
            stmt = stmt.where(AuditLogEntry.shop_id == shop_id)
        if table_name:
            stmt = stmt.where(AuditLogEntry.table_name == table_name)
        if record_id:
            stmt = stmt.where(AuditLogEntry.record_id == record_id)
        if action:
            stmt = stmt.where(AuditLogEntry.action == action)
        if date_from is not None:
            stmt = stmt.where(AuditLogEntry.created_at >= date_from)
        if date_to is not None:
            stmt = stmt.where(AuditLogEntry.created_at <= date_to)
        if after is not None:
            created_at, entry_id = after
            stmt = stmt.where(
                or_(
                    AuditLogEntry.created_at < created_at,
                    and_(AuditLogEntry.created_at == created_at, AuditLogEntry.id < entry_id),
                )
            )
        stmt = stmt.order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc()).limit(limit)
        return self.db.execute(stmt).scalars().all()

    def latest_for_record(self, *, table_name: str, record_id: str, action: str) -> AuditLogEntry | None:
        stmt = (
            select(AuditLogEntry)
            .where(
                AuditLogEntry.table_name == table_name,
                AuditLogEntry.record_id == record_id,
                AuditLogEntry.action == action,
            )
            .order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalars().first()
