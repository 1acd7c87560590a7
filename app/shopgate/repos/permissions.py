from sqlalchemy import delete, select

from app.shopgate.db.models import PermissionGrant


class PermissionGrantRepository:
    """Grants are keyed by (worker, shop): capability in one shop says nothing about another."""

    def __init__(self, db):
        self.db = db

    def list_active_for_user(self, user_id, shop_id):
        stmt = (
            select(PermissionGrant)
            .where(
                PermissionGrant.user_id == user_id,
                PermissionGrant.shop_id == shop_id,
                PermissionGrant.is_active.is_(True),
            )
            .order_by(PermissionGrant.module, PermissionGrant.permission)
        )
        return self.db.execute(stmt).scalars().all()

    def has_any(self, *, user_id, shop_id, module: str, permissions: list[str]) -> bool:
        stmt = (
            select(PermissionGrant.id)
            .where(
                PermissionGrant.user_id == user_id,
                PermissionGrant.shop_id == shop_id,
                PermissionGrant.module == module,
                PermissionGrant.permission.in_(permissions),
                PermissionGrant.is_active.is_(True),
            )
            .limit(1)
        )
        return self.db.execute(stmt).first() is not None

    def replace_for_user(self, *, user_id, shop_id, entries: list[PermissionGrant]) -> None:
        self.db.execute(
            delete(PermissionGrant).where(PermissionGrant.user_id == user_id, PermissionGrant.shop_id == shop_id)
        )
        for entry in entries:
            self.db.add(entry)
        self.db.flush()
