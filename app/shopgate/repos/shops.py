from sqlalchemy import select

from app.shopgate.db.models import Shop, ShopWorker


class ShopRepository:
    def __init__(self, db):
        self.db = db

    def get_by_id(self, shop_id):
        return self.db.get(Shop, shop_id)

    def get_for_update(self, shop_id):
        stmt = select(Shop).where(Shop.id == shop_id).with_for_update()
        return self.db.execute(stmt).scalars().first()

    def _ordered(self, stmt):
        return stmt.order_by(Shop.created_at.asc(), Shop.id.asc())

    def list_active(self):
        stmt = self._ordered(select(Shop).where(Shop.status == "ACTIVE"))
        return self.db.execute(stmt).scalars().all()

    def list_active_owned_by(self, owner_id):
        stmt = self._ordered(select(Shop).where(Shop.owner_id == owner_id, Shop.status == "ACTIVE"))
        return self.db.execute(stmt).scalars().all()

    def list_active_for_worker(self, user_id):
        stmt = self._ordered(
            select(Shop)
            .join(ShopWorker, ShopWorker.shop_id == Shop.id)
            .where(
                ShopWorker.user_id == user_id,
                ShopWorker.is_active.is_(True),
                Shop.status == "ACTIVE",
            )
        )
        return self.db.execute(stmt).scalars().all()

    def list_owned_for_update(self, owner_id):
        stmt = (
            select(Shop)
            .where(Shop.owner_id == owner_id)
            .order_by(Shop.created_at.asc(), Shop.id.asc())
            .with_for_update()
        )
        return self.db.execute(stmt).scalars().all()

    def add(self, shop: Shop) -> Shop:
        self.db.add(shop)
        self.db.flush()
        return shop
