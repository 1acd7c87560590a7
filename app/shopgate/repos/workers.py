from sqlalchemy import select

from app.shopgate.db.models import Shop, ShopWorker


class ShopWorkerRepository:
    def __init__(self, db):
        self.db = db

    def get(self, *, user_id, shop_id):
        stmt = select(ShopWorker).where(ShopWorker.user_id == user_id, ShopWorker.shop_id == shop_id)
        return self.db.execute(stmt).scalars().first()

    def get_for_update(self, *, user_id, shop_id):
        stmt = (
            select(ShopWorker)
            .where(ShopWorker.user_id == user_id, ShopWorker.shop_id == shop_id)
            .with_for_update()
        )
        return self.db.execute(stmt).scalars().first()

    def list_active_for_shops_for_update(self, shop_ids):
        if not shop_ids:
            return []
        stmt = (
            select(ShopWorker)
            .where(ShopWorker.shop_id.in_(list(shop_ids)), ShopWorker.is_active.is_(True))
            .order_by(ShopWorker.shop_id.asc(), ShopWorker.created_at.asc(), ShopWorker.id.asc())
            .with_for_update()
        )
        return self.db.execute(stmt).scalars().all()

    def list_active_shops_for_user(self, user_id) -> list[Shop]:
        stmt = (
            select(Shop)
            .join(ShopWorker, ShopWorker.shop_id == Shop.id)
            .where(ShopWorker.user_id == user_id, ShopWorker.is_active.is_(True))
            .order_by(ShopWorker.created_at.asc(), ShopWorker.id.asc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def add(self, assignment: ShopWorker) -> ShopWorker:
        self.db.add(assignment)
        self.db.flush()
        return assignment
