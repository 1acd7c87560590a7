from sqlalchemy import select

from app.shopgate.core.config import settings
from app.shopgate.core.enums import Role
from app.shopgate.core.security import get_password_hash
from app.shopgate.db.models import Shop, ShopWorker, User

DEMO_OWNER_EMAIL = "owner@shopgate-demo.com"
DEMO_WORKER_EMAIL = "worker@shopgate-demo.com"
DEMO_SHOP_CODE = "DEMO-01"
DEMO_PASSWORD = "DemoPass123"


def _get_or_create_user(db, *, email: str, name: str, password: str, role: Role) -> User:
    user = db.execute(select(User).where(User.email == email)).scalars().first()
    if user:
        return user
    user = User(email=email, name=name, hashed_password=get_password_hash(password), role=role.value, status="ACTIVE")
    db.add(user)
    db.flush()
    return user


def _get_or_create_demo_shop(db, owner: User) -> Shop:
    shop = db.execute(select(Shop).where(Shop.code == DEMO_SHOP_CODE)).scalars().first()
    if shop:
        return shop
    shop = Shop(name="Demo Mobile Shop", code=DEMO_SHOP_CODE, owner_id=owner.id, status="ACTIVE")
    db.add(shop)
    db.flush()
    return shop


def run_seed(db, *, demo: bool = False) -> None:
    _get_or_create_user(
        db,
        email=settings.SUPERADMIN_EMAIL,
        name=settings.SUPERADMIN_NAME,
        password=settings.SUPERADMIN_PASSWORD,
        role=Role.SUPER_ADMIN,
    )
    if demo:
        owner = _get_or_create_user(
            db, email=DEMO_OWNER_EMAIL, name="Demo Owner", password=DEMO_PASSWORD, role=Role.SHOP_OWNER
        )
        worker = _get_or_create_user(
            db, email=DEMO_WORKER_EMAIL, name="Demo Worker", password=DEMO_PASSWORD, role=Role.SHOP_WORKER
        )
        shop = _get_or_create_demo_shop(db, owner)
        assigned = db.execute(
            select(ShopWorker).where(ShopWorker.user_id == worker.id, ShopWorker.shop_id == shop.id)
        ).scalars().first()
        if assigned is None:
            db.add(ShopWorker(user_id=worker.id, shop_id=shop.id, is_active=True))
    db.commit()
