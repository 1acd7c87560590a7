from sqlalchemy import func, select

from app.shopgate.db.models import User


class UserRepository:
    def __init__(self, db):
        self.db = db

    def get_by_id(self, user_id):
        return self.db.get(User, user_id)

    def get_for_update(self, user_id):
        stmt = select(User).where(User.id == user_id).with_for_update()
        return self.db.execute(stmt).scalars().first()

    def get_by_email(self, email: str):
        stmt = select(User).where(func.lower(User.email) == email.strip().lower())
        return self.db.execute(stmt).scalars().first()

    def add(self, user: User) -> User:
        self.db.add(user)
        self.db.flush()
        return user
