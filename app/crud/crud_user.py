# app/crud/crud_user.py
from typing import Optional
from sqlalchemy.orm import Session

from app.models.user import User
from app.utils.time import utcnow


class CRUDUser:
    """Local user projection and the loyalty balance counter."""

    def __init__(self, model=User):
        self.model = model

    def get(self, db: Session, id: str) -> Optional[User]:
        return db.query(self.model).filter(self.model.id == id).first()

    def get_or_create(
        self, db: Session, *, user_id: str, name: Optional[str] = None
    ) -> User:
        """Fetch the user row, inserting it on first sight. Flushes only."""
        user = self.get(db, id=user_id)
        if user:
            return user
        user = self.model(id=user_id, name=name or user_id, loyalty_points=0)
        db.add(user)
        db.flush()
        return user

    def get_balance(self, db: Session, *, user_id: str) -> int:
        user = self.get(db, id=user_id)
        return user.loyalty_points if user else 0

    def try_debit_points(self, db: Session, *, user_id: str, points: int) -> bool:
        """Conditional decrement: only succeeds while balance >= points. Does not commit."""
        if points <= 0:
            return True
        updated = (
            db.query(self.model)
            .filter(self.model.id == user_id, self.model.loyalty_points >= points)
            .update(
                {
                    self.model.loyalty_points: self.model.loyalty_points - points,
                    self.model.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
        )
        return updated == 1

    def credit_points(self, db: Session, *, user_id: str, points: int) -> bool:
        """Atomic increment of the balance. Does not commit."""
        if points <= 0:
            return True
        updated = (
            db.query(self.model)
            .filter(self.model.id == user_id)
            .update(
                {
                    self.model.loyalty_points: self.model.loyalty_points + points,
                    self.model.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
        )
        return updated == 1


user = CRUDUser(User)
