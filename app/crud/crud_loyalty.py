# app/crud/crud_loyalty.py
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session

from app.models.loyalty_transaction import LoyaltyTransaction


class CRUDLoyaltyTransaction:
    def __init__(self, model=LoyaltyTransaction):
        self.model = model

    def add_entry(
        self,
        db: Session,
        *,
        user_id: str,
        points: int,
        transaction_type: str,
        description: str,
        order_id: Optional[str] = None,
    ) -> LoyaltyTransaction:
        """Append a ledger row. Flushes only; the caller owns the transaction."""
        entry = self.model(
            user_id=user_id,
            points=points,
            transaction_type=transaction_type,
            description=description,
            order_id=order_id,
        )
        db.add(entry)
        db.flush()
        return entry

    def get_by_user(
        self, db: Session, *, user_id: str, skip: int = 0, limit: int = 20
    ) -> Tuple[List[LoyaltyTransaction], int]:
        query = db.query(self.model).filter(self.model.user_id == user_id)
        total = query.count()
        items = (
            query.order_by(self.model.created_at.desc(), self.model.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return items, total


loyalty_transaction = CRUDLoyaltyTransaction(LoyaltyTransaction)
