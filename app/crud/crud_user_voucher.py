# app/crud/crud_user_voucher.py
from typing import List, Optional
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError

from app.models.user_voucher import UserVoucher
from app.utils.time import utcnow


class CRUDUserVoucher:
    """Saved vouchers and per-user redemption counters."""

    def __init__(self, model=UserVoucher):
        self.model = model

    def get_for_user(
        self, db: Session, *, user_id: str, voucher_id: str
    ) -> Optional[UserVoucher]:
        return (
            db.query(self.model)
            .filter(
                self.model.user_id == user_id,
                self.model.voucher_id == voucher_id,
            )
            .first()
        )

    def get_saved(self, db: Session, *, user_id: str) -> List[UserVoucher]:
        return (
            db.query(self.model)
            .options(joinedload(self.model.voucher))
            .filter(self.model.user_id == user_id)
            .order_by(self.model.saved_at.desc())
            .all()
        )

    def save(self, db: Session, *, user_id: str, voucher_id: str) -> UserVoucher:
        """Save a voucher to the user's wallet. Saving twice is a no-op."""
        existing = self.get_for_user(db, user_id=user_id, voucher_id=voucher_id)
        if existing:
            return existing

        db_obj = self.model(user_id=user_id, voucher_id=voucher_id, usage_count=0)
        db.add(db_obj)
        try:
            db.commit()
        except IntegrityError:
            # A concurrent save won the unique constraint
            db.rollback()
            return self.get_for_user(db, user_id=user_id, voucher_id=voucher_id)
        db.refresh(db_obj)
        return db_obj

    def try_increment_usage(
        self, db: Session, *, user_id: str, voucher_id: str, per_user_limit: int
    ) -> bool:
        """
        Record one redemption of a voucher by a user.

        An existing record is bumped with a conditional UPDATE guarded by
        per_user_limit. Without a record one is inserted with usage_count=1;
        a concurrent insert surfaces as IntegrityError at flush. Does not
        commit.
        """
        existing = self.get_for_user(db, user_id=user_id, voucher_id=voucher_id)
        if existing is None:
            if per_user_limit < 1:
                return False
            db.add(self.model(user_id=user_id, voucher_id=voucher_id, usage_count=1))
            db.flush()
            return True

        updated = (
            db.query(self.model)
            .filter(
                self.model.id == existing.id,
                self.model.usage_count < per_user_limit,
            )
            .update(
                {
                    self.model.usage_count: self.model.usage_count + 1,
                    self.model.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
        )
        return updated == 1


user_voucher = CRUDUserVoucher(UserVoucher)
