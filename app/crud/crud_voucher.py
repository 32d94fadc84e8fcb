# app/crud/crud_voucher.py
from typing import List, Optional
from datetime import datetime
from sqlalchemy.orm import Session
from sqlalchemy import func, or_

from app.crud.base import CRUDBase
from app.models.voucher import Voucher
from app.schemas.voucher import VoucherCreate, VoucherUpdate
from app.utils.time import utcnow


class CRUDVoucher(CRUDBase[Voucher, VoucherCreate, VoucherUpdate]):
    """CRUD operations for Voucher model."""

    def get_by_code(self, db: Session, *, code: str) -> Optional[Voucher]:
        """Case-insensitive exact match on the voucher code."""
        return (
            db.query(self.model)
            .filter(func.upper(self.model.code) == code.strip().upper())
            .first()
        )

    def get_public_active(
        self, db: Session, *, now: Optional[datetime] = None
    ) -> List[Voucher]:
        """Public vouchers that are active, in their window and not used up."""
        now = now or utcnow()
        return (
            db.query(self.model)
            .filter(
                self.model.is_public == True,
                self.model.is_active == True,
                self.model.starts_at <= now,
                self.model.ends_at >= now,
                or_(
                    self.model.usage_limit == None,
                    self.model.used_count < self.model.usage_limit,
                ),
            )
            .order_by(self.model.ends_at.asc())
            .all()
        )

    def get_multi_filtered(
        self,
        db: Session,
        *,
        include_inactive: bool = True,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Voucher]:
        query = db.query(self.model)
        if not include_inactive:
            query = query.filter(self.model.is_active == True)
        return (
            query.order_by(self.model.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def create_with_creator(
        self, db: Session, *, obj_in: VoucherCreate, created_by: Optional[str] = None
    ) -> Voucher:
        db_obj = Voucher(
            code=obj_in.code.upper(),
            name=obj_in.name,
            description=obj_in.description,
            discount_type=obj_in.discount_type.value,
            discount_value=obj_in.discount_value,
            min_purchase_amount=obj_in.min_purchase_amount,
            max_discount_amount=obj_in.max_discount_amount,
            usage_limit=obj_in.usage_limit,
            per_user_limit=obj_in.per_user_limit,
            is_public=obj_in.is_public,
            starts_at=obj_in.starts_at,
            ends_at=obj_in.ends_at,
            is_active=obj_in.is_active,
            created_by=created_by,
        )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def deactivate(self, db: Session, *, db_obj: Voucher) -> Voucher:
        db_obj.is_active = False
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def try_increment_usage(self, db: Session, *, voucher_id: str) -> bool:
        """
        Consume one global use of a voucher.

        Single conditional UPDATE: the counter only moves while it is below
        usage_limit (or the voucher is unlimited). Returns False when the
        last use was taken by someone else. Does not commit.
        """
        updated = (
            db.query(self.model)
            .filter(
                self.model.id == voucher_id,
                or_(
                    self.model.usage_limit == None,
                    self.model.used_count < self.model.usage_limit,
                ),
            )
            .update(
                {
                    self.model.used_count: self.model.used_count + 1,
                    self.model.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
        )
        return updated == 1


voucher = CRUDVoucher(Voucher)
