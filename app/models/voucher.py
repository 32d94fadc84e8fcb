# app/models/voucher.py
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, CheckConstraint
from sqlalchemy.orm import relationship
from app.db.base_class import Base
from app.utils.money import format_vnd
from app.utils.time import utcnow, as_utc
from datetime import datetime
from typing import Optional
import uuid


class Voucher(Base):
    __tablename__ = "vouchers"

    id = Column(
        String, primary_key=True, default=lambda: f"vch_{uuid.uuid4().hex[:12]}"
    )
    code = Column(String(50), nullable=False, unique=True)  # stored upper-case
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    discount_type = Column(String(20), nullable=False)  # 'percentage' or 'fixed'
    discount_value = Column(Integer, nullable=False)  # percentage (1-100) or fixed amount

    # Minimum requirements / caps
    min_purchase_amount = Column(Integer, nullable=False, default=0)
    max_discount_amount = Column(Integer, nullable=True)  # NULL = no cap

    # Usage limits
    usage_limit = Column(Integer, nullable=True)  # NULL = unlimited
    used_count = Column(Integer, nullable=False, default=0)
    per_user_limit = Column(Integer, nullable=False, default=1)

    # Private vouchers can only be used by users holding a UserVoucher record
    is_public = Column(Boolean, nullable=False, default=True)

    # Validity period
    starts_at = Column(DateTime(timezone=True), nullable=False)
    ends_at = Column(DateTime(timezone=True), nullable=False)

    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    user_vouchers = relationship("UserVoucher", back_populates="voucher")

    __table_args__ = (
        CheckConstraint("used_count >= 0", name="check_vouchers_used_count_non_negative"),
    )

    def is_within_window(self, now: Optional[datetime] = None) -> bool:
        """Check the validity period only (inclusive on both ends)."""
        now = as_utc(now) if now else utcnow()
        return as_utc(self.starts_at) <= now <= as_utc(self.ends_at)

    @property
    def remaining_uses(self):
        """Remaining global uses, or None if unlimited."""
        if self.usage_limit is None:
            return None
        return max(0, self.usage_limit - (self.used_count or 0))

    @property
    def discount_formatted(self) -> str:
        """Formatted discount string (e.g. '20%' or '50.000đ')."""
        if self.discount_type == "percentage":
            return f"{self.discount_value}%"
        return format_vnd(self.discount_value)

    def calculate_discount(self, subtotal: int) -> int:
        """Discount for a subtotal, ignoring eligibility rules.

        Percentage discounts are rounded down and capped by
        max_discount_amount; fixed discounts are taken as-is. The result
        never exceeds the subtotal.
        """
        if subtotal <= 0:
            return 0

        if self.discount_type == "percentage":
            discount = subtotal * self.discount_value // 100
            if self.max_discount_amount is not None:
                discount = min(discount, self.max_discount_amount)
        else:  # fixed
            discount = self.discount_value

        return max(0, min(discount, subtotal))
