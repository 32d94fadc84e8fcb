# app/models/user_voucher.py
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.db.base_class import Base
from app.utils.time import utcnow
import uuid


class UserVoucher(Base):
    """A user's saved voucher and how many times they have redeemed it.

    One row per (user, voucher); usage_count only ever goes up.
    """

    __tablename__ = "user_vouchers"

    id = Column(
        String, primary_key=True, default=lambda: f"uv_{uuid.uuid4().hex[:12]}"
    )
    user_id = Column(String, nullable=False, index=True)
    voucher_id = Column(
        String,
        ForeignKey("vouchers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    usage_count = Column(Integer, nullable=False, default=0)
    saved_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "voucher_id", name="uq_user_vouchers_user_voucher"),
    )

    voucher = relationship("Voucher", back_populates="user_vouchers")
