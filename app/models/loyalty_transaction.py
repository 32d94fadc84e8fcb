# app/models/loyalty_transaction.py
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Text
from app.db.base_class import Base
from app.utils.time import utcnow
import uuid


class LoyaltyTransaction(Base):
    """Append-only ledger of loyalty point movements.

    points is signed: positive for earned/refund, negative for redeemed.
    """

    __tablename__ = "loyalty_transactions"

    id = Column(
        String, primary_key=True, default=lambda: f"lty_{uuid.uuid4().hex[:12]}"
    )
    user_id = Column(String, nullable=False, index=True)
    points = Column(Integer, nullable=False)
    transaction_type = Column(String(20), nullable=False)  # 'earned', 'redeemed', 'refund'
    description = Column(Text, nullable=False)
    order_id = Column(String, ForeignKey("orders.id"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
