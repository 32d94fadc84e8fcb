# app/models/order_timeline.py
from sqlalchemy import Column, String, DateTime, Integer, Text, ForeignKey, JSON
from sqlalchemy.orm import relationship
from app.db.base_class import Base
from app.utils.time import utcnow
import uuid


class OrderTimelineEntry(Base):
    """One status transition of an order. Rows are only ever inserted."""

    __tablename__ = "order_timeline_entries"

    id = Column(
        String, primary_key=True, default=lambda: f"otl_{uuid.uuid4().hex[:12]}"
    )
    order_id = Column(String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    status = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)
    user_type = Column(String(20), nullable=False)  # 'user', 'admin', 'system'
    user_name = Column(String(255), nullable=False)
    reason = Column(Text, nullable=True)
    extra = Column(JSON, nullable=True)  # tracking number, carrier, ...
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    order = relationship("Order", back_populates="timeline")
