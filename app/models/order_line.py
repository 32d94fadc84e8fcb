# app/models/order_line.py
from sqlalchemy import Column, String, Integer, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from app.db.base_class import Base
import uuid


class OrderLine(Base):
    """Price snapshot of one product at the moment the order was placed."""

    __tablename__ = "order_lines"

    id = Column(
        String, primary_key=True, default=lambda: f"ol_{uuid.uuid4().hex[:12]}"
    )
    order_id = Column(String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    product_id = Column(String, ForeignKey("products.id"), nullable=False, index=True)
    product_code = Column(String(50), nullable=False)
    product_name = Column(String(255), nullable=False)
    product_image = Column(String(1024), nullable=True)
    unit_price = Column(Integer, nullable=False)
    discount_percent = Column(Integer, nullable=False, default=0)
    actual_unit_price = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False)
    line_total = Column(Integer, nullable=False)  # actual_unit_price * quantity

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_order_lines_quantity_positive"),
    )

    order = relationship("Order", back_populates="lines")
