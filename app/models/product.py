# app/models/product.py
from sqlalchemy import Column, String, Integer, Boolean, DateTime, CheckConstraint
from app.db.base_class import Base
from app.utils.time import utcnow
import uuid


class Product(Base):
    """Catalog read model used to price order lines."""

    __tablename__ = "products"

    id = Column(String, primary_key=True, default=lambda: f"prd_{uuid.uuid4().hex[:12]}")
    code = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    image_url = Column(String(1024), nullable=True)
    price = Column(Integer, nullable=False)  # smallest currency unit
    discount_percent = Column(Integer, nullable=False, default=0)  # 0-100
    stock = Column(Integer, nullable=False, default=0)
    sold_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("stock >= 0", name="check_products_stock_non_negative"),
        CheckConstraint(
            "discount_percent >= 0 AND discount_percent <= 100",
            name="check_products_discount_percent_range",
        ),
    )

    @property
    def actual_price(self) -> int:
        """Unit price after the product's own discount, rounded down."""
        return self.price * (100 - (self.discount_percent or 0)) // 100
