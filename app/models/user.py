# app/models/user.py
from sqlalchemy import Column, String, Integer, DateTime, CheckConstraint
from app.db.base_class import Base
from app.utils.time import utcnow
import uuid


class User(Base):
    """Local projection of a storefront customer; credentials live elsewhere."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: f"usr_{uuid.uuid4().hex[:12]}")
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    loyalty_points = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("loyalty_points >= 0", name="check_users_loyalty_points_non_negative"),
    )
