# app/models/shipping_method.py
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text
from app.db.base_class import Base
from app.utils.time import utcnow
import uuid


class ShippingMethod(Base):
    __tablename__ = "shipping_methods"

    id = Column(String, primary_key=True, default=lambda: f"shp_{uuid.uuid4().hex[:12]}")
    code = Column(String(50), nullable=False, unique=True)  # e.g. 'standard', 'express'
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
