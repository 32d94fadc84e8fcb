# app/models/__init__.py
# Import all models to ensure SQLAlchemy can resolve relationships

from app.db.base_class import Base
from app.models.user import User
from app.models.product import Product
from app.models.shipping_method import ShippingMethod
from app.models.voucher import Voucher
from app.models.user_voucher import UserVoucher
from app.models.order import Order
from app.models.order_line import OrderLine
from app.models.order_timeline import OrderTimelineEntry
from app.models.loyalty_transaction import LoyaltyTransaction

__all__ = [
    "Base",
    "User",
    "Product",
    "ShippingMethod",
    "Voucher",
    "UserVoucher",
    "Order",
    "OrderLine",
    "OrderTimelineEntry",
    "LoyaltyTransaction",
]
