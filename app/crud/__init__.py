# app/crud/__init__.py

from .crud_loyalty import loyalty_transaction
from .crud_order import order
from .crud_product import product
from .crud_shipping_method import shipping_method
from .crud_user import user
from .crud_user_voucher import user_voucher
from .crud_voucher import voucher
