# app/constants/order_status.py
"""
Order status values.

Detailed statuses drive the state machine; status groups are the coarse
buckets the storefront shows as tabs.
"""

from enum import Enum


class OrderStatus(str, Enum):
    new = "new"
    confirmed = "confirmed"
    preparing = "preparing"
    shipping_in_progress = "shipping_in_progress"
    delivered = "delivered"
    completed = "completed"
    cancellation_requested = "cancellation_requested"
    cancelled = "cancelled"
    payment_overdue = "payment_overdue"
    delivery_failed = "delivery_failed"
    return_requested = "return_requested"
    refunded = "refunded"


class StatusGroup(str, Enum):
    pending = "pending"
    processing = "processing"
    shipping = "shipping"
    completed = "completed"
    cancelled = "cancelled"
    return_refund = "return_refund"


class PaymentMethod(str, Enum):
    COD = "COD"
    VNPAY = "VNPAY"
    MOMO = "MOMO"
    BANK = "BANK"


class PaymentStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"


class ActorType(str, Enum):
    user = "user"
    admin = "admin"
    system = "system"


STATUS_GROUPS = {
    StatusGroup.pending: (OrderStatus.new,),
    StatusGroup.processing: (OrderStatus.confirmed, OrderStatus.preparing),
    StatusGroup.shipping: (
        OrderStatus.shipping_in_progress,
        OrderStatus.delivered,
        OrderStatus.cancellation_requested,
    ),
    StatusGroup.completed: (OrderStatus.completed,),
    StatusGroup.cancelled: (OrderStatus.cancelled, OrderStatus.payment_overdue),
    StatusGroup.return_refund: (
        OrderStatus.delivery_failed,
        OrderStatus.return_requested,
        OrderStatus.refunded,
    ),
}

GROUP_OF_STATUS = {
    status: group for group, statuses in STATUS_GROUPS.items() for status in statuses
}

# Customer may cancel immediately, no shop approval
DIRECT_CANCEL_STATUSES = frozenset(
    {OrderStatus.new, OrderStatus.confirmed, OrderStatus.preparing}
)

# Goods are in transit or delivered: cancelling needs shop approval
CANCEL_REQUEST_STATUSES = frozenset(
    {OrderStatus.shipping_in_progress, OrderStatus.delivered}
)

TERMINAL_STATUSES = frozenset(
    {
        OrderStatus.completed,
        OrderStatus.cancelled,
        OrderStatus.refunded,
        OrderStatus.payment_overdue,
    }
)

# Statuses whose entry undoes stock and point side effects of the order
REVERSING_STATUSES = frozenset(
    {OrderStatus.cancelled, OrderStatus.payment_overdue, OrderStatus.refunded}
)

# Shipping address may still be changed: nothing has been packed yet
ADDRESS_CHANGE_STATUSES = frozenset({OrderStatus.new, OrderStatus.confirmed})
MAX_ADDRESS_CHANGES = 1
