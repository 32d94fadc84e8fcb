# app/models/order.py
from sqlalchemy import Column, String, DateTime, Integer, Text
from sqlalchemy.orm import relationship
from app.db.base_class import Base
from app.constants.order_status import (
    OrderStatus,
    PaymentMethod,
    GROUP_OF_STATUS,
    DIRECT_CANCEL_STATUSES,
    CANCEL_REQUEST_STATUSES,
    TERMINAL_STATUSES,
    ADDRESS_CHANGE_STATUSES,
    MAX_ADDRESS_CHANGES,
)
from app.utils.time import utcnow
import uuid
import hashlib
from datetime import datetime


def new_order_id() -> str:
    return f"ord_{uuid.uuid4().hex[:12]}"


class Order(Base):
    __tablename__ = "orders"

    id = Column(String, primary_key=True, default=new_order_id)
    order_number = Column(String(50), unique=True, nullable=False)
    user_id = Column(String, nullable=False, index=True)

    # Detailed status, see app.services.order_state for transitions
    status = Column(String(50), nullable=False, default=OrderStatus.new.value, index=True)

    # Pricing snapshot, smallest currency unit
    subtotal = Column(Integer, nullable=False)
    shipping_fee = Column(Integer, nullable=False)
    discount = Column(Integer, nullable=False, default=0)
    points_applied = Column(Integer, nullable=False, default=0)
    total_amount = Column(Integer, nullable=False)
    voucher_code = Column(String(50), nullable=True)
    shipping_method = Column(String(50), nullable=False)

    # Shipping address
    recipient_name = Column(String(255), nullable=False)
    phone_number = Column(String(50), nullable=False)
    province = Column(String(255), nullable=False)
    district = Column(String(255), nullable=False)
    ward = Column(String(255), nullable=False)
    street = Column(String(512), nullable=False)
    notes = Column(Text, nullable=True)
    address_change_count = Column(Integer, nullable=False, default=0)

    # Payment tracking
    payment_method = Column(String(20), nullable=False, default=PaymentMethod.COD.value)
    payment_status = Column(String(20), nullable=False, default="pending")
    transaction_id = Column(String(255), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    # Cancellation / return bookkeeping
    cancellation_reason = Column(Text, nullable=True)
    cancelled_by = Column(String(20), nullable=True)
    status_before_cancellation_request = Column(String(50), nullable=True)
    return_reason = Column(Text, nullable=True)

    # Timestamps
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    preparing_at = Column(DateTime(timezone=True), nullable=True)
    shipping_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_requested_at = Column(DateTime(timezone=True), nullable=True)
    return_requested_at = Column(DateTime(timezone=True), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    lines = relationship(
        "OrderLine", back_populates="order", cascade="all, delete-orphan",
        order_by="OrderLine.position",
    )
    timeline = relationship(
        "OrderTimelineEntry", back_populates="order", cascade="all, delete-orphan",
        order_by="OrderTimelineEntry.sequence",
    )

    @staticmethod
    def generate_order_number(order_id: str) -> str:
        """Generate a human-readable order number."""
        year = datetime.now().year
        hash_part = hashlib.sha256(order_id.encode()).hexdigest()[:8].upper()
        return f"ORD-{year}-{hash_part}"

    @property
    def status_group(self) -> str:
        return GROUP_OF_STATUS[OrderStatus(self.status)].value

    @property
    def can_cancel(self) -> bool:
        """Customer can cancel right away, without shop approval."""
        return OrderStatus(self.status) in DIRECT_CANCEL_STATUSES

    @property
    def can_request_cancellation(self) -> bool:
        return OrderStatus(self.status) in CANCEL_REQUEST_STATUSES

    @property
    def can_change_address(self) -> bool:
        return (
            OrderStatus(self.status) in ADDRESS_CHANGE_STATUSES
            and (self.address_change_count or 0) < MAX_ADDRESS_CHANGES
        )

    @property
    def is_terminal(self) -> bool:
        return OrderStatus(self.status) in TERMINAL_STATUSES

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "completed"
