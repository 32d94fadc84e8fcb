# app/schemas/order.py
from pydantic import Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime

from app.constants.order_status import OrderStatus, PaymentMethod, PaymentStatus
from app.schemas.common import CamelModel


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


# ============================================
# Preview
# ============================================

class OrderLineRequest(CamelModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)


class OrderPreviewRequest(CamelModel):
    order_lines: List[OrderLineRequest] = Field(..., min_length=1)
    shipping_method: Optional[str] = None
    # Stateless: null and a missing key both mean "no voucher"
    voucher_code: Optional[str] = None
    points_to_apply: int = 0
    payment_method: PaymentMethod = PaymentMethod.COD

    @field_validator("voucher_code", "shipping_method")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class PricedLine(CamelModel):
    product_id: str
    product_code: str
    product_name: str
    product_image: Optional[str] = None
    unit_price: int
    discount_percent: int
    actual_unit_price: int
    quantity: int
    line_total: int


class VoucherRejection(CamelModel):
    reason: str
    message: str


class PreviewOrder(CamelModel):
    order_lines: List[PricedLine]
    subtotal: int
    shipping_method: str
    shipping_fee: int
    voucher_code: Optional[str] = None
    discount: int
    points_applied: int
    total_amount: int
    payment_method: PaymentMethod
    max_applicable_points: int
    voucher_rejection: Optional[VoucherRejection] = None


class OrderPreviewResponse(CamelModel):
    preview_order: PreviewOrder


# ============================================
# Create
# ============================================

class SubmittedLine(CamelModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    unit_price: int
    discount_percent: int
    actual_unit_price: int
    line_total: int
    product_name: Optional[str] = None
    product_code: Optional[str] = None
    product_image: Optional[str] = None


class SubmittedPreview(CamelModel):
    """The preview as the client last saw it."""

    order_lines: List[SubmittedLine] = Field(..., min_length=1)
    shipping_method: Optional[str] = None
    voucher_code: Optional[str] = None
    subtotal: int
    shipping_fee: int
    discount: int
    points_applied: int = Field(..., ge=0)
    total_amount: int
    payment_method: PaymentMethod = PaymentMethod.COD

    @field_validator("voucher_code", "shipping_method")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class ShippingAddress(CamelModel):
    recipient_name: str = Field(..., min_length=1, max_length=255)
    phone_number: str = Field(..., min_length=8, max_length=20)
    province: str = Field(..., min_length=1)
    district: str = Field(..., min_length=1)
    ward: str = Field(..., min_length=1)
    street: str = Field(..., min_length=1)

    @field_validator("recipient_name", "province", "district", "ward", "street")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class OrderCreateRequest(CamelModel):
    preview_order: SubmittedPreview
    shipping_address: ShippingAddress
    notes: Optional[str] = Field(None, max_length=1000)


# ============================================
# Order documents
# ============================================

class PerformedBy(CamelModel):
    user_type: str
    user_name: str


class TimelineEntry(CamelModel):
    status: OrderStatus
    description: str
    performed_by: PerformedBy
    reason: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None
    timestamp: datetime

    @classmethod
    def from_model(cls, entry) -> "TimelineEntry":
        return cls(
            status=entry.status,
            description=entry.description,
            performed_by=PerformedBy(user_type=entry.user_type, user_name=entry.user_name),
            reason=entry.reason,
            extra=entry.extra,
            timestamp=entry.created_at,
        )


class OrderLine(PricedLine):
    id: str


class Payment(CamelModel):
    method: PaymentMethod
    status: PaymentStatus
    amount: int
    transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None


class Order(CamelModel):
    id: str
    order_number: str
    user_id: str
    status: OrderStatus
    status_group: str
    can_cancel: bool
    can_change_address: bool
    address_change_count: int
    order_lines: List[OrderLine]
    subtotal: int
    shipping_method: str
    shipping_fee: int
    voucher_code: Optional[str] = None
    discount: int
    points_applied: int
    total_amount: int
    shipping_address: ShippingAddress
    notes: Optional[str] = None
    payment: Payment
    cancellation_reason: Optional[str] = None
    return_reason: Optional[str] = None
    timeline: List[TimelineEntry]
    created_at: datetime
    updated_at: datetime
    confirmed_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, order) -> "Order":
        return cls(
            id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            status=order.status,
            status_group=order.status_group,
            can_cancel=order.can_cancel,
            can_change_address=order.can_change_address,
            address_change_count=order.address_change_count or 0,
            order_lines=[OrderLine.model_validate(line) for line in order.lines],
            subtotal=order.subtotal,
            shipping_method=order.shipping_method,
            shipping_fee=order.shipping_fee,
            voucher_code=order.voucher_code,
            discount=order.discount,
            points_applied=order.points_applied,
            total_amount=order.total_amount,
            shipping_address=ShippingAddress(
                recipient_name=order.recipient_name,
                phone_number=order.phone_number,
                province=order.province,
                district=order.district,
                ward=order.ward,
                street=order.street,
            ),
            notes=order.notes,
            payment=Payment(
                method=order.payment_method,
                status=order.payment_status,
                amount=order.total_amount,
                transaction_id=order.transaction_id,
                paid_at=order.paid_at,
            ),
            cancellation_reason=order.cancellation_reason,
            return_reason=order.return_reason,
            timeline=[TimelineEntry.from_model(e) for e in order.timeline],
            created_at=order.created_at,
            updated_at=order.updated_at,
            confirmed_at=order.confirmed_at,
            delivered_at=order.delivered_at,
            completed_at=order.completed_at,
            cancelled_at=order.cancelled_at,
        )


class OrderCreateResponse(CamelModel):
    order_id: str
    order: Order


# ============================================
# Lifecycle actions
# ============================================

class CancelOrderRequest(CamelModel):
    reason: Optional[str] = Field(None, max_length=1000)


class ReturnOrderRequest(CamelModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class OrderStatusUpdate(CamelModel):
    status: OrderStatus
    reason: Optional[str] = Field(None, max_length=1000)
    tracking_number: Optional[str] = Field(None, max_length=100)
    carrier: Optional[str] = Field(None, max_length=100)
    estimated_delivery: Optional[datetime] = None


class CancellationReview(CamelModel):
    reason: Optional[str] = Field(None, max_length=1000)


class AllowedTransitions(CamelModel):
    order_id: str
    current_status: OrderStatus
    allowed_statuses: List[OrderStatus]


class PaymentResult(CamelModel):
    """Payment provider outcome relayed by the payment gateway service."""

    success: bool
    transaction_id: Optional[str] = None
    amount: Optional[int] = None
    message: Optional[str] = None


class OrderStats(CamelModel):
    """Order counts per detailed status and per storefront tab."""

    total: int
    by_status: Dict[str, int]
    by_group: Dict[str, int]
