# app/services/order_state.py
"""
Order status state machine.

Holds the transition table, the statuses an admin may set by hand, the
timestamp column each status stamps, and the wording of timeline entries.
Persistence lives in OrderService.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional

from app.constants.order_status import OrderStatus
from app.core.exceptions import InvalidTransitionError

S = OrderStatus

VALID_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    S.new: frozenset({S.confirmed, S.cancelled, S.payment_overdue}),
    S.confirmed: frozenset({S.preparing, S.cancelled}),
    S.preparing: frozenset({S.shipping_in_progress, S.cancelled}),
    S.shipping_in_progress: frozenset(
        {S.delivered, S.delivery_failed, S.cancellation_requested}
    ),
    S.delivered: frozenset(
        {S.completed, S.return_requested, S.cancellation_requested}
    ),
    # Rejecting a request resumes the prior status, see resume_targets()
    S.cancellation_requested: frozenset({S.cancelled}),
    S.delivery_failed: frozenset(
        {S.shipping_in_progress, S.cancelled, S.return_requested, S.refunded}
    ),
    S.return_requested: frozenset({S.refunded}),
    S.completed: frozenset(),
    S.cancelled: frozenset(),
    S.refunded: frozenset(),
    S.payment_overdue: frozenset(),
}

# Statuses an admin can set through the manual status endpoint
ADMIN_MANUAL_STATUSES = frozenset(
    {
        S.preparing,
        S.shipping_in_progress,
        S.delivered,
        S.cancelled,
        S.delivery_failed,
        S.refunded,
    }
)

TIMESTAMP_FIELDS = {
    S.confirmed: "confirmed_at",
    S.preparing: "preparing_at",
    S.shipping_in_progress: "shipping_at",
    S.delivered: "delivered_at",
    S.completed: "completed_at",
    S.cancelled: "cancelled_at",
    S.payment_overdue: "cancelled_at",
    S.cancellation_requested: "cancellation_requested_at",
    S.return_requested: "return_requested_at",
    S.refunded: "refunded_at",
}

STATUS_DESCRIPTIONS = {
    S.new: "Order placed.",
    S.confirmed: "Order confirmed.",
    S.preparing: "The shop is preparing your order.",
    S.shipping_in_progress: "Your order is on its way.",
    S.delivered: "Order delivered.",
    S.completed: "Order completed.",
    S.cancellation_requested: "Cancellation requested. Waiting for the shop to review it.",
    S.cancelled: "Order cancelled.",
    S.payment_overdue: "Order cancelled because payment was not received in time.",
    S.delivery_failed: "Delivery failed.",
    S.return_requested: "Return requested. Waiting for the shop to review it.",
    S.refunded: "Return approved. The order has been refunded.",
}


def resume_targets(previous: Optional[str]) -> FrozenSet[OrderStatus]:
    """Where a rejected cancellation request may send the order back to."""
    if not previous:
        return frozenset()
    return frozenset({OrderStatus(previous)})


def can_transition(
    current: str, target: str, *, previous: Optional[str] = None
) -> bool:
    current, target = OrderStatus(current), OrderStatus(target)
    if target in VALID_TRANSITIONS[current]:
        return True
    if current == S.cancellation_requested:
        return target in resume_targets(previous)
    return False


def ensure_transition(
    current: str, target: str, *, previous: Optional[str] = None
) -> None:
    current, target = OrderStatus(current), OrderStatus(target)
    if not can_transition(current, target, previous=previous):
        raise InvalidTransitionError(
            f"Cannot move order from '{current.value}' to '{target.value}'.",
            details={"currentStatus": current.value, "targetStatus": target.value},
        )


def admin_allowed_targets(current: str) -> List[OrderStatus]:
    """Manual statuses reachable from current, in lifecycle order."""
    allowed = VALID_TRANSITIONS[OrderStatus(current)] & ADMIN_MANUAL_STATUSES
    return [status for status in OrderStatus if status in allowed]


@dataclass
class TimelineDraft:
    status: OrderStatus
    description: str
    reason: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


def build_timeline_entry(
    status: str,
    *,
    reason: Optional[str] = None,
    tracking_number: Optional[str] = None,
    carrier: Optional[str] = None,
    estimated_delivery: Optional[str] = None,
    description: Optional[str] = None,
) -> TimelineDraft:
    """Describe a transition for the order timeline."""
    status = OrderStatus(status)
    text = description or STATUS_DESCRIPTIONS[status]
    extra: Dict[str, Any] = {}

    if status == S.shipping_in_progress:
        if tracking_number:
            text += f" Tracking number: {tracking_number}."
            extra["trackingNumber"] = tracking_number
        if carrier:
            text += f" Carrier: {carrier}."
            extra["carrier"] = carrier
        if estimated_delivery:
            extra["estimatedDelivery"] = estimated_delivery

    if reason and status in (S.cancelled, S.cancellation_requested, S.return_requested, S.delivery_failed):
        text += f" Reason: {reason}"

    return TimelineDraft(status=status, description=text, reason=reason, extra=extra)
