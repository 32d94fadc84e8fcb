# app/services/order_service.py
import logging
from datetime import timedelta
from typing import List, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import crud
from app.constants.order_status import (
    ActorType,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    StatusGroup,
    DIRECT_CANCEL_STATUSES,
    CANCEL_REQUEST_STATUSES,
    REVERSING_STATUSES,
    STATUS_GROUPS,
    ADDRESS_CHANGE_STATUSES,
    MAX_ADDRESS_CHANGES,
)
from app.core.config import settings
from app.core.exceptions import (
    AddressChangeLimitError,
    InsufficientPointsError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    OutOfStockError,
    PermissionDeniedError,
    PreviewStaleError,
    RequestValidationFailed,
    VoucherNoLongerValidError,
)
from app.models.order import Order
from app.schemas.order import (
    OrderCreateRequest,
    OrderPreviewRequest,
    OrderStatusUpdate,
    PaymentResult,
    ShippingAddress,
    SubmittedPreview,
)
from app.services import order_state
from app.services.loyalty_service import LoyaltyService
from app.services.pricing import (
    LineRequest,
    OrderPricer,
    PriceBreakdown,
    ShippingFeeResolver,
    validate_voucher,
)
from app.utils.time import utcnow

logger = logging.getLogger(__name__)

ONLINE_PAYMENT_METHODS = (PaymentMethod.VNPAY, PaymentMethod.MOMO, PaymentMethod.BANK)

PREVIEW_STALE_MESSAGE = (
    "Some details of your order have changed. Please review your order and try again."
)

# Top-level preview figures that must match exactly on create
_COMPARED_TOTALS = ("subtotal", "shipping_fee", "discount", "points_applied", "total_amount")
_COMPARED_LINE_NUMBERS = (
    "product_id",
    "quantity",
    "unit_price",
    "discount_percent",
    "actual_unit_price",
    "line_total",
)
_COMPARED_LINE_LABELS = ("product_name", "product_code", "product_image")

_ADDRESS_FIELDS = ("recipient_name", "phone_number", "province", "district", "ward", "street")


class OrderService:
    """
    Order pricing and lifecycle.

    This service:
    - Prices previews against live catalog, voucher and balance state
    - Re-prices on create and persists the order in one transaction
    - Drives status transitions and their side effects
    - Runs the lifecycle sweeps used by the scheduler
    """

    def __init__(self, db: Session, pricer: Optional[OrderPricer] = None):
        self.db = db
        self.pricer = pricer or OrderPricer()
        self.loyalty = LoyaltyService(db)

    # ------------------------------------------------------------------ #
    # Pricing
    # ------------------------------------------------------------------ #

    def _price(
        self,
        *,
        user_id: str,
        lines: List[LineRequest],
        shipping_method: Optional[str],
        voucher_code: Optional[str],
        points_to_apply: int,
        allow_default_shipping: bool,
    ) -> PriceBreakdown:
        products = crud.product.get_many(self.db, ids=[line.product_id for line in lines])
        priced_lines = self.pricer.price_lines(lines, products)

        resolver = ShippingFeeResolver(crud.shipping_method.get_all(self.db))
        shipping = resolver.resolve(shipping_method, allow_default=allow_default_shipping)

        voucher_result = None
        if voucher_code:
            voucher = crud.voucher.get_by_code(self.db, code=voucher_code)
            user_voucher = None
            if voucher is not None:
                user_voucher = crud.user_voucher.get_for_user(
                    self.db, user_id=user_id, voucher_id=voucher.id
                )
            voucher_result = validate_voucher(
                voucher,
                code=voucher_code,
                subtotal=self.pricer.subtotal(priced_lines),
                user_voucher=user_voucher,
            )

        return self.pricer.aggregate(
            lines=priced_lines,
            shipping=shipping,
            voucher=voucher_result,
            points_requested=points_to_apply,
            points_balance=crud.user.get_balance(self.db, user_id=user_id),
        )

    def preview(self, *, user_id: str, request: OrderPreviewRequest) -> dict:
        """
        Price an order without persisting anything.

        Voucher and point problems do not fail the preview: the voucher is
        dropped with a rejection reason and points are clamped.
        """
        breakdown = self._price(
            user_id=user_id,
            lines=[LineRequest(line.product_id, line.quantity) for line in request.order_lines],
            shipping_method=request.shipping_method,
            voucher_code=request.voucher_code,
            points_to_apply=request.points_to_apply,
            allow_default_shipping=True,
        )
        preview = breakdown.to_preview_dict()
        preview["payment_method"] = request.payment_method
        return preview

    def _find_preview_changes(
        self, submitted: SubmittedPreview, computed: PriceBreakdown
    ) -> List[dict]:
        changes = []
        for name in _COMPARED_TOTALS:
            if getattr(submitted, name) != getattr(computed, name):
                changes.append(
                    {
                        "field": name,
                        "submitted": getattr(submitted, name),
                        "computed": getattr(computed, name),
                    }
                )

        if submitted.shipping_method != computed.shipping_method:
            changes.append({"field": "shipping_method"})

        if len(submitted.order_lines) != len(computed.lines):
            changes.append({"field": "order_lines"})
            return changes

        for index, (client_line, server_line) in enumerate(
            zip(submitted.order_lines, computed.lines)
        ):
            for name in _COMPARED_LINE_NUMBERS:
                if getattr(client_line, name) != getattr(server_line, name):
                    changes.append({"field": f"order_lines[{index}].{name}"})
            # Labels are only compared when the client sent them
            for name in _COMPARED_LINE_LABELS:
                value = getattr(client_line, name)
                if value is not None and value != getattr(server_line, name):
                    changes.append({"field": f"order_lines[{index}].{name}"})
        return changes

    # ------------------------------------------------------------------ #
    # Create
    # ------------------------------------------------------------------ #

    def place_order(
        self, *, user_id: str, user_name: str, request: OrderCreateRequest
    ) -> Order:
        """
        Create an order from a client preview.

        The preview is re-priced against live state and must match it
        exactly. Stock, voucher counters and the points debit are applied
        with conditional updates in the same transaction as the order
        insert; any failure rolls all of it back.
        """
        submitted = request.preview_order
        if not submitted.shipping_method:
            raise RequestValidationFailed(
                "A shipping method is required.", details={"field": "shippingMethod"}
            )

        try:
            computed = self._price(
                user_id=user_id,
                lines=[LineRequest(line.product_id, line.quantity) for line in submitted.order_lines],
                shipping_method=submitted.shipping_method,
                voucher_code=submitted.voucher_code,
                points_to_apply=submitted.points_applied,
                allow_default_shipping=False,
            )

            if computed.voucher_rejected:
                raise VoucherNoLongerValidError(
                    computed.voucher.message,
                    details={"reason": computed.voucher.reason.value},
                )

            balance = crud.user.get_balance(self.db, user_id=user_id)
            if submitted.points_applied > balance:
                raise InsufficientPointsError(
                    "You do not have enough loyalty points for this order.",
                    details={"pointsApplied": submitted.points_applied, "balance": balance},
                )

            changes = self._find_preview_changes(submitted, computed)
            if changes:
                logger.warning(
                    f"Stale preview from user {user_id}: submitted total="
                    f"{submitted.total_amount} computed total={computed.total_amount} "
                    f"changes={changes}"
                )
                raise PreviewStaleError(PREVIEW_STALE_MESSAGE)

            crud.user.get_or_create(self.db, user_id=user_id, name=user_name)
            order = self._persist_order(
                user_id=user_id, user_name=user_name, request=request, computed=computed
            )
            self._apply_order_side_effects(order, computed)
            self.db.commit()
        except IntegrityError as e:
            # Lost a race on a unique redemption record
            self.db.rollback()
            logger.warning(f"Order creation conflict for user {user_id}: {e}")
            raise PreviewStaleError(PREVIEW_STALE_MESSAGE)
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Order {order.id} ({order.order_number}) created for user {user_id}, "
            f"total={order.total_amount}"
        )
        return crud.order.get(self.db, id=order.id)

    def _persist_order(
        self,
        *,
        user_id: str,
        user_name: str,
        request: OrderCreateRequest,
        computed: PriceBreakdown,
    ) -> Order:
        address = request.shipping_address
        order_data = {
            "user_id": user_id,
            "status": OrderStatus.new.value,
            "subtotal": computed.subtotal,
            "shipping_fee": computed.shipping_fee,
            "discount": computed.discount,
            "points_applied": computed.points_applied,
            "total_amount": computed.total_amount,
            "voucher_code": computed.voucher_code,
            "shipping_method": computed.shipping_method,
            "recipient_name": address.recipient_name,
            "phone_number": address.phone_number,
            "province": address.province,
            "district": address.district,
            "ward": address.ward,
            "street": address.street,
            "notes": request.notes,
            "payment_method": request.preview_order.payment_method.value,
            "payment_status": PaymentStatus.pending.value,
        }
        lines = [
            {
                "product_id": line.product_id,
                "product_code": line.product_code,
                "product_name": line.product_name,
                "product_image": line.product_image,
                "unit_price": line.unit_price,
                "discount_percent": line.discount_percent,
                "actual_unit_price": line.actual_unit_price,
                "quantity": line.quantity,
                "line_total": line.line_total,
            }
            for line in computed.lines
        ]
        order = crud.order.create_with_lines(self.db, order_data=order_data, lines=lines)
        draft = order_state.build_timeline_entry(OrderStatus.new)
        crud.order.append_timeline(
            self.db,
            order=order,
            status=draft.status.value,
            description=draft.description,
            user_type=ActorType.user.value,
            user_name=user_name,
        )
        return order

    def _apply_order_side_effects(self, order: Order, computed: PriceBreakdown) -> None:
        for line in computed.lines:
            if not crud.product.try_reserve_stock(
                self.db, product_id=line.product_id, quantity=line.quantity
            ):
                raise OutOfStockError(
                    f"'{line.product_name}' no longer has enough stock.",
                    details={"unavailableItems": [{"productId": line.product_id}]},
                )

        if computed.voucher_code:
            voucher = computed.voucher.voucher
            if not crud.voucher.try_increment_usage(self.db, voucher_id=voucher.id):
                raise VoucherNoLongerValidError(
                    f"Voucher {voucher.code} has been fully redeemed.",
                    details={"reason": "UsageExceeded"},
                )
            if not crud.user_voucher.try_increment_usage(
                self.db,
                user_id=order.user_id,
                voucher_id=voucher.id,
                per_user_limit=voucher.per_user_limit,
            ):
                raise VoucherNoLongerValidError(
                    f"You have already used voucher {voucher.code} the maximum number of times.",
                    details={"reason": "UsageExceeded"},
                )

        self.loyalty.redeem_for_order(order)

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get_order_for_user(self, order_id: str, user_id: str) -> Order:
        order = crud.order.get(self.db, id=order_id)
        if not order or order.user_id != user_id:
            raise NotFoundError("Order not found.")
        return order

    def get_order(self, order_id: str) -> Order:
        order = crud.order.get(self.db, id=order_id)
        if not order:
            raise NotFoundError("Order not found.")
        return order

    def list_orders_for_user(
        self,
        user_id: str,
        *,
        group: Optional[StatusGroup] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Order], int]:
        return crud.order.get_by_user(
            self.db, user_id=user_id, group=group, search=search, skip=skip, limit=limit
        )

    def list_orders(
        self,
        *,
        group: Optional[StatusGroup] = None,
        status: Optional[OrderStatus] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Order], int]:
        return crud.order.get_all(
            self.db, group=group, status=status, search=search, skip=skip, limit=limit
        )

    def get_order_stats(self, user_id: Optional[str] = None) -> dict:
        """Counts for every status and tab, zero-filled. Scoped to one user when given."""
        counts = crud.order.count_by_status(self.db, user_id=user_id)
        by_status = {status.value: counts.get(status.value, 0) for status in OrderStatus}
        by_group = {
            group.value: sum(by_status[status.value] for status in STATUS_GROUPS[group])
            for group in StatusGroup
        }
        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "by_group": by_group,
        }

    def get_allowed_transitions(self, order_id: str) -> List[OrderStatus]:
        order = self.get_order(order_id)
        return order_state.admin_allowed_targets(order.status)

    # ------------------------------------------------------------------ #
    # Transitions
    # ------------------------------------------------------------------ #

    def _lock(self, order_id: str) -> Order:
        order = crud.order.get_for_update(self.db, order_id=order_id)
        if not order:
            raise NotFoundError("Order not found.")
        return order

    def _transition(
        self,
        order: Order,
        target: OrderStatus,
        *,
        actor_type: ActorType,
        actor_name: str,
        reason: Optional[str] = None,
        tracking_number: Optional[str] = None,
        carrier: Optional[str] = None,
        estimated_delivery: Optional[str] = None,
        description: Optional[str] = None,
        stamp: bool = True,
    ) -> None:
        """Move an order to target, stamp it, log it and apply side effects. Does not commit."""
        previous = order.status
        order_state.ensure_transition(
            previous, target, previous=order.status_before_cancellation_request
        )

        order.status = target.value
        timestamp_field = order_state.TIMESTAMP_FIELDS.get(target)
        if stamp and timestamp_field:
            setattr(order, timestamp_field, utcnow())

        draft = order_state.build_timeline_entry(
            target,
            reason=reason,
            tracking_number=tracking_number,
            carrier=carrier,
            estimated_delivery=estimated_delivery,
            description=description,
        )
        crud.order.append_timeline(
            self.db,
            order=order,
            status=draft.status.value,
            description=draft.description,
            user_type=actor_type.value,
            user_name=actor_name,
            reason=draft.reason,
            extra=draft.extra or None,
        )

        if target in REVERSING_STATUSES:
            self._revert_side_effects(order)
        if target == OrderStatus.completed:
            self.loyalty.award_for_order(order)

        logger.info(
            f"Order {order.id} moved {previous} -> {target.value} by {actor_type.value} {actor_name}"
        )

    def _revert_side_effects(self, order: Order) -> None:
        """Restock lines and refund redeemed points. Voucher usage stays consumed."""
        for line in order.lines:
            crud.product.restock(self.db, product_id=line.product_id, quantity=line.quantity)
        self.loyalty.refund_for_order(order)

    def _run(self, action) -> Order:
        """Run one status change as its own unit of work."""
        try:
            order = action()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return crud.order.get(self.db, id=order.id)

    def cancel_by_user(
        self, order_id: str, *, user_id: str, user_name: str, reason: Optional[str] = None
    ) -> Order:
        """
        Cancel an order, or ask the shop to.

        Early orders are cancelled immediately; orders already handed to the
        carrier or delivered move to cancellation_requested for review.
        """

        def action():
            order = self._lock(order_id)
            if order.user_id != user_id:
                raise NotFoundError("Order not found.")
            status = OrderStatus(order.status)
            if status in DIRECT_CANCEL_STATUSES:
                order.cancelled_by = ActorType.user.value
                order.cancellation_reason = reason
                self._transition(
                    order,
                    OrderStatus.cancelled,
                    actor_type=ActorType.user,
                    actor_name=user_name,
                    reason=reason,
                )
            elif status in CANCEL_REQUEST_STATUSES:
                order.status_before_cancellation_request = status.value
                order.cancellation_reason = reason
                self._transition(
                    order,
                    OrderStatus.cancellation_requested,
                    actor_type=ActorType.user,
                    actor_name=user_name,
                    reason=reason,
                )
            else:
                raise InvalidTransitionError(
                    f"An order in status '{status.value}' cannot be cancelled.",
                    details={"currentStatus": status.value},
                )
            return order

        return self._run(action)

    def update_shipping_address(
        self, order_id: str, *, user_id: str, user_name: str, address: ShippingAddress
    ) -> Order:
        """
        Replace the delivery address of an order that has not been packed yet.

        Allowed once per order. The timeline records the change under the
        current status with both addresses in `extra`.
        """

        def action():
            order = self._lock(order_id)
            if order.user_id != user_id:
                raise NotFoundError("Order not found.")
            if (order.address_change_count or 0) >= MAX_ADDRESS_CHANGES:
                raise AddressChangeLimitError(
                    "The shipping address of this order has already been changed.",
                    details={"addressChangeCount": order.address_change_count},
                )
            if OrderStatus(order.status) not in ADDRESS_CHANGE_STATUSES:
                raise InvalidTransitionError(
                    "The shipping address cannot be changed once the order is being prepared.",
                    details={"currentStatus": order.status},
                )

            previous_address = {field: getattr(order, field) for field in _ADDRESS_FIELDS}
            new_address = address.model_dump()
            for field in _ADDRESS_FIELDS:
                setattr(order, field, new_address[field])
            order.address_change_count = (order.address_change_count or 0) + 1

            crud.order.append_timeline(
                self.db,
                order=order,
                status=order.status,
                description="Customer updated the shipping address.",
                user_type=ActorType.user.value,
                user_name=user_name,
                extra={"previousAddress": previous_address, "newAddress": new_address},
            )
            logger.info(f"Order {order.id} shipping address changed by user {user_id}")
            return order

        return self._run(action)

    def confirm_received(self, order_id: str, *, user_id: str, user_name: str) -> Order:
        def action():
            order = self._lock(order_id)
            if order.user_id != user_id:
                raise NotFoundError("Order not found.")
            if order.status != OrderStatus.delivered.value:
                raise InvalidTransitionError(
                    "Only delivered orders can be confirmed as received.",
                    details={"currentStatus": order.status},
                )
            if order.payment_method == PaymentMethod.COD.value:
                self._mark_paid(order)
            self._transition(
                order,
                OrderStatus.completed,
                actor_type=ActorType.user,
                actor_name=user_name,
                description="Customer confirmed the order was received.",
            )
            return order

        return self._run(action)

    def request_return(
        self, order_id: str, *, user_id: str, user_name: str, reason: str
    ) -> Order:
        def action():
            order = self._lock(order_id)
            if order.user_id != user_id:
                raise NotFoundError("Order not found.")
            order.return_reason = reason
            self._transition(
                order,
                OrderStatus.return_requested,
                actor_type=ActorType.user,
                actor_name=user_name,
                reason=reason,
            )
            return order

        return self._run(action)

    def admin_update_status(
        self, order_id: str, *, admin_name: str, update: OrderStatusUpdate
    ) -> Order:
        target = OrderStatus(update.status)
        if target not in order_state.ADMIN_MANUAL_STATUSES:
            raise PermissionDeniedError(
                f"Status '{target.value}' cannot be set manually.",
                details={"targetStatus": target.value},
            )

        def action():
            order = self._lock(order_id)
            if target == OrderStatus.cancelled:
                order.cancelled_by = ActorType.admin.value
                order.cancellation_reason = update.reason or "Cancelled by the shop"
            if target == OrderStatus.delivered and order.payment_method == PaymentMethod.COD.value:
                # Cash is collected on delivery
                self._mark_paid(order)
            self._transition(
                order,
                target,
                actor_type=ActorType.admin,
                actor_name=admin_name,
                reason=update.reason,
                tracking_number=update.tracking_number,
                carrier=update.carrier,
                estimated_delivery=(
                    update.estimated_delivery.isoformat() if update.estimated_delivery else None
                ),
            )
            return order

        return self._run(action)

    def approve_cancellation(
        self, order_id: str, *, admin_name: str, reason: Optional[str] = None
    ) -> Order:
        def action():
            order = self._lock(order_id)
            if order.status != OrderStatus.cancellation_requested.value:
                raise InvalidTransitionError(
                    "This order has no pending cancellation request.",
                    details={"currentStatus": order.status},
                )
            order.cancelled_by = ActorType.user.value
            self._transition(
                order,
                OrderStatus.cancelled,
                actor_type=ActorType.admin,
                actor_name=admin_name,
                reason=reason or order.cancellation_reason,
                description="Cancellation request approved. Order cancelled.",
            )
            order.status_before_cancellation_request = None
            return order

        return self._run(action)

    def reject_cancellation(
        self, order_id: str, *, admin_name: str, reason: Optional[str] = None
    ) -> Order:
        """Resume the status the order had when cancellation was requested."""

        def action():
            order = self._lock(order_id)
            if order.status != OrderStatus.cancellation_requested.value:
                raise InvalidTransitionError(
                    "This order has no pending cancellation request.",
                    details={"currentStatus": order.status},
                )
            resume = OrderStatus(order.status_before_cancellation_request)
            description = f"Cancellation request rejected. Order resumed as {resume.value}."
            if reason:
                description += f" Reason: {reason}"
            self._transition(
                order,
                resume,
                actor_type=ActorType.admin,
                actor_name=admin_name,
                reason=reason,
                description=description,
                stamp=False,
            )
            order.status_before_cancellation_request = None
            order.cancellation_reason = None
            return order

        return self._run(action)

    def approve_return(self, order_id: str, *, admin_name: str) -> Order:
        def action():
            order = self._lock(order_id)
            if order.status != OrderStatus.return_requested.value:
                raise InvalidTransitionError(
                    "This order has no pending return request.",
                    details={"currentStatus": order.status},
                )
            self._transition(
                order,
                OrderStatus.refunded,
                actor_type=ActorType.admin,
                actor_name=admin_name,
            )
            return order

        return self._run(action)

    # ------------------------------------------------------------------ #
    # Payments
    # ------------------------------------------------------------------ #

    def _mark_paid(self, order: Order, transaction_id: Optional[str] = None) -> None:
        order.payment_status = PaymentStatus.completed.value
        order.paid_at = utcnow()
        if transaction_id:
            order.transaction_id = transaction_id

    def record_payment(self, order_id: str, result: PaymentResult) -> Order:
        """
        Apply an online payment outcome.

        Success confirms a `new` order. Failure only marks the payment;
        the order stays `new` until it is paid or the overdue sweep runs.
        """

        def action():
            order = self._lock(order_id)
            if order.payment_method == PaymentMethod.COD.value:
                raise InvalidInputError("Cash on delivery orders are not paid online.")

            if order.payment_status == PaymentStatus.completed.value:
                # Gateways retry callbacks; the first success wins
                logger.info(f"Duplicate payment callback for order {order.id} ignored")
                return order

            if not result.success:
                order.payment_status = PaymentStatus.failed.value
                logger.warning(
                    f"Payment failed for order {order.id}: {result.message or 'unknown error'}"
                )
                return order

            if result.amount is not None and result.amount != order.total_amount:
                raise InvalidInputError(
                    "Paid amount does not match the order total.",
                    details={"expected": order.total_amount, "received": result.amount},
                )
            if order.status != OrderStatus.new.value:
                raise InvalidTransitionError(
                    f"Payment received for an order in status '{order.status}'.",
                    details={"currentStatus": order.status},
                )

            self._mark_paid(order, result.transaction_id)
            self._transition(
                order,
                OrderStatus.confirmed,
                actor_type=ActorType.system,
                actor_name="payment",
                description=f"Payment received via {order.payment_method}. Order confirmed.",
            )
            return order

        return self._run(action)

    # ------------------------------------------------------------------ #
    # Sweeps
    # ------------------------------------------------------------------ #

    def _sweep(self, candidates: List[Order], expected: OrderStatus, apply) -> int:
        """Apply a system transition to each candidate in its own transaction."""
        count = 0
        for candidate in candidates:
            order_id = candidate.id
            try:
                order = self._lock(order_id)
                if order.status != expected.value:
                    # Changed since the candidate query
                    self.db.rollback()
                    continue
                apply(order)
                self.db.commit()
                count += 1
            except Exception as e:
                self.db.rollback()
                logger.error(f"Sweep failed for order {order_id}: {e}")
        return count

    def auto_confirm_cod_orders(self, now=None) -> int:
        """Confirm COD orders that stayed `new` for AUTO_CONFIRM_MINUTES."""
        now = now or utcnow()
        cutoff = now - timedelta(minutes=settings.AUTO_CONFIRM_MINUTES)
        candidates = crud.order.get_new_orders_before(
            self.db, payment_methods=[PaymentMethod.COD.value], cutoff=cutoff
        )

        def apply(order):
            self._transition(
                order,
                OrderStatus.confirmed,
                actor_type=ActorType.system,
                actor_name="system",
                description="Order confirmed automatically.",
            )

        return self._sweep(candidates, OrderStatus.new, apply)

    def expire_unpaid_orders(self, now=None) -> int:
        """Move online orders unpaid after PAYMENT_TIMEOUT_MINUTES to payment_overdue."""
        now = now or utcnow()
        cutoff = now - timedelta(minutes=settings.PAYMENT_TIMEOUT_MINUTES)
        candidates = crud.order.get_new_orders_before(
            self.db,
            payment_methods=[m.value for m in ONLINE_PAYMENT_METHODS],
            cutoff=cutoff,
            unpaid_only=True,
        )

        def apply(order):
            order.cancelled_by = ActorType.system.value
            order.cancellation_reason = "Payment not received in time"
            self._transition(
                order,
                OrderStatus.payment_overdue,
                actor_type=ActorType.system,
                actor_name="system",
            )

        return self._sweep(candidates, OrderStatus.new, apply)

    def auto_complete_delivered_orders(self, now=None) -> int:
        """Complete orders delivered more than AUTO_COMPLETE_DAYS ago."""
        now = now or utcnow()
        cutoff = now - timedelta(days=settings.AUTO_COMPLETE_DAYS)
        candidates = crud.order.get_delivered_before(self.db, cutoff=cutoff)

        def apply(order):
            if order.payment_method == PaymentMethod.COD.value:
                self._mark_paid(order)
            self._transition(
                order,
                OrderStatus.completed,
                actor_type=ActorType.system,
                actor_name="system",
                description="Order completed automatically after delivery.",
            )

        return self._sweep(candidates, OrderStatus.delivered, apply)
