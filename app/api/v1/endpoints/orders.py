# app/api/v1/endpoints/orders.py
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api import deps
from app.constants.order_status import StatusGroup
from app.db.session import get_db
from app.schemas.common import Page, build_pagination
from app.schemas.order import (
    CancelOrderRequest,
    Order,
    OrderCreateRequest,
    OrderCreateResponse,
    OrderPreviewRequest,
    OrderPreviewResponse,
    OrderStats,
    PreviewOrder,
    ReturnOrderRequest,
    ShippingAddress,
)
from app.schemas.token import TokenPayload
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("/preview", response_model=OrderPreviewResponse)
def preview_order(
    preview_in: OrderPreviewRequest,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """
    Price a cart selection. Nothing is persisted.

    A rejected voucher is dropped from the totals and explained in
    `voucherRejection`; requested points are clamped to what the order allows.
    """
    preview = OrderService(db).preview(user_id=current_user.sub, request=preview_in)
    return OrderPreviewResponse(preview_order=PreviewOrder(**preview))


@router.post("", response_model=OrderCreateResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    order_in: OrderCreateRequest,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """
    Place an order from a preview. The preview is re-priced server-side and
    must match exactly.
    """
    order = OrderService(db).place_order(
        user_id=current_user.sub,
        user_name=current_user.display_name,
        request=order_in,
    )
    return OrderCreateResponse(order_id=order.id, order=Order.from_model(order))


@router.get("", response_model=Page[Order])
def list_my_orders(
    group: Optional[StatusGroup] = None,
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    orders, total = OrderService(db).list_orders_for_user(
        current_user.sub, group=group, search=search, skip=(page - 1) * limit, limit=limit
    )
    return Page[Order](
        data=[Order.from_model(o) for o in orders],
        pagination=build_pagination(total, page, limit),
    )


@router.get("/stats", response_model=OrderStats)
def get_my_order_stats(
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Order counts for the storefront tabs."""
    return OrderStats(**OrderService(db).get_order_stats(current_user.sub))


@router.get("/{order_id}", response_model=Order)
def get_my_order(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    order = OrderService(db).get_order_for_user(order_id, current_user.sub)
    return Order.from_model(order)


@router.patch("/{order_id}/cancel", response_model=Order)
def cancel_order(
    order_id: str,
    cancel_in: Optional[CancelOrderRequest] = None,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """
    Cancel immediately while the order is new, confirmed or preparing;
    otherwise record a cancellation request for the shop to review.
    """
    order = OrderService(db).cancel_by_user(
        order_id,
        user_id=current_user.sub,
        user_name=current_user.display_name,
        reason=cancel_in.reason if cancel_in else None,
    )
    return Order.from_model(order)


@router.patch("/{order_id}/confirm-received", response_model=Order)
def confirm_received(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    order = OrderService(db).confirm_received(
        order_id, user_id=current_user.sub, user_name=current_user.display_name
    )
    return Order.from_model(order)


@router.patch("/{order_id}/return", response_model=Order)
def request_return(
    order_id: str,
    return_in: ReturnOrderRequest,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    order = OrderService(db).request_return(
        order_id,
        user_id=current_user.sub,
        user_name=current_user.display_name,
        reason=return_in.reason,
    )
    return Order.from_model(order)


@router.patch("/{order_id}/shipping-address", response_model=Order)
def update_shipping_address(
    order_id: str,
    address_in: ShippingAddress,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Change the delivery address once, while the order is new or confirmed."""
    order = OrderService(db).update_shipping_address(
        order_id,
        user_id=current_user.sub,
        user_name=current_user.display_name,
        address=address_in,
    )
    return Order.from_model(order)
