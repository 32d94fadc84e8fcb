# app/api/v1/endpoints/admin_orders.py
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api import deps
from app.constants.order_status import OrderStatus, StatusGroup
from app.db.session import get_db
from app.schemas.common import Page, build_pagination
from app.schemas.order import (
    AllowedTransitions,
    CancellationReview,
    Order,
    OrderStats,
    OrderStatusUpdate,
)
from app.schemas.token import TokenPayload
from app.services.order_service import OrderService

router = APIRouter(prefix="/admin/orders", tags=["Admin - Orders"])


@router.get("", response_model=Page[Order])
def list_orders(
    group: Optional[StatusGroup] = None,
    status: Optional[OrderStatus] = None,
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_admin: TokenPayload = Depends(deps.get_current_admin),
):
    orders, total = OrderService(db).list_orders(
        group=group, status=status, search=search, skip=(page - 1) * limit, limit=limit
    )
    return Page[Order](
        data=[Order.from_model(o) for o in orders],
        pagination=build_pagination(total, page, limit),
    )


@router.get("/stats", response_model=OrderStats)
def get_order_stats(
    db: Session = Depends(get_db),
    current_admin: TokenPayload = Depends(deps.get_current_admin),
):
    return OrderStats(**OrderService(db).get_order_stats())


@router.get("/{order_id}", response_model=Order)
def get_order(
    order_id: str,
    db: Session = Depends(get_db),
    current_admin: TokenPayload = Depends(deps.get_current_admin),
):
    return Order.from_model(OrderService(db).get_order(order_id))


@router.get("/{order_id}/transitions", response_model=AllowedTransitions)
def get_allowed_transitions(
    order_id: str,
    db: Session = Depends(get_db),
    current_admin: TokenPayload = Depends(deps.get_current_admin),
):
    """Statuses an admin can set by hand from the order's current status."""
    service = OrderService(db)
    order = service.get_order(order_id)
    return AllowedTransitions(
        order_id=order.id,
        current_status=order.status,
        allowed_statuses=service.get_allowed_transitions(order_id),
    )


@router.patch("/{order_id}/status", response_model=Order)
def update_order_status(
    order_id: str,
    update_in: OrderStatusUpdate,
    db: Session = Depends(get_db),
    current_admin: TokenPayload = Depends(deps.get_current_admin),
):
    order = OrderService(db).admin_update_status(
        order_id, admin_name=current_admin.display_name, update=update_in
    )
    return Order.from_model(order)


@router.post("/{order_id}/cancellation/approve", response_model=Order)
def approve_cancellation(
    order_id: str,
    review_in: Optional[CancellationReview] = None,
    db: Session = Depends(get_db),
    current_admin: TokenPayload = Depends(deps.get_current_admin),
):
    order = OrderService(db).approve_cancellation(
        order_id,
        admin_name=current_admin.display_name,
        reason=review_in.reason if review_in else None,
    )
    return Order.from_model(order)


@router.post("/{order_id}/cancellation/reject", response_model=Order)
def reject_cancellation(
    order_id: str,
    review_in: Optional[CancellationReview] = None,
    db: Session = Depends(get_db),
    current_admin: TokenPayload = Depends(deps.get_current_admin),
):
    order = OrderService(db).reject_cancellation(
        order_id,
        admin_name=current_admin.display_name,
        reason=review_in.reason if review_in else None,
    )
    return Order.from_model(order)


@router.post("/{order_id}/return/approve", response_model=Order)
def approve_return(
    order_id: str,
    db: Session = Depends(get_db),
    current_admin: TokenPayload = Depends(deps.get_current_admin),
):
    order = OrderService(db).approve_return(order_id, admin_name=current_admin.display_name)
    return Order.from_model(order)
