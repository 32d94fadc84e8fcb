# app/api/v1/endpoints/internals.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api import deps
from app.db.session import get_db
from app.schemas.order import Order, PaymentResult
from app.services.order_service import OrderService

router = APIRouter(prefix="/internal", tags=["Internal"])


@router.post("/orders/{order_id}/payment", response_model=Order)
def record_payment_result(
    order_id: str,
    result_in: PaymentResult,
    db: Session = Depends(get_db),
    api_key: str = Depends(deps.get_internal_api_key),
):
    """
    Called by the payment gateway integration once a VNPAY, MOMO or bank
    payment settles. A success confirms the order.
    """
    order = OrderService(db).record_payment(order_id, result_in)
    return Order.from_model(order)
