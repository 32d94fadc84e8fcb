# app/api/v1/endpoints/loyalty.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api import deps
from app.core.config import settings
from app.db.session import get_db
from app.schemas.common import Page, build_pagination
from app.schemas.loyalty import LoyaltyBalance, LoyaltyTransaction
from app.schemas.token import TokenPayload
from app.services.loyalty_service import LoyaltyService

router = APIRouter(prefix="/loyalty", tags=["Loyalty"])


@router.get("", response_model=LoyaltyBalance)
def get_balance(
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return LoyaltyBalance(
        user_id=current_user.sub,
        loyalty_points=LoyaltyService(db).get_balance(current_user.sub),
        redemption_ratio=settings.LOYALTY_REDEMPTION_RATIO,
        earn_rate=settings.LOYALTY_EARN_RATE,
    )


@router.get("/transactions", response_model=Page[LoyaltyTransaction])
def list_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    items, total = LoyaltyService(db).get_transactions(
        current_user.sub, skip=(page - 1) * limit, limit=limit
    )
    return Page[LoyaltyTransaction](
        data=[LoyaltyTransaction.model_validate(item) for item in items],
        pagination=build_pagination(total, page, limit),
    )
