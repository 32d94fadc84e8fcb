# app/schemas/loyalty.py
from typing import Optional
from datetime import datetime

from app.schemas.common import CamelModel


class LoyaltyBalance(CamelModel):
    user_id: str
    loyalty_points: int
    redemption_ratio: float
    earn_rate: float


class LoyaltyTransaction(CamelModel):
    id: str
    points: int
    transaction_type: str
    description: str
    order_id: Optional[str] = None
    created_at: datetime
