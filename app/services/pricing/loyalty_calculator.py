# app/services/pricing/loyalty_calculator.py
from dataclasses import dataclass
from fractions import Fraction
import math

from app.core.config import settings
from app.core.exceptions import InvalidInputError


@dataclass
class PointsRedemption:
    requested: int
    points_applied: int
    value_applied: int  # 1 point = 1 currency unit
    max_applicable: int

    @property
    def clamped(self) -> bool:
        return self.points_applied < self.requested


class LoyaltyCalculator:
    """
    Loyalty point redemption ceiling.

    max_applicable = min(balance, floor(subtotal * redemption_ratio))
    """

    def __init__(self, redemption_ratio: float = None):
        ratio = settings.LOYALTY_REDEMPTION_RATIO if redemption_ratio is None else redemption_ratio
        # Exact rational so floor() is not thrown off by float error
        self.redemption_ratio = Fraction(str(ratio))

    def max_applicable(self, *, balance: int, subtotal: int) -> int:
        ceiling = math.floor(max(subtotal, 0) * self.redemption_ratio)
        return max(0, min(balance or 0, ceiling))

    def redeem(self, *, requested: int, balance: int, subtotal: int) -> PointsRedemption:
        """Clamp a requested redemption to what the order allows."""
        if requested is None:
            requested = 0
        if requested < 0:
            raise InvalidInputError(
                "Points to apply cannot be negative.",
                details={"field": "pointsToApply"},
            )

        max_applicable = self.max_applicable(balance=balance, subtotal=subtotal)
        applied = min(requested, max_applicable)
        return PointsRedemption(
            requested=requested,
            points_applied=applied,
            value_applied=applied,
            max_applicable=max_applicable,
        )


def points_earned(subtotal: int, earn_rate: float = None) -> int:
    """Points credited when an order completes."""
    rate = settings.LOYALTY_EARN_RATE if earn_rate is None else earn_rate
    return math.floor(max(subtotal, 0) * Fraction(str(rate)))
