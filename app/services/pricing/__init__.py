# app/services/pricing/__init__.py
from .loyalty_calculator import LoyaltyCalculator, PointsRedemption, points_earned
from .order_pricer import (
    LineRequest,
    OrderPricer,
    PriceBreakdown,
    PricedLine,
    compute_total,
)
from .shipping_resolver import ResolvedShipping, ShippingFeeResolver
from .voucher_validator import (
    VoucherRejectionReason,
    VoucherValidation,
    validate_voucher,
)

__all__ = [
    "LineRequest",
    "LoyaltyCalculator",
    "OrderPricer",
    "PointsRedemption",
    "PriceBreakdown",
    "PricedLine",
    "ResolvedShipping",
    "ShippingFeeResolver",
    "VoucherRejectionReason",
    "VoucherValidation",
    "compute_total",
    "points_earned",
    "validate_voucher",
]
