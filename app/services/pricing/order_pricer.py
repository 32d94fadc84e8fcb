# app/services/pricing/order_pricer.py
"""
Order total aggregation.

Pricing model:
- actual_unit_price = unit_price * (100 - discount_percent) // 100
- line_total = actual_unit_price * quantity
- subtotal = sum of line totals
- discount and points are both taken off the full subtotal, not compounded
- total_amount = max(0, subtotal + shipping_fee - discount - points_applied)

All amounts are integers in the smallest currency unit.
"""

from collections import defaultdict
from dataclasses import dataclass, asdict, field
from typing import Dict, List, Mapping, Optional, Sequence

from app.core.exceptions import OutOfStockError
from .loyalty_calculator import LoyaltyCalculator, PointsRedemption
from .shipping_resolver import ResolvedShipping
from .voucher_validator import VoucherValidation


@dataclass
class LineRequest:
    product_id: str
    quantity: int


@dataclass
class PricedLine:
    product_id: str
    product_code: str
    product_name: str
    product_image: Optional[str]
    unit_price: int
    discount_percent: int
    actual_unit_price: int
    quantity: int
    line_total: int


@dataclass
class PriceBreakdown:
    lines: List[PricedLine]
    subtotal: int
    shipping_method: str
    shipping_fee: int
    voucher_code: Optional[str]
    discount: int
    points_applied: int
    total_amount: int
    max_applicable_points: int
    voucher: Optional[VoucherValidation] = field(default=None, compare=False)

    @property
    def voucher_rejected(self) -> bool:
        return self.voucher is not None and not self.voucher.applicable

    def to_preview_dict(self) -> dict:
        """Field names follow the preview schema (snake_case)."""
        rejection = None
        if self.voucher_rejected:
            rejection = {
                "reason": self.voucher.reason.value,
                "message": self.voucher.message,
            }
        return {
            "order_lines": [asdict(line) for line in self.lines],
            "subtotal": self.subtotal,
            "shipping_method": self.shipping_method,
            "shipping_fee": self.shipping_fee,
            "voucher_code": self.voucher_code,
            "discount": self.discount,
            "points_applied": self.points_applied,
            "total_amount": self.total_amount,
            "max_applicable_points": self.max_applicable_points,
            "voucher_rejection": rejection,
        }


def compute_total(subtotal: int, shipping_fee: int, discount: int, points_applied: int) -> int:
    """Total can reach zero but never go below it."""
    return max(0, subtotal + shipping_fee - discount - points_applied)


class OrderPricer:
    """
    Composes line prices, shipping fee, voucher discount and point
    redemption into a consistent total.

    Args:
        loyalty_calculator: redemption ceiling policy (defaults to settings)
    """

    def __init__(self, loyalty_calculator: Optional[LoyaltyCalculator] = None):
        self.loyalty_calculator = loyalty_calculator or LoyaltyCalculator()

    def price_lines(
        self, requests: Sequence[LineRequest], products: Mapping[str, object]
    ) -> List[PricedLine]:
        """
        Resolve each requested line against the catalog.

        Raises OutOfStockError listing every line whose product is missing,
        inactive or short on stock. Quantities of repeated products are
        summed for the stock check.
        """
        wanted: Dict[str, int] = defaultdict(int)
        for req in requests:
            wanted[req.product_id] += req.quantity

        unavailable = []
        for product_id, quantity in wanted.items():
            product = products.get(product_id)
            if product is None or not product.is_active:
                unavailable.append(
                    {
                        "productId": product_id,
                        "requested": quantity,
                        "available": 0,
                        "reason": "Product is no longer available",
                    }
                )
            elif product.stock < quantity:
                unavailable.append(
                    {
                        "productId": product_id,
                        "productName": product.name,
                        "requested": quantity,
                        "available": product.stock,
                        "reason": f"Only {product.stock} left in stock",
                    }
                )
        if unavailable:
            raise OutOfStockError(
                "Some items in your order are unavailable.",
                details={"unavailableItems": unavailable},
            )

        priced = []
        for req in requests:
            product = products[req.product_id]
            actual_unit_price = product.actual_price
            priced.append(
                PricedLine(
                    product_id=product.id,
                    product_code=product.code,
                    product_name=product.name,
                    product_image=product.image_url,
                    unit_price=product.price,
                    discount_percent=product.discount_percent or 0,
                    actual_unit_price=actual_unit_price,
                    quantity=req.quantity,
                    line_total=actual_unit_price * req.quantity,
                )
            )
        return priced

    @staticmethod
    def subtotal(lines: Sequence[PricedLine]) -> int:
        return sum(line.line_total for line in lines)

    def aggregate(
        self,
        *,
        lines: Sequence[PricedLine],
        shipping: ResolvedShipping,
        voucher: Optional[VoucherValidation] = None,
        points_requested: int = 0,
        points_balance: int = 0,
    ) -> PriceBreakdown:
        """
        Build the priced breakdown.

        A rejected voucher contributes no discount and no code; the
        rejection stays attached so callers can report it.
        """
        subtotal = self.subtotal(lines)

        discount = 0
        voucher_code = None
        if voucher is not None and voucher.applicable:
            discount = min(voucher.discount_amount, subtotal)
            voucher_code = voucher.code

        redemption: PointsRedemption = self.loyalty_calculator.redeem(
            requested=points_requested, balance=points_balance, subtotal=subtotal
        )

        return PriceBreakdown(
            lines=list(lines),
            subtotal=subtotal,
            shipping_method=shipping.code,
            shipping_fee=shipping.fee,
            voucher_code=voucher_code,
            discount=discount,
            points_applied=redemption.points_applied,
            total_amount=compute_total(
                subtotal, shipping.fee, discount, redemption.points_applied
            ),
            max_applicable_points=redemption.max_applicable,
            voucher=voucher,
        )
