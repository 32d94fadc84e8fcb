# app/services/loyalty_service.py
import logging
from typing import List, Tuple
from sqlalchemy.orm import Session

from app import crud
from app.core.exceptions import InsufficientPointsError
from app.models.loyalty_transaction import LoyaltyTransaction
from app.services.pricing import points_earned

logger = logging.getLogger(__name__)


class LoyaltyService:
    """
    Loyalty balance movements and their ledger entries.

    Every balance change goes through a conditional UPDATE and is paired
    with a LoyaltyTransaction row. Nothing here commits.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_balance(self, user_id: str) -> int:
        return crud.user.get_balance(self.db, user_id=user_id)

    def get_transactions(
        self, user_id: str, *, skip: int = 0, limit: int = 20
    ) -> Tuple[List[LoyaltyTransaction], int]:
        return crud.loyalty_transaction.get_by_user(
            self.db, user_id=user_id, skip=skip, limit=limit
        )

    def redeem_for_order(self, order) -> None:
        """Debit the points an order was placed with."""
        if not order.points_applied:
            return
        if not crud.user.try_debit_points(
            self.db, user_id=order.user_id, points=order.points_applied
        ):
            raise InsufficientPointsError(
                "Your loyalty balance is no longer sufficient for this order.",
                details={"pointsApplied": order.points_applied},
            )
        crud.loyalty_transaction.add_entry(
            self.db,
            user_id=order.user_id,
            points=-order.points_applied,
            transaction_type="redeemed",
            description=f"Redeemed {order.points_applied} points on order {order.order_number}",
            order_id=order.id,
        )
        logger.info(
            f"Debited {order.points_applied} points from user {order.user_id} for order {order.id}"
        )

    def refund_for_order(self, order) -> None:
        """Give back redeemed points when an order is reversed."""
        if not order.points_applied:
            return
        crud.user.get_or_create(self.db, user_id=order.user_id)
        crud.user.credit_points(self.db, user_id=order.user_id, points=order.points_applied)
        crud.loyalty_transaction.add_entry(
            self.db,
            user_id=order.user_id,
            points=order.points_applied,
            transaction_type="refund",
            description=f"Refunded {order.points_applied} points from order {order.order_number}",
            order_id=order.id,
        )
        logger.info(
            f"Refunded {order.points_applied} points to user {order.user_id} for order {order.id}"
        )

    def award_for_order(self, order) -> int:
        """Credit completion points: floor(subtotal * earn rate)."""
        points = points_earned(order.subtotal)
        if points <= 0:
            return 0
        crud.user.get_or_create(self.db, user_id=order.user_id)
        crud.user.credit_points(self.db, user_id=order.user_id, points=points)
        crud.loyalty_transaction.add_entry(
            self.db,
            user_id=order.user_id,
            points=points,
            transaction_type="earned",
            description=f"Earned {points} points from order {order.order_number}",
            order_id=order.id,
        )
        logger.info(f"Awarded {points} points to user {order.user_id} for order {order.id}")
        return points
