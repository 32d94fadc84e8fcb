# app/background_tasks/order_tasks.py
"""
Background tasks for the order lifecycle.
"""
import logging
from app.db.session import SessionLocal
from app.services.order_service import OrderService

logger = logging.getLogger(__name__)


def auto_confirm_cod_orders():
    """
    Background task: Confirm cash-on-delivery orders left in `new`.

    Returns: Number of orders confirmed
    """
    db = SessionLocal()
    try:
        count = OrderService(db).auto_confirm_cod_orders()

        if count > 0:
            logger.info(f"Auto-confirmed {count} COD orders")

        return count

    except Exception as e:
        logger.error(f"Error in auto_confirm_cod_orders task: {str(e)}")
        return 0

    finally:
        db.close()


def expire_unpaid_orders():
    """
    Background task: Move unpaid online orders to payment_overdue.

    Stock and redeemed points of each expired order are given back.

    Returns: Number of orders expired
    """
    db = SessionLocal()
    try:
        count = OrderService(db).expire_unpaid_orders()

        if count > 0:
            logger.info(f"Marked {count} unpaid orders as payment_overdue")

        return count

    except Exception as e:
        logger.error(f"Error in expire_unpaid_orders task: {str(e)}")
        return 0

    finally:
        db.close()


def auto_complete_delivered_orders():
    """
    Background task: Complete delivered orders the customer never confirmed.

    Returns: Number of orders completed
    """
    db = SessionLocal()
    try:
        count = OrderService(db).auto_complete_delivered_orders()

        if count > 0:
            logger.info(f"Auto-completed {count} delivered orders")

        return count

    except Exception as e:
        logger.error(f"Error in auto_complete_delivered_orders task: {str(e)}")
        return 0

    finally:
        db.close()
