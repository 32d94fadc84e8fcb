# app/crud/crud_order.py
from typing import Any, Dict, Iterable, List, Optional, Tuple
from datetime import datetime
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func, or_, exists

from app.constants.order_status import OrderStatus, StatusGroup, STATUS_GROUPS
from app.models.order import Order, new_order_id
from app.models.order_line import OrderLine
from app.models.order_timeline import OrderTimelineEntry


class CRUDOrder:
    """CRUD operations for Order model.

    Writers here flush but never commit: order creation and every status
    change run inside a unit of work owned by OrderService.
    """

    def __init__(self, model=Order):
        self.model = model

    def _with_children(self, query):
        return query.options(
            selectinload(self.model.lines), selectinload(self.model.timeline)
        )

    def get(self, db: Session, id: str) -> Optional[Order]:
        return self._with_children(db.query(self.model)).filter(self.model.id == id).first()

    def get_for_update(self, db: Session, *, order_id: str) -> Optional[Order]:
        """Load an order with a row lock for a status change."""
        return (
            db.query(self.model)
            .filter(self.model.id == order_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def _filtered(
        self,
        db: Session,
        *,
        user_id: Optional[str] = None,
        group: Optional[StatusGroup] = None,
        status: Optional[OrderStatus] = None,
        search: Optional[str] = None,
    ):
        query = db.query(self.model)
        if user_id:
            query = query.filter(self.model.user_id == user_id)
        if group:
            query = query.filter(
                self.model.status.in_([s.value for s in STATUS_GROUPS[group]])
            )
        if status:
            query = query.filter(self.model.status == status.value)
        if search:
            search_pattern = f"%{search}%"
            query = query.filter(
                or_(
                    self.model.order_number.ilike(search_pattern),
                    self.model.recipient_name.ilike(search_pattern),
                    exists().where(
                        OrderLine.order_id == self.model.id,
                        OrderLine.product_name.ilike(search_pattern),
                    ),
                )
            )
        return query

    def get_by_user(
        self,
        db: Session,
        *,
        user_id: str,
        group: Optional[StatusGroup] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Order], int]:
        """Get orders for a user with pagination."""
        query = self._filtered(db, user_id=user_id, group=group, search=search)
        total = query.count()
        orders = (
            self._with_children(query)
            .order_by(self.model.created_at.desc(), self.model.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return orders, total

    def get_all(
        self,
        db: Session,
        *,
        group: Optional[StatusGroup] = None,
        status: Optional[OrderStatus] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Order], int]:
        """Admin listing across all users."""
        query = self._filtered(db, group=group, status=status, search=search)
        total = query.count()
        orders = (
            self._with_children(query)
            .order_by(self.model.created_at.desc(), self.model.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return orders, total

    def count_by_status(self, db: Session, *, user_id: Optional[str] = None) -> Dict[str, int]:
        query = db.query(self.model.status, func.count(self.model.id))
        if user_id:
            query = query.filter(self.model.user_id == user_id)
        return dict(query.group_by(self.model.status).all())

    def create_with_lines(
        self, db: Session, *, order_data: Dict[str, Any], lines: Iterable[Dict[str, Any]]
    ) -> Order:
        db_obj = self.model(**order_data)
        db_obj.id = db_obj.id or new_order_id()
        db_obj.order_number = self.model.generate_order_number(db_obj.id)
        for position, line in enumerate(lines):
            db_obj.lines.append(OrderLine(position=position, **line))
        db.add(db_obj)
        db.flush()
        return db_obj

    def append_timeline(
        self,
        db: Session,
        *,
        order: Order,
        status: str,
        description: str,
        user_type: str,
        user_name: str,
        reason: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> OrderTimelineEntry:
        entry = OrderTimelineEntry(
            sequence=len(order.timeline),
            status=status,
            description=description,
            user_type=user_type,
            user_name=user_name,
            reason=reason,
            extra=extra,
        )
        order.timeline.append(entry)
        db.flush()
        return entry

    def get_new_orders_before(
        self,
        db: Session,
        *,
        payment_methods: Iterable[str],
        cutoff: datetime,
        unpaid_only: bool = False,
    ) -> List[Order]:
        """Orders still in `new` created before cutoff, for the lifecycle sweeps."""
        query = db.query(self.model).filter(
            self.model.status == OrderStatus.new.value,
            self.model.payment_method.in_(list(payment_methods)),
            self.model.created_at <= cutoff,
        )
        if unpaid_only:
            query = query.filter(self.model.payment_status != "completed")
        return query.order_by(self.model.created_at.asc()).all()

    def get_delivered_before(self, db: Session, *, cutoff: datetime) -> List[Order]:
        return (
            db.query(self.model)
            .filter(
                self.model.status == OrderStatus.delivered.value,
                self.model.delivered_at <= cutoff,
            )
            .order_by(self.model.delivered_at.asc())
            .all()
        )


order = CRUDOrder(Order)
