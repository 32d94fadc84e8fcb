# app/crud/crud_shipping_method.py
from typing import List, Optional
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.shipping_method import ShippingMethod
from app.schemas.shipping import ShippingMethodCreate, ShippingMethodUpdate


class CRUDShippingMethod(CRUDBase[ShippingMethod, ShippingMethodCreate, ShippingMethodUpdate]):
    def get_by_code(self, db: Session, *, code: str) -> Optional[ShippingMethod]:
        return db.query(self.model).filter(self.model.code == code).first()

    def get_active(self, db: Session) -> List[ShippingMethod]:
        """Active methods in catalog order; the first one is the default."""
        return (
            db.query(self.model)
            .filter(self.model.is_active == True)
            .order_by(self.model.sort_order.asc(), self.model.id.asc())
            .all()
        )

    def get_all(self, db: Session) -> List[ShippingMethod]:
        return (
            db.query(self.model)
            .order_by(self.model.sort_order.asc(), self.model.id.asc())
            .all()
        )


shipping_method = CRUDShippingMethod(ShippingMethod)
