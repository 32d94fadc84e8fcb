# app/crud/crud_product.py
from typing import Dict, Iterable
from sqlalchemy.orm import Session

from app.models.product import Product
from app.utils.time import utcnow


class CRUDProduct:
    """Read access to the product catalog plus stock counters."""

    def __init__(self, model=Product):
        self.model = model

    def get(self, db: Session, id: str):
        return db.query(self.model).filter(self.model.id == id).first()

    def get_many(self, db: Session, *, ids: Iterable[str]) -> Dict[str, Product]:
        ids = list(set(ids))
        if not ids:
            return {}
        rows = db.query(self.model).filter(self.model.id.in_(ids)).all()
        return {row.id: row for row in rows}

    def try_reserve_stock(self, db: Session, *, product_id: str, quantity: int) -> bool:
        """Take quantity out of stock if enough is left. Does not commit."""
        updated = (
            db.query(self.model)
            .filter(
                self.model.id == product_id,
                self.model.is_active == True,
                self.model.stock >= quantity,
            )
            .update(
                {
                    self.model.stock: self.model.stock - quantity,
                    self.model.sold_count: self.model.sold_count + quantity,
                    self.model.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
        )
        return updated == 1

    def restock(self, db: Session, *, product_id: str, quantity: int) -> None:
        """Put quantity back, e.g. after cancellation. Does not commit."""
        (
            db.query(self.model)
            .filter(self.model.id == product_id)
            .update(
                {
                    self.model.stock: self.model.stock + quantity,
                    self.model.sold_count: self.model.sold_count - quantity,
                    self.model.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
        )


product = CRUDProduct(Product)
