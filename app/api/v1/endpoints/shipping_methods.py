# app/api/v1/endpoints/shipping_methods.py
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api import deps
from app.core.exceptions import AlreadyExistsError, NotFoundError
from app.crud import crud_shipping_method
from app.db.session import get_db
from app.schemas.shipping import ShippingMethod, ShippingMethodCreate, ShippingMethodUpdate
from app.schemas.token import TokenPayload

router = APIRouter(tags=["Shipping Methods"])


@router.get("/shipping-methods", response_model=List[ShippingMethod])
def list_shipping_methods(db: Session = Depends(get_db)):
    """Active methods in display order; the first one is the preview default."""
    return crud_shipping_method.shipping_method.get_active(db)


@router.post(
    "/admin/shipping-methods",
    response_model=ShippingMethod,
    status_code=status.HTTP_201_CREATED,
)
def create_shipping_method(
    method_in: ShippingMethodCreate,
    db: Session = Depends(get_db),
    current_admin: TokenPayload = Depends(deps.get_current_admin),
):
    if crud_shipping_method.shipping_method.get_by_code(db, code=method_in.code):
        raise AlreadyExistsError(f"Shipping method '{method_in.code}' already exists.")
    return crud_shipping_method.shipping_method.create(db, obj_in=method_in)


@router.patch("/admin/shipping-methods/{method_id}", response_model=ShippingMethod)
def update_shipping_method(
    method_id: str,
    method_in: ShippingMethodUpdate,
    db: Session = Depends(get_db),
    current_admin: TokenPayload = Depends(deps.get_current_admin),
):
    method = crud_shipping_method.shipping_method.get(db, id=method_id)
    if not method:
        raise NotFoundError("Shipping method not found.", details={"methodId": method_id})
    return crud_shipping_method.shipping_method.update(db, db_obj=method, obj_in=method_in)
