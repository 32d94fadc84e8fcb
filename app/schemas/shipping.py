# app/schemas/shipping.py
from pydantic import Field, field_validator
from typing import Optional
from datetime import datetime

from app.schemas.common import CamelModel, reject_null


class ShippingMethodBase(CamelModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: int = Field(0, ge=0)
    is_active: bool = True
    sort_order: int = 0


class ShippingMethodCreate(ShippingMethodBase):
    pass


class ShippingMethodUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None

    not_null = field_validator("name", "price", "is_active", "sort_order")(reject_null)


class ShippingMethod(ShippingMethodBase):
    id: str
    created_at: datetime
    updated_at: datetime
