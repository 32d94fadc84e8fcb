# app/schemas/voucher.py
from pydantic import Field, field_validator, model_validator
from typing import Optional
from datetime import datetime
from enum import Enum

from app.schemas.common import CamelModel, reject_null


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class VoucherBase(CamelModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: int = Field(..., gt=0)
    min_purchase_amount: int = Field(0, ge=0)
    max_discount_amount: Optional[int] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    per_user_limit: int = Field(1, ge=1)
    is_public: bool = True
    starts_at: datetime
    ends_at: datetime
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def validate_rules(self):
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        if self.ends_at < self.starts_at:
            raise ValueError("ends_at must not be before starts_at")
        return self


class VoucherCreate(VoucherBase):
    pass


class VoucherUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    discount_value: Optional[int] = Field(None, gt=0)
    min_purchase_amount: Optional[int] = Field(None, ge=0)
    max_discount_amount: Optional[int] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    per_user_limit: Optional[int] = Field(None, ge=1)
    is_public: Optional[bool] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    is_active: Optional[bool] = None

    not_null = field_validator(
        "name",
        "discount_value",
        "min_purchase_amount",
        "per_user_limit",
        "is_public",
        "starts_at",
        "ends_at",
        "is_active",
    )(reject_null)


class Voucher(CamelModel):
    id: str
    code: str
    name: str
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: int
    discount_formatted: str
    min_purchase_amount: int
    max_discount_amount: Optional[int] = None
    usage_limit: Optional[int] = None
    used_count: int
    remaining_uses: Optional[int] = None
    per_user_limit: int
    is_public: bool
    starts_at: datetime
    ends_at: datetime
    is_active: bool


class SavedVoucher(CamelModel):
    id: str
    usage_count: int
    saved_at: datetime
    voucher: Voucher


class VoucherCheckRequest(CamelModel):
    code: str = Field(..., min_length=1, max_length=50)
    subtotal: int = Field(..., ge=0)


class VoucherCheckResponse(CamelModel):
    code: str
    applicable: bool
    discount_amount: int
    reason: Optional[str] = None
    message: Optional[str] = None


class VoucherAssignRequest(CamelModel):
    user_id: str = Field(..., min_length=1)
