# app/api/v1/endpoints/vouchers.py
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api import deps
from app.core.exceptions import NotFoundError, PermissionDeniedError
from app.crud import crud_user_voucher, crud_voucher
from app.db.session import get_db
from app.schemas.token import TokenPayload
from app.schemas.voucher import (
    SavedVoucher,
    Voucher,
    VoucherCheckRequest,
    VoucherCheckResponse,
)
from app.services.pricing import validate_voucher

router = APIRouter(prefix="/vouchers", tags=["Vouchers"])


@router.get("", response_model=List[Voucher])
def list_public_vouchers(
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Public vouchers that can be used right now."""
    return crud_voucher.voucher.get_public_active(db)


@router.get("/saved", response_model=List[SavedVoucher])
def list_saved_vouchers(
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud_user_voucher.user_voucher.get_saved(db, user_id=current_user.sub)


@router.post("/{code}/save", response_model=SavedVoucher, status_code=status.HTTP_201_CREATED)
def save_voucher(
    code: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Add a public voucher to the user's wallet. Saving twice is harmless."""
    voucher = crud_voucher.voucher.get_by_code(db, code=code)
    if not voucher or not voucher.is_active:
        raise NotFoundError("Voucher not found.", details={"voucherCode": code})
    if not voucher.is_public:
        raise PermissionDeniedError("This voucher can only be assigned by the shop.")
    return crud_user_voucher.user_voucher.save(
        db, user_id=current_user.sub, voucher_id=voucher.id
    )


@router.post("/check", response_model=VoucherCheckResponse)
def check_voucher(
    check_in: VoucherCheckRequest,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Run the voucher rules against a subtotal without placing an order."""
    voucher = crud_voucher.voucher.get_by_code(db, code=check_in.code)
    user_voucher = None
    if voucher:
        user_voucher = crud_user_voucher.user_voucher.get_for_user(
            db, user_id=current_user.sub, voucher_id=voucher.id
        )
    result = validate_voucher(
        voucher, code=check_in.code, subtotal=check_in.subtotal, user_voucher=user_voucher
    )
    return VoucherCheckResponse(
        code=result.code,
        applicable=result.applicable,
        discount_amount=result.discount_amount,
        reason=result.reason.value if result.reason else None,
        message=result.message,
    )
