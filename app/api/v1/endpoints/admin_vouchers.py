# app/api/v1/endpoints/admin_vouchers.py
import logging
from typing import List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api import deps
from app.core.exceptions import AlreadyExistsError, NotFoundError, RequestValidationFailed
from app.crud import crud_user_voucher, crud_voucher
from app.db.session import get_db
from app.schemas.token import TokenPayload
from app.schemas.voucher import (
    SavedVoucher,
    Voucher,
    VoucherAssignRequest,
    VoucherCreate,
    VoucherUpdate,
)
from app.utils.time import as_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/vouchers", tags=["Admin - Vouchers"])


def _get_voucher_or_404(db: Session, voucher_id: str):
    voucher = crud_voucher.voucher.get(db, id=voucher_id)
    if not voucher:
        raise NotFoundError("Voucher not found.", details={"voucherId": voucher_id})
    return voucher


@router.get("", response_model=List[Voucher])
def list_vouchers(
    include_inactive: bool = True,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_admin: TokenPayload = Depends(deps.get_current_admin),
):
    return crud_voucher.voucher.get_multi_filtered(
        db, include_inactive=include_inactive, skip=skip, limit=limit
    )


@router.post("", response_model=Voucher, status_code=status.HTTP_201_CREATED)
def create_voucher(
    voucher_in: VoucherCreate,
    db: Session = Depends(get_db),
    current_admin: TokenPayload = Depends(deps.get_current_admin),
):
    if crud_voucher.voucher.get_by_code(db, code=voucher_in.code):
        raise AlreadyExistsError(f"Voucher code '{voucher_in.code}' already exists.")
    voucher = crud_voucher.voucher.create_with_creator(
        db, obj_in=voucher_in, created_by=current_admin.sub
    )
    logger.info(f"Voucher {voucher.code} created by {current_admin.sub}")
    return voucher


@router.patch("/{voucher_id}", response_model=Voucher)
def update_voucher(
    voucher_id: str,
    voucher_in: VoucherUpdate,
    db: Session = Depends(get_db),
    current_admin: TokenPayload = Depends(deps.get_current_admin),
):
    voucher = _get_voucher_or_404(db, voucher_id)
    update_data = voucher_in.model_dump(exclude_unset=True)

    starts_at = as_utc(update_data.get("starts_at", voucher.starts_at))
    ends_at = as_utc(update_data.get("ends_at", voucher.ends_at))
    if starts_at and ends_at and ends_at < starts_at:
        raise RequestValidationFailed(
            "endsAt must not be before startsAt.", details={"field": "endsAt"}
        )
    if (
        voucher.discount_type == "percentage"
        and update_data.get("discount_value") is not None
        and update_data["discount_value"] > 100
    ):
        raise RequestValidationFailed(
            "Percentage discount cannot exceed 100.", details={"field": "discountValue"}
        )
    return crud_voucher.voucher.update(db, db_obj=voucher, obj_in=update_data)


@router.post("/{voucher_id}/deactivate", response_model=Voucher)
def deactivate_voucher(
    voucher_id: str,
    db: Session = Depends(get_db),
    current_admin: TokenPayload = Depends(deps.get_current_admin),
):
    voucher = _get_voucher_or_404(db, voucher_id)
    return crud_voucher.voucher.deactivate(db, db_obj=voucher)


@router.post(
    "/{voucher_id}/assign",
    response_model=SavedVoucher,
    status_code=status.HTTP_201_CREATED,
)
def assign_voucher(
    voucher_id: str,
    assign_in: VoucherAssignRequest,
    db: Session = Depends(get_db),
    current_admin: TokenPayload = Depends(deps.get_current_admin),
):
    """Grant a voucher (typically a private one) to a user."""
    voucher = _get_voucher_or_404(db, voucher_id)
    return crud_user_voucher.user_voucher.save(
        db, user_id=assign_in.user_id, voucher_id=voucher.id
    )
