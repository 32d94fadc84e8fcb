# app/services/pricing/voucher_validator.py
"""
Voucher eligibility rules.

Checks run in a fixed order and stop at the first failure:
NotFound, Expired, Inactive, Unauthorized, BelowMinimum, UsageExceeded.
A failed check is a result, not an exception, so preview can drop the
voucher and keep pricing the rest of the order.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from app.utils.money import format_vnd
from app.utils.time import as_utc, utcnow


class VoucherRejectionReason(str, Enum):
    NotFound = "NotFound"
    Expired = "Expired"
    Inactive = "Inactive"
    Unauthorized = "Unauthorized"
    BelowMinimum = "BelowMinimum"
    UsageExceeded = "UsageExceeded"


@dataclass
class VoucherValidation:
    code: str
    applicable: bool
    discount_amount: int = 0
    reason: Optional[VoucherRejectionReason] = None
    message: Optional[str] = None
    voucher: Optional[object] = field(default=None, repr=False, compare=False)

    @classmethod
    def reject(cls, code: str, reason: VoucherRejectionReason, message: str, voucher=None):
        return cls(
            code=code,
            applicable=False,
            discount_amount=0,
            reason=reason,
            message=message,
            voucher=voucher,
        )


def validate_voucher(
    voucher,
    *,
    code: str,
    subtotal: int,
    now: Optional[datetime] = None,
    user_voucher=None,
) -> VoucherValidation:
    """
    Decide whether a voucher applies to a subtotal for one user.

    Args:
        voucher: Voucher record matched by code, or None
        code: the code as the user typed it
        subtotal: order subtotal in the smallest currency unit
        now: evaluation time (defaults to current UTC time)
        user_voucher: the user's UserVoucher for this voucher, or None

    Returns:
        VoucherValidation with the discount on success, or the first
        failed rule otherwise.
    """
    code = code.strip().upper()
    now = as_utc(now) if now else utcnow()

    if voucher is None:
        return VoucherValidation.reject(
            code, VoucherRejectionReason.NotFound, f"Voucher {code} does not exist."
        )

    code = voucher.code
    if not voucher.is_within_window(now):
        if now < as_utc(voucher.starts_at):
            message = f"Voucher {code} is not valid yet."
        else:
            message = f"Voucher {code} has expired."
        return VoucherValidation.reject(
            code, VoucherRejectionReason.Expired, message, voucher
        )

    if not voucher.is_active:
        return VoucherValidation.reject(
            code,
            VoucherRejectionReason.Inactive,
            f"Voucher {code} is no longer active.",
            voucher,
        )

    # Saving is only an authorization gate for private vouchers
    if not voucher.is_public and user_voucher is None:
        return VoucherValidation.reject(
            code,
            VoucherRejectionReason.Unauthorized,
            f"Voucher {code} is not available for your account.",
            voucher,
        )

    minimum = voucher.min_purchase_amount or 0
    if subtotal < minimum:
        shortfall = minimum - subtotal
        return VoucherValidation.reject(
            code,
            VoucherRejectionReason.BelowMinimum,
            f"Voucher {code} requires a minimum order of {format_vnd(minimum)}; "
            f"add {format_vnd(shortfall)} more to use it.",
            voucher,
        )

    if voucher.usage_limit is not None and (voucher.used_count or 0) >= voucher.usage_limit:
        return VoucherValidation.reject(
            code,
            VoucherRejectionReason.UsageExceeded,
            f"Voucher {code} has been fully redeemed.",
            voucher,
        )

    if user_voucher is not None and (user_voucher.usage_count or 0) >= voucher.per_user_limit:
        return VoucherValidation.reject(
            code,
            VoucherRejectionReason.UsageExceeded,
            f"You have already used voucher {code} the maximum number of times.",
            voucher,
        )

    return VoucherValidation(
        code=code,
        applicable=True,
        discount_amount=voucher.calculate_discount(subtotal),
        voucher=voucher,
    )
