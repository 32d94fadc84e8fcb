"""
Tests for voucher eligibility rules.

Rules run in a fixed order and the first failure wins:
NotFound, Expired, Inactive, Unauthorized, BelowMinimum, UsageExceeded.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from app.models.voucher import Voucher
from app.services.pricing import VoucherRejectionReason, validate_voucher

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_voucher(**overrides) -> Voucher:
    fields = dict(
        id="vch_1",
        code="SALE20",
        name="Sale",
        discount_type="percentage",
        discount_value=20,
        min_purchase_amount=200000,
        max_discount_amount=80000,
        usage_limit=None,
        used_count=0,
        per_user_limit=1,
        is_public=True,
        is_active=True,
        starts_at=NOW - timedelta(days=1),
        ends_at=NOW + timedelta(days=1),
    )
    fields.update(overrides)
    return Voucher(**fields)


class TestVoucherValidator:
    def test_percentage_discount_is_capped(self):
        """20% of 500.000 is 100.000, capped at 80.000."""
        result = validate_voucher(make_voucher(), code="SALE20", subtotal=500000, now=NOW)

        assert result.applicable is True
        assert result.discount_amount == 80000
        assert result.reason is None

    def test_fixed_discount(self):
        voucher = make_voucher(discount_type="fixed", discount_value=50000, max_discount_amount=None)
        result = validate_voucher(voucher, code="SALE20", subtotal=300000, now=NOW)

        assert result.discount_amount == 50000

    def test_fixed_discount_never_exceeds_subtotal(self):
        voucher = make_voucher(
            discount_type="fixed", discount_value=500000, min_purchase_amount=0
        )
        result = validate_voucher(voucher, code="SALE20", subtotal=120000, now=NOW)

        assert result.discount_amount == 120000

    def test_code_is_matched_case_insensitively(self):
        result = validate_voucher(make_voucher(), code="  sale20 ", subtotal=500000, now=NOW)

        assert result.applicable is True
        assert result.code == "SALE20"

    def test_not_found(self):
        result = validate_voucher(None, code="nope", subtotal=500000, now=NOW)

        assert result.applicable is False
        assert result.reason == VoucherRejectionReason.NotFound
        assert result.discount_amount == 0
        assert "NOPE" in result.message

    def test_expired(self):
        voucher = make_voucher(ends_at=NOW - timedelta(seconds=1))
        result = validate_voucher(voucher, code="SALE20", subtotal=500000, now=NOW)

        assert result.reason == VoucherRejectionReason.Expired
        assert "expired" in result.message

    def test_not_started_reports_expired(self):
        voucher = make_voucher(starts_at=NOW + timedelta(hours=1))
        result = validate_voucher(voucher, code="SALE20", subtotal=500000, now=NOW)

        assert result.reason == VoucherRejectionReason.Expired
        assert "not valid yet" in result.message

    def test_window_is_inclusive(self):
        voucher = make_voucher(starts_at=NOW, ends_at=NOW)
        result = validate_voucher(voucher, code="SALE20", subtotal=500000, now=NOW)

        assert result.applicable is True

    def test_naive_dates_are_treated_as_utc(self):
        voucher = make_voucher(
            starts_at=datetime(2026, 5, 31, 12, 0), ends_at=datetime(2026, 6, 2, 12, 0)
        )
        result = validate_voucher(voucher, code="SALE20", subtotal=500000, now=NOW)

        assert result.applicable is True

    def test_inactive(self):
        voucher = make_voucher(is_active=False)
        result = validate_voucher(voucher, code="SALE20", subtotal=500000, now=NOW)

        assert result.reason == VoucherRejectionReason.Inactive

    def test_expired_is_checked_before_inactive(self):
        voucher = make_voucher(is_active=False, ends_at=NOW - timedelta(days=1))
        result = validate_voucher(voucher, code="SALE20", subtotal=500000, now=NOW)

        assert result.reason == VoucherRejectionReason.Expired

    def test_private_voucher_requires_saved_record(self):
        voucher = make_voucher(is_public=False)
        result = validate_voucher(voucher, code="SALE20", subtotal=500000, now=NOW)

        assert result.reason == VoucherRejectionReason.Unauthorized

    def test_private_voucher_with_saved_record(self):
        voucher = make_voucher(is_public=False)
        saved = SimpleNamespace(usage_count=0)
        result = validate_voucher(
            voucher, code="SALE20", subtotal=500000, now=NOW, user_voucher=saved
        )

        assert result.applicable is True

    def test_public_voucher_does_not_need_saving(self):
        result = validate_voucher(
            make_voucher(), code="SALE20", subtotal=500000, now=NOW, user_voucher=None
        )

        assert result.applicable is True

    def test_below_minimum(self):
        """Subtotal 500.000 against a 600.000 minimum."""
        voucher = make_voucher(min_purchase_amount=600000)
        result = validate_voucher(voucher, code="SALE20", subtotal=500000, now=NOW)

        assert result.applicable is False
        assert result.discount_amount == 0
        assert result.reason == VoucherRejectionReason.BelowMinimum
        assert "600.000đ" in result.message
        assert "100.000đ" in result.message

    def test_global_usage_exhausted(self):
        voucher = make_voucher(usage_limit=100, used_count=100)
        result = validate_voucher(voucher, code="SALE20", subtotal=500000, now=NOW)

        assert result.reason == VoucherRejectionReason.UsageExceeded

    def test_per_user_usage_exhausted(self):
        voucher = make_voucher(per_user_limit=2)
        saved = SimpleNamespace(usage_count=2)
        result = validate_voucher(
            voucher, code="SALE20", subtotal=500000, now=NOW, user_voucher=saved
        )

        assert result.reason == VoucherRejectionReason.UsageExceeded
        assert "maximum number of times" in result.message

    def test_per_user_usage_below_limit(self):
        voucher = make_voucher(per_user_limit=2)
        saved = SimpleNamespace(usage_count=1)
        result = validate_voucher(
            voucher, code="SALE20", subtotal=500000, now=NOW, user_voucher=saved
        )

        assert result.applicable is True
