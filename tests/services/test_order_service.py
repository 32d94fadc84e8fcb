"""
Tests for OrderService against a real (SQLite) database.

Covers preview, create re-validation, the side effects applied with an
order, and the lifecycle transitions that undo or extend them.
"""

from datetime import timedelta

import pytest

from app.constants.order_status import OrderStatus, PaymentMethod
from app.core.exceptions import (
    AddressChangeLimitError,
    InsufficientPointsError,
    InvalidInputError,
    InvalidTransitionError,
    MethodUnavailableError,
    NotFoundError,
    OutOfStockError,
    PermissionDeniedError,
    PreviewStaleError,
    RequestValidationFailed,
    VoucherNoLongerValidError,
)
from app.models.loyalty_transaction import LoyaltyTransaction
from app.models.order import Order
from app.models.product import Product
from app.models.shipping_method import ShippingMethod
from app.models.user import User
from app.models.user_voucher import UserVoucher
from app.models.voucher import Voucher
from app.schemas.order import OrderStatusUpdate, PaymentResult
from app.services.order_service import OrderService
from app.utils.time import utcnow
from tests.utils.catalog import create_product, create_shipping_methods, create_user
from tests.utils.order import (
    ADDRESS,
    create_request_from_preview,
    place_order,
    preview_request,
)
from tests.utils.voucher import create_voucher, save_voucher_for


@pytest.fixture
def catalog(db_session):
    create_shipping_methods(db_session)
    return {
        "shirt": create_product(db_session, code="SHIRT", price=250000, stock=10),
        "cap": create_product(
            db_session, code="CAP", name="Cap", price=100000, discount_percent=10, stock=5
        ),
    }


@pytest.fixture
def service(db_session):
    return OrderService(db_session)


def reload(db_session, model, id):
    db_session.expire_all()
    return db_session.get(model, id)


# ---------------------------------------------------------------------- #
# Preview
# ---------------------------------------------------------------------- #


class TestPreview:
    def test_prices_lines_shipping_voucher_and_points(self, db_session, service, catalog):
        create_user(db_session, points=200000)
        create_voucher(db_session)

        preview = service.preview(
            user_id="user_123",
            request=preview_request(
                [(catalog["shirt"].id, 2)], voucher_code="sale20", points_to_apply=100000
            ),
        )

        assert preview["subtotal"] == 500000
        assert preview["shipping_fee"] == 30000
        assert preview["discount"] == 80000
        assert preview["voucher_code"] == "SALE20"
        assert preview["points_applied"] == 100000
        assert preview["max_applicable_points"] == 200000
        assert preview["total_amount"] == 350000
        assert preview["payment_method"] == PaymentMethod.COD

    def test_preview_is_idempotent(self, db_session, service, catalog):
        create_user(db_session, points=50000)
        create_voucher(db_session)
        request = preview_request(
            [(catalog["shirt"].id, 1), (catalog["cap"].id, 2)],
            voucher_code="SALE20",
            points_to_apply=20000,
        )

        first = service.preview(user_id="user_123", request=request)
        second = service.preview(user_id="user_123", request=request)

        assert first == second

    def test_preview_does_not_persist_anything(self, db_session, service, catalog):
        create_voucher(db_session)
        service.preview(
            user_id="user_123",
            request=preview_request([(catalog["shirt"].id, 1)], voucher_code="SALE20"),
        )

        assert db_session.query(Order).count() == 0
        assert db_session.query(UserVoucher).count() == 0
        assert reload(db_session, Product, catalog["shirt"].id).stock == 10

    def test_rejected_voucher_is_dropped_with_reason(self, db_session, service, catalog):
        create_voucher(db_session, code="BIG", min_purchase_amount=600000)

        preview = service.preview(
            user_id="user_123",
            request=preview_request([(catalog["shirt"].id, 2)], voucher_code="BIG"),
        )

        assert preview["discount"] == 0
        assert preview["voucher_code"] is None
        assert preview["voucher_rejection"]["reason"] == "BelowMinimum"
        assert preview["total_amount"] == 530000

    def test_points_are_clamped_to_ceiling(self, db_session, service, catalog):
        create_user(db_session, points=1000000)

        preview = service.preview(
            user_id="user_123",
            request=preview_request([(catalog["shirt"].id, 2)], points_to_apply=300000),
        )

        assert preview["points_applied"] == 250000

    def test_default_shipping_method(self, service, catalog):
        preview = service.preview(
            user_id="user_123",
            request=preview_request([(catalog["shirt"].id, 1)], shipping_method=None),
        )

        assert preview["shipping_method"] == "standard"
        assert preview["shipping_fee"] == 30000

    def test_unknown_shipping_method(self, service, catalog):
        with pytest.raises(MethodUnavailableError):
            service.preview(
                user_id="user_123",
                request=preview_request([(catalog["shirt"].id, 1)], shipping_method="drone"),
            )

    def test_out_of_stock(self, service, catalog):
        with pytest.raises(OutOfStockError):
            service.preview(
                user_id="user_123",
                request=preview_request([(catalog["cap"].id, 6)]),
            )


# ---------------------------------------------------------------------- #
# Create
# ---------------------------------------------------------------------- #


class TestPlaceOrder:
    def test_creates_order_and_applies_side_effects(self, db_session, service, catalog):
        create_user(db_session, points=200000)
        voucher = create_voucher(db_session, usage_limit=10)

        order = place_order(
            db_session,
            [(catalog["shirt"].id, 2)],
            voucher_code="SALE20",
            points_to_apply=100000,
        )

        assert order.status == OrderStatus.new.value
        assert order.order_number.startswith("ORD-")
        assert order.total_amount == 350000
        assert order.voucher_code == "SALE20"
        assert [line.quantity for line in order.lines] == [2]
        assert [entry.status for entry in order.timeline] == ["new"]
        assert order.timeline[0].user_type == "user"

        assert reload(db_session, Product, catalog["shirt"].id).stock == 8
        assert reload(db_session, Voucher, voucher.id).used_count == 1
        record = db_session.query(UserVoucher).filter_by(voucher_id=voucher.id).one()
        assert record.usage_count == 1
        assert reload(db_session, User, "user_123").loyalty_points == 100000
        ledger = db_session.query(LoyaltyTransaction).filter_by(order_id=order.id).one()
        assert ledger.points == -100000
        assert ledger.transaction_type == "redeemed"

    def test_first_order_creates_local_user(self, db_session, catalog):
        place_order(db_session, [(catalog["shirt"].id, 1)], user_id="user_new")

        assert db_session.get(User, "user_new") is not None

    def test_tampered_total_is_stale(self, db_session, service, catalog):
        preview = service.preview(
            user_id="user_123", request=preview_request([(catalog["shirt"].id, 1)])
        )
        request = create_request_from_preview(
            preview, total_amount=preview["total_amount"] - 1000
        )

        with pytest.raises(PreviewStaleError) as exc_info:
            service.place_order(user_id="user_123", user_name="Test User", request=request)

        assert exc_info.value.code == "PreviewStale"
        assert db_session.query(Order).count() == 0

    def test_price_change_after_preview_is_stale(self, db_session, service, catalog):
        preview = service.preview(
            user_id="user_123", request=preview_request([(catalog["shirt"].id, 1)])
        )
        catalog["shirt"].price = 260000
        db_session.commit()

        with pytest.raises(PreviewStaleError):
            service.place_order(
                user_id="user_123",
                user_name="Test User",
                request=create_request_from_preview(preview),
            )

    def test_tampered_line_price_is_stale(self, db_session, service, catalog):
        preview = service.preview(
            user_id="user_123", request=preview_request([(catalog["shirt"].id, 1)])
        )
        lines = [dict(preview["order_lines"][0], unit_price=1)]

        with pytest.raises(PreviewStaleError):
            service.place_order(
                user_id="user_123",
                user_name="Test User",
                request=create_request_from_preview(preview, order_lines=lines),
            )

    def test_voucher_exhausted_after_preview(self, db_session, service, catalog):
        voucher = create_voucher(db_session, usage_limit=1)
        preview = service.preview(
            user_id="user_123",
            request=preview_request([(catalog["shirt"].id, 2)], voucher_code="SALE20"),
        )
        voucher.used_count = 1
        db_session.commit()

        with pytest.raises(VoucherNoLongerValidError) as exc_info:
            service.place_order(
                user_id="user_123",
                user_name="Test User",
                request=create_request_from_preview(preview),
            )

        assert exc_info.value.details == {"reason": "UsageExceeded"}

    def test_per_user_limit_allows_repeat_use(self, db_session, catalog):
        voucher = create_voucher(db_session, per_user_limit=2)

        place_order(db_session, [(catalog["shirt"].id, 2)], voucher_code="SALE20")
        place_order(db_session, [(catalog["shirt"].id, 2)], voucher_code="SALE20")

        records = db_session.query(UserVoucher).filter_by(voucher_id=voucher.id).all()
        assert len(records) == 1
        assert records[0].usage_count == 2

        preview = OrderService(db_session).preview(
            user_id="user_123",
            request=preview_request([(catalog["shirt"].id, 2)], voucher_code="SALE20"),
        )
        assert preview["voucher_rejection"]["reason"] == "UsageExceeded"

    def test_points_above_balance(self, db_session, service, catalog):
        create_user(db_session, points=100000)
        preview = service.preview(
            user_id="user_123",
            request=preview_request([(catalog["shirt"].id, 2)], points_to_apply=100000),
        )
        request = create_request_from_preview(
            preview,
            points_applied=150000,
            total_amount=preview["total_amount"] - 50000,
        )

        with pytest.raises(InsufficientPointsError):
            service.place_order(user_id="user_123", user_name="Test User", request=request)

    def test_create_requires_shipping_method(self, service, catalog):
        preview = service.preview(
            user_id="user_123", request=preview_request([(catalog["shirt"].id, 1)])
        )

        with pytest.raises(RequestValidationFailed):
            service.place_order(
                user_id="user_123",
                user_name="Test User",
                request=create_request_from_preview(preview, shipping_method=None),
            )

    def test_shipping_method_disabled_after_preview(self, db_session, service, catalog):
        create_user(db_session, points=100000)
        preview = service.preview(
            user_id="user_123",
            request=preview_request([(catalog["shirt"].id, 2)], points_to_apply=50000),
        )
        standard = db_session.query(ShippingMethod).filter_by(code="standard").one()
        standard.is_active = False
        db_session.commit()

        with pytest.raises(MethodUnavailableError) as exc_info:
            service.place_order(
                user_id="user_123",
                user_name="Test User",
                request=create_request_from_preview(preview),
            )

        assert exc_info.value.details == {"shippingMethod": "standard"}
        assert db_session.query(Order).count() == 0
        assert db_session.query(LoyaltyTransaction).count() == 0
        assert reload(db_session, Product, catalog["shirt"].id).stock == 10
        assert reload(db_session, User, "user_123").loyalty_points == 100000

    def test_failure_rolls_back_every_side_effect(
        self, db_session, service, catalog, monkeypatch
    ):
        """A failure after stock and voucher updates leaves nothing behind."""
        create_user(db_session, points=200000)
        voucher = create_voucher(db_session)
        preview = service.preview(
            user_id="user_123",
            request=preview_request(
                [(catalog["shirt"].id, 2)], voucher_code="SALE20", points_to_apply=50000
            ),
        )

        def fail(order):
            raise InsufficientPointsError("balance changed")

        monkeypatch.setattr(service.loyalty, "redeem_for_order", fail)

        with pytest.raises(InsufficientPointsError):
            service.place_order(
                user_id="user_123",
                user_name="Test User",
                request=create_request_from_preview(preview),
            )

        assert db_session.query(Order).count() == 0
        assert reload(db_session, Product, catalog["shirt"].id).stock == 10
        assert reload(db_session, Voucher, voucher.id).used_count == 0
        assert db_session.query(UserVoucher).count() == 0
        assert reload(db_session, User, "user_123").loyalty_points == 200000


# ---------------------------------------------------------------------- #
# Lifecycle
# ---------------------------------------------------------------------- #


def confirm(db_session, service, order):
    """COD orders reach confirmed through the auto-confirm sweep."""
    row = db_session.get(Order, order.id)
    row.created_at = utcnow() - timedelta(hours=1)
    db_session.commit()
    service.auto_confirm_cod_orders()
    return service.get_order(order.id)


def advance(service, order, *statuses):
    for status in statuses:
        order = service.admin_update_status(
            order.id, admin_name="Shop Admin", update=OrderStatusUpdate(status=status)
        )
    return order


class TestCancellation:
    def test_user_cancels_new_order_and_gets_stock_and_points_back(
        self, db_session, service, catalog
    ):
        create_user(db_session, points=100000)
        order = place_order(db_session, [(catalog["shirt"].id, 2)], points_to_apply=100000)

        cancelled = service.cancel_by_user(
            order.id, user_id="user_123", user_name="Test User", reason="Changed my mind"
        )

        assert cancelled.status == "cancelled"
        assert cancelled.cancelled_by == "user"
        assert cancelled.cancelled_at is not None
        assert [e.status for e in cancelled.timeline] == ["new", "cancelled"]
        assert cancelled.timeline[-1].reason == "Changed my mind"
        assert reload(db_session, Product, catalog["shirt"].id).stock == 10
        assert reload(db_session, User, "user_123").loyalty_points == 100000

    def test_voucher_usage_is_not_given_back(self, db_session, service, catalog):
        voucher = create_voucher(db_session)
        order = place_order(db_session, [(catalog["shirt"].id, 2)], voucher_code="SALE20")

        service.cancel_by_user(order.id, user_id="user_123", user_name="Test User")

        assert reload(db_session, Voucher, voucher.id).used_count == 1

    def test_other_users_order_is_not_found(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])

        with pytest.raises(NotFoundError):
            service.cancel_by_user(order.id, user_id="someone_else", user_name="X")

    def test_shipped_order_needs_approval(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])
        order = confirm(db_session, service, order)
        order = advance(service, order, "preparing", "shipping_in_progress")
        assert order.status == "shipping_in_progress"

        requested = service.cancel_by_user(
            order.id, user_id="user_123", user_name="Test User", reason="Too slow"
        )

        assert requested.status == "cancellation_requested"
        assert requested.status_before_cancellation_request == "shipping_in_progress"
        assert reload(db_session, Product, catalog["shirt"].id).stock == 9

    def test_rejecting_request_resumes_prior_status(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])
        order = confirm(db_session, service, order)
        order = advance(service, order, "preparing", "shipping_in_progress")
        shipping_at = order.shipping_at
        service.cancel_by_user(order.id, user_id="user_123", user_name="Test User")

        resumed = service.reject_cancellation(
            order.id, admin_name="Shop Admin", reason="Already at your door"
        )

        assert resumed.status == "shipping_in_progress"
        assert resumed.shipping_at == shipping_at
        assert resumed.status_before_cancellation_request is None
        assert resumed.timeline[-1].status == "shipping_in_progress"
        assert "rejected" in resumed.timeline[-1].description

    def test_approving_request_cancels_and_restocks(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])
        order = confirm(db_session, service, order)
        order = advance(service, order, "preparing", "shipping_in_progress")
        service.cancel_by_user(order.id, user_id="user_123", user_name="Test User")

        cancelled = service.approve_cancellation(order.id, admin_name="Shop Admin")

        assert cancelled.status == "cancelled"
        assert reload(db_session, Product, catalog["shirt"].id).stock == 10

    def test_completed_order_cannot_be_cancelled(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])
        order = confirm(db_session, service, order)
        order = advance(service, order, "preparing", "shipping_in_progress", "delivered")
        service.confirm_received(order.id, user_id="user_123", user_name="Test User")

        with pytest.raises(InvalidTransitionError):
            service.cancel_by_user(order.id, user_id="user_123", user_name="Test User")


class TestAdminStatus:
    def test_timeline_is_append_only_and_ordered(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])
        order = confirm(db_session, service, order)
        order = service.admin_update_status(
            order.id, admin_name="Shop Admin", update=OrderStatusUpdate(status="preparing")
        )
        first_entry_id = order.timeline[0].id
        order = service.admin_update_status(
            order.id,
            admin_name="Shop Admin",
            update=OrderStatusUpdate(
                status="shipping_in_progress", tracking_number="VN123", carrier="GHN"
            ),
        )

        assert [e.status for e in order.timeline] == [
            "new",
            "confirmed",
            "preparing",
            "shipping_in_progress",
        ]
        assert [e.sequence for e in order.timeline] == [0, 1, 2, 3]
        assert order.timeline[0].id == first_entry_id
        assert order.timeline[-1].extra == {"trackingNumber": "VN123", "carrier": "GHN"}
        assert order.timeline[-1].user_type == "admin"

    def test_invalid_transition_changes_nothing(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])

        with pytest.raises(InvalidTransitionError):
            service.admin_update_status(
                order.id, admin_name="Shop Admin", update=OrderStatusUpdate(status="delivered")
            )

        order = service.get_order(order.id)
        assert order.status == "new"
        assert len(order.timeline) == 1

    def test_customer_statuses_cannot_be_set_manually(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])

        with pytest.raises(PermissionDeniedError):
            service.admin_update_status(
                order.id, admin_name="Shop Admin", update=OrderStatusUpdate(status="completed")
            )

    def test_cod_delivery_marks_paid(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])
        order = confirm(db_session, service, order)
        order = advance(service, order, "preparing", "shipping_in_progress", "delivered")

        assert order.payment_status == "completed"
        assert order.paid_at is not None

    def test_allowed_transitions(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])
        order = confirm(db_session, service, order)
        advance(service, order, "preparing")

        assert service.get_allowed_transitions(order.id) == [
            OrderStatus.shipping_in_progress,
            OrderStatus.cancelled,
        ]


class TestCompletionAndReturns:
    def test_confirm_received_awards_points(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 2)])
        order = confirm(db_session, service, order)
        order = advance(service, order, "preparing", "shipping_in_progress", "delivered")

        completed = service.confirm_received(
            order.id, user_id="user_123", user_name="Test User"
        )

        assert completed.status == "completed"
        assert completed.completed_at is not None
        # 1% of the 500.000 subtotal
        assert reload(db_session, User, "user_123").loyalty_points == 5000
        earned = (
            db_session.query(LoyaltyTransaction)
            .filter_by(order_id=order.id, transaction_type="earned")
            .one()
        )
        assert earned.points == 5000

    def test_confirm_received_requires_delivery(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])

        with pytest.raises(InvalidTransitionError):
            service.confirm_received(order.id, user_id="user_123", user_name="Test User")

    def test_return_then_refund(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])
        order = confirm(db_session, service, order)
        order = advance(service, order, "preparing", "shipping_in_progress", "delivered")

        requested = service.request_return(
            order.id, user_id="user_123", user_name="Test User", reason="Wrong size"
        )
        assert requested.status == "return_requested"
        assert requested.return_reason == "Wrong size"

        refunded = service.approve_return(order.id, admin_name="Shop Admin")
        assert refunded.status == "refunded"
        assert refunded.refunded_at is not None
        assert reload(db_session, Product, catalog["shirt"].id).stock == 10


NEW_ADDRESS = ADDRESS.model_copy(
    update={"recipient_name": "Tran Thi B", "street": "99 Nguyen Hue"}
)


class TestShippingAddressChange:
    def test_change_keeps_status_and_records_both_addresses(
        self, db_session, service, catalog
    ):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])

        updated = service.update_shipping_address(
            order.id, user_id="user_123", user_name="Test User", address=NEW_ADDRESS
        )

        assert updated.status == "new"
        assert updated.recipient_name == "Tran Thi B"
        assert updated.street == "99 Nguyen Hue"
        assert updated.address_change_count == 1
        assert updated.can_change_address is False
        assert [e.status for e in updated.timeline] == ["new", "new"]
        extra = updated.timeline[-1].extra
        assert extra["previousAddress"]["street"] == "12 Le Loi"
        assert extra["newAddress"]["street"] == "99 Nguyen Hue"

    def test_only_one_change_per_order(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])
        service.update_shipping_address(
            order.id, user_id="user_123", user_name="Test User", address=NEW_ADDRESS
        )

        with pytest.raises(AddressChangeLimitError):
            service.update_shipping_address(
                order.id, user_id="user_123", user_name="Test User", address=ADDRESS
            )

        order = service.get_order(order.id)
        assert order.street == "99 Nguyen Hue"
        assert len(order.timeline) == 2

    def test_allowed_while_confirmed(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])
        order = confirm(db_session, service, order)

        updated = service.update_shipping_address(
            order.id, user_id="user_123", user_name="Test User", address=NEW_ADDRESS
        )

        assert updated.status == "confirmed"
        assert updated.street == "99 Nguyen Hue"

    def test_not_allowed_once_preparing(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])
        order = confirm(db_session, service, order)
        advance(service, order, "preparing")

        with pytest.raises(InvalidTransitionError):
            service.update_shipping_address(
                order.id, user_id="user_123", user_name="Test User", address=NEW_ADDRESS
            )

        order = service.get_order(order.id)
        assert order.address_change_count == 0
        assert order.street == "12 Le Loi"

    def test_other_users_order_is_not_found(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])

        with pytest.raises(NotFoundError):
            service.update_shipping_address(
                order.id, user_id="someone_else", user_name="X", address=NEW_ADDRESS
            )


class TestOrderStats:
    def test_counts_are_zero_filled_and_grouped(self, db_session, service, catalog):
        first = place_order(db_session, [(catalog["shirt"].id, 1)])
        place_order(db_session, [(catalog["shirt"].id, 1)])
        service.cancel_by_user(first.id, user_id="user_123", user_name="Test User")

        stats = service.get_order_stats("user_123")

        assert stats["total"] == 2
        assert stats["by_status"]["new"] == 1
        assert stats["by_status"]["cancelled"] == 1
        assert stats["by_status"]["refunded"] == 0
        assert len(stats["by_status"]) == len(OrderStatus)
        assert stats["by_group"] == {
            "pending": 1,
            "processing": 0,
            "shipping": 0,
            "completed": 0,
            "cancelled": 1,
            "return_refund": 0,
        }

    def test_user_stats_exclude_other_users(self, db_session, service, catalog):
        place_order(db_session, [(catalog["shirt"].id, 1)])
        place_order(db_session, [(catalog["shirt"].id, 1)], user_id="user_other")

        assert service.get_order_stats("user_123")["total"] == 1
        assert service.get_order_stats()["total"] == 2
        assert service.get_order_stats()["by_status"]["new"] == 2


class TestPayments:
    def _online_order(self, db_session, catalog, method=PaymentMethod.VNPAY):
        return place_order(db_session, [(catalog["shirt"].id, 1)], payment_method=method)

    def test_successful_payment_confirms_order(self, db_session, service, catalog):
        order = self._online_order(db_session, catalog)

        paid = service.record_payment(
            order.id,
            PaymentResult(success=True, transaction_id="vnp_1", amount=order.total_amount),
        )

        assert paid.status == "confirmed"
        assert paid.payment_status == "completed"
        assert paid.transaction_id == "vnp_1"
        assert paid.timeline[-1].user_type == "system"

    def test_duplicate_callback_is_ignored(self, db_session, service, catalog):
        order = self._online_order(db_session, catalog)
        result = PaymentResult(success=True, transaction_id="vnp_1", amount=order.total_amount)
        service.record_payment(order.id, result)

        again = service.record_payment(order.id, result)

        assert again.status == "confirmed"
        assert len(again.timeline) == 2

    def test_failed_payment_keeps_order_new(self, db_session, service, catalog):
        order = self._online_order(db_session, catalog)

        failed = service.record_payment(
            order.id, PaymentResult(success=False, message="Card declined")
        )

        assert failed.status == "new"
        assert failed.payment_status == "failed"

    def test_amount_mismatch(self, db_session, service, catalog):
        order = self._online_order(db_session, catalog)

        with pytest.raises(InvalidInputError):
            service.record_payment(order.id, PaymentResult(success=True, amount=1))

    def test_cod_orders_are_not_paid_online(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])

        with pytest.raises(InvalidInputError):
            service.record_payment(order.id, PaymentResult(success=True))


class TestSweeps:
    def _age(self, db_session, order, **delta):
        order = db_session.get(Order, order.id)
        order.created_at = utcnow() - timedelta(**delta)
        db_session.commit()

    def test_cod_orders_are_confirmed_after_window(self, db_session, service, catalog):
        old = place_order(db_session, [(catalog["shirt"].id, 1)])
        fresh = place_order(db_session, [(catalog["shirt"].id, 1)])
        self._age(db_session, old, minutes=45)

        assert service.auto_confirm_cod_orders() == 1
        assert service.get_order(old.id).status == "confirmed"
        assert service.get_order(old.id).timeline[-1].user_type == "system"
        assert service.get_order(fresh.id).status == "new"

    def test_unpaid_online_orders_expire(self, db_session, service, catalog):
        create_user(db_session, points=100000)
        order = place_order(
            db_session,
            [(catalog["shirt"].id, 2)],
            payment_method=PaymentMethod.MOMO,
            points_to_apply=100000,
        )
        self._age(db_session, order, minutes=31)

        assert service.expire_unpaid_orders() == 1

        expired = service.get_order(order.id)
        assert expired.status == "payment_overdue"
        assert expired.status_group == "cancelled"
        assert expired.cancelled_by == "system"
        assert reload(db_session, Product, catalog["shirt"].id).stock == 10
        assert reload(db_session, User, "user_123").loyalty_points == 100000

    def test_expiry_ignores_cod_orders(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])
        self._age(db_session, order, hours=3)

        assert service.expire_unpaid_orders() == 0

    def test_delivered_orders_complete_after_window(self, db_session, service, catalog):
        order = place_order(db_session, [(catalog["shirt"].id, 1)])
        order = confirm(db_session, service, order)
        order = advance(service, order, "preparing", "shipping_in_progress", "delivered")
        row = db_session.get(Order, order.id)
        row.delivered_at = utcnow() - timedelta(days=8)
        db_session.commit()

        assert service.auto_complete_delivered_orders() == 1

        completed = service.get_order(order.id)
        assert completed.status == "completed"
        assert reload(db_session, User, "user_123").loyalty_points == 2500

    def test_sweep_skips_nothing_when_nothing_is_due(self, db_session, service, catalog):
        place_order(db_session, [(catalog["shirt"].id, 1)])

        assert service.auto_confirm_cod_orders() == 0
        assert service.auto_complete_delivered_orders() == 0
