import pytest

from app.constants.order_status import OrderStatus
from app.core.exceptions import InvalidTransitionError
from app.services import order_state

S = OrderStatus


@pytest.mark.parametrize(
    "current,target",
    [
        (S.new, S.confirmed),
        (S.new, S.payment_overdue),
        (S.confirmed, S.preparing),
        (S.preparing, S.shipping_in_progress),
        (S.shipping_in_progress, S.delivered),
        (S.shipping_in_progress, S.delivery_failed),
        (S.delivered, S.completed),
        (S.delivered, S.return_requested),
        (S.delivery_failed, S.shipping_in_progress),
        (S.return_requested, S.refunded),
        (S.cancellation_requested, S.cancelled),
    ],
)
def test_allowed_transitions(current, target):
    assert order_state.can_transition(current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (S.new, S.delivered),
        (S.confirmed, S.completed),
        (S.shipping_in_progress, S.cancelled),
        (S.delivered, S.preparing),
        (S.completed, S.cancelled),
        (S.cancelled, S.new),
        (S.refunded, S.return_requested),
        (S.payment_overdue, S.confirmed),
    ],
)
def test_rejected_transitions(current, target):
    assert not order_state.can_transition(current, target)
    with pytest.raises(InvalidTransitionError) as exc_info:
        order_state.ensure_transition(current, target)

    assert exc_info.value.details == {
        "currentStatus": current.value,
        "targetStatus": target.value,
    }


def test_terminal_statuses_have_no_exits():
    for status in (S.completed, S.cancelled, S.refunded, S.payment_overdue):
        assert order_state.VALID_TRANSITIONS[status] == frozenset()


def test_rejected_cancellation_resumes_only_the_prior_status():
    assert order_state.can_transition(
        S.cancellation_requested, S.delivered, previous="delivered"
    )
    assert not order_state.can_transition(
        S.cancellation_requested, S.shipping_in_progress, previous="delivered"
    )
    assert not order_state.can_transition(S.cancellation_requested, S.delivered)


def test_admin_targets_exclude_customer_and_system_statuses():
    assert order_state.admin_allowed_targets("new") == [S.cancelled]
    assert order_state.admin_allowed_targets("shipping_in_progress") == [
        S.delivered,
        S.delivery_failed,
    ]
    assert order_state.admin_allowed_targets("completed") == []


def test_shipping_entry_carries_tracking_details():
    draft = order_state.build_timeline_entry(
        "shipping_in_progress", tracking_number="VN123", carrier="GHN"
    )

    assert "VN123" in draft.description
    assert "GHN" in draft.description
    assert draft.extra == {"trackingNumber": "VN123", "carrier": "GHN"}


def test_cancellation_entry_carries_reason():
    draft = order_state.build_timeline_entry("cancelled", reason="Changed my mind")

    assert draft.description.endswith("Reason: Changed my mind")
    assert draft.reason == "Changed my mind"


def test_custom_description_wins():
    draft = order_state.build_timeline_entry("confirmed", description="Paid online.")

    assert draft.description == "Paid online."
