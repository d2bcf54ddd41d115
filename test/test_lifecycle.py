from datetime import timedelta

import pytest

from _helper import T0, make_order
from app.errors import InvalidTransition
from app.lifecycle import apply_transition, estimate_delivery, render_timeline, tracking_event_for
from app.order_state import OrderStatus


def test_forward_step_succeeds_and_updates_timestamp():
    order = make_order(OrderStatus.PENDING)
    at = T0 + timedelta(hours=1)
    result = apply_transition(order, OrderStatus.CONFIRMED, at=at)
    assert result.ok
    assert result.from_status == OrderStatus.PENDING
    assert result.order.status == OrderStatus.CONFIRMED
    assert result.order.updated_at == at
    assert result.order.delivered_at is None
    # input is not mutated
    assert order.status == OrderStatus.PENDING
    assert order.updated_at == T0


def test_accepts_plain_string_status():
    result = apply_transition(make_order("confirmed"), "processing")
    assert result.ok
    assert result.order.status == OrderStatus.PROCESSING


def test_skipping_a_step_fails():
    order = make_order(OrderStatus.PENDING)
    result = apply_transition(order, OrderStatus.PROCESSING)
    assert not result.ok
    assert isinstance(result.error, InvalidTransition)
    assert result.error.current_status == "pending"
    assert result.error.requested_status == "processing"
    assert result.order is order


def test_delivered_sets_delivered_at():
    at = T0 + timedelta(days=3)
    result = apply_transition(make_order(OrderStatus.SHIPPED), OrderStatus.DELIVERED, at=at)
    assert result.ok
    assert result.order.delivered_at == at


def test_shipped_can_be_cancelled():
    assert apply_transition(make_order(OrderStatus.SHIPPED), OrderStatus.CANCELLED).ok


def test_refund_only_from_delivered():
    assert apply_transition(make_order(OrderStatus.DELIVERED), OrderStatus.REFUNDED).ok
    assert not apply_transition(make_order(OrderStatus.SHIPPED), OrderStatus.REFUNDED).ok


@pytest.mark.parametrize("requested", list(OrderStatus))
def test_cancelled_is_terminal(requested):
    result = apply_transition(make_order(OrderStatus.CANCELLED), requested)
    assert not result.ok
    assert result.order.status == OrderStatus.CANCELLED


def test_same_status_is_rejected():
    result = apply_transition(make_order(OrderStatus.PROCESSING), OrderStatus.PROCESSING)
    assert not result.ok


def test_unknown_status_is_an_error_value():
    result = apply_transition(make_order(), "paid")
    assert not result.ok
    assert "Unknown" in result.error.reason


def test_timeline_for_processing_order():
    steps = render_timeline(make_order(OrderStatus.PROCESSING))
    assert [s.status for s in steps] == [
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
    ]
    assert [s.completed for s in steps] == [True, True, True, False, False]
    assert [s.current for s in steps] == [False, False, True, False, False]
    assert steps[3].pending and steps[4].pending


def test_timeline_for_delivered_order_is_complete():
    steps = render_timeline(make_order(OrderStatus.DELIVERED))
    assert all(s.completed for s in steps)
    assert steps[-1].current


@pytest.mark.parametrize("status", [OrderStatus.CANCELLED, OrderStatus.REFUNDED])
def test_timeline_for_abandoned_order_is_single_step(status):
    steps = render_timeline(make_order(status))
    assert len(steps) == 1
    assert steps[0].status == status
    assert steps[0].completed and steps[0].current


def test_estimated_delivery_four_days_after_shipping():
    order = make_order(OrderStatus.PROCESSING)
    shipped = apply_transition(order, OrderStatus.SHIPPED, at=T0 + timedelta(days=1)).order
    history = [tracking_event_for(order, "Order placed"), tracking_event_for(shipped)]
    assert estimate_delivery(shipped, history) == T0 + timedelta(days=5)


def test_no_estimate_unless_shipped():
    assert estimate_delivery(make_order(OrderStatus.CONFIRMED), []) is None
    assert estimate_delivery(make_order(OrderStatus.SHIPPED), []) is None
    delivered = make_order(OrderStatus.DELIVERED)
    assert estimate_delivery(delivered, [tracking_event_for(delivered)]) is None
