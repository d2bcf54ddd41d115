"""
Order lifecycle engine: validated status transitions and the timeline read model.

Synchronous and I/O free. apply_transition is single-writer per order; storage must
persist the result conditioned on the previously observed status (see app.db.transition_order).
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

from app.errors import InvalidTransition
from app.models import Order, TrackingEvent, utcnow
from app.order_state import (
    FORWARD_PATH,
    OrderStatus,
    display_for,
    is_valid_transition,
    rejection_reason,
)


@dataclass(frozen=True)
class TransitionResult:
    order: Order
    from_status: OrderStatus
    error: InvalidTransition | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class TimelineStep:
    index: int
    status: OrderStatus
    label: str
    completed: bool
    current: bool

    @property
    def pending(self) -> bool:
        return not self.completed


def apply_transition(order: Order, requested_status: OrderStatus | str, at: datetime | None = None) -> TransitionResult:
    """
    Move order to requested_status if the state machine allows it.
    Returns a new Order on success; on failure the original order and an InvalidTransition.
    """
    current = order.status
    try:
        requested = OrderStatus(requested_status)
    except ValueError:
        return TransitionResult(
            order=order,
            from_status=current,
            error=InvalidTransition(current.value, str(requested_status), f"Unknown order status: {requested_status}"),
        )

    if not is_valid_transition(current, requested):
        return TransitionResult(
            order=order,
            from_status=current,
            error=InvalidTransition(current.value, requested.value, rejection_reason(current, requested)),
        )

    at = at or utcnow()
    update: dict = {"status": requested, "updated_at": at}
    if requested == OrderStatus.DELIVERED:
        update["delivered_at"] = at
    return TransitionResult(order=order.model_copy(update=update), from_status=current)


def render_timeline(order: Order) -> list[TimelineStep]:
    """Forward-path steps up to the current one; cancelled/refunded render as a single step."""
    status = order.status
    if status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
        return [TimelineStep(index=0, status=status, label=display_for(status)["label"], completed=True, current=True)]

    current_index = FORWARD_PATH.index(status)
    return [
        TimelineStep(
            index=i,
            status=step,
            label=display_for(step)["label"],
            completed=i <= current_index,
            current=i == current_index,
        )
        for i, step in enumerate(FORWARD_PATH)
    ]


def estimate_delivery(order: Order, history: Iterable[TrackingEvent], days: int = 4) -> datetime | None:
    """Shipped timestamp + days while the order is in transit, else None."""
    if order.status != OrderStatus.SHIPPED:
        return None
    shipped = [e.timestamp for e in history if e.status == OrderStatus.SHIPPED]
    if not shipped:
        return None
    return max(shipped) + timedelta(days=days)


def tracking_event_for(order: Order, description: str | None = None, location: str | None = None) -> TrackingEvent:
    """History entry recorded alongside a creation or an applied transition."""
    return TrackingEvent(
        order_id=order.id,
        status=order.status,
        description=description or f"Order status updated to {order.status.value}",
        location=location,
        timestamp=order.updated_at,
    )
