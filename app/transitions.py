"""
Status changes as API outcomes: run one transition through storage and map it to (status_code, body).
Shared by the admin screens and customer cancellation.
"""
import logging

from app.db import get_pool, transition_order
from app.errors import StaleOrderError
from app.lifecycle import TransitionResult
from app.metrics import order_transition_conflicts_total, order_transitions_rejected_total, order_transitions_total
from app.order_state import OrderStatus

logger = logging.getLogger(__name__)


async def change_status(
    order_id: str,
    status: OrderStatus | str,
    description: str | None = None,
    location: str | None = None,
) -> tuple[int, dict]:
    pool = await get_pool()
    try:
        result: TransitionResult | None = await transition_order(pool, order_id, status, description, location)
    except StaleOrderError as e:
        order_transition_conflicts_total.inc()
        logger.warning("Order %s changed concurrently (expected %s)", order_id, e.expected_status)
        return 409, {"status": "conflict", "order_id": order_id, "error": "Order was modified concurrently, retry"}

    if result is None:
        return 404, {"status": "not_found", "order_id": order_id, "error": "Order not found"}

    if not result.ok:
        err = result.error
        known = err.requested_status in {s.value for s in OrderStatus}
        order_transitions_rejected_total.labels(
            current_status=err.current_status,
            requested_status=err.requested_status if known else "unknown",
        ).inc()
        logger.warning("Rejected order %s: %s -> %s (%s)", order_id, err.current_status, err.requested_status, err.reason)
        return 409, {
            "status": "invalid_transition",
            "order_id": order_id,
            "current_status": err.current_status,
            "requested_status": err.requested_status,
            "error": err.reason,
        }

    order_transitions_total.labels(
        from_status=result.from_status.value,
        to_status=result.order.status.value,
    ).inc()
    return 200, {"status": "ok", "order": result.order.model_dump(mode="json")}
