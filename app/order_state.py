"""
Order lifecycle state machine. Valid transitions enforce business rules.
Display metadata lives in a separate table so presentation never drives the rules.
"""
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


INITIAL_STATUS = OrderStatus.PENDING

FORWARD_PATH: list[OrderStatus] = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
]

TERMINAL_STATES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED})

# Current status -> allowed next status
VALID_TRANSITIONS: dict[OrderStatus, list[OrderStatus]] = {
    OrderStatus.PENDING: [OrderStatus.CONFIRMED, OrderStatus.CANCELLED],
    OrderStatus.CONFIRMED: [OrderStatus.PROCESSING, OrderStatus.CANCELLED],
    OrderStatus.PROCESSING: [OrderStatus.SHIPPED, OrderStatus.CANCELLED],
    OrderStatus.SHIPPED: [OrderStatus.DELIVERED, OrderStatus.CANCELLED],
    OrderStatus.DELIVERED: [OrderStatus.REFUNDED],  # refund is the only way out of delivered
    OrderStatus.CANCELLED: [],  # terminal
    OrderStatus.REFUNDED: [],  # terminal
}


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATES


def allowed_transitions(current: OrderStatus) -> list[OrderStatus]:
    return list(VALID_TRANSITIONS.get(current, []))


def is_valid_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    """True if requested is allowed after current. Never true for current == requested."""
    return requested in VALID_TRANSITIONS.get(current, [])


def rejection_reason(current: OrderStatus, requested: OrderStatus) -> str:
    if current == requested:
        return f'Order is already "{current.value}"'
    if current in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
        return f'Order is {current.value}; no further status changes are allowed'
    if requested == OrderStatus.REFUNDED:
        return "Only delivered orders can be refunded"
    if requested == OrderStatus.PENDING:
        return "Orders cannot be moved back to pending"
    if current == OrderStatus.DELIVERED:
        return "Delivered orders can only be refunded"
    expected = VALID_TRANSITIONS[current][0]
    return (
        f'Invalid status transition: cannot move from "{current.value}" to "{requested.value}" '
        f'(next step is "{expected.value}")'
    )


# Presentation only: label / icon / color / customer summary per status
STATUS_DISPLAY: dict[OrderStatus, dict[str, str]] = {
    OrderStatus.PENDING: {
        "label": "Order Placed",
        "icon": "shopping-cart",
        "color": "yellow",
        "summary": "Your order is being processed",
    },
    OrderStatus.CONFIRMED: {
        "label": "Order Confirmed",
        "icon": "check-circle",
        "color": "blue",
        "summary": "Your order is being processed",
    },
    OrderStatus.PROCESSING: {
        "label": "Processing",
        "icon": "package",
        "color": "purple",
        "summary": "Your order is being processed",
    },
    OrderStatus.SHIPPED: {
        "label": "Shipped",
        "icon": "truck",
        "color": "indigo",
        "summary": "Your order is being processed",
    },
    OrderStatus.DELIVERED: {
        "label": "Delivered",
        "icon": "package-check",
        "color": "green",
        "summary": "Your order has been delivered",
    },
    OrderStatus.CANCELLED: {
        "label": "Cancelled",
        "icon": "x-circle",
        "color": "red",
        "summary": "Your order has been cancelled",
    },
    OrderStatus.REFUNDED: {
        "label": "Refunded",
        "icon": "refresh-cw",
        "color": "orange",
        "summary": "Your order has been refunded",
    },
}

PAYMENT_STATUS_DISPLAY: dict[PaymentStatus, dict[str, str]] = {
    PaymentStatus.PENDING: {"label": "Payment Pending", "color": "yellow"},
    PaymentStatus.PAID: {"label": "Paid", "color": "green"},
    PaymentStatus.FAILED: {"label": "Payment Failed", "color": "red"},
}


def display_for(status: OrderStatus) -> dict[str, str]:
    return STATUS_DISPLAY[status]
