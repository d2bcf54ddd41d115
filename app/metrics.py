"""
Prometheus metrics: orders created, lifecycle transitions applied and rejected.
"""
from prometheus_client import Counter, generate_latest

orders_created_total = Counter(
    "orders_created_total",
    "Total orders created with frozen totals",
    ["shipping"],  # "free" | "paid"
)

order_transitions_total = Counter(
    "order_transitions_total",
    "Total order status transitions applied",
    ["from_status", "to_status"],
)
order_transitions_rejected_total = Counter(
    "order_transitions_rejected_total",
    "Total status changes rejected by the order lifecycle",
    ["current_status", "requested_status"],
)
order_transition_conflicts_total = Counter(
    "order_transition_conflicts_total",
    "Total status changes lost to a concurrent update (compare-and-swap miss)",
)


def get_metrics_content_type():
    return "text/plain; charset=utf-8; version=0.0.4"


def get_metrics_bytes():
    return generate_latest()
