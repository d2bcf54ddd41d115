"""
Error taxonomy for pricing and the order lifecycle.
Lifecycle errors are returned as values; storage errors are raised so the transaction rolls back.
"""


class LifecycleError(Exception):
    """Base for rejected lifecycle operations. Recoverable: surface as a rejected action."""


class InvalidTransition(LifecycleError):
    def __init__(self, current_status: str, requested_status: str, reason: str):
        self.current_status = current_status
        self.requested_status = requested_status
        self.reason = reason
        super().__init__(reason)


class InvalidAmount(Exception):
    """Negative amount, discount above subtotal, or refund above the order total."""


class StaleOrderError(Exception):
    """Raised when the compare-and-swap status update matched no row. Transaction will roll back."""
    def __init__(self, order_id: str, expected_status: str):
        self.order_id = order_id
        self.expected_status = expected_status
        super().__init__(f"order {order_id} is no longer {expected_status}")
