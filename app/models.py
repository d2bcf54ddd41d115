"""
Order records as stored and returned by the API.
status is written only by app.lifecycle.apply_transition.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, computed_field

from app.money import Money, round2
from app.order_state import INITIAL_STATUS, OrderStatus, PaymentStatus
from app.pricing import OrderTotals

PaymentMethod = Literal["card", "upi", "netbanking", "wallet", "cod"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderItem(BaseModel):
    product_id: str
    product_name: str = ""
    quantity: int = Field(..., ge=1, le=100)
    price: Decimal = Field(..., ge=0, description="Unit price")

    @computed_field
    @property
    def subtotal(self) -> Money:
        return round2(self.price * self.quantity)


class Order(BaseModel):
    id: str = Field(default_factory=lambda: f"ord_{uuid.uuid4().hex[:16]}")
    user_id: str
    items: list[OrderItem] = Field(default_factory=list)
    totals: OrderTotals
    status: OrderStatus = INITIAL_STATUS
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: PaymentMethod = "card"
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    delivered_at: datetime | None = None


class TrackingEvent(BaseModel):
    order_id: str
    status: OrderStatus
    description: str
    location: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)
