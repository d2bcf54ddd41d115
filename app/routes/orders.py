from decimal import Decimal

from fastapi import APIRouter, Header, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.config import settings
from app.db import fetch_order, fetch_tracking, get_pool, insert_order, list_orders
from app.errors import InvalidAmount
from app.lifecycle import estimate_delivery, render_timeline
from app.metrics import orders_created_total
from app.models import Order, OrderItem, PaymentMethod
from app.order_state import PAYMENT_STATUS_DISPLAY, OrderStatus, allowed_transitions, display_for, is_terminal
from app.pricing import OrderTotals, compute_order_totals, subtotal_for
from app.redis_client import check_idempotency, release_idempotency
from app.transitions import change_status

router = APIRouter(prefix="/orders", tags=["orders"])


class QuoteBody(BaseModel):
    subtotal: Decimal = Field(..., ge=0, description="Cart subtotal before discount")
    discount: Decimal = Field(default=Decimal("0"), ge=0, description="Validated coupon discount")


class CreateOrderBody(BaseModel):
    user_id: str = Field(..., description="Owner of the order")
    items: list[OrderItem] = Field(..., min_length=1, max_length=50)
    discount: Decimal = Field(default=Decimal("0"), ge=0, description="Validated coupon discount")
    payment_method: PaymentMethod = "card"


class CancelBody(BaseModel):
    user_id: str = Field(..., description="Caller; must own the order")
    reason: str | None = Field(default=None, max_length=500)


def page_of(orders: list[Order], total: int, page: int, limit: int) -> dict:
    return {
        "orders": [order.model_dump(mode="json") for order in orders],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": -(-total // limit),
        },
    }


@router.get("")
async def list_user_orders(
    user_id: str = Query(...),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> JSONResponse:
    """The caller's orders, newest first."""
    pool = await get_pool()
    orders, total = await list_orders(pool, user_id=user_id, limit=limit, offset=(page - 1) * limit)
    return JSONResponse(status_code=200, content=page_of(orders, total, page, limit))


@router.post("/quote", response_model=OrderTotals)
async def quote(body: QuoteBody) -> OrderTotals:
    """Totals for a cart without creating an order."""
    return compute_order_totals(body.subtotal, body.discount)


@router.post("")
async def create_order(
    body: CreateOrderBody,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
) -> JSONResponse:
    """
    Create an order with totals frozen from server-side line prices.
    Same Idempotency-Key twice -> 200 (already processed). New order -> 201.
    """
    subtotal = subtotal_for(body.items)
    if body.discount > subtotal:
        raise InvalidAmount("Discount cannot exceed order subtotal")

    key = f"idempotency:order:{idempotency_key}" if idempotency_key else None
    if key and await check_idempotency(key):
        return JSONResponse(
            status_code=200,
            content={"status": "already_processed", "idempotency_key": idempotency_key},
        )

    order = Order(
        user_id=body.user_id,
        items=body.items,
        totals=compute_order_totals(subtotal, body.discount),
        payment_method=body.payment_method,
    )
    try:
        pool = await get_pool()
        await insert_order(pool, order)
    except Exception:
        if key:
            await release_idempotency(key)
        raise

    orders_created_total.labels(shipping="free" if order.totals.shipping == 0 else "paid").inc()
    return JSONResponse(status_code=201, content=order.model_dump(mode="json"))


@router.get("/{order_id}")
async def get_order(order_id: str) -> JSONResponse:
    pool = await get_pool()
    order = await fetch_order(pool, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    content = order.model_dump(mode="json")
    content["status_display"] = display_for(order.status)
    content["payment_status_display"] = PAYMENT_STATUS_DISPLAY[order.payment_status]
    content["allowed_transitions"] = [s.value for s in allowed_transitions(order.status)]
    return JSONResponse(status_code=200, content=content)


@router.post("/{order_id}/cancel")
async def cancel_order(order_id: str, body: CancelBody) -> JSONResponse:
    """Customer cancellation of their own order; same lifecycle rules as the admin screens."""
    pool = await get_pool()
    order = await fetch_order(pool, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    if order.user_id != body.user_id:
        raise HTTPException(status_code=403, detail="Unauthorized to cancel this order")

    description = "Order cancelled by customer"
    if body.reason:
        description = f"{description}: {body.reason}"
    code, content = await change_status(order_id, OrderStatus.CANCELLED, description=description)
    return JSONResponse(status_code=code, content=content)


@router.get("/{order_id}/timeline")
async def get_timeline(order_id: str) -> JSONResponse:
    """Progress steps, current status summary, estimated delivery and tracking history."""
    pool = await get_pool()
    order = await fetch_order(pool, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    history = await fetch_tracking(pool, order_id)
    eta = estimate_delivery(order, history, days=settings.estimated_delivery_days)
    return JSONResponse(
        status_code=200,
        content={
            "order_id": order.id,
            "status": order.status.value,
            "display": display_for(order.status),
            "terminal": is_terminal(order.status),
            "steps": [
                {
                    "index": step.index,
                    "status": step.status.value,
                    "label": step.label,
                    "completed": step.completed,
                    "current": step.current,
                    "pending": step.pending,
                }
                for step in render_timeline(order)
            ],
            "estimated_delivery": eta.isoformat() if eta else None,
            "history": [event.model_dump(mode="json") for event in history],
        },
    )
