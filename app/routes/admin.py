import asyncio
import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.config import settings
from app.db import fetch_order, get_pool, list_orders
from app.errors import InvalidAmount
from app.money import format_money
from app.order_state import OrderStatus, allowed_transitions, is_valid_transition
from app.routes.orders import page_of
from app.transitions import change_status

logger = logging.getLogger(__name__)


def require_admin(x_admin_token: str | None = Header(default=None)) -> None:
    """Authorization is external; here it is only a yes/no on the shared admin token."""
    if x_admin_token != settings.admin_token:
        raise HTTPException(status_code=403, detail="Admin access required")


router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


class StatusUpdateBody(BaseModel):
    status: OrderStatus
    description: str | None = Field(default=None, max_length=500)
    location: str | None = Field(default=None, max_length=255)


class RefundBody(BaseModel):
    amount: Decimal | None = Field(default=None, gt=0, description="Defaults to the order total")


class BulkStatusUpdate(BaseModel):
    order_id: str
    # Plain string: an unknown status fails only its own entry
    status: str
    description: str | None = Field(default=None, max_length=500)
    location: str | None = Field(default=None, max_length=255)


class BulkStatusBody(BaseModel):
    updates: list[BulkStatusUpdate] = Field(..., min_length=1, max_length=100)


@router.get("/orders")
async def list_all_orders(
    status: OrderStatus | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> JSONResponse:
    """Order management list, newest first, optionally filtered by status."""
    pool = await get_pool()
    orders, total = await list_orders(pool, status=status, limit=limit, offset=(page - 1) * limit)
    content = page_of(orders, total, page, limit)
    for item, order in zip(content["orders"], orders):
        item["allowed_transitions"] = [s.value for s in allowed_transitions(order.status)]
    return JSONResponse(status_code=200, content=content)


@router.patch("/orders/{order_id}/status")
async def update_status(order_id: str, body: StatusUpdateBody) -> JSONResponse:
    """Move an order along its lifecycle. Rejected transitions return 409 with the reason."""
    code, content = await change_status(order_id, body.status, body.description, body.location)
    return JSONResponse(status_code=code, content=content)


@router.post("/orders/{order_id}/refund")
async def refund(order_id: str, body: RefundBody) -> JSONResponse:
    """Refund a delivered order. Amount defaults to, and may not exceed, the order total."""
    pool = await get_pool()
    order = await fetch_order(pool, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")

    amount = body.amount if body.amount is not None else order.totals.total
    # State first: a non-refundable order is rejected as a transition whatever the amount
    if is_valid_transition(order.status, OrderStatus.REFUNDED) and amount > order.totals.total:
        raise InvalidAmount("Refund amount cannot exceed order total")

    code, content = await change_status(
        order_id,
        OrderStatus.REFUNDED,
        description=f"Order refunded (amount: {format_money(amount)})",
    )
    if code == 200:
        content["refund_amount"] = str(amount)
    return JSONResponse(status_code=code, content=content)


async def _bulk_one(update: BulkStatusUpdate) -> dict:
    try:
        code, content = await change_status(update.order_id, update.status, update.description, update.location)
    except Exception as e:
        logger.exception("Bulk status update failed for order %s: %s", update.order_id, e)
        return {"order_id": update.order_id, "success": False, "error": "Update failed"}
    if code == 200:
        return {"order_id": update.order_id, "success": True, "status": content["order"]["status"]}
    return {"order_id": update.order_id, "success": False, "error": content["error"]}


@router.post("/orders/status/bulk")
async def bulk_update_status(body: BulkStatusBody) -> JSONResponse:
    """Validate and apply each update independently; one failure does not stop the others."""
    results = await asyncio.gather(*(_bulk_one(u) for u in body.updates))
    succeeded = sum(1 for r in results if r["success"])
    return JSONResponse(
        status_code=200,
        content={
            "total": len(results),
            "succeeded": succeeded,
            "failed": len(results) - succeeded,
            "results": list(results),
        },
    )
