"""
Async Postgres: orders (frozen totals + current status) and order_tracking (status history).
Status changes run in a single transaction: lock order row, apply transition, compare-and-swap update, record tracking.
"""
import json
import logging
import uuid

import asyncpg

from app.config import settings
from app.errors import StaleOrderError
from app.lifecycle import TransitionResult, apply_transition, tracking_event_for
from app.models import Order, OrderItem, TrackingEvent
from app.order_state import OrderStatus
from app.pricing import OrderTotals

logger = logging.getLogger(__name__)

_pool: asyncpg.Pool | None = None


async def get_pool() -> asyncpg.Pool:
    global _pool
    if _pool is None:
        _pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=1,
            max_size=5,
            command_timeout=60,
        )
    return _pool


async def close_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


async def init_schema(pool: asyncpg.Pool) -> None:
    async with pool.acquire() as conn:
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS orders (
                order_id VARCHAR(64) PRIMARY KEY,
                user_id VARCHAR(255) NOT NULL,
                items JSONB NOT NULL DEFAULT '[]',
                subtotal NUMERIC(12, 2) NOT NULL,
                discount NUMERIC(12, 2) NOT NULL,
                tax NUMERIC(12, 2) NOT NULL,
                shipping NUMERIC(12, 2) NOT NULL,
                total NUMERIC(12, 2) NOT NULL,
                status VARCHAR(20) NOT NULL,
                payment_status VARCHAR(20) NOT NULL,
                payment_method VARCHAR(20) NOT NULL,
                created_at TIMESTAMPTZ NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL,
                delivered_at TIMESTAMPTZ
            );
        """)
        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_orders_user_id
            ON orders(user_id);
        """)
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS order_tracking (
                id UUID PRIMARY KEY,
                order_id VARCHAR(64) NOT NULL REFERENCES orders(order_id),
                status VARCHAR(20) NOT NULL,
                description TEXT NOT NULL,
                location VARCHAR(255),
                created_at TIMESTAMPTZ NOT NULL
            );
        """)
        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_order_tracking_order_id
            ON order_tracking(order_id);
        """)


def _row_to_order(row) -> Order:
    items = row["items"]
    if isinstance(items, str):
        items = json.loads(items)
    return Order(
        id=row["order_id"],
        user_id=row["user_id"],
        items=[OrderItem(**item) for item in items],
        totals=OrderTotals(
            subtotal=row["subtotal"],
            discount=row["discount"],
            tax=row["tax"],
            shipping=row["shipping"],
            total=row["total"],
        ),
        status=row["status"],
        payment_status=row["payment_status"],
        payment_method=row["payment_method"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        delivered_at=row["delivered_at"],
    )


async def _insert_tracking(conn, event: TrackingEvent) -> None:
    await conn.execute(
        """
        INSERT INTO order_tracking (id, order_id, status, description, location, created_at)
        VALUES ($1, $2, $3, $4, $5, $6);
        """,
        uuid.uuid4(),
        event.order_id,
        event.status.value,
        event.description,
        event.location,
        event.timestamp,
    )


async def insert_order(pool: asyncpg.Pool, order: Order) -> None:
    """Persist a new order with its frozen totals and the 'order placed' tracking entry."""
    items_json = json.dumps([item.model_dump(mode="json", exclude={"subtotal"}) for item in order.items])
    async with pool.acquire() as conn:
        async with conn.transaction():
            await conn.execute(
                """
                INSERT INTO orders (order_id, user_id, items, subtotal, discount, tax, shipping, total,
                                    status, payment_status, payment_method, created_at, updated_at, delivered_at)
                VALUES ($1, $2, $3::jsonb, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14);
                """,
                order.id,
                order.user_id,
                items_json,
                order.totals.subtotal,
                order.totals.discount,
                order.totals.tax,
                order.totals.shipping,
                order.totals.total,
                order.status.value,
                order.payment_status.value,
                order.payment_method,
                order.created_at,
                order.updated_at,
                order.delivered_at,
            )
            await _insert_tracking(conn, tracking_event_for(order, description="Order placed"))


async def fetch_order(pool: asyncpg.Pool, order_id: str) -> Order | None:
    async with pool.acquire() as conn:
        row = await conn.fetchrow("SELECT * FROM orders WHERE order_id = $1;", order_id)
    return _row_to_order(row) if row is not None else None


async def list_orders(
    pool: asyncpg.Pool,
    user_id: str | None = None,
    status: OrderStatus | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Order], int]:
    """Newest first, optionally filtered by owner and/or status. Returns (page, total matching)."""
    where = []
    args: list = []
    if user_id is not None:
        args.append(user_id)
        where.append(f"user_id = ${len(args)}")
    if status is not None:
        args.append(OrderStatus(status).value)
        where.append(f"status = ${len(args)}")
    clause = f"WHERE {' AND '.join(where)}" if where else ""

    async with pool.acquire() as conn:
        total = await conn.fetchval(f"SELECT COUNT(*) FROM orders {clause};", *args)
        rows = await conn.fetch(
            f"""
            SELECT * FROM orders {clause}
            ORDER BY created_at DESC
            LIMIT ${len(args) + 1} OFFSET ${len(args) + 2};
            """,
            *args,
            limit,
            offset,
        )
    return [_row_to_order(r) for r in rows], total


async def fetch_tracking(pool: asyncpg.Pool, order_id: str) -> list[TrackingEvent]:
    """Tracking history for order_id, oldest first."""
    async with pool.acquire() as conn:
        rows = await conn.fetch(
            """
            SELECT order_id, status, description, location, created_at FROM order_tracking
            WHERE order_id = $1
            ORDER BY created_at ASC;
            """,
            order_id,
        )
    return [
        TrackingEvent(
            order_id=r["order_id"],
            status=r["status"],
            description=r["description"],
            location=r["location"],
            timestamp=r["created_at"],
        )
        for r in rows
    ]


async def transition_order(
    pool: asyncpg.Pool,
    order_id: str,
    requested_status: OrderStatus | str,
    description: str | None = None,
    location: str | None = None,
) -> TransitionResult | None:
    """
    Apply one status transition in a single transaction.
    - SELECT order FOR UPDATE; None if missing.
    - apply_transition; a rejected transition writes nothing and is returned as a value.
    - UPDATE ... WHERE status = observed (compare-and-swap), then insert the tracking entry.
    Raises StaleOrderError if the CAS update matched no row; the transaction rolls back.
    """
    async with pool.acquire() as conn:
        async with conn.transaction():
            row = await conn.fetchrow("SELECT * FROM orders WHERE order_id = $1 FOR UPDATE;", order_id)
            if row is None:
                return None

            order = _row_to_order(row)
            result = apply_transition(order, requested_status)
            if not result.ok:
                return result

            updated = result.order
            status = await conn.execute(
                """
                UPDATE orders SET status = $1, updated_at = $2, delivered_at = $3
                WHERE order_id = $4 AND status = $5;
                """,
                updated.status.value,
                updated.updated_at,
                updated.delivered_at,
                order_id,
                order.status.value,
            )
            if status.split()[-1] == "0":
                raise StaleOrderError(order_id, order.status.value)

            await _insert_tracking(conn, tracking_event_for(updated, description, location))

    logger.info("Order %s: %s -> %s", order_id, result.from_status.value, updated.status.value)
    return result
