import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from app.config import settings
from app.db import close_pool, get_pool, init_schema
from app.errors import InvalidAmount
from app.metrics import get_metrics_bytes, get_metrics_content_type
from app.redis_client import close_redis, get_redis
from app.routes import admin, orders

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await get_redis()
    pool = await get_pool()
    await init_schema(pool)
    logger.info("Schema ready. Serving orders API ...")
    yield
    await close_redis()
    await close_pool()


app = FastAPI(title="Order Pricing & Lifecycle", lifespan=lifespan)
app.include_router(orders.router)
app.include_router(admin.router)


@app.exception_handler(InvalidAmount)
async def invalid_amount(request: Request, exc: InvalidAmount) -> JSONResponse:
    return JSONResponse(status_code=400, content={"status": "invalid_amount", "error": str(exc)})


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus scrape endpoint: orders created, transitions applied/rejected."""
    return Response(
        content=get_metrics_bytes(),
        media_type=get_metrics_content_type(),
    )
