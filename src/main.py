"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.bw_barter.api.router import router as barter_router
from src.bw_common.database import engine
from src.bw_common.errors import AppError
from src.bw_common.redis_client import close_redis, ping_redis
from src.bw_common.response import error_response, request_id_of
from src.bw_escrow.api.router import get_ledger
from src.bw_escrow.api.router import router as escrow_router
from src.bw_escrow.application.sweeper import ExpirySweeper
from src.bw_gateway.middleware.rate_limit import RateLimitMiddleware
from src.bw_gateway.middleware.request_log import RequestLogMiddleware

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB, probe Redis, start the expiry sweeper. Shutdown: reverse."""
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await ping_redis()
    sweeper: ExpirySweeper | None = None
    if settings.SWEEPER_ENABLED:
        sweeper = ExpirySweeper(get_ledger())
        sweeper.start()
    else:
        logger.info("Expiry sweeper disabled")
    yield
    # Shutdown
    if sweeper is not None:
        sweeper.shutdown()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


# Last added runs first: request log wraps the rate limiter
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, request_id_of(request))
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(escrow_router, prefix="/api/v1")
app.include_router(barter_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
