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
from src.rp_account.api.router import router as account_router
from src.rp_common.database import engine
from src.rp_common.errors import AppError
from src.rp_common.redis_client import close_redis, get_redis, redis_ok
from src.rp_common.response import error_response
from src.rp_gateway.api.changes import router as changes_router
from src.rp_gateway.middleware.request_log import RequestLogMiddleware, get_request_id
from src.rp_integrations.api.router import router as integrations_router
from src.rp_listing.api.router import router as listing_router
from src.rp_market.api.router import router as market_router
from src.rp_trade.api.router import router as trade_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis connections. Shutdown: dispose."""
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await get_redis()
    yield
    # Shutdown
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, get_request_id(request))
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(account_router, prefix="/api/v1")
app.include_router(listing_router, prefix="/api/v1")
app.include_router(trade_router, prefix="/api/v1")
app.include_router(market_router, prefix="/api/v1")
app.include_router(integrations_router, prefix="/api/v1")
app.include_router(changes_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {
        "status": "ok",
        "version": "0.1.0",
        "redis": "ok" if await redis_ok() else "unavailable",
    }
