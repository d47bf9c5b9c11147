"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config.settings import settings
from src.sl_common.database import engine, ping_database
from src.sl_common.errors import AppError
from src.sl_common.logging_config import configure_logging
from src.sl_common.redis_client import close_redis, ping_redis
from src.sl_common.response import error_json
from src.sl_gateway.middleware.rate_limit import RateLimitMiddleware
from src.sl_gateway.middleware.request_log import RequestLogMiddleware
from src.sl_ledger.api.entries_router import router as entries_router
from src.sl_ledger.api.payments_router import router as payments_router
from src.sl_ledger.api.router import router as events_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: logging, verify DB (required) and Redis (optional). Shutdown: dispose."""
    configure_logging(settings.LOG_LEVEL)
    await ping_database()
    await ping_redis()
    yield
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


# Last added runs first: request logging wraps rate limiting
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return error_json(exc, request)


app.include_router(events_router, prefix="/api/v1")
app.include_router(entries_router, prefix="/api/v1")
app.include_router(payments_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
