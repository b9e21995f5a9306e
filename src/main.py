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

from config.settings import settings
from src.cr_account.api.router import router as admins_router
from src.cr_auth.api.router import router as auth_router
from src.cr_auth.middleware.rate_limit import RateLimitMiddleware
from src.cr_auth.middleware.request_log import RequestLogMiddleware
from src.cr_common.database import engine, ping_database
from src.cr_common.errors import AppError
from src.cr_common.redis_client import close_redis, ping_redis
from src.cr_common.response import error_response
from src.cr_ledger.api.router import router as credits_router
from src.cr_payment.api.router import router as payments_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: PostgreSQL must answer, Redis may not. Shutdown: dispose pools."""
    await ping_database()
    if not await ping_redis():
        logger.warning("Redis unreachable at startup; login throttling disabled until it returns")
    logger.info("%s started", settings.APP_NAME)
    yield
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


# Added last = outermost: request_id exists before the limiter can reject
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(auth_router, prefix="/api/v1")
app.include_router(admins_router, prefix="/api/v1")
app.include_router(credits_router, prefix="/api/v1")
app.include_router(payments_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
