"""Login rate limiting middleware.

Rule: POST /auth/login and /auth/pin are limited to
LOGIN_RATE_LIMIT_PER_MINUTE requests per client IP (anti brute-force on
secrets and 4-digit PINs).

Fixed-window counting in Redis:
    key   = "ratelimit:{ip}:auth:{window}"
    count = INCR key ; EXPIRE key 60 on first hit
    count > limit  -> 429 with RateLimitError envelope + Retry-After

If Redis is unreachable the request is let through and a warning logged;
throttling is a brake, not an authentication step.
"""

import logging
import time
from collections.abc import Awaitable, Callable

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from config.settings import settings
from src.cr_common.errors import RateLimitError
from src.cr_common.redis_client import get_redis
from src.cr_common.response import error_response

logger = logging.getLogger(__name__)

_WINDOW_SECONDS = 60
_THROTTLED_SUFFIXES = ("/auth/login", "/auth/pin")


def client_ip(request: Request) -> str | None:
    """Real client IP behind a reverse proxy (first X-Forwarded-For hop)."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        limit: int | None = None,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
    ) -> None:
        super().__init__(app)
        self._limit = limit if limit is not None else settings.LOGIN_RATE_LIMIT_PER_MINUTE
        self._redis_factory = redis_factory

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method != "POST" or not request.url.path.endswith(_THROTTLED_SUFFIXES):
            return await call_next(request)

        ip = client_ip(request) or "unknown"
        window = int(time.time()) // _WINDOW_SECONDS
        key = f"ratelimit:{ip}:auth:{window}"
        try:
            redis = await self._redis_factory()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, _WINDOW_SECONDS)
        except RedisError as exc:
            logger.warning("Rate limiter unavailable, allowing request: %s", exc)
            return await call_next(request)

        if count > self._limit:
            logger.warning("Rate limit exceeded: ip=%s path=%s", ip, request.url.path)
            err = RateLimitError()
            body = error_response(err.code, err.message)
            body.request_id = getattr(request.state, "request_id", body.request_id)
            return JSONResponse(
                status_code=err.http_status,
                content=body.model_dump(),
                headers={"Retry-After": str(_WINDOW_SECONDS)},
            )
        return await call_next(request)
