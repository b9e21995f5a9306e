"""Request logging middleware.

Assigns each request a short id (request.state.request_id, echoed back as
the X-Request-ID header) and logs one access line when it completes:

    INFO [POST] /api/v1/credits/transfer → 200 (23ms) req_a1b2c3d4e5f6 ip=10.0.0.7

4xx lines are logged at WARNING and 5xx at ERROR. Bodies are never logged:
they carry secrets and PINs.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.cr_auth.middleware.rate_limit import client_ip
from src.cr_common.id_generator import request_id as new_request_id

logger = logging.getLogger("cr.request")

REQUEST_ID_HEADER = "X-Request-ID"


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rid = new_request_id()
        request.state.request_id = rid

        start = time.perf_counter()
        try:
            response: Response = await call_next(request)
        except Exception:
            logger.exception("[%s] %s raised %s", request.method, request.url.path, rid)
            raise
        elapsed_ms = (time.perf_counter() - start) * 1000

        response.headers[REQUEST_ID_HEADER] = rid
        logger.log(
            _level_for(response.status_code),
            "[%s] %s → %d (%.0fms) %s ip=%s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            rid,
            client_ip(request) or "-",
        )
        return response
