"""Request logging middleware.

Assigns every request an id (reusing a well-formed inbound X-Request-ID, so
ids can be followed across services), stores it on request.state for the
response envelope, echoes it in the X-Request-ID header, and logs one line per
request:

    INFO [POST] /api/v1/payments → 201 (23ms) req_a1b2c3d4e5f6

5xx responses are logged at ERROR, 4xx at WARNING.
"""

import logging
import re
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.sl_common.response import new_request_id

logger = logging.getLogger("sl.request")

_INBOUND_ID = re.compile(r"^[A-Za-z0-9_\-]{8,64}$")


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        inbound = request.headers.get("x-request-id", "")
        request_id = inbound if _INBOUND_ID.match(inbound) else new_request_id()
        request.state.request_id = request_id

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        logger.log(
            _level_for(response.status_code),
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        response.headers["X-Request-ID"] = request_id
        return response
