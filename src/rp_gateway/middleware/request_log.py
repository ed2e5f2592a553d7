"""Request logging and correlation ids.

Each request gets a request_id (the caller's X-Request-ID if it sent one),
stored on request.state for ApiResponse envelopes and echoed back in the
X-Request-ID response header. One log line per request:

    INFO [POST] /api/v1/listings/complete → 200 (23ms) req_a1b2c3d4e5f6

Server errors (5xx) are logged at WARNING.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.rp_common.response import new_request_id

logger = logging.getLogger("rp.request")

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_INBOUND_ID_LENGTH = 64


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        inbound = request.headers.get(REQUEST_ID_HEADER, "")
        request_id = inbound if 0 < len(inbound) <= _MAX_INBOUND_ID_LENGTH else new_request_id()
        request.state.request_id = request_id

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers[REQUEST_ID_HEADER] = request_id
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        return response


def get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)
