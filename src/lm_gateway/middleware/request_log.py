"""Request logging middleware.

Logs every HTTP request with method, path, status code, latency, and a
request ID for correlation. The ID is put on request.state so handlers can
include it in ApiResponse, and echoed in the X-Request-ID response header.

Buyer apps retry listing fetches through the edge proxy; when the proxy (or
the app) already sent a well-formed X-Request-ID it is kept, so the retries
of one offline-cache refresh share an ID in the logs.

Log format:
    INFO [GET] /api/v1/listings → 200 (12ms) req_a1b2c3d4e5f6
    WARNING [POST] /api/v1/listings → 500 (40ms) req_0f1e2d3c4b5a
"""

import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("lm.request")

_INBOUND_ID = re.compile(r"^[A-Za-z0-9_-]{8,64}$")


def _request_id(request: Request) -> str:
    inbound = request.headers.get("x-request-id", "")
    if _INBOUND_ID.match(inbound):
        return inbound
    return f"req_{uuid.uuid4().hex[:12]}"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.request_id = _request_id(request)

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        logger.log(
            logging.WARNING if response.status_code >= 500 else logging.INFO,
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request.state.request_id,
        )
        response.headers["X-Request-ID"] = request.state.request_id
        return response
