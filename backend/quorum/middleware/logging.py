"""
Quorum Backend - Request Logging Middleware
===========================================

What:  One access log line per HTTP request, with status and duration.
How:   Wraps call_next with a perf_counter timer and logs on the
       "quorum.access" logger. Level follows the status class:
       5xx → ERROR, 4xx → WARNING, everything else → INFO.

Logged: method, path, status, duration, request id, client IP, caller id.
Not logged: request bodies (question/answer text) and other headers.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from quorum.identity import USER_ID_HEADER
from quorum.middleware.request_id import request_id_var

logger = logging.getLogger("quorum.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Typical durations:
        - GET /health: 1-5ms
        - GET /api/questions: 10-50ms (feed query + 3 selectin loads)
        - POST /api/answers/{id}/vote: 5-20ms (row lock + score recompute)
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()

        client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"
        method = request.method
        path = request.url.path
        user = request.headers.get(USER_ID_HEADER, "-")

        # Health probes run every few seconds
        if path == "/health":
            return await call_next(request)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        rid = request_id_var.get("")

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] user=%s from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            user,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
