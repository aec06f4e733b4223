"""
Quorum Backend - Rate Limiting Middleware
=========================================

What:  In-memory sliding window rate limiter.
How:   Keeps a list of request timestamps per key. The key is the caller's
       X-User-ID when it is a valid UUID (so users behind one NAT don't share
       a budget), otherwise the client IP.

Algorithm: Sliding Window Log
    1. Drop timestamps older than the window
    2. If the remaining count >= limit, reject with 429 + Retry-After
    3. Otherwise record now and let the request through

Single-process only: each uvicorn worker keeps its own counters.
"""

import logging
import time
import uuid
from collections import defaultdict
from typing import Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from quorum.config import settings
from quorum.exceptions import RateLimitExceededError
from quorum.identity import USER_ID_HEADER

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Configuration (from settings):
        rate_limit_requests: Max requests per window (default: 300)
        rate_limit_window: Window duration in seconds (default: 3600)

    Exception handlers don't see errors raised inside BaseHTTPMiddleware, so
    the 429 body is built here from a RateLimitExceededError.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[str, List[float]] = defaultdict(list)

    @staticmethod
    def client_key(request: Request) -> str:
        raw = (request.headers.get(USER_ID_HEADER) or "").strip()
        if raw:
            try:
                return f"user:{uuid.UUID(raw)}"
            except ValueError:
                # Arbitrary header values must not mint fresh buckets
                pass
        host = getattr(request.client, "host", None) if request.client else None
        return f"ip:{host or 'unknown'}"

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        key = self.client_key(request)
        now = time.time()
        window_start = now - settings.rate_limit_window

        self._requests[key] = [ts for ts in self._requests[key] if ts > window_start]

        if len(self._requests[key]) >= settings.rate_limit_requests:
            oldest = self._requests[key][0]
            exc = RateLimitExceededError(
                retry_after=int(oldest + settings.rate_limit_window - now) + 1
            )

            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds window",
                key,
                len(self._requests[key]),
                settings.rate_limit_window,
            )

            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                },
                headers={"Retry-After": str(exc.retry_after)},
            )

        self._requests[key].append(now)

        # Periodic cleanup of idle keys
        if sum(len(v) for v in self._requests.values()) % 1000 == 0:
            self._cleanup_inactive(window_start)

        return await call_next(request)

    def _cleanup_inactive(self, window_start: float) -> None:
        inactive = [
            key for key, timestamps in self._requests.items()
            if not timestamps or max(timestamps) < window_start
        ]
        for key in inactive:
            del self._requests[key]

        if inactive:
            logger.debug("Cleaned up %d idle rate limit keys", len(inactive))
