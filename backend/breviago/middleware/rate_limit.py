"""
Breviago Backend — Rate Limiting Middleware
============================================

What:  Per-IP sliding window limiter; the outermost middleware, so abusive
       clients are turned away before any auth or database work.

Algorithm:
    Each IP keeps a deque of request timestamps. On every request the
    timestamps older than the window are popped from the left; if the
    remaining count has reached the limit the request is rejected with 429
    and a Retry-After equal to the time until the oldest entry expires.

State is in-process memory: each worker enforces its own limit.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from breviago.config import settings
from breviago.exceptions import RateLimitExceededError
from breviago.middleware.logging import client_ip
from breviago.middleware.request_id import resolve_request_id

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDED_PATHS = frozenset({"/health", "/docs", "/redoc", "/openapi.json"})

# Forget idle IPs once this many are tracked
CLEANUP_THRESHOLD = 10_000


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
        excluded_paths: Optional[Iterable[str]] = None,
    ):
        super().__init__(app)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window
        self.excluded_paths = frozenset(
            excluded_paths if excluded_paths is not None else DEFAULT_EXCLUDED_PATHS
        )
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in self.excluded_paths:
            return await call_next(request)

        ip = client_ip(request)
        now = time.monotonic()
        window_start = now - self.window_seconds

        timestamps = self._requests[ip]
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

        if len(timestamps) >= self.max_requests:
            retry_after = int(timestamps[0] + self.window_seconds - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds window",
                ip,
                len(timestamps),
                self.window_seconds,
            )
            exc = RateLimitExceededError(retry_after=retry_after)
            # Runs before RequestIDMiddleware, so the id is resolved here
            rid = resolve_request_id(request)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                    "request_id": rid,
                },
                headers={"Retry-After": str(retry_after), "X-Request-ID": rid},
            )

        timestamps.append(now)
        if len(self._requests) > CLEANUP_THRESHOLD:
            self._forget_idle(window_start)

        return await call_next(request)

    def _forget_idle(self, window_start: float) -> None:
        idle = [ip for ip, ts in self._requests.items() if not ts or ts[-1] <= window_start]
        for ip in idle:
            del self._requests[ip]
        logger.debug("Rate limiter dropped %d idle clients", len(idle))
