"""
Breviago Backend — Access Logging Middleware
=============================================

What:  One log line per request on the `breviago.access` logger.

Line format:
    GET /api/v1/acronyms 200 12.3ms [1f3a9c0e] user=<uuid|-> from 127.0.0.1

The structured fields are also passed as `extra`, so a JSON formatter can
index them. Bodies and auth headers are never logged.

Level by status: 5xx → ERROR, 4xx → WARNING, everything else → INFO.
/health is skipped; orchestrators poll it every few seconds.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from breviago.middleware.request_id import request_id_var

logger = logging.getLogger("breviago.access")

QUIET_PATHS = frozenset({"/health"})


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            level = logging.ERROR
        elif status >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        # Set by AuthenticationMiddleware, which runs inside this one
        user_id = getattr(request.state, "user_id", None)
        rid = request_id_var.get("")
        ip = client_ip(request)

        logger.log(
            level,
            "%s %s %d %.1fms [%s] user=%s from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            user_id or "-",
            ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "user_id": str(user_id) if user_id else None,
                "client_ip": ip,
            },
        )
        return response
