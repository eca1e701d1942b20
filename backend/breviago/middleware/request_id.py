"""
Request correlation IDs.

Accepts the caller's X-Request-ID (so a frontend can correlate its own logs)
or generates a short one, then exposes it three ways: the `request_id_var`
ContextVar for loggers and error handlers, `request.state.request_id` for
route code, and the X-Request-ID response header.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Client-supplied ids end up in logs; keep them short and printable
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


def resolve_request_id(request: Request) -> str:
    """The caller's X-Request-ID when it is acceptable, else a fresh one."""
    rid = request.headers.get("X-Request-ID", "")
    return rid if _VALID_REQUEST_ID.match(rid) else new_request_id()


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rid = resolve_request_id(request)

        request_id_var.set(rid)
        request.state.request_id = rid
        response = await call_next(request)

        response.headers["X-Request-ID"] = rid
        return response
