"""
Breviago Backend — Authentication Middleware
=============================================

What:  Verifies the caller's JWT on every request that is not on the
       bypass list.

Flow:
    1. OPTIONS (CORS preflight) and bypass-listed paths pass untouched
    2. Token from "Authorization: Bearer <token>", else the auth cookie
    3. Signature, algorithm, issuer and expiry verified (PyJWT)
    4. request.state.user_id / request.state.token set for the dependencies

Bypass matching:
    A path matches an entry when it equals the entry or continues it with
    "/": "/docs" covers "/docs/oauth2-redirect" but not "/docsfoo". The root
    entry "/", entries ending in "/" and entries ending in "$" ("/api/v1$")
    match only the exact path.

Rejections are answered here with 401 and the standard error body:
    missing_token  — no header and no cookie
    invalid_token  — bad signature, format, algorithm or issuer
    token_expired  — exp claim in the past
Each rejection is logged with the client IP and the reason.
"""

import logging
from typing import Iterable, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from breviago.config import settings
from breviago.exceptions import AuthenticationError
from breviago.middleware.logging import client_ip
from breviago.middleware.request_id import request_id_var
from breviago.services.security import decode_access_token

logger = logging.getLogger(__name__)


def is_unprotected(path: str, routes: Iterable[str]) -> bool:
    for route in routes:
        if route.endswith("$"):
            if path == route[:-1]:
                return True
            continue
        if path == route:
            return True
        if route != "/" and not route.endswith("/") and path.startswith(route + "/"):
            return True
    return False



def extract_token(request: Request, cookie_name: str) -> Optional[str]:
    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(cookie_name) or None


def unauthorized(code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={"error": code, "message": message, "request_id": request_id_var.get("")},
        headers={"WWW-Authenticate": "Bearer"},
    )


class AuthenticationMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        unprotected_routes: Optional[Iterable[str]] = None,
        cookie_name: Optional[str] = None,
    ):
        super().__init__(app)
        self.unprotected_routes: List[str] = list(
            unprotected_routes if unprotected_routes is not None else settings.unprotected_routes_list
        )
        self.cookie_name = cookie_name or settings.auth_cookie_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if request.method == "OPTIONS" or is_unprotected(path, self.unprotected_routes):
            return await call_next(request)

        token = extract_token(request, self.cookie_name)
        if token is None:
            logger.warning("Authentication failed from %s on %s: missing token", client_ip(request), path)
            return unauthorized("missing_token", "missing token")

        try:
            claims = decode_access_token(token)
        except AuthenticationError as e:
            logger.warning(
                "Authentication failed from %s on %s: %s", client_ip(request), path, e.code
            )
            return unauthorized(e.code, e.message)

        request.state.user_id = claims.user_id
        request.state.username = claims.username
        request.state.token = token
        return await call_next(request)
