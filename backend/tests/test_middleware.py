"""
Middleware tests: authentication bypass matching, token extraction,
rejection codes, request IDs and rate limiting.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient

from breviago.config import settings
from breviago.middleware.authentication import AuthenticationMiddleware, is_unprotected
from breviago.middleware.rate_limit import RateLimitMiddleware
from breviago.middleware.request_id import RequestIDMiddleware
from breviago.services.security import create_access_token

BYPASS = ["/", "/health", "/docs", "/api/v1/auth/login"]


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/", True),
        ("/health", True),
        ("/docs", True),
        ("/docs/oauth2-redirect", True),
        ("/docsfoo", False),
        ("/api/v1/auth/login", True),
        ("/api/v1/auth/logout", False),
        ("/api/v1/acronyms", False),
        ("/healthz", False),
    ],
)
def test_is_unprotected(path, expected):
    assert is_unprotected(path, BYPASS) is expected


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/", True),
        ("/api/v1", True),
        ("/api/v1/", True),
        ("/api/v1/acronyms", False),
        ("/api/v1/auth/me", False),
        ("/api/v1/auth/login", True),
        ("/api/v1/auth/register", True),
        ("/health", True),
        ("/docs/oauth2-redirect", True),
    ],
)
def test_default_bypass_list(path, expected):
    assert is_unprotected(path, settings.unprotected_routes_list) is expected


def test_exact_only_entries():
    assert is_unprotected("/status", ["/status$"])
    assert not is_unprotected("/status/deep", ["/status$"])
    assert not is_unprotected("/status$", ["/status$"])


def build_protected_app() -> FastAPI:
    app = FastAPI()

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/private")
    async def private(request: Request):
        return {"user_id": str(request.state.user_id), "username": request.state.username}

    app.add_middleware(AuthenticationMiddleware, unprotected_routes=["/health"], cookie_name="token")
    return app


@pytest_asyncio.fixture
async def protected_client():
    transport = ASGITransport(app=build_protected_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestAuthenticationMiddleware:
    async def test_bypass_route_needs_no_token(self, protected_client):
        response = await protected_client.get("/health")
        assert response.status_code == 200

    async def test_missing_token(self, protected_client):
        response = await protected_client.get("/private")
        assert response.status_code == 401
        assert response.json()["error"] == "missing_token"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_bearer_header(self, protected_client):
        user_uuid = uuid.uuid4()
        token, _ = create_access_token(user_uuid, "alice")

        response = await protected_client.get("/private", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json() == {"user_id": str(user_uuid), "username": "alice"}

    async def test_cookie(self, protected_client):
        token, _ = create_access_token(uuid.uuid4(), "bob")
        response = await protected_client.get("/private", headers={"Cookie": f"token={token}"})
        assert response.status_code == 200
        assert response.json()["username"] == "bob"

    async def test_invalid_token(self, protected_client):
        response = await protected_client.get("/private", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json()["error"] == "invalid_token"

    async def test_expired_token(self, protected_client):
        issued = datetime.now(timezone.utc) - timedelta(days=60)
        token, _ = create_access_token(uuid.uuid4(), "alice", now=issued)

        response = await protected_client.get("/private", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["error"] == "token_expired"

    async def test_non_bearer_scheme_is_missing_token(self, protected_client):
        response = await protected_client.get("/private", headers={"Authorization": "Basic Zm9vOmJhcg=="})
        assert response.status_code == 401
        assert response.json()["error"] == "missing_token"

    async def test_preflight_passes(self, protected_client):
        response = await protected_client.options("/private")
        # No route handles OPTIONS; what matters is that auth did not answer 401
        assert response.status_code != 401


class TestRequestID:
    async def test_generated_and_echoed(self):
        app = FastAPI()

        @app.get("/ping")
        async def ping(request: Request):
            return {"request_id": request.state.request_id}

        app.add_middleware(RequestIDMiddleware)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            generated = await client.get("/ping")
            supplied = await client.get("/ping", headers={"X-Request-ID": "client-abc.1"})
            rejected = await client.get("/ping", headers={"X-Request-ID": "bad id with spaces"})

        assert len(generated.headers["X-Request-ID"]) == 8
        assert generated.json()["request_id"] == generated.headers["X-Request-ID"]
        assert supplied.headers["X-Request-ID"] == "client-abc.1"
        assert rejected.headers["X-Request-ID"] != "bad id with spaces"


class TestRateLimit:
    async def test_limit_and_retry_after(self):
        app = FastAPI()

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        @app.get("/health")
        async def health():
            return {"ok": True}

        app.add_middleware(RateLimitMiddleware, max_requests=3, window_seconds=60)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            statuses = [(await client.get("/ping")).status_code for _ in range(4)]
            limited = await client.get("/ping")
            health = await client.get("/health")

        assert statuses == [200, 200, 200, 429]
        assert limited.status_code == 429
        assert limited.json()["error"] == "rate_limit_exceeded"
        assert 0 < int(limited.headers["Retry-After"]) <= 61
        assert health.status_code == 200

    async def test_rejection_carries_request_id(self):
        app = FastAPI()

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        app.add_middleware(RequestIDMiddleware)
        app.add_middleware(RateLimitMiddleware, max_requests=1, window_seconds=60)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            await client.get("/ping")
            supplied = await client.get("/ping", headers={"X-Request-ID": "trace-429"})
            generated = await client.get("/ping")

        assert supplied.status_code == 429
        assert supplied.json()["request_id"] == "trace-429"
        assert supplied.headers["X-Request-ID"] == "trace-429"
        assert generated.status_code == 429
        assert len(generated.json()["request_id"]) == 8
        assert generated.headers["X-Request-ID"] == generated.json()["request_id"]
