"""
Breviago Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the whole suite.
How:   Environment variables are set before anything from `breviago` is
       imported, so the settings singleton, the engine and the
       authorization backend are all built for testing: a throwaway SQLite
       file, the local authorization backend, no seeding, instant retries.

Fixture Hierarchy:
    Function-scoped (fresh for each test):
    ├── database:      autouse; recreates every table, disposes the pool after
    ├── db_session:    an AsyncSession on the test database
    ├── test_client:   HTTPX AsyncClient wired to the app through ASGITransport
    └── create_user:   factory that registers + logs in a user over HTTP
"""

import os
import tempfile
from typing import AsyncGenerator, Dict

_TEST_DIR = tempfile.mkdtemp(prefix="breviago_test_")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["JWT_SECRET"] = "test-secret-with-at-least-thirty-two-bytes!"
os.environ["AUTHZ_BACKEND"] = "local"
os.environ["SEED_DEFAULTS"] = "false"
os.environ["AUTO_CREATE_SCHEMA"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from breviago.database import async_session_factory, dispose_engine, drop_models, init_models

DEFAULT_PASSWORD = "correct-horse-battery"


@pytest_asyncio.fixture(autouse=True)
async def database() -> AsyncGenerator[None, None]:
    await drop_models()
    await init_models()
    yield
    # Pooled aiosqlite connections belong to this test's event loop
    await dispose_engine()


@pytest_asyncio.fixture
async def db_session():
    async with async_session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def test_client() -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for endpoint tests.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from breviago.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def create_user(test_client):
    """
    Factory: register a user and log in.

    Returns a dict with the registered user's JSON ("user"), the token and
    ready-to-use Authorization headers ("headers").
    """

    async def _create(username: str, password: str = DEFAULT_PASSWORD, **extra) -> Dict:
        payload = {
            "username": username,
            "email": f"{username}@example.com",
            "password": password,
            **extra,
        }
        registered = await test_client.post("/api/v1/auth/register", json=payload)
        assert registered.status_code == 201, registered.text

        login = await test_client.post(
            "/api/v1/auth/login",
            json={"username": username, "password": password},
        )
        assert login.status_code == 200, login.text
        token = login.json()["token"]
        # Header auth only; the login cookie would otherwise follow every request
        test_client.cookies.clear()
        return {
            "user": registered.json(),
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
        }

    return _create
