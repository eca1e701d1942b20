"""
Public endpoint tests: health report, greetings and the error envelope.
"""

from breviago import __version__


class TestHealth:
    async def test_healthy_with_local_backend(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["authorization"] == "available"
        assert body["authz_backend"] == "local"
        assert body["version"] == __version__
        assert body["uptime_seconds"] >= 0

    async def test_request_id_header(self, test_client):
        response = await test_client.get("/health")
        assert response.headers["X-Request-ID"]


class TestIndex:
    async def test_root(self, test_client):
        response = await test_client.get("/")
        assert response.status_code == 200
        assert response.json() == {
            "message": "Welcome to Breviago",
            "name": "breviago",
            "version": __version__,
        }

    async def test_api_prefix(self, test_client):
        for path in ("/api/v1", "/api/v1/"):
            response = await test_client.get(path)
            assert response.status_code == 200, path
            assert response.json()["name"] == "breviago"


class TestErrorEnvelope:
    async def test_unauthenticated_error_shape(self, test_client):
        response = await test_client.get("/api/v1/acronyms", headers={"X-Request-ID": "trace-123"})
        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "missing_token"
        assert body["message"]
        assert body["request_id"] == "trace-123"

    async def test_validation_error_shape(self, test_client):
        response = await test_client.post("/api/v1/auth/login", json={"username": "alice"})
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert any(e["field"] == "password" for e in body["details"]["errors"])

    async def test_unknown_route_shape(self, test_client, create_user):
        alice = await create_user("alice")
        response = await test_client.get("/api/v1/no-such-thing", headers=alice["headers"])
        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "not_found"
        assert body["request_id"]
        assert "detail" not in body

    async def test_wrong_method_shape(self, test_client, create_user):
        alice = await create_user("alice")
        response = await test_client.delete("/api/v1/labels", headers=alice["headers"])
        assert response.status_code == 405
        assert response.json()["error"] == "method_not_allowed"
        assert "GET" in response.headers["Allow"]
