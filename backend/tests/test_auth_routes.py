"""
Breviago Backend — Authentication & User Endpoint Tests
========================================================

What we test:
    ✅ Register: success, duplicate username/email (409), weak password (400)
    ✅ Login: token + HttpOnly cookie, identical error for bad user/password
    ✅ Logout and refresh revoke the previous token
    ✅ /auth/me with header or cookie
    ✅ User settings upsert and the public profile view
"""

import uuid

DEFAULT_PASSWORD = "correct-horse-battery"


class TestRegister:
    async def test_register_success(self, test_client):
        response = await test_client.post(
            "/api/v1/auth/register",
            json={
                "username": "alice",
                "email": "Alice@Example.com",
                "password": DEFAULT_PASSWORD,
                "name": "Alice A.",
                "legal_name": "Alice Anderson",
            },
        )
        assert response.status_code == 201
        body = response.json()
        assert body["username"] == "alice"
        assert body["email"] == "alice@example.com"
        assert body["legal_name"] == "Alice Anderson"
        assert body["settings"] == []
        assert "password" not in body and "password_hash" not in body
        uuid.UUID(body["uuid"])

    async def test_name_defaults_to_username(self, test_client):
        response = await test_client.post(
            "/api/v1/auth/register",
            json={"username": "bob", "email": "bob@example.com", "password": DEFAULT_PASSWORD},
        )
        assert response.json()["name"] == "bob"

    async def test_duplicate_username(self, test_client, create_user):
        await create_user("alice")
        response = await test_client.post(
            "/api/v1/auth/register",
            json={"username": "alice", "email": "other@example.com", "password": DEFAULT_PASSWORD},
        )
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    async def test_duplicate_email(self, test_client, create_user):
        await create_user("alice")
        response = await test_client.post(
            "/api/v1/auth/register",
            json={"username": "alice2", "email": "alice@example.com", "password": DEFAULT_PASSWORD},
        )
        assert response.status_code == 409

    async def test_short_password(self, test_client):
        response = await test_client.post(
            "/api/v1/auth/register",
            json={"username": "carol", "email": "carol@example.com", "password": "short"},
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert any(e["field"] == "password" for e in body["details"]["errors"])

    async def test_invalid_email(self, test_client):
        response = await test_client.post(
            "/api/v1/auth/register",
            json={"username": "carol", "email": "not-an-email", "password": DEFAULT_PASSWORD},
        )
        assert response.status_code == 400


class TestLogin:
    async def test_login_sets_cookie(self, test_client, create_user):
        await create_user("alice")
        response = await test_client.post(
            "/api/v1/auth/login",
            json={"username": "alice", "password": DEFAULT_PASSWORD},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["token"]
        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith("token=")
        assert "HttpOnly" in set_cookie
        assert "samesite=lax" in set_cookie.lower()

    async def test_wrong_password_and_unknown_user_look_the_same(self, test_client, create_user):
        await create_user("alice")
        wrong_password = await test_client.post(
            "/api/v1/auth/login", json={"username": "alice", "password": "not-the-password"}
        )
        unknown_user = await test_client.post(
            "/api/v1/auth/login", json={"username": "nobody", "password": "not-the-password"}
        )
        assert wrong_password.status_code == unknown_user.status_code == 401
        assert wrong_password.json()["error"] == unknown_user.json()["error"] == "invalid_credentials"
        assert wrong_password.json()["message"] == unknown_user.json()["message"]

    async def test_login_replaces_previous_session(self, test_client, create_user):
        alice = await create_user("alice")
        second = await test_client.post(
            "/api/v1/auth/login", json={"username": "alice", "password": DEFAULT_PASSWORD}
        )
        test_client.cookies.clear()

        old = await test_client.get("/api/v1/auth/me", headers=alice["headers"])
        new = await test_client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {second.json()['token']}"}
        )
        assert old.status_code == 401
        assert old.json()["error"] == "session_revoked"
        assert new.status_code == 200


class TestSession:
    async def test_me(self, test_client, create_user):
        alice = await create_user("alice")
        response = await test_client.get("/api/v1/auth/me", headers=alice["headers"])
        assert response.status_code == 200
        assert response.json()["uuid"] == alice["user"]["uuid"]

    async def test_me_with_cookie(self, test_client, create_user):
        alice = await create_user("alice")
        response = await test_client.get("/api/v1/auth/me", headers={"Cookie": f"token={alice['token']}"})
        assert response.status_code == 200
        assert response.json()["username"] == "alice"

    async def test_me_without_token(self, test_client):
        response = await test_client.get("/api/v1/auth/me")
        assert response.status_code == 401
        assert response.json()["error"] == "missing_token"

    async def test_logout_revokes_token(self, test_client, create_user):
        alice = await create_user("alice")
        response = await test_client.post("/api/v1/auth/logout", headers=alice["headers"])
        assert response.status_code == 200
        assert response.json() == {"message": "Logged out"}

        after = await test_client.get("/api/v1/auth/me", headers=alice["headers"])
        assert after.status_code == 401
        assert after.json()["error"] == "session_revoked"

    async def test_refresh_rotates_token(self, test_client, create_user):
        alice = await create_user("alice")
        response = await test_client.post("/api/v1/auth/refresh", headers=alice["headers"])
        assert response.status_code == 200
        new_token = response.json()["token"]
        assert new_token != alice["token"]
        test_client.cookies.clear()

        assert (await test_client.get("/api/v1/auth/me", headers=alice["headers"])).status_code == 401
        fresh = await test_client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {new_token}"})
        assert fresh.status_code == 200


class TestUsers:
    async def test_settings_upsert(self, test_client, create_user):
        alice = await create_user("alice")
        headers = alice["headers"]

        first = await test_client.put("/api/v1/users/me/settings/theme", json={"value": "dark"}, headers=headers)
        assert first.status_code == 200
        assert first.json()["value"] == "dark"
        await test_client.put("/api/v1/users/me/settings/theme", json={"value": "light"}, headers=headers)
        await test_client.put("/api/v1/users/me/settings/lang", json={"value": "de"}, headers=headers)

        listed = await test_client.get("/api/v1/users/me/settings", headers=headers)
        assert [(s["key"], s["value"]) for s in listed.json()] == [("lang", "de"), ("theme", "light")]

        me = await test_client.get("/api/v1/auth/me", headers=headers)
        assert len(me.json()["settings"]) == 2

    async def test_public_profile_hides_private_fields(self, test_client, create_user):
        alice = await create_user("alice", legal_name="Alice Anderson")
        bob = await create_user("bob")

        response = await test_client.get(f"/api/v1/users/{alice['user']['uuid']}", headers=bob["headers"])
        assert response.status_code == 200
        body = response.json()
        assert body["uuid"] == alice["user"]["uuid"]
        assert "legal_name" not in body
        assert "settings" not in body

    async def test_unknown_user(self, test_client, create_user):
        bob = await create_user("bob")
        response = await test_client.get(f"/api/v1/users/{uuid.uuid4()}", headers=bob["headers"])
        assert response.status_code == 404
