"""
Breviago Backend — Organization Endpoint Tests
===============================================

What we test:
    ✅ Create makes the caller an admin member; list is scoped to memberships
    ✅ Detail view for members, 403 for everyone else
    ✅ Adding members: unknown user (404), duplicate (409), non-admin (403)
    ✅ Removing members, including the last-admin guard (400)
    ✅ Organization grants on acronyms reach new members
"""

import uuid

API = "/api/v1/organizations"


async def create_org(client, owner, name="Platform Team", **extra):
    response = await client.post(API, json={"name": name, **extra}, headers=owner["headers"])
    assert response.status_code == 201, response.text
    return response.json()


async def add_member(client, admin, org, member, is_admin=False):
    return await client.post(
        f"{API}/{org['uuid']}/members",
        json={"user_uuid": member["user"]["uuid"], "is_admin": is_admin},
        headers=admin["headers"],
    )


class TestCreateAndList:
    async def test_creator_is_admin(self, test_client, create_user):
        alice = await create_user("alice")
        org = await create_org(test_client, alice, description="Infra and tooling")

        assert org["name"] == "Platform Team"
        assert org["description"] == "Infra and tooling"
        assert org["is_admin"] is True
        uuid.UUID(org["uuid"])

        detail = await test_client.get(f"{API}/{org['uuid']}", headers=alice["headers"])
        assert detail.status_code == 200
        members = detail.json()["members"]
        assert [(m["user"]["uuid"], m["is_admin"]) for m in members] == [(alice["user"]["uuid"], True)]

    async def test_blank_name_rejected(self, test_client, create_user):
        alice = await create_user("alice")
        response = await test_client.post(API, json={"name": "   "}, headers=alice["headers"])
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    async def test_list_only_memberships(self, test_client, create_user):
        alice = await create_user("alice")
        bob = await create_user("bob")
        await create_org(test_client, alice, name="Zeta")
        await create_org(test_client, alice, name="Alpha")
        await create_org(test_client, bob, name="Bob's Org")

        listed = await test_client.get(API, headers=alice["headers"])
        assert listed.status_code == 200
        assert [o["name"] for o in listed.json()["data"]] == ["Alpha", "Zeta"]

    async def test_requires_authentication(self, test_client):
        response = await test_client.get(API)
        assert response.status_code == 401


class TestAccess:
    async def test_non_member_forbidden(self, test_client, create_user):
        alice = await create_user("alice")
        mallory = await create_user("mallory")
        org = await create_org(test_client, alice)

        response = await test_client.get(f"{API}/{org['uuid']}", headers=mallory["headers"])
        assert response.status_code == 403
        assert response.json()["error"] == "permission_denied"

    async def test_unknown_organization_forbidden(self, test_client, create_user):
        alice = await create_user("alice")
        response = await test_client.get(f"{API}/{uuid.uuid4()}", headers=alice["headers"])
        assert response.status_code == 403

    async def test_malformed_id(self, test_client, create_user):
        alice = await create_user("alice")
        response = await test_client.get(f"{API}/not-a-uuid", headers=alice["headers"])
        assert response.status_code == 400


class TestMembers:
    async def test_add_member(self, test_client, create_user):
        alice = await create_user("alice")
        bob = await create_user("bob")
        org = await create_org(test_client, alice)

        response = await add_member(test_client, alice, org, bob)
        assert response.status_code == 201
        body = response.json()
        assert body["user"]["uuid"] == bob["user"]["uuid"]
        assert body["is_admin"] is False

        detail = await test_client.get(f"{API}/{org['uuid']}", headers=bob["headers"])
        assert detail.status_code == 200
        assert detail.json()["is_admin"] is False
        assert len(detail.json()["members"]) == 2

        listed = await test_client.get(API, headers=bob["headers"])
        assert [o["uuid"] for o in listed.json()["data"]] == [org["uuid"]]

    async def test_add_unknown_user(self, test_client, create_user):
        alice = await create_user("alice")
        org = await create_org(test_client, alice)

        response = await test_client.post(
            f"{API}/{org['uuid']}/members",
            json={"user_uuid": str(uuid.uuid4())},
            headers=alice["headers"],
        )
        assert response.status_code == 404

    async def test_add_twice_conflicts(self, test_client, create_user):
        alice = await create_user("alice")
        bob = await create_user("bob")
        org = await create_org(test_client, alice)

        assert (await add_member(test_client, alice, org, bob)).status_code == 201
        again = await add_member(test_client, alice, org, bob)
        assert again.status_code == 409
        assert again.json()["error"] == "conflict"

    async def test_plain_member_cannot_add(self, test_client, create_user):
        alice = await create_user("alice")
        bob = await create_user("bob")
        carol = await create_user("carol")
        org = await create_org(test_client, alice)
        await add_member(test_client, alice, org, bob)

        response = await add_member(test_client, bob, org, carol)
        assert response.status_code == 403

    async def test_promoted_admin_can_add(self, test_client, create_user):
        alice = await create_user("alice")
        bob = await create_user("bob")
        carol = await create_user("carol")
        org = await create_org(test_client, alice)
        await add_member(test_client, alice, org, bob, is_admin=True)

        response = await add_member(test_client, bob, org, carol)
        assert response.status_code == 201

    async def test_remove_member(self, test_client, create_user):
        alice = await create_user("alice")
        bob = await create_user("bob")
        org = await create_org(test_client, alice)
        await add_member(test_client, alice, org, bob)

        response = await test_client.delete(
            f"{API}/{org['uuid']}/members/{bob['user']['uuid']}", headers=alice["headers"]
        )
        assert response.status_code == 204

        after = await test_client.get(f"{API}/{org['uuid']}", headers=bob["headers"])
        assert after.status_code == 403

    async def test_remove_non_member(self, test_client, create_user):
        alice = await create_user("alice")
        bob = await create_user("bob")
        org = await create_org(test_client, alice)

        response = await test_client.delete(
            f"{API}/{org['uuid']}/members/{bob['user']['uuid']}", headers=alice["headers"]
        )
        assert response.status_code == 404

    async def test_last_admin_cannot_leave(self, test_client, create_user):
        alice = await create_user("alice")
        org = await create_org(test_client, alice)

        response = await test_client.delete(
            f"{API}/{org['uuid']}/members/{alice['user']['uuid']}", headers=alice["headers"]
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    async def test_admin_can_leave_when_another_admin_remains(self, test_client, create_user):
        alice = await create_user("alice")
        bob = await create_user("bob")
        org = await create_org(test_client, alice)
        await add_member(test_client, alice, org, bob, is_admin=True)

        response = await test_client.delete(
            f"{API}/{org['uuid']}/members/{alice['user']['uuid']}", headers=alice["headers"]
        )
        assert response.status_code == 204

        detail = await test_client.get(f"{API}/{org['uuid']}", headers=bob["headers"])
        assert [m["user"]["uuid"] for m in detail.json()["members"]] == [bob["user"]["uuid"]]


class TestOrganizationGrants:
    async def test_new_member_sees_org_shared_acronym(self, test_client, create_user):
        alice = await create_user("alice")
        bob = await create_user("bob")
        org = await create_org(test_client, alice)

        acronym = await test_client.post(
            "/api/v1/acronyms",
            json={"acronym": "SLO", "meaning": "Service Level Objective"},
            headers=alice["headers"],
        )
        acronym_uuid = acronym.json()["uuid"]
        grant = await test_client.post(
            f"/api/v1/acronyms/{acronym_uuid}/grants",
            json={"grantee_type": "organization", "grantee_uuid": org["uuid"], "relation": "viewer"},
            headers=alice["headers"],
        )
        assert grant.status_code == 201

        before = await test_client.get(f"/api/v1/acronyms/{acronym_uuid}", headers=bob["headers"])
        assert before.status_code == 403

        await add_member(test_client, alice, org, bob)
        after = await test_client.get(f"/api/v1/acronyms/{acronym_uuid}", headers=bob["headers"])
        assert after.status_code == 200
