"""
Breviago Backend — Folder & Document Endpoint Tests
====================================================

What we test:
    ✅ Personal folders and documents belong to the creator
    ✅ Organization folders: members edit, admins own, outsiders get 403
    ✅ Documents and sub-folders inherit access from their parent folder
    ✅ Document update rules (editor) and delete rules (owner)
    ✅ Deleting a folder soft-deletes its sub-folders and documents
"""

import uuid

FOLDERS = "/api/v1/folders"
DOCUMENTS = "/api/v1/documents"


async def create_folder(client, user, name="Specs", **extra):
    response = await client.post(FOLDERS, json={"name": name, **extra}, headers=user["headers"])
    assert response.status_code == 201, response.text
    return response.json()


async def create_document(client, user, name="Readme", **extra):
    response = await client.post(DOCUMENTS, json={"name": name, **extra}, headers=user["headers"])
    assert response.status_code == 201, response.text
    return response.json()


async def create_org_with(client, admin, *members):
    org = await client.post("/api/v1/organizations", json={"name": "Team"}, headers=admin["headers"])
    org_uuid = org.json()["uuid"]
    for member in members:
        added = await client.post(
            f"/api/v1/organizations/{org_uuid}/members",
            json={"user_uuid": member["user"]["uuid"]},
            headers=admin["headers"],
        )
        assert added.status_code == 201
    return org_uuid


class TestPersonalFolders:
    async def test_create_and_get(self, test_client, create_user):
        alice = await create_user("alice")
        folder = await create_folder(test_client, alice, description="Design notes")

        assert folder["owner"] == {"type": "user", "uuid": alice["user"]["uuid"], "name": "alice"}
        assert folder["parent"] is None

        detail = await test_client.get(f"{FOLDERS}/{folder['uuid']}", headers=alice["headers"])
        assert detail.status_code == 200
        assert detail.json()["description"] == "Design notes"
        assert detail.json()["documents"] == []

    async def test_others_cannot_read(self, test_client, create_user):
        alice = await create_user("alice")
        bob = await create_user("bob")
        folder = await create_folder(test_client, alice)

        response = await test_client.get(f"{FOLDERS}/{folder['uuid']}", headers=bob["headers"])
        assert response.status_code == 403

    async def test_list(self, test_client, create_user):
        alice = await create_user("alice")
        bob = await create_user("bob")
        await create_folder(test_client, alice, name="b-folder")
        await create_folder(test_client, alice, name="a-folder")
        await create_folder(test_client, bob, name="bobs")

        listed = await test_client.get(FOLDERS, headers=alice["headers"])
        assert [f["name"] for f in listed.json()["data"]] == ["a-folder", "b-folder"]

    async def test_nested_folder_requires_editor_on_parent(self, test_client, create_user):
        alice = await create_user("alice")
        bob = await create_user("bob")
        parent = await create_folder(test_client, alice)

        child = await create_folder(test_client, alice, name="Child", parent=parent["uuid"])
        assert child["parent"] == parent["uuid"]

        denied = await test_client.post(
            FOLDERS, json={"name": "Intruder", "parent": parent["uuid"]}, headers=bob["headers"]
        )
        assert denied.status_code == 403

    async def test_unknown_parent(self, test_client, create_user):
        alice = await create_user("alice")
        response = await test_client.post(
            FOLDERS, json={"name": "Orphan", "parent": str(uuid.uuid4())}, headers=alice["headers"]
        )
        assert response.status_code == 404


class TestDocuments:
    async def test_create_in_folder(self, test_client, create_user):
        alice = await create_user("alice")
        folder = await create_folder(test_client, alice)
        document = await create_document(
            test_client, alice, content="# Hello", folder=folder["uuid"]
        )

        assert document["folder"] == folder["uuid"]
        assert document["content"] == "# Hello"
        assert document["owner"]["uuid"] == alice["user"]["uuid"]

        detail = await test_client.get(f"{FOLDERS}/{folder['uuid']}", headers=alice["headers"])
        assert [d["uuid"] for d in detail.json()["documents"]] == [document["uuid"]]

    async def test_update(self, test_client, create_user):
        alice = await create_user("alice")
        document = await create_document(test_client, alice, content="v1")

        response = await test_client.put(
            f"{DOCUMENTS}/{document['uuid']}", json={"content": "v2"}, headers=alice["headers"]
        )
        assert response.status_code == 200
        assert response.json()["content"] == "v2"
        assert response.json()["name"] == "Readme"

    async def test_outsider_cannot_touch(self, test_client, create_user):
        alice = await create_user("alice")
        bob = await create_user("bob")
        document = await create_document(test_client, alice)
        url = f"{DOCUMENTS}/{document['uuid']}"

        assert (await test_client.get(url, headers=bob["headers"])).status_code == 403
        assert (await test_client.put(url, json={"content": "x"}, headers=bob["headers"])).status_code == 403
        assert (await test_client.delete(url, headers=bob["headers"])).status_code == 403

    async def test_delete(self, test_client, create_user):
        alice = await create_user("alice")
        document = await create_document(test_client, alice)
        url = f"{DOCUMENTS}/{document['uuid']}"

        assert (await test_client.delete(url, headers=alice["headers"])).status_code == 204
        # Deleted objects carry no relations
        assert (await test_client.get(url, headers=alice["headers"])).status_code == 403

    async def test_blank_name_on_update(self, test_client, create_user):
        alice = await create_user("alice")
        document = await create_document(test_client, alice)
        response = await test_client.put(
            f"{DOCUMENTS}/{document['uuid']}", json={"name": "  "}, headers=alice["headers"]
        )
        assert response.status_code == 400


class TestOrganizationFolders:
    async def test_member_edits_admin_owns(self, test_client, create_user):
        alice = await create_user("alice")
        bob = await create_user("bob")
        mallory = await create_user("mallory")
        org_uuid = await create_org_with(test_client, alice, bob)

        folder = await create_folder(test_client, bob, name="Shared", organization=org_uuid)
        assert folder["owner"]["type"] == "organization"
        assert folder["owner"]["uuid"] == org_uuid

        document = await create_document(test_client, bob, folder=folder["uuid"])
        doc_url = f"{DOCUMENTS}/{document['uuid']}"

        # Member: view and edit, but not delete
        assert (await test_client.put(doc_url, json={"content": "by bob"}, headers=bob["headers"])).status_code == 200
        assert (await test_client.delete(f"{FOLDERS}/{folder['uuid']}", headers=bob["headers"])).status_code == 403

        # Outsider: nothing
        assert (await test_client.get(doc_url, headers=mallory["headers"])).status_code == 403
        assert (await test_client.get(f"{FOLDERS}/{folder['uuid']}", headers=mallory["headers"])).status_code == 403

        # Admin of the owning organization owns the folder
        assert (await test_client.get(doc_url, headers=alice["headers"])).status_code == 200
        assert (await test_client.delete(f"{FOLDERS}/{folder['uuid']}", headers=alice["headers"])).status_code == 204

    async def test_members_list_org_folders(self, test_client, create_user):
        alice = await create_user("alice")
        bob = await create_user("bob")
        org_uuid = await create_org_with(test_client, alice, bob)
        await create_folder(test_client, alice, name="Shared", organization=org_uuid)

        listed = await test_client.get(FOLDERS, headers=bob["headers"])
        assert [f["name"] for f in listed.json()["data"]] == ["Shared"]

    async def test_non_member_cannot_create_in_org(self, test_client, create_user):
        alice = await create_user("alice")
        mallory = await create_user("mallory")
        org_uuid = await create_org_with(test_client, alice)

        response = await test_client.post(
            FOLDERS, json={"name": "Sneaky", "organization": org_uuid}, headers=mallory["headers"]
        )
        assert response.status_code == 403

    async def test_unknown_organization(self, test_client, create_user):
        alice = await create_user("alice")
        response = await test_client.post(
            FOLDERS, json={"name": "Nowhere", "organization": str(uuid.uuid4())}, headers=alice["headers"]
        )
        assert response.status_code == 404


class TestFolderDelete:
    async def test_cascades_to_children_and_documents(self, test_client, create_user):
        alice = await create_user("alice")
        root = await create_folder(test_client, alice, name="Root")
        child = await create_folder(test_client, alice, name="Child", parent=root["uuid"])
        grandchild = await create_folder(test_client, alice, name="Grandchild", parent=child["uuid"])
        document = await create_document(test_client, alice, folder=grandchild["uuid"])
        survivor = await create_folder(test_client, alice, name="Survivor")

        response = await test_client.delete(f"{FOLDERS}/{root['uuid']}", headers=alice["headers"])
        assert response.status_code == 204

        for folder in (root, child, grandchild):
            gone = await test_client.get(f"{FOLDERS}/{folder['uuid']}", headers=alice["headers"])
            assert gone.status_code == 403
        gone = await test_client.get(f"{DOCUMENTS}/{document['uuid']}", headers=alice["headers"])
        assert gone.status_code == 403

        listed = await test_client.get(FOLDERS, headers=alice["headers"])
        assert [f["uuid"] for f in listed.json()["data"]] == [survivor["uuid"]]
