"""
Startup seeding tests.

What we test:
    ✅ Fresh database gets the admin, root organization, public acronym,
       root folder and root document
    ✅ Running the seed again creates nothing new
    ✅ The seeded admin can log in and the seeded acronym is public
"""

from sqlalchemy import func, select

from breviago.config import settings
from breviago.models import (
    Acronym,
    Document,
    Folder,
    Organization,
    OrganizationMember,
    User,
    Visibility,
)
from breviago.services.bootstrap import (
    ADMIN_UUID,
    ROOT_ACRONYM_UUID,
    ROOT_DOCUMENT,
    ROOT_FOLDER,
    ROOT_ORGANIZATION,
    run_bootstrap,
    seed_defaults,
)


async def count(db, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


class TestSeedDefaults:
    async def test_creates_defaults(self, db_session):
        await seed_defaults(db_session)
        await db_session.commit()

        admin = await db_session.scalar(select(User).where(User.username == settings.admin_username))
        assert admin.uuid == ADMIN_UUID
        assert admin.email == settings.admin_email

        organization = await db_session.scalar(
            select(Organization).where(Organization.name == ROOT_ORGANIZATION)
        )
        membership = await db_session.scalar(
            select(OrganizationMember).where(OrganizationMember.organization_id == organization.id)
        )
        assert membership.user_id == admin.id
        assert membership.is_admin is True

        acronym = await db_session.scalar(select(Acronym).where(Acronym.acronym == "breviago"))
        assert acronym.uuid == ROOT_ACRONYM_UUID
        assert acronym.visibility == Visibility.PUBLIC.value
        assert acronym.owner_id == admin.id

        folder = await db_session.scalar(select(Folder).where(Folder.name == ROOT_FOLDER))
        document = await db_session.scalar(select(Document).where(Document.name == ROOT_DOCUMENT))
        assert folder.owner_id == admin.id
        assert document.owner_id == admin.id

    async def test_idempotent(self, db_session):
        await seed_defaults(db_session)
        await db_session.commit()
        await seed_defaults(db_session)
        await db_session.commit()

        for model in (User, Organization, OrganizationMember, Acronym, Folder, Document):
            assert await count(db_session, model) == 1, model.__name__

    async def test_reseed_after_admin_username_change(self, db_session, monkeypatch):
        await seed_defaults(db_session)
        await db_session.commit()

        monkeypatch.setattr(settings, "admin_username", "root")
        await seed_defaults(db_session)
        await db_session.commit()

        assert await count(db_session, User) == 1
        admin = await db_session.scalar(select(User))
        assert admin.uuid == ADMIN_UUID

    async def test_existing_user_named_admin_is_reused(self, db_session):
        existing = User(username=settings.admin_username, email="owner@example.com", name="Owner")
        db_session.add(existing)
        await db_session.commit()

        await seed_defaults(db_session)
        await db_session.commit()

        assert await count(db_session, User) == 1
        acronym = await db_session.scalar(select(Acronym).where(Acronym.acronym == "breviago"))
        assert acronym.owner_id == existing.id


class TestSeededInstance:
    async def test_admin_login_and_public_acronym(self, test_client, create_user):
        await run_bootstrap()

        login = await test_client.post(
            "/api/v1/auth/login",
            json={"username": settings.admin_username, "password": settings.admin_password},
        )
        test_client.cookies.clear()
        assert login.status_code == 200

        me = await test_client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {login.json()['token']}"}
        )
        assert me.json()["uuid"] == str(ADMIN_UUID)

        bob = await create_user("bob")
        acronym = await test_client.get(f"/api/v1/acronyms/{ROOT_ACRONYM_UUID}", headers=bob["headers"])
        assert acronym.status_code == 200
        assert acronym.json()["acronym"] == "breviago"

        edit = await test_client.put(
            f"/api/v1/acronyms/{ROOT_ACRONYM_UUID}", json={"meaning": "x"}, headers=bob["headers"]
        )
        assert edit.status_code == 403
