"""
Startup seeding.

Creates the default rows a fresh installation needs, each only if missing:

    1. admin user (fixed uuid 00000000-0000-0000-0000-000000000000)
    2. "Root Organization" with the admin as admin member
    3. the public "breviago" acronym, owned by the admin
    4. "Root Folder" and "Root Document", owned by the admin

Safe to run on every start.
"""

import logging
import time
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from breviago.config import settings
from breviago.database import async_session_factory
from breviago.models import (
    Acronym,
    Document,
    Folder,
    Organization,
    OrganizationMember,
    OwnerType,
    User,
    Visibility,
)
from breviago.services.security import hash_password

logger = logging.getLogger(__name__)

ADMIN_UUID = uuid.UUID("00000000-0000-0000-0000-000000000000")
ROOT_ACRONYM_UUID = uuid.UUID("00000000-0000-0000-0000-000000000000")
ROOT_ORGANIZATION = "Root Organization"
ROOT_FOLDER = "Root Folder"
ROOT_DOCUMENT = "Root Document"


async def seed_defaults(db: AsyncSession) -> None:
    start_time = time.perf_counter()

    # The fixed uuid wins over the username, which may have been renamed
    admin = await db.scalar(select(User).where(User.uuid == ADMIN_UUID))
    if admin is None:
        admin = await db.scalar(select(User).where(User.username == settings.admin_username))
    if admin is None:
        admin = User(
            uuid=ADMIN_UUID,
            username=settings.admin_username,
            name="Administrator",
            email=settings.admin_email,
            password_hash=hash_password(settings.admin_password),
        )
        db.add(admin)
        await db.flush()
        logger.info("Created default admin user '%s'", admin.username)

    organization = await db.scalar(select(Organization).where(Organization.name == ROOT_ORGANIZATION))
    if organization is None:
        organization = Organization(
            name=ROOT_ORGANIZATION,
            description="The root organization for Breviago",
        )
        db.add(organization)
        await db.flush()
        db.add(OrganizationMember(organization_id=organization.id, user_id=admin.id, is_admin=True))
        logger.info("Created root organization with admin member")

    acronym = await db.scalar(select(Acronym).where(Acronym.acronym == "breviago"))
    if acronym is None:
        db.add(
            Acronym(
                uuid=ROOT_ACRONYM_UUID,
                acronym="breviago",
                meaning="An application for remembering abbreviations",
                description="The main application for managing and remembering abbreviations",
                visibility=Visibility.PUBLIC.value,
                owner_id=admin.id,
            )
        )
        logger.info("Created breviago acronym")

    folder = await db.scalar(select(Folder).where(Folder.name == ROOT_FOLDER))
    if folder is None:
        db.add(
            Folder(
                name=ROOT_FOLDER,
                description="The root folder for Breviago",
                owner_type=OwnerType.USER.value,
                owner_id=admin.id,
            )
        )
        logger.info("Created root folder")

    document = await db.scalar(select(Document).where(Document.name == ROOT_DOCUMENT))
    if document is None:
        db.add(
            Document(
                name=ROOT_DOCUMENT,
                content="The root document for Breviago",
                owner_type=OwnerType.USER.value,
                owner_id=admin.id,
            )
        )
        logger.info("Created root document")

    await db.flush()
    logger.info(
        "Database seeding completed in %.0fms",
        (time.perf_counter() - start_time) * 1000,
    )


async def run_bootstrap() -> None:
    """Seed in a dedicated session and commit."""
    async with async_session_factory() as session:
        try:
            await seed_defaults(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
