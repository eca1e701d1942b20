"""
Breviago Backend — Database-Backed Authorization
=================================================

What:  Answers the same relation questions as OpenFGA, but derives them from
       the rows already in the database. Used when AUTHZ_BACKEND=local
       (development, tests, single-node deployments without an OpenFGA store).

Relations:
    acronym
        owner   — acronyms.owner_id is the user
        editor  — owner, or an "editor" grant to the user or one of their orgs
        viewer  — editor, any grant to the user or one of their orgs,
                  or visibility = public
    folder / document
        owner   — the owning user, or an admin of the owning organization
        editor  — owner, or any member of the owning organization
        viewer  — same as editor
        Documents (and sub-folders) also inherit every relation held on their
        parent folder chain.
    organization
        admin   — member row with is_admin
        member  — any member row (viewer is an alias)

Deleted objects and deleted users have no relations at all.
"""

import logging
import uuid
from typing import Optional, Set

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from breviago.database import async_session_factory
from breviago.models import (
    Acronym,
    AcronymGrant,
    Document,
    Folder,
    GranteeType,
    GrantRelation,
    Organization,
    OrganizationMember,
    OwnerType,
    User,
    Visibility,
)
from breviago.services.authz_base import AVAILABLE, AuthorizationService, parse_ref

logger = logging.getLogger(__name__)

ALL_RELATIONS = frozenset({"owner", "editor", "viewer"})
MEMBER_RELATIONS = frozenset({"editor", "viewer"})

# Guards against a corrupted (cyclic) parent chain
MAX_FOLDER_DEPTH = 64


def member_organization_uuids(user_id: int):
    """Subquery: uuids of every live organization the user belongs to."""
    return (
        select(Organization.uuid)
        .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
        .where(
            OrganizationMember.user_id == user_id,
            Organization.deleted_at.is_(None),
        )
    )


def grant_matches(user: User):
    """Filter matching grants addressed to the user directly or through an organization."""
    return or_(
        and_(
            AcronymGrant.grantee_type == GranteeType.USER.value,
            AcronymGrant.grantee_uuid == user.uuid,
        ),
        and_(
            AcronymGrant.grantee_type == GranteeType.ORGANIZATION.value,
            AcronymGrant.grantee_uuid.in_(member_organization_uuids(user.id)),
        ),
    )


class LocalAuthorizationService(AuthorizationService):
    backend = "local"

    async def check(
        self,
        user: str,
        relation: str,
        obj: str,
        *,
        db: Optional[AsyncSession] = None,
    ) -> bool:
        subject_type, user_uuid = parse_ref(user)
        object_type, object_uuid = parse_ref(obj)
        if subject_type != "user" or user_uuid is None or object_uuid is None:
            return False

        if db is None:
            async with async_session_factory() as session:
                allowed = await self._check(session, user_uuid, relation, object_type, object_uuid)
        else:
            allowed = await self._check(db, user_uuid, relation, object_type, object_uuid)

        logger.debug("Local check %s %s %s → %s", user, relation, obj, allowed)
        return allowed

    async def write_relationship(self, user: str, relation: str, obj: str) -> None:
        # Relations live in the rows themselves; nothing extra to store
        return None

    async def delete_relationship(self, user: str, relation: str, obj: str) -> None:
        return None

    async def health_check(self) -> str:
        return AVAILABLE

    # ── Relation resolution ───────────────────────────────────────────────

    async def _check(
        self,
        db: AsyncSession,
        user_uuid: uuid.UUID,
        relation: str,
        object_type: str,
        object_uuid: uuid.UUID,
    ) -> bool:
        user = await db.scalar(
            select(User).where(User.uuid == user_uuid, User.deleted_at.is_(None))
        )
        if user is None:
            return False

        if object_type == "acronym":
            return await self._check_acronym(db, user, relation, object_uuid)
        if object_type == "organization":
            return await self._check_organization(db, user, relation, object_uuid)
        if object_type == "folder":
            folder = await db.scalar(
                select(Folder).where(Folder.uuid == object_uuid, Folder.deleted_at.is_(None))
            )
            if folder is None:
                return False
            return relation in await self._folder_relations(db, user, folder)
        if object_type == "document":
            return await self._check_document(db, user, relation, object_uuid)

        logger.warning("Local check on unknown object type '%s'", object_type)
        return False

    async def _check_acronym(
        self, db: AsyncSession, user: User, relation: str, acronym_uuid: uuid.UUID
    ) -> bool:
        acronym = await db.scalar(
            select(Acronym).where(Acronym.uuid == acronym_uuid, Acronym.deleted_at.is_(None))
        )
        if acronym is None:
            return False
        if acronym.owner_id == user.id:
            return relation in ALL_RELATIONS
        if relation not in MEMBER_RELATIONS:
            return False
        if relation == "viewer" and acronym.visibility == Visibility.PUBLIC.value:
            return True

        granted = set(
            (
                await db.scalars(
                    select(AcronymGrant.relation).where(
                        AcronymGrant.acronym_id == acronym.id,
                        grant_matches(user),
                    )
                )
            ).all()
        )
        if relation == "editor":
            return GrantRelation.EDITOR.value in granted
        return bool(granted)

    async def _check_organization(
        self, db: AsyncSession, user: User, relation: str, org_uuid: uuid.UUID
    ) -> bool:
        member = await db.scalar(
            select(OrganizationMember)
            .join(Organization, OrganizationMember.organization_id == Organization.id)
            .where(
                Organization.uuid == org_uuid,
                Organization.deleted_at.is_(None),
                OrganizationMember.user_id == user.id,
            )
        )
        if member is None:
            return False
        if relation == "admin":
            return member.is_admin
        return relation in {"member", "viewer"}

    async def _check_document(
        self, db: AsyncSession, user: User, relation: str, document_uuid: uuid.UUID
    ) -> bool:
        document = await db.scalar(
            select(Document).where(Document.uuid == document_uuid, Document.deleted_at.is_(None))
        )
        if document is None:
            return False
        relations = await self._owner_relations(db, user, document.owner_type, document.owner_id)
        if relation in relations:
            return True
        if document.folder_id is None:
            return False
        folder = await db.scalar(
            select(Folder).where(Folder.id == document.folder_id, Folder.deleted_at.is_(None))
        )
        if folder is None:
            return False
        return relation in await self._folder_relations(db, user, folder)

    async def _folder_relations(self, db: AsyncSession, user: User, folder: Folder) -> Set[str]:
        """Union of relations on the folder and every ancestor."""
        relations: Set[str] = set()
        seen: Set[int] = set()
        current: Optional[Folder] = folder

        while current is not None and current.id not in seen and len(seen) < MAX_FOLDER_DEPTH:
            seen.add(current.id)
            relations |= await self._owner_relations(db, user, current.owner_type, current.owner_id)
            if relations >= ALL_RELATIONS or current.parent_id is None:
                break
            current = await db.scalar(
                select(Folder).where(Folder.id == current.parent_id, Folder.deleted_at.is_(None))
            )
        return relations

    async def _owner_relations(
        self, db: AsyncSession, user: User, owner_type: str, owner_id: int
    ) -> Set[str]:
        if owner_type == OwnerType.USER.value:
            return set(ALL_RELATIONS) if owner_id == user.id else set()

        member = await db.scalar(
            select(OrganizationMember)
            .join(Organization, OrganizationMember.organization_id == Organization.id)
            .where(
                OrganizationMember.organization_id == owner_id,
                OrganizationMember.user_id == user.id,
                Organization.deleted_at.is_(None),
            )
        )
        if member is None:
            return set()
        return set(ALL_RELATIONS) if member.is_admin else set(MEMBER_RELATIONS)
