"""
Organizations and their member lists.

The creator of an organization becomes its first admin. An organization
always keeps at least one admin: removing the last one is refused.
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from breviago.exceptions import ConflictError, NotFoundError, ValidationError
from breviago.models import Organization, OrganizationMember, User
from breviago.schemas.organization import (
    MemberAdd,
    MemberResponse,
    OrganizationCreate,
    OrganizationDetailResponse,
    OrganizationListResponse,
    OrganizationResponse,
)
from breviago.schemas.user import OwnerRef
from breviago.services.audit_service import audit_service
from breviago.services.authorization import authorization_service
from breviago.services.authz_base import object_ref, user_ref

logger = logging.getLogger(__name__)


def _member_relation(is_admin: bool) -> str:
    return "admin" if is_admin else "member"


class OrganizationService:
    async def create_organization(
        self, db: AsyncSession, user: User, data: OrganizationCreate
    ) -> OrganizationResponse:
        name = data.name.strip()
        if not name:
            raise ValidationError("Organization name cannot be empty", field="name")

        organization = Organization(name=name, description=data.description)
        db.add(organization)
        await db.flush()

        db.add(OrganizationMember(organization_id=organization.id, user_id=user.id, is_admin=True))
        await db.flush()

        audit_service.record(db, user.id, "organization", "create", data={"uuid": organization.uuid})
        await authorization_service.write_relationship(
            user_ref(user.uuid), "admin", object_ref("organization", organization.uuid)
        )
        logger.info("Organization %s (%s) created by %s", name, organization.uuid, user.username)
        return self._to_response(organization, is_admin=True)

    async def list_organizations(self, db: AsyncSession, user: User) -> OrganizationListResponse:
        rows = await db.execute(
            select(Organization, OrganizationMember.is_admin)
            .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
            .where(OrganizationMember.user_id == user.id, Organization.deleted_at.is_(None))
            .order_by(Organization.name, Organization.id)
        )
        return OrganizationListResponse(
            data=[self._to_response(org, is_admin) for org, is_admin in rows.all()]
        )

    async def get_organization(
        self, db: AsyncSession, user: User, org_uuid: UUID
    ) -> OrganizationDetailResponse:
        organization = await self._load(db, org_uuid)
        return self._to_detail(organization, user)

    async def add_member(
        self, db: AsyncSession, actor: User, org_uuid: UUID, data: MemberAdd
    ) -> MemberResponse:
        organization = await self._load(db, org_uuid)
        target = await db.scalar(
            select(User).where(User.uuid == data.user_uuid, User.deleted_at.is_(None))
        )
        if target is None:
            raise NotFoundError(resource="user", resource_id=str(data.user_uuid))
        if any(m.user_id == target.id for m in organization.members):
            raise ConflictError(
                message="User is already a member of this organization",
                context={"user": str(target.uuid)},
            )

        member = OrganizationMember(
            organization_id=organization.id,
            user_id=target.id,
            is_admin=data.is_admin,
        )
        db.add(member)
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError(message="User is already a member of this organization")

        await authorization_service.write_relationship(
            user_ref(target.uuid),
            _member_relation(member.is_admin),
            object_ref("organization", organization.uuid),
        )
        logger.info(
            "%s added %s to organization %s (admin=%s)",
            actor.username,
            target.username,
            organization.uuid,
            member.is_admin,
        )
        return MemberResponse(
            user=OwnerRef(uuid=target.uuid, name=target.name),
            is_admin=member.is_admin,
            joined_at=member.created_at,
        )

    async def remove_member(
        self, db: AsyncSession, actor: User, org_uuid: UUID, user_uuid: UUID
    ) -> None:
        organization = await self._load(db, org_uuid)
        member = next((m for m in organization.members if m.user.uuid == user_uuid), None)
        if member is None:
            raise NotFoundError(resource="member", resource_id=str(user_uuid))

        if member.is_admin:
            admins = await db.scalar(
                select(func.count(OrganizationMember.id)).where(
                    OrganizationMember.organization_id == organization.id,
                    OrganizationMember.is_admin.is_(True),
                )
            )
            if admins <= 1:
                raise ValidationError(
                    "Cannot remove the last admin of an organization",
                    field="user",
                )

        relation = _member_relation(member.is_admin)
        await db.delete(member)
        await db.flush()

        await authorization_service.delete_relationship(
            user_ref(user_uuid), relation, object_ref("organization", organization.uuid)
        )
        logger.info(
            "%s removed %s from organization %s", actor.username, user_uuid, organization.uuid
        )

    async def _load(self, db: AsyncSession, org_uuid: UUID) -> Organization:
        organization = await db.scalar(
            select(Organization)
            .options(selectinload(Organization.members).selectinload(OrganizationMember.user))
            .where(Organization.uuid == org_uuid, Organization.deleted_at.is_(None))
        )
        if organization is None:
            raise NotFoundError(resource="organization", resource_id=str(org_uuid))
        return organization

    def _to_response(self, organization: Organization, is_admin: bool) -> OrganizationResponse:
        return OrganizationResponse(
            uuid=organization.uuid,
            name=organization.name,
            description=organization.description,
            is_admin=is_admin,
            created_at=organization.created_at,
        )

    def _to_detail(self, organization: Organization, user: User) -> OrganizationDetailResponse:
        members: List[MemberResponse] = [
            MemberResponse(
                user=OwnerRef(uuid=m.user.uuid, name=m.user.name),
                is_admin=m.is_admin,
                joined_at=m.created_at,
            )
            for m in organization.members
            if m.user.deleted_at is None
        ]
        is_admin = any(m.user_id == user.id and m.is_admin for m in organization.members)
        return OrganizationDetailResponse(
            **self._to_response(organization, is_admin).model_dump(),
            members=members,
        )


organization_service = OrganizationService()
