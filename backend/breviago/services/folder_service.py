"""
Breviago Backend — Folder and Document Service
===============================================

What:  Folders (optionally nested) and the documents filed in them.

Ownership:
    owner_type "user"          → owner_id is users.id
    owner_type "organization"  → owner_id is organizations.id

    Creating something for an organization requires membership; filing it
    under a parent folder requires editor on that folder. Documents inside a
    folder inherit the folder's permissions (see LocalAuthorizationService).

Relationship tuples written for an OpenFGA backend:
    user:<u>          owner         folder:<f> | document:<d>
    organization:<o>  organization  folder:<f> | document:<d>
    folder:<p>        parent        folder:<f> | document:<d>
"""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from breviago.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from breviago.models import Document, Folder, Organization, OrganizationMember, OwnerType, User
from breviago.schemas.folder import (
    DocumentCreate,
    DocumentResponse,
    DocumentSummary,
    DocumentUpdate,
    FolderCreate,
    FolderDetailResponse,
    FolderListResponse,
    FolderResponse,
    OwnerResponse,
)
from breviago.services.authorization import authorization_service
from breviago.services.authz_base import object_ref, user_ref

logger = logging.getLogger(__name__)


class FolderService:
    # ── Folders ───────────────────────────────────────────────────────────

    async def create_folder(self, db: AsyncSession, user: User, data: FolderCreate) -> FolderResponse:
        name = data.name.strip()
        if not name:
            raise ValidationError("Folder name cannot be empty", field="name")

        owner_type, owner_id, organization = await self._resolve_owner(db, user, data.organization)
        parent = await self._editable_folder(db, user, data.parent) if data.parent else None

        folder = Folder(
            name=name,
            description=data.description,
            owner_type=owner_type.value,
            owner_id=owner_id,
            parent_id=parent.id if parent else None,
        )
        db.add(folder)
        await db.flush()

        await self._write_ownership(user, organization, "folder", folder.uuid, parent)
        logger.info("Folder %s (%s) created by %s", name, folder.uuid, user.username)
        return await self._folder_response(db, folder, parent)

    async def list_folders(self, db: AsyncSession, user: User) -> FolderListResponse:
        org_ids = select(OrganizationMember.organization_id).where(
            OrganizationMember.user_id == user.id
        )
        folders = await db.scalars(
            select(Folder)
            .options(selectinload(Folder.parent))
            .where(
                Folder.deleted_at.is_(None),
                or_(
                    and_(Folder.owner_type == OwnerType.USER.value, Folder.owner_id == user.id),
                    and_(
                        Folder.owner_type == OwnerType.ORGANIZATION.value,
                        Folder.owner_id.in_(org_ids),
                    ),
                ),
            )
            .order_by(Folder.name, Folder.id)
        )
        return FolderListResponse(
            data=[await self._folder_response(db, f, f.parent) for f in folders.all()]
        )

    async def get_folder(self, db: AsyncSession, folder_uuid: UUID) -> FolderDetailResponse:
        folder = await self._load_folder(db, folder_uuid, with_documents=True)
        base = await self._folder_response(db, folder, folder.parent)
        return FolderDetailResponse(
            **base.model_dump(),
            documents=[
                DocumentSummary(uuid=d.uuid, name=d.name, updated_at=d.updated_at)
                for d in folder.documents
                if d.deleted_at is None
            ],
        )

    async def delete_folder(self, db: AsyncSession, user: User, folder_uuid: UUID) -> None:
        """Soft-delete the folder, its sub-folders and every document in them."""
        root = await self._load_folder(db, folder_uuid)

        pending = [root]
        folders: List[Folder] = []
        while pending:
            current = pending.pop()
            folders.append(current)
            children = await db.scalars(
                select(Folder).where(Folder.parent_id == current.id, Folder.deleted_at.is_(None))
            )
            pending.extend(children.all())

        folder_ids = [f.id for f in folders]
        documents = (
            await db.scalars(
                select(Document).where(
                    Document.folder_id.in_(folder_ids),
                    Document.deleted_at.is_(None),
                )
            )
        ).all()

        for item in [*folders, *documents]:
            item.soft_delete()
        await db.flush()
        logger.info(
            "Folder %s deleted by %s (%d folders, %d documents)",
            root.uuid,
            user.username,
            len(folders),
            len(documents),
        )

    # ── Documents ─────────────────────────────────────────────────────────

    async def create_document(
        self, db: AsyncSession, user: User, data: DocumentCreate
    ) -> DocumentResponse:
        name = data.name.strip()
        if not name:
            raise ValidationError("Document name cannot be empty", field="name")

        owner_type, owner_id, organization = await self._resolve_owner(db, user, data.organization)
        folder = await self._editable_folder(db, user, data.folder) if data.folder else None

        document = Document(
            name=name,
            content=data.content,
            owner_type=owner_type.value,
            owner_id=owner_id,
            folder_id=folder.id if folder else None,
            folder=folder,
        )
        db.add(document)
        await db.flush()

        await self._write_ownership(user, organization, "document", document.uuid, folder)
        logger.info("Document %s (%s) created by %s", name, document.uuid, user.username)
        return await self._document_response(db, document)

    async def get_document(self, db: AsyncSession, document_uuid: UUID) -> DocumentResponse:
        document = await self._load_document(db, document_uuid)
        return await self._document_response(db, document)

    async def update_document(
        self, db: AsyncSession, user: User, document_uuid: UUID, data: DocumentUpdate
    ) -> DocumentResponse:
        document = await self._load_document(db, document_uuid)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("name") is not None:
            name = changes["name"].strip()
            if not name:
                raise ValidationError("Document name cannot be empty", field="name")
            document.name = name
        if changes.get("content") is not None:
            document.content = changes["content"]
        await db.flush()

        logger.info("Document %s updated by %s", document.uuid, user.username)
        return await self._document_response(db, document)

    async def delete_document(self, db: AsyncSession, user: User, document_uuid: UUID) -> None:
        document = await self._load_document(db, document_uuid)
        document.soft_delete()
        await db.flush()
        logger.info("Document %s deleted by %s", document.uuid, user.username)

    # ── Internals ─────────────────────────────────────────────────────────

    async def _resolve_owner(
        self, db: AsyncSession, user: User, org_uuid: Optional[UUID]
    ) -> Tuple[OwnerType, int, Optional[Organization]]:
        if org_uuid is None:
            return OwnerType.USER, user.id, None

        organization = await db.scalar(
            select(Organization).where(
                Organization.uuid == org_uuid,
                Organization.deleted_at.is_(None),
            )
        )
        if organization is None:
            raise NotFoundError(resource="organization", resource_id=str(org_uuid))

        allowed = await authorization_service.check(
            user_ref(user.uuid), "member", object_ref("organization", org_uuid), db=db
        )
        if not allowed:
            raise PermissionDeniedError(
                context={"user": str(user.uuid), "relation": "member", "object": str(org_uuid)}
            )
        return OwnerType.ORGANIZATION, organization.id, organization

    async def _editable_folder(self, db: AsyncSession, user: User, folder_uuid: UUID) -> Folder:
        folder = await self._load_folder(db, folder_uuid)
        allowed = await authorization_service.check(
            user_ref(user.uuid), "editor", object_ref("folder", folder_uuid), db=db
        )
        if not allowed:
            raise PermissionDeniedError(
                context={"user": str(user.uuid), "relation": "editor", "object": str(folder_uuid)}
            )
        return folder

    async def _write_ownership(
        self,
        user: User,
        organization: Optional[Organization],
        object_type: str,
        object_uuid: UUID,
        parent: Optional[Folder],
    ) -> None:
        obj = object_ref(object_type, object_uuid)
        if organization is not None:
            await authorization_service.write_relationship(
                object_ref("organization", organization.uuid), "organization", obj
            )
        else:
            await authorization_service.write_relationship(user_ref(user.uuid), "owner", obj)
        if parent is not None:
            await authorization_service.write_relationship(
                object_ref("folder", parent.uuid), "parent", obj
            )

    async def _load_folder(
        self, db: AsyncSession, folder_uuid: UUID, with_documents: bool = False
    ) -> Folder:
        options = [selectinload(Folder.parent)]
        if with_documents:
            options.append(selectinload(Folder.documents))
        folder = await db.scalar(
            select(Folder)
            .options(*options)
            .where(Folder.uuid == folder_uuid, Folder.deleted_at.is_(None))
        )
        if folder is None:
            raise NotFoundError(resource="folder", resource_id=str(folder_uuid))
        return folder

    async def _load_document(self, db: AsyncSession, document_uuid: UUID) -> Document:
        document = await db.scalar(
            select(Document)
            .options(selectinload(Document.folder))
            .where(Document.uuid == document_uuid, Document.deleted_at.is_(None))
        )
        if document is None:
            raise NotFoundError(resource="document", resource_id=str(document_uuid))
        return document

    async def _owner(self, db: AsyncSession, owner_type: str, owner_id: int) -> OwnerResponse:
        model = User if owner_type == OwnerType.USER.value else Organization
        owner = await db.get(model, owner_id)
        if owner is None:
            raise NotFoundError(resource=owner_type, resource_id=str(owner_id))
        return OwnerResponse(type=owner_type, uuid=owner.uuid, name=owner.name)

    async def _folder_response(
        self, db: AsyncSession, folder: Folder, parent: Optional[Folder]
    ) -> FolderResponse:
        return FolderResponse(
            uuid=folder.uuid,
            name=folder.name,
            description=folder.description,
            owner=await self._owner(db, folder.owner_type, folder.owner_id),
            parent=parent.uuid if parent else None,
            created_at=folder.created_at,
        )

    async def _document_response(self, db: AsyncSession, document: Document) -> DocumentResponse:
        return DocumentResponse(
            uuid=document.uuid,
            name=document.name,
            content=document.content,
            owner=await self._owner(db, document.owner_type, document.owner_id),
            folder=document.folder.uuid if document.folder else None,
            created_at=document.created_at,
            updated_at=document.updated_at,
        )


folder_service = FolderService()
