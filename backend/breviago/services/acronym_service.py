"""
Breviago Backend — Acronym Service (Business Logic)
====================================================

What:  Everything users do with acronyms: list/search, create (single and
       batch), update with revision history, soft delete, notes, related
       links, sharing grants and the global label catalogue.

Visibility (list and search):
    Computed in SQL rather than one permission check per row. An acronym is
    visible when the caller owns it, it is public, or a grant names the
    caller or one of the caller's organizations. LocalAuthorizationService
    applies the same rules for single-object checks.

Permission checks on a single acronym (viewer/editor/owner) happen in the
route dependency before these methods run; the methods assume the caller
is allowed and only re-check the *other* acronym when linking two.

Revisions:
    create  → old_value {}          new_value snapshot
    update  → old_value snapshot    new_value snapshot (+ labels when changed)
    delete  → old_value snapshot    new_value {}
"""

import json
import logging
from typing import Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from breviago.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from breviago.models import (
    Acronym,
    AcronymGrant,
    AcronymNote,
    AcronymRevision,
    GranteeType,
    Label,
    Organization,
    User,
    Visibility,
)
from breviago.models.base import utcnow
from breviago.schemas.acronym import (
    AcronymCreate,
    AcronymDetailResponse,
    AcronymListResponse,
    AcronymResponse,
    AcronymSummary,
    AcronymUpdate,
    GrantCreate,
    GrantListResponse,
    GrantResponse,
    LabelListResponse,
    LabelRef,
    NoteListResponse,
    NoteResponse,
    RevisionListResponse,
    RevisionResponse,
)
from breviago.schemas.user import OwnerRef
from breviago.services.audit_service import audit_service
from breviago.services.authorization import authorization_service
from breviago.services.authz_base import ALL_USERS, object_ref, organization_members_ref, user_ref
from breviago.services.local_authz_service import grant_matches

logger = logging.getLogger(__name__)

SUMMARY_OPTIONS = (
    selectinload(Acronym.owner),
    selectinload(Acronym.labels),
)

DETAIL_OPTIONS = SUMMARY_OPTIONS + (
    selectinload(Acronym.related),
    selectinload(Acronym.notes).selectinload(AcronymNote.user),
)


def visible_to(user: User):
    """WHERE clause: acronyms the user may see in listings."""
    granted = select(AcronymGrant.acronym_id).where(grant_matches(user))
    return or_(
        Acronym.owner_id == user.id,
        Acronym.visibility == Visibility.PUBLIC.value,
        Acronym.id.in_(granted),
    )


def _required_text(value: Optional[str], field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} cannot be empty", field=field)
    return text


def _owner_ref(user: Optional[User]) -> Optional[OwnerRef]:
    if user is None:
        return None
    return OwnerRef(uuid=user.uuid, name=user.name)


class AcronymService:
    """
    Responsibilities:
        - list/search with the visibility filter
        - create/update/delete with revisions and audit entries
        - notes, related links, grants, labels

    Error Handling Strategy:
        Missing or soft-deleted acronyms raise NotFoundError; business-rule
        violations raise ValidationError; duplicate grants and labels raise
        ConflictError. Authorization backend errors propagate unchanged
        (503 via the global handlers).
    """

    # ── Reads ─────────────────────────────────────────────────────────────

    async def list_acronyms(
        self, db: AsyncSession, user: User, label: Optional[str] = None
    ) -> AcronymListResponse:
        stmt = (
            select(Acronym)
            .options(*SUMMARY_OPTIONS)
            .where(Acronym.deleted_at.is_(None), visible_to(user))
            .order_by(Acronym.acronym, Acronym.id)
        )
        if label:
            stmt = stmt.where(Acronym.labels.any(Label.label == label.strip()))

        acronyms = (await db.scalars(stmt)).all()
        return AcronymListResponse(data=[self.to_response(a) for a in acronyms])

    async def search_acronyms(self, db: AsyncSession, user: User, q: Optional[str]) -> AcronymListResponse:
        term = (q or "").strip()
        if not term:
            raise ValidationError("Search query cannot be empty", field="q")

        pattern = f"%{term.lower()}%"
        stmt = (
            select(Acronym)
            .options(*SUMMARY_OPTIONS)
            .where(
                Acronym.deleted_at.is_(None),
                visible_to(user),
                or_(
                    func.lower(Acronym.acronym).like(pattern),
                    func.lower(Acronym.meaning).like(pattern),
                    func.lower(func.coalesce(Acronym.description, "")).like(pattern),
                ),
            )
            .order_by(Acronym.acronym, Acronym.id)
        )
        acronyms = (await db.scalars(stmt)).all()
        logger.debug("Search '%s' matched %d acronyms", term, len(acronyms))
        return AcronymListResponse(data=[self.to_response(a) for a in acronyms])

    async def get_acronym(self, db: AsyncSession, acronym_uuid: UUID) -> AcronymDetailResponse:
        acronym = await self._load(db, acronym_uuid, detail=True)
        return self.to_detail_response(acronym)

    async def list_revisions(self, db: AsyncSession, acronym_uuid: UUID) -> RevisionListResponse:
        acronym = await self._load(db, acronym_uuid)
        revisions = await db.scalars(
            select(AcronymRevision)
            .options(selectinload(AcronymRevision.user))
            .where(AcronymRevision.acronym_id == acronym.id)
            .order_by(AcronymRevision.id.desc())
        )
        return RevisionListResponse(
            data=[
                RevisionResponse(
                    uuid=r.uuid,
                    action=r.action,
                    old_value=json.loads(r.old_value or "{}"),
                    new_value=json.loads(r.new_value or "{}"),
                    user=_owner_ref(r.user),
                    created_at=r.created_at,
                )
                for r in revisions
            ]
        )

    # ── Writes ────────────────────────────────────────────────────────────

    async def create_acronym(self, db: AsyncSession, user: User, data: AcronymCreate) -> AcronymResponse:
        acronym = await self._create(db, user, data)
        return self.to_response(acronym)

    async def create_acronyms(
        self, db: AsyncSession, user: User, items: Sequence[AcronymCreate]
    ) -> List[AcronymResponse]:
        """
        Create several acronyms in the caller's transaction.

        Every item is validated before anything is written, so one bad item
        rejects the whole batch.
        """
        if not items:
            raise ValidationError("Batch cannot be empty", field="acronyms")
        for index, item in enumerate(items):
            try:
                _required_text(item.acronym, "acronym")
                _required_text(item.meaning, "meaning")
            except ValidationError as e:
                raise ValidationError(
                    f"Item {index}: {e.message}",
                    field=e.field,
                    context={"index": index},
                )

        created = [await self._create(db, user, item) for item in items]
        logger.info("Batch created %d acronyms for %s", len(created), user.username)
        return [self.to_response(a) for a in created]

    async def update_acronym(
        self, db: AsyncSession, user: User, acronym_uuid: UUID, data: AcronymUpdate
    ) -> AcronymResponse:
        acronym = await self._load(db, acronym_uuid)
        old = acronym.snapshot()
        old_labels = [label.label for label in acronym.labels]
        changes = data.model_dump(exclude_unset=True)

        if "acronym" in changes:
            acronym.acronym = _required_text(changes["acronym"], "acronym")
        if "meaning" in changes:
            acronym.meaning = _required_text(changes["meaning"], "meaning")
        if "description" in changes:
            acronym.description = changes["description"]
        if changes.get("visibility") is not None:
            acronym.visibility = Visibility(changes["visibility"]).value
        if changes.get("labels") is not None:
            acronym.labels = await self._resolve_labels(db, changes["labels"])

        new = acronym.snapshot()
        new_labels = [label.label for label in acronym.labels]
        if new == old and sorted(new_labels) == sorted(old_labels):
            return self.to_response(acronym)

        acronym.updated_at = utcnow()
        if new_labels != old_labels:
            old["labels"], new["labels"] = old_labels, new_labels
        await db.flush()

        self._record_revision(db, acronym, user, "update", old, new)
        audit_service.record(db, user.id, "acronym", "update", data={"uuid": acronym.uuid})
        if old["visibility"] != new["visibility"]:
            await self._sync_public_viewer(
                acronym, was_public=old["visibility"] == Visibility.PUBLIC.value
            )
        logger.info("Acronym %s updated by %s", acronym.uuid, user.username)
        return self.to_response(acronym)

    async def delete_acronym(self, db: AsyncSession, user: User, acronym_uuid: UUID) -> None:
        acronym = await self._load(db, acronym_uuid)
        old = acronym.snapshot()
        acronym.soft_delete()
        await db.flush()

        self._record_revision(db, acronym, user, "delete", old, {})
        audit_service.record(db, user.id, "acronym", "delete", data={"uuid": acronym.uuid})
        await authorization_service.delete_relationship(
            user_ref(user.uuid), "owner", object_ref("acronym", acronym.uuid)
        )
        logger.info("Acronym %s deleted by %s", acronym.uuid, user.username)

    # ── Notes ─────────────────────────────────────────────────────────────

    async def add_note(
        self, db: AsyncSession, user: User, acronym_uuid: UUID, text: str
    ) -> NoteResponse:
        acronym = await self._load(db, acronym_uuid)
        note = AcronymNote(
            acronym_id=acronym.id,
            user_id=user.id,
            note=_required_text(text, "note"),
        )
        db.add(note)
        await db.flush()
        return NoteResponse(
            uuid=note.uuid,
            note=note.note,
            user=_owner_ref(user),
            created_at=note.created_at,
        )

    async def list_notes(self, db: AsyncSession, acronym_uuid: UUID) -> NoteListResponse:
        acronym = await self._load(db, acronym_uuid, detail=True)
        return NoteListResponse(data=self.to_detail_response(acronym).notes)

    # ── Related acronyms ──────────────────────────────────────────────────

    async def link_related(
        self, db: AsyncSession, user: User, acronym_uuid: UUID, other_uuid: UUID
    ) -> AcronymDetailResponse:
        if acronym_uuid == other_uuid:
            raise ValidationError("An acronym cannot be related to itself", field="related")

        acronym = await self._load(db, acronym_uuid, detail=True)
        other = await self._load_linkable(db, user, other_uuid)

        if other not in acronym.related:
            acronym.related.append(other)
        if acronym not in other.related:
            other.related.append(acronym)
        await db.flush()
        logger.info("Linked acronyms %s <-> %s", acronym.uuid, other.uuid)
        return self.to_detail_response(acronym)

    async def unlink_related(
        self, db: AsyncSession, user: User, acronym_uuid: UUID, other_uuid: UUID
    ) -> AcronymDetailResponse:
        acronym = await self._load(db, acronym_uuid, detail=True)
        other = next((r for r in acronym.related if r.uuid == other_uuid), None)
        if other is None:
            raise NotFoundError(resource="related acronym", resource_id=str(other_uuid))

        other = await self._load(db, other_uuid, detail=True, include_deleted=True)
        acronym.related.remove(other)
        if acronym in other.related:
            other.related.remove(acronym)
        await db.flush()
        logger.info("Unlinked acronyms %s <-> %s", acronym.uuid, other.uuid)
        return self.to_detail_response(acronym)

    # ── Grants ────────────────────────────────────────────────────────────

    async def list_grants(self, db: AsyncSession, acronym_uuid: UUID) -> GrantListResponse:
        acronym = await self._load(db, acronym_uuid)
        grants = await db.scalars(
            select(AcronymGrant)
            .where(AcronymGrant.acronym_id == acronym.id)
            .order_by(AcronymGrant.id)
        )
        return GrantListResponse(data=[GrantResponse.model_validate(g) for g in grants])

    async def create_grant(
        self, db: AsyncSession, user: User, acronym_uuid: UUID, data: GrantCreate
    ) -> GrantResponse:
        acronym = await self._load(db, acronym_uuid)
        grantee_type = GranteeType(data.grantee_type)

        if grantee_type == GranteeType.USER:
            if data.grantee_uuid == user.uuid:
                raise ValidationError("The owner cannot be granted access to their own acronym")
            grantee = await db.scalar(
                select(User).where(User.uuid == data.grantee_uuid, User.deleted_at.is_(None))
            )
            subject = user_ref(data.grantee_uuid)
        else:
            grantee = await db.scalar(
                select(Organization).where(
                    Organization.uuid == data.grantee_uuid,
                    Organization.deleted_at.is_(None),
                )
            )
            subject = organization_members_ref(data.grantee_uuid)
        if grantee is None:
            raise NotFoundError(resource=grantee_type.value, resource_id=str(data.grantee_uuid))

        existing = await db.scalar(
            select(AcronymGrant).where(
                AcronymGrant.acronym_id == acronym.id,
                AcronymGrant.grantee_type == grantee_type.value,
                AcronymGrant.grantee_uuid == data.grantee_uuid,
            )
        )
        if existing is not None:
            raise ConflictError(
                message="This grantee already has access to the acronym",
                context={"grant": str(existing.uuid)},
            )

        grant = AcronymGrant(
            acronym_id=acronym.id,
            grantee_type=grantee_type.value,
            grantee_uuid=data.grantee_uuid,
            relation=data.relation.value,
        )
        db.add(grant)
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError(message="This grantee already has access to the acronym")

        await authorization_service.write_relationship(
            subject, grant.relation, object_ref("acronym", acronym.uuid)
        )
        logger.info(
            "Acronym %s shared with %s %s as %s",
            acronym.uuid,
            grant.grantee_type,
            grant.grantee_uuid,
            grant.relation,
        )
        return GrantResponse.model_validate(grant)

    async def revoke_grant(self, db: AsyncSession, acronym_uuid: UUID, grant_uuid: UUID) -> None:
        acronym = await self._load(db, acronym_uuid)
        grant = await db.scalar(
            select(AcronymGrant).where(
                AcronymGrant.acronym_id == acronym.id,
                AcronymGrant.uuid == grant_uuid,
            )
        )
        if grant is None:
            raise NotFoundError(resource="grant", resource_id=str(grant_uuid))

        if grant.grantee_type == GranteeType.USER.value:
            subject = user_ref(grant.grantee_uuid)
        else:
            subject = organization_members_ref(grant.grantee_uuid)
        relation = grant.relation
        await db.delete(grant)
        await db.flush()
        await authorization_service.delete_relationship(
            subject, relation, object_ref("acronym", acronym.uuid)
        )

    # ── Labels ────────────────────────────────────────────────────────────

    async def list_labels(self, db: AsyncSession) -> LabelListResponse:
        labels = await db.scalars(select(Label).order_by(Label.label))
        return LabelListResponse(data=[LabelRef.model_validate(label) for label in labels])

    async def create_label(self, db: AsyncSession, text: str) -> LabelRef:
        text = _required_text(text, "label")
        if await db.scalar(select(Label).where(Label.label == text)) is not None:
            raise ConflictError(message=f"Label '{text}' already exists")
        label = Label(label=text)
        db.add(label)
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError(message=f"Label '{text}' already exists")
        return LabelRef.model_validate(label)

    # ── Response builders ─────────────────────────────────────────────────

    def to_response(self, acronym: Acronym) -> AcronymResponse:
        return AcronymResponse(
            uuid=acronym.uuid,
            acronym=acronym.acronym,
            meaning=acronym.meaning,
            owner=_owner_ref(acronym.owner),
            labels=[LabelRef.model_validate(label) for label in acronym.labels],
            visibility=acronym.visibility,
            created_at=acronym.created_at,
            updated_at=acronym.updated_at,
        )

    def to_detail_response(self, acronym: Acronym) -> AcronymDetailResponse:
        related = sorted(
            (r for r in acronym.related if r.deleted_at is None),
            key=lambda r: (r.acronym.lower(), r.id),
        )
        return AcronymDetailResponse(
            **self.to_response(acronym).model_dump(),
            description=acronym.description,
            related=[
                AcronymSummary(uuid=r.uuid, acronym=r.acronym, meaning=r.meaning)
                for r in related
            ],
            notes=[
                NoteResponse(
                    uuid=n.uuid,
                    note=n.note,
                    user=_owner_ref(n.user),
                    created_at=n.created_at,
                )
                for n in acronym.notes
                if n.deleted_at is None
            ],
        )

    # ── Internals ─────────────────────────────────────────────────────────

    async def _create(self, db: AsyncSession, user: User, data: AcronymCreate) -> Acronym:
        acronym = Acronym(
            acronym=_required_text(data.acronym, "acronym"),
            meaning=_required_text(data.meaning, "meaning"),
            description=data.description,
            visibility=Visibility(data.visibility).value,
            owner_id=user.id,
            owner=user,
            labels=await self._resolve_labels(db, data.labels),
            related=[],
            notes=[],
        )
        db.add(acronym)
        await db.flush()

        self._record_revision(db, acronym, user, "create", {}, acronym.snapshot())
        audit_service.record(db, user.id, "acronym", "create", data={"uuid": acronym.uuid})
        await authorization_service.write_relationship(
            user_ref(user.uuid), "owner", object_ref("acronym", acronym.uuid)
        )
        if acronym.visibility == Visibility.PUBLIC.value:
            await self._sync_public_viewer(acronym, was_public=False)
        logger.info("Acronym %s (%s) created by %s", acronym.acronym, acronym.uuid, user.username)
        return acronym

    async def _load(
        self,
        db: AsyncSession,
        acronym_uuid: UUID,
        detail: bool = False,
        include_deleted: bool = False,
    ) -> Acronym:
        stmt = (
            select(Acronym)
            .options(*(DETAIL_OPTIONS if detail else SUMMARY_OPTIONS))
            .where(Acronym.uuid == acronym_uuid)
        )
        if not include_deleted:
            stmt = stmt.where(Acronym.deleted_at.is_(None))
        acronym = await db.scalar(stmt)
        if acronym is None:
            raise NotFoundError(resource="acronym", resource_id=str(acronym_uuid))
        return acronym

    async def _sync_public_viewer(self, acronym: Acronym, was_public: bool) -> None:
        """Keeps the "user:* viewer" tuple in step with public visibility."""
        is_public = acronym.visibility == Visibility.PUBLIC.value
        if is_public == was_public:
            return
        obj = object_ref("acronym", acronym.uuid)
        if is_public:
            await authorization_service.write_relationship(ALL_USERS, "viewer", obj)
        else:
            await authorization_service.delete_relationship(ALL_USERS, "viewer", obj)

    async def _load_linkable(self, db: AsyncSession, user: User, other_uuid: UUID) -> Acronym:
        other = await self._load(db, other_uuid, detail=True)
        allowed = await authorization_service.check(
            user_ref(user.uuid), "viewer", object_ref("acronym", other.uuid), db=db
        )
        if not allowed:
            raise PermissionDeniedError(
                context={"user": str(user.uuid), "relation": "viewer", "object": str(other_uuid)}
            )
        return other

    async def _resolve_labels(self, db: AsyncSession, names: Iterable[str]) -> List[Label]:
        """Existing labels by text, creating the missing ones. Input order, no duplicates."""
        wanted: List[str] = []
        for name in names:
            text = name.strip()
            if text and text not in wanted:
                wanted.append(text)
        if not wanted:
            return []

        existing = {
            label.label: label
            for label in await db.scalars(select(Label).where(Label.label.in_(wanted)))
        }
        labels = []
        for text in wanted:
            label = existing.get(text)
            if label is None:
                label = Label(label=text)
                db.add(label)
            labels.append(label)
        return labels

    def _record_revision(
        self, db: AsyncSession, acronym: Acronym, user: User, action: str, old: dict, new: dict
    ) -> None:
        db.add(
            AcronymRevision(
                acronym_id=acronym.id,
                user_id=user.id,
                action=action,
                old_value=json.dumps(old, default=str, sort_keys=True),
                new_value=json.dumps(new, default=str, sort_keys=True),
            )
        )


acronym_service = AcronymService()
