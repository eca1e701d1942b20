"""
Breviago Backend — Acronym Models
==================================

What:  The acronym vault itself and everything hanging off an acronym.

Tables:
    acronyms            — acronym + meaning, owned by a user, soft-deletable
    labels              — global tags, unique by text
    acronym_labels      — many-to-many acronym ↔ label
    acronym_relations   — many-to-many acronym ↔ acronym, stored in both directions
    acronym_notes       — free-text notes users attach to an acronym
    acronym_grants      — sharing: a user or organization gets viewer/editor
    acronym_revisions   — change history (old/new JSON of the tracked fields)

Visibility:
    private       — owner and explicit grantees only
    public        — every authenticated user can view
    organization  — shared with organizations through grants
    user          — shared with individual users through grants
"""

import enum
import uuid
from typing import List, Optional

from sqlalchemy import Column, ForeignKey, Integer, String, Table, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from breviago.database import Base
from breviago.models.base import PublicIdMixin, SoftDeleteMixin, TimestampMixin
from breviago.models.user import User


class Visibility(str, enum.Enum):
    PRIVATE = "private"
    PUBLIC = "public"
    ORGANIZATION = "organization"
    USER = "user"


class GranteeType(str, enum.Enum):
    USER = "user"
    ORGANIZATION = "organization"


class GrantRelation(str, enum.Enum):
    VIEWER = "viewer"
    EDITOR = "editor"


# Fields copied into revision snapshots
TRACKED_FIELDS = ("acronym", "meaning", "description", "visibility", "owner_id")


acronym_labels = Table(
    "acronym_labels",
    Base.metadata,
    Column("acronym_id", ForeignKey("acronyms.id", ondelete="CASCADE"), primary_key=True),
    Column("label_id", ForeignKey("labels.id", ondelete="CASCADE"), primary_key=True),
)

acronym_relations = Table(
    "acronym_relations",
    Base.metadata,
    Column("acronym_id", ForeignKey("acronyms.id", ondelete="CASCADE"), primary_key=True),
    Column("related_id", ForeignKey("acronyms.id", ondelete="CASCADE"), primary_key=True),
)


class Label(PublicIdMixin, TimestampMixin, Base):
    __tablename__ = "labels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    label: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Label('{self.label}')>"


class Acronym(PublicIdMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "acronyms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    acronym: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    meaning: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    visibility: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=Visibility.PRIVATE.value,
    )
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    owner: Mapped[User] = relationship()
    labels: Mapped[List[Label]] = relationship(
        secondary=acronym_labels,
        order_by=Label.label,
    )
    related: Mapped[List["Acronym"]] = relationship(
        "Acronym",
        secondary=acronym_relations,
        primaryjoin=lambda: Acronym.id == acronym_relations.c.acronym_id,
        secondaryjoin=lambda: Acronym.id == acronym_relations.c.related_id,
    )
    notes: Mapped[List["AcronymNote"]] = relationship(
        back_populates="acronym",
        cascade="all, delete-orphan",
        order_by="AcronymNote.id",
    )
    grants: Mapped[List["AcronymGrant"]] = relationship(
        back_populates="acronym",
        cascade="all, delete-orphan",
        order_by="AcronymGrant.id",
    )
    revisions: Mapped[List["AcronymRevision"]] = relationship(
        back_populates="acronym",
        cascade="all, delete-orphan",
        order_by=lambda: AcronymRevision.id.desc(),
    )

    def snapshot(self) -> dict:
        """Values of the tracked fields, as stored in revisions."""
        return {field: getattr(self, field) for field in TRACKED_FIELDS}

    def __repr__(self) -> str:
        return f"<Acronym(uuid={self.uuid}, acronym='{self.acronym}')>"


class AcronymNote(PublicIdMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "acronym_notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    acronym_id: Mapped[int] = mapped_column(
        ForeignKey("acronyms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    note: Mapped[str] = mapped_column(Text, nullable=False)

    acronym: Mapped[Acronym] = relationship(back_populates="notes")
    user: Mapped[User] = relationship()


class AcronymGrant(PublicIdMixin, TimestampMixin, Base):
    """
    Shares one acronym with one grantee.

    The grantee is polymorphic (user or organization), so it is stored by
    type + public uuid rather than by foreign key.
    """

    __tablename__ = "acronym_grants"
    __table_args__ = (
        UniqueConstraint(
            "acronym_id", "grantee_type", "grantee_uuid", name="uq_acronym_grants_grantee"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    acronym_id: Mapped[int] = mapped_column(
        ForeignKey("acronyms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    grantee_type: Mapped[str] = mapped_column(String(20), nullable=False)
    grantee_uuid: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    relation: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=GrantRelation.VIEWER.value,
    )

    acronym: Mapped[Acronym] = relationship(back_populates="grants")


class AcronymRevision(PublicIdMixin, TimestampMixin, Base):
    __tablename__ = "acronym_revisions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    acronym_id: Mapped[int] = mapped_column(
        ForeignKey("acronyms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    old_value: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    new_value: Mapped[str] = mapped_column(Text, nullable=False, default="{}")

    acronym: Mapped[Acronym] = relationship(back_populates="revisions")
    user: Mapped[Optional[User]] = relationship()
