"""
Folder and document models.

Folders and documents are owned either by a user or by an organization
(`owner_type` + `owner_id`, where owner_id points into users.id or
organizations.id accordingly). Folders nest through `parent_id`; a document
may sit in a folder and then inherits the folder's permissions.
"""

import enum
from typing import List, Optional

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from breviago.database import Base
from breviago.models.base import PublicIdMixin, SoftDeleteMixin, TimestampMixin


class OwnerType(str, enum.Enum):
    USER = "user"
    ORGANIZATION = "organization"


class Folder(PublicIdMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "folders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    owner_type: Mapped[str] = mapped_column(String(20), nullable=False)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    parent_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("folders.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    parent: Mapped[Optional["Folder"]] = relationship(remote_side="Folder.id")
    documents: Mapped[List["Document"]] = relationship(
        back_populates="folder",
        order_by="Document.name",
    )

    def __repr__(self) -> str:
        return f"<Folder(uuid={self.uuid}, name='{self.name}')>"


class Document(PublicIdMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    owner_type: Mapped[str] = mapped_column(String(20), nullable=False)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    folder_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("folders.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    folder: Mapped[Optional[Folder]] = relationship(back_populates="documents")

    def __repr__(self) -> str:
        return f"<Document(uuid={self.uuid}, name='{self.name}')>"
