"""
Organization and membership models.

A user belongs to an organization through exactly one OrganizationMember row
(unique on organization_id + user_id). Admin members manage the member list
and own the organization's folders and documents.
"""

from typing import List

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from breviago.database import Base
from breviago.models.base import PublicIdMixin, SoftDeleteMixin, TimestampMixin
from breviago.models.user import User


class Organization(PublicIdMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    members: Mapped[List["OrganizationMember"]] = relationship(
        back_populates="organization",
        cascade="all, delete-orphan",
        order_by="OrganizationMember.id",
    )

    def __repr__(self) -> str:
        return f"<Organization(uuid={self.uuid}, name='{self.name}')>"


class OrganizationMember(PublicIdMixin, TimestampMixin, Base):
    __tablename__ = "organization_members"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="idx_org_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )
    organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )

    user: Mapped[User] = relationship(back_populates="memberships")
    organization: Mapped[Organization] = relationship(back_populates="members")
