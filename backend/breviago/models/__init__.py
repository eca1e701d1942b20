"""
Database models package.

Importing this package registers every table on `Base.metadata`
(used by `init_models()` and Alembic autogenerate).
"""

from breviago.models.acronym import (
    Acronym,
    AcronymGrant,
    AcronymNote,
    AcronymRevision,
    GranteeType,
    GrantRelation,
    Label,
    Visibility,
    acronym_labels,
    acronym_relations,
)
from breviago.models.folder import Document, Folder, OwnerType
from breviago.models.organization import Organization, OrganizationMember
from breviago.models.user import AuditLog, Session, User, UserSetting

__all__ = [
    "Acronym",
    "AcronymGrant",
    "AcronymNote",
    "AcronymRevision",
    "AuditLog",
    "Document",
    "Folder",
    "GrantRelation",
    "GranteeType",
    "Label",
    "Organization",
    "OrganizationMember",
    "OwnerType",
    "Session",
    "User",
    "UserSetting",
    "Visibility",
    "acronym_labels",
    "acronym_relations",
]
