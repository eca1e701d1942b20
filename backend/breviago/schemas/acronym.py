"""
Breviago Backend — Acronym Request/Response Schemas
====================================================

What:  API contract for acronyms, labels, notes, grants and revisions.

Public acronym shape (list and create responses):
    {
        "uuid": "...",
        "acronym": "API",
        "meaning": "Application Programming Interface",
        "owner": {"uuid": "...", "name": "..."},
        "labels": [{"uuid": "...", "label": "tech"}],
        "visibility": "private",
        "created_at": "...",
        "updated_at": "..."
    }
The detail view adds description, related acronyms and notes.
"""

from uuid import UUID
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from breviago.models.acronym import GrantRelation, GranteeType, Visibility
from breviago.schemas.user import OwnerRef


class LabelRef(BaseModel):
    uuid: UUID
    label: str

    model_config = {"from_attributes": True}


class LabelCreate(BaseModel):
    label: str = Field(min_length=1, max_length=100)


class LabelListResponse(BaseModel):
    data: List[LabelRef]


# ══════════════════════════════════════════════════════════════════════════
# Acronyms
# ══════════════════════════════════════════════════════════════════════════


class AcronymCreate(BaseModel):
    acronym: str = Field(max_length=100, description="The short form, e.g. 'API'")
    meaning: str = Field(max_length=500, description="The expansion")
    description: Optional[str] = Field(default=None, max_length=10_000)
    visibility: Visibility = Field(default=Visibility.PRIVATE)
    labels: List[str] = Field(default_factory=list, description="Label texts, created on demand")


class AcronymUpdate(BaseModel):
    """Partial update: only the fields present in the payload are changed."""
    acronym: Optional[str] = Field(default=None, max_length=100)
    meaning: Optional[str] = Field(default=None, max_length=500)
    description: Optional[str] = Field(default=None, max_length=10_000)
    visibility: Optional[Visibility] = None
    labels: Optional[List[str]] = None


class AcronymResponse(BaseModel):
    uuid: UUID
    acronym: str
    meaning: str
    owner: OwnerRef
    labels: List[LabelRef]
    visibility: str
    created_at: datetime
    updated_at: datetime


class AcronymSummary(BaseModel):
    uuid: UUID
    acronym: str
    meaning: str


class NoteCreate(BaseModel):
    note: str = Field(max_length=10_000)


class NoteResponse(BaseModel):
    uuid: UUID
    note: str
    user: OwnerRef
    created_at: datetime


class AcronymDetailResponse(AcronymResponse):
    description: Optional[str] = None
    related: List[AcronymSummary] = Field(default_factory=list)
    notes: List[NoteResponse] = Field(default_factory=list)


class AcronymListResponse(BaseModel):
    data: List[AcronymResponse]


class AcronymBatchResponse(BaseModel):
    message: str
    data: List[AcronymResponse]


# ══════════════════════════════════════════════════════════════════════════
# Sharing and history
# ══════════════════════════════════════════════════════════════════════════


class GrantCreate(BaseModel):
    grantee_uuid: UUID
    grantee_type: GranteeType = Field(default=GranteeType.USER)
    relation: GrantRelation = Field(default=GrantRelation.VIEWER)


class GrantResponse(BaseModel):
    uuid: UUID
    grantee_uuid: UUID
    grantee_type: str
    relation: str
    created_at: datetime

    model_config = {"from_attributes": True}


class GrantListResponse(BaseModel):
    data: List[GrantResponse]


class RevisionResponse(BaseModel):
    uuid: UUID
    action: str
    old_value: Dict[str, Any]
    new_value: Dict[str, Any]
    user: Optional[OwnerRef] = None
    created_at: datetime


class RevisionListResponse(BaseModel):
    data: List[RevisionResponse]


class NoteListResponse(BaseModel):
    data: List[NoteResponse]
