"""Organization and membership schemas."""

from uuid import UUID
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from breviago.schemas.user import OwnerRef


class OrganizationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=10_000)


class OrganizationResponse(BaseModel):
    uuid: UUID
    name: str
    description: str
    is_admin: bool = Field(description="Whether the caller administers this organization")
    created_at: datetime


class MemberResponse(BaseModel):
    user: OwnerRef
    is_admin: bool
    joined_at: datetime


class OrganizationDetailResponse(OrganizationResponse):
    members: List[MemberResponse]


class OrganizationListResponse(BaseModel):
    data: List[OrganizationResponse]


class MemberAdd(BaseModel):
    user_uuid: UUID
    is_admin: bool = False
