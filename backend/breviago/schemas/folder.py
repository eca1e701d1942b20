"""Folder and document schemas."""

from uuid import UUID
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class OwnerResponse(BaseModel):
    type: str = Field(description="user or organization")
    uuid: UUID
    name: str


class FolderCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=10_000)
    organization: Optional[UUID] = Field(
        default=None,
        description="Owning organization; omitted means the caller owns the folder",
    )
    parent: Optional[UUID] = Field(default=None, description="Parent folder")


class DocumentSummary(BaseModel):
    uuid: UUID
    name: str
    updated_at: datetime


class FolderResponse(BaseModel):
    uuid: UUID
    name: str
    description: str
    owner: OwnerResponse
    parent: Optional[UUID] = None
    created_at: datetime


class FolderDetailResponse(FolderResponse):
    documents: List[DocumentSummary]


class FolderListResponse(BaseModel):
    data: List[FolderResponse]


class DocumentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    content: str = Field(default="", max_length=1_000_000)
    folder: Optional[UUID] = None
    organization: Optional[UUID] = None


class DocumentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = Field(default=None, max_length=1_000_000)


class DocumentResponse(BaseModel):
    uuid: UUID
    name: str
    content: str
    owner: OwnerResponse
    folder: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime
