"""
Breviago Backend — Acronym Route Handlers
==========================================

What:  /api/v1/acronyms — the vault itself, plus notes, related links,
       sharing grants and revision history of a single acronym.
How:   Handlers stay thin: permission dependencies guard the object named
       in the path, AcronymService does the work.

Required relation per route:
    GET    /acronyms, /acronyms/search, POST /acronyms[/batch]  authenticated
    GET    /acronyms/{id}, /revisions, /notes                    viewer
    POST   /acronyms/{id}/notes                                  viewer
    PUT    /acronyms/{id}, POST|DELETE /related/{other}          editor
    DELETE /acronyms/{id}, /grants (all methods)                 owner
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from breviago.database import get_db_session
from breviago.dependencies import get_current_user, require_permission
from breviago.models import User
from breviago.schemas.acronym import (
    AcronymBatchResponse,
    AcronymCreate,
    AcronymDetailResponse,
    AcronymListResponse,
    AcronymResponse,
    AcronymUpdate,
    GrantCreate,
    GrantListResponse,
    GrantResponse,
    NoteCreate,
    NoteListResponse,
    NoteResponse,
    RevisionListResponse,
)
from breviago.schemas.common import ErrorResponse
from breviago.services.acronym_service import acronym_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/acronyms", tags=["Acronyms"])

_OBJECT_ERRORS = {
    400: {"description": "Invalid id or input", "model": ErrorResponse},
    403: {"description": "Permission denied", "model": ErrorResponse},
    503: {"description": "Authorization backend unavailable", "model": ErrorResponse},
}


@router.get("", response_model=AcronymListResponse, summary="Acronyms visible to me")
async def list_acronyms(
    label: str | None = Query(default=None, description="Only acronyms carrying this label"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> AcronymListResponse:
    return await acronym_service.list_acronyms(db, user, label)


@router.get(
    "/search",
    response_model=AcronymListResponse,
    responses={400: {"description": "Empty query", "model": ErrorResponse}},
    summary="Case-insensitive search over acronym, meaning and description",
)
async def search_acronyms(
    q: str | None = Query(default=None, description="Search text"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> AcronymListResponse:
    return await acronym_service.search_acronyms(db, user, q)


@router.post(
    "",
    response_model=AcronymResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Empty acronym or meaning", "model": ErrorResponse}},
    summary="Create an acronym",
)
async def create_acronym(
    payload: AcronymCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> AcronymResponse:
    return await acronym_service.create_acronym(db, user, payload)


@router.post(
    "/batch",
    response_model=AcronymBatchResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "An item is invalid; nothing created", "model": ErrorResponse}},
    summary="Create several acronyms atomically",
)
async def create_acronyms(
    payload: List[AcronymCreate] = Body(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> AcronymBatchResponse:
    created = await acronym_service.create_acronyms(db, user, payload)
    return AcronymBatchResponse(message=f"Created {len(created)} acronyms", data=created)


@router.get("/{id}", response_model=AcronymDetailResponse, responses=_OBJECT_ERRORS)
async def get_acronym(
    id: UUID,
    user: User = Depends(require_permission("acronym", "viewer")),
    db: AsyncSession = Depends(get_db_session),
) -> AcronymDetailResponse:
    return await acronym_service.get_acronym(db, id)


@router.put("/{id}", response_model=AcronymResponse, responses=_OBJECT_ERRORS)
async def update_acronym(
    id: UUID,
    payload: AcronymUpdate,
    user: User = Depends(require_permission("acronym", "editor")),
    db: AsyncSession = Depends(get_db_session),
) -> AcronymResponse:
    return await acronym_service.update_acronym(db, user, id, payload)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT, responses=_OBJECT_ERRORS)
async def delete_acronym(
    id: UUID,
    user: User = Depends(require_permission("acronym", "owner")),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await acronym_service.delete_acronym(db, user, id)


@router.get("/{id}/revisions", response_model=RevisionListResponse, responses=_OBJECT_ERRORS)
async def list_revisions(
    id: UUID,
    user: User = Depends(require_permission("acronym", "viewer")),
    db: AsyncSession = Depends(get_db_session),
) -> RevisionListResponse:
    return await acronym_service.list_revisions(db, id)


# ── Notes ─────────────────────────────────────────────────────────────────


@router.get("/{id}/notes", response_model=NoteListResponse, responses=_OBJECT_ERRORS)
async def list_notes(
    id: UUID,
    user: User = Depends(require_permission("acronym", "viewer")),
    db: AsyncSession = Depends(get_db_session),
) -> NoteListResponse:
    return await acronym_service.list_notes(db, id)


@router.post(
    "/{id}/notes",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_OBJECT_ERRORS,
)
async def add_note(
    id: UUID,
    payload: NoteCreate,
    user: User = Depends(require_permission("acronym", "viewer")),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    return await acronym_service.add_note(db, user, id, payload.note)


# ── Related acronyms ──────────────────────────────────────────────────────


@router.post("/{id}/related/{other}", response_model=AcronymDetailResponse, responses=_OBJECT_ERRORS)
async def link_related(
    id: UUID,
    other: UUID,
    user: User = Depends(require_permission("acronym", "editor")),
    db: AsyncSession = Depends(get_db_session),
) -> AcronymDetailResponse:
    return await acronym_service.link_related(db, user, id, other)


@router.delete("/{id}/related/{other}", response_model=AcronymDetailResponse, responses=_OBJECT_ERRORS)
async def unlink_related(
    id: UUID,
    other: UUID,
    user: User = Depends(require_permission("acronym", "editor")),
    db: AsyncSession = Depends(get_db_session),
) -> AcronymDetailResponse:
    return await acronym_service.unlink_related(db, user, id, other)


# ── Grants ────────────────────────────────────────────────────────────────


@router.get("/{id}/grants", response_model=GrantListResponse, responses=_OBJECT_ERRORS)
async def list_grants(
    id: UUID,
    user: User = Depends(require_permission("acronym", "owner")),
    db: AsyncSession = Depends(get_db_session),
) -> GrantListResponse:
    return await acronym_service.list_grants(db, id)


@router.post(
    "/{id}/grants",
    response_model=GrantResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**_OBJECT_ERRORS, 409: {"description": "Grant exists", "model": ErrorResponse}},
)
async def create_grant(
    id: UUID,
    payload: GrantCreate,
    user: User = Depends(require_permission("acronym", "owner")),
    db: AsyncSession = Depends(get_db_session),
) -> GrantResponse:
    return await acronym_service.create_grant(db, user, id, payload)


@router.delete("/{id}/grants/{grant}", status_code=status.HTTP_204_NO_CONTENT, responses=_OBJECT_ERRORS)
async def revoke_grant(
    id: UUID,
    grant: UUID,
    user: User = Depends(require_permission("acronym", "owner")),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await acronym_service.revoke_grant(db, id, grant)
