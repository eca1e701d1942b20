"""
Folder and document routes.

    POST   /folders            authenticated (member of `organization`, editor of `parent`)
    GET    /folders            authenticated: folders I or my organizations own
    GET    /folders/{id}       viewer
    DELETE /folders/{id}       owner
    POST   /documents          authenticated (member of `organization`, editor of `folder`)
    GET    /documents/{id}     viewer
    PUT    /documents/{id}     editor
    DELETE /documents/{id}     owner
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from breviago.database import get_db_session
from breviago.dependencies import get_current_user, require_permission
from breviago.models import User
from breviago.schemas.common import ErrorResponse
from breviago.schemas.folder import (
    DocumentCreate,
    DocumentResponse,
    DocumentUpdate,
    FolderCreate,
    FolderDetailResponse,
    FolderListResponse,
    FolderResponse,
)
from breviago.services.folder_service import folder_service

router = APIRouter(prefix="/api/v1", tags=["Folders"])

_ERRORS = {
    403: {"description": "Permission denied", "model": ErrorResponse},
    404: {"description": "Not found", "model": ErrorResponse},
}


@router.post(
    "/folders",
    response_model=FolderResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def create_folder(
    payload: FolderCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FolderResponse:
    return await folder_service.create_folder(db, user, payload)


@router.get("/folders", response_model=FolderListResponse)
async def list_folders(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FolderListResponse:
    return await folder_service.list_folders(db, user)


@router.get("/folders/{id}", response_model=FolderDetailResponse, responses=_ERRORS)
async def get_folder(
    id: UUID,
    user: User = Depends(require_permission("folder", "viewer")),
    db: AsyncSession = Depends(get_db_session),
) -> FolderDetailResponse:
    return await folder_service.get_folder(db, id)


@router.delete("/folders/{id}", status_code=status.HTTP_204_NO_CONTENT, responses=_ERRORS)
async def delete_folder(
    id: UUID,
    user: User = Depends(require_permission("folder", "owner")),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await folder_service.delete_folder(db, user, id)


@router.post(
    "/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def create_document(
    payload: DocumentCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DocumentResponse:
    return await folder_service.create_document(db, user, payload)


@router.get("/documents/{id}", response_model=DocumentResponse, responses=_ERRORS)
async def get_document(
    id: UUID,
    user: User = Depends(require_permission("document", "viewer")),
    db: AsyncSession = Depends(get_db_session),
) -> DocumentResponse:
    return await folder_service.get_document(db, id)


@router.put("/documents/{id}", response_model=DocumentResponse, responses=_ERRORS)
async def update_document(
    id: UUID,
    payload: DocumentUpdate,
    user: User = Depends(require_permission("document", "editor")),
    db: AsyncSession = Depends(get_db_session),
) -> DocumentResponse:
    return await folder_service.update_document(db, user, id, payload)


@router.delete("/documents/{id}", status_code=status.HTTP_204_NO_CONTENT, responses=_ERRORS)
async def delete_document(
    id: UUID,
    user: User = Depends(require_permission("document", "owner")),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await folder_service.delete_document(db, user, id)
