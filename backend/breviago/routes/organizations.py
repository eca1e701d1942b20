"""Organizations and membership management."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from breviago.database import get_db_session
from breviago.dependencies import get_current_user, require_permission
from breviago.models import User
from breviago.schemas.common import ErrorResponse
from breviago.schemas.organization import (
    MemberAdd,
    MemberResponse,
    OrganizationCreate,
    OrganizationDetailResponse,
    OrganizationListResponse,
    OrganizationResponse,
)
from breviago.services.organization_service import organization_service

router = APIRouter(prefix="/api/v1/organizations", tags=["Organizations"])

_ERRORS = {
    403: {"description": "Permission denied", "model": ErrorResponse},
    404: {"description": "Not found", "model": ErrorResponse},
}


@router.post(
    "",
    response_model=OrganizationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an organization (the creator becomes admin)",
)
async def create_organization(
    payload: OrganizationCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> OrganizationResponse:
    return await organization_service.create_organization(db, user, payload)


@router.get("", response_model=OrganizationListResponse, summary="Organizations I belong to")
async def list_organizations(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> OrganizationListResponse:
    return await organization_service.list_organizations(db, user)


@router.get("/{id}", response_model=OrganizationDetailResponse, responses=_ERRORS)
async def get_organization(
    id: UUID,
    user: User = Depends(require_permission("organization", "member")),
    db: AsyncSession = Depends(get_db_session),
) -> OrganizationDetailResponse:
    return await organization_service.get_organization(db, user, id)


@router.post(
    "/{id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**_ERRORS, 409: {"description": "Already a member", "model": ErrorResponse}},
)
async def add_member(
    id: UUID,
    payload: MemberAdd,
    user: User = Depends(require_permission("organization", "admin")),
    db: AsyncSession = Depends(get_db_session),
) -> MemberResponse:
    return await organization_service.add_member(db, user, id, payload)


@router.delete(
    "/{id}/members/{user_uuid}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**_ERRORS, 400: {"description": "Last admin", "model": ErrorResponse}},
)
async def remove_member(
    id: UUID,
    user_uuid: UUID,
    user: User = Depends(require_permission("organization", "admin")),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await organization_service.remove_member(db, user, id, user_uuid)
