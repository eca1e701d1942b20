"""User lookup and the caller's own settings."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from breviago.database import get_db_session
from breviago.dependencies import get_current_user
from breviago.models import User
from breviago.schemas.common import ErrorResponse
from breviago.schemas.user import PublicUserResponse, UserSettingResponse, UserSettingUpdate
from breviago.services.user_service import user_service

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


# Declared before /{user_uuid} so "me" is not parsed as a UUID
@router.get("/me/settings", response_model=List[UserSettingResponse], summary="List my settings")
async def list_settings(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[UserSettingResponse]:
    return await user_service.list_settings(db, user)


@router.put(
    "/me/settings/{key}",
    response_model=UserSettingResponse,
    responses={400: {"description": "Invalid key", "model": ErrorResponse}},
    summary="Create or replace one setting",
)
async def set_setting(
    key: str,
    payload: UserSettingUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserSettingResponse:
    return await user_service.set_setting(db, user, key, payload.value)


@router.get(
    "/{user_uuid}",
    response_model=PublicUserResponse,
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Public profile of a user",
)
async def get_user(
    user_uuid: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PublicUserResponse:
    return await user_service.get_public_user(db, user_uuid)
