"""Global label catalogue."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from breviago.database import get_db_session
from breviago.dependencies import get_current_user
from breviago.models import User
from breviago.schemas.acronym import LabelCreate, LabelListResponse, LabelRef
from breviago.schemas.common import ErrorResponse
from breviago.services.acronym_service import acronym_service

router = APIRouter(prefix="/api/v1/labels", tags=["Labels"])


@router.get("", response_model=LabelListResponse, summary="All labels, alphabetically")
async def list_labels(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> LabelListResponse:
    return await acronym_service.list_labels(db)


@router.post(
    "",
    response_model=LabelRef,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Label exists", "model": ErrorResponse}},
    summary="Create a label",
)
async def create_label(
    payload: LabelCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> LabelRef:
    return await acronym_service.create_label(db, payload.label)
