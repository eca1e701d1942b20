"""
Breviago Backend — Authentication Routes
=========================================

What:  Register, login, logout, refresh and "who am I".

Login and refresh return the token in the body *and* set it as an HttpOnly
cookie, so both API clients (Authorization header) and browsers (cookie)
work. Logout deletes the server-side session and clears the cookie.
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from breviago.config import settings
from breviago.database import get_db_session
from breviago.dependencies import get_current_user
from breviago.models import User
from breviago.schemas.common import ErrorResponse, MessageResponse
from breviago.schemas.user import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from breviago.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.jwt_expire_hours * 3600,
        path="/",
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
    )


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid input", "model": ErrorResponse},
        409: {"description": "Username or email taken", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await user_service.register(db, payload)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={401: {"description": "Invalid username or password", "model": ErrorResponse}},
    summary="Exchange credentials for an access token",
)
async def login(
    payload: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    token = await user_service.login(db, payload.username, payload.password)
    _set_auth_cookie(response, token.token)
    return token


@router.post("/logout", response_model=MessageResponse, summary="End the current session")
async def logout(
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await user_service.logout(db, user)
    response.delete_cookie(settings.auth_cookie_name, path="/")
    return MessageResponse(message="Logged out")


@router.post("/refresh", response_model=TokenResponse, summary="Issue a new token")
async def refresh(
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    token = await user_service.refresh(db, user)
    _set_auth_cookie(response, token.token)
    return token


@router.get("/me", response_model=UserResponse, summary="The authenticated user")
async def me(user: User = Depends(get_current_user)) -> UserResponse:
    return user_service.to_response(user)
