"""
Breviago Backend — User Service
================================

What:  Accounts, login sessions and per-user settings.

Session model:
    Each user has at most one row in `sessions`, holding the only token that
    is currently accepted for them. Login and refresh replace it, logout
    deletes it. A JWT with a valid signature is therefore still refused once
    it is no longer the stored token.

Login Flow:
    ┌─────────┐   ┌──────────────┐   ┌──────────────┐   ┌────────────┐
    │ lookup  │──▶│ bcrypt check │──▶│  sign JWT    │──▶│ upsert     │
    │ by name │   │              │   │  (PyJWT)     │   │ session    │
    └─────────┘   └──────────────┘   └──────────────┘   └────────────┘
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from breviago.exceptions import AuthenticationError, ConflictError, NotFoundError, ValidationError
from breviago.models import Session, User, UserSetting
from breviago.schemas.user import (
    PublicUserResponse,
    RegisterRequest,
    TokenResponse,
    UserResponse,
    UserSettingResponse,
)
from breviago.services.audit_service import audit_service
from breviago.services.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)


class UserService:
    """
    Error Handling Strategy:
        Bad credentials and revoked sessions raise AuthenticationError (401)
        with a code the client can act on. Uniqueness violations become
        ConflictError (409); anything else from SQLAlchemy reaches the
        global DatabaseError handler.
    """

    async def register(self, db: AsyncSession, data: RegisterRequest) -> UserResponse:
        existing = await db.scalar(
            select(User).where(or_(User.username == data.username, User.email == data.email))
        )
        if existing is not None:
            field = "username" if existing.username == data.username else "email"
            raise ConflictError(
                message=f"A user with this {field} already exists",
                context={"field": field},
            )

        user = User(
            username=data.username,
            email=data.email,
            name=data.name or data.username,
            legal_name=data.legal_name,
            password_hash=hash_password(data.password),
            settings=[],
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError(message="A user with this username or email already exists")

        audit_service.record(db, user.id, "user", "register", data={"username": user.username})
        logger.info("User registered: %s (%s)", user.username, user.uuid)
        return self.to_response(user)

    async def login(self, db: AsyncSession, username: str, password: str) -> TokenResponse:
        """
        Verify credentials and open (or replace) the user's session.

        Raises:
            AuthenticationError: unknown user, deleted user or wrong password.
                The message is identical in every case.
        """
        user = await db.scalar(
            select(User).where(User.username == username, User.deleted_at.is_(None))
        )
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("Failed login for username '%s'", username)
            raise AuthenticationError(
                message="Invalid username or password",
                code="invalid_credentials",
            )

        response = await self._issue_session(db, user)
        audit_service.record(db, user.id, "auth", "login")
        logger.info("User logged in: %s", user.username)
        return response

    async def logout(self, db: AsyncSession, user: User) -> None:
        session = await db.scalar(select(Session).where(Session.user_id == user.id))
        if session is not None:
            await db.delete(session)
        audit_service.record(db, user.id, "auth", "logout")
        logger.info("User logged out: %s", user.username)

    async def refresh(self, db: AsyncSession, user: User) -> TokenResponse:
        """Issue a fresh token; the previous one stops working immediately."""
        response = await self._issue_session(db, user)
        audit_service.record(db, user.id, "auth", "refresh")
        return response

    async def get_authenticated_user(self, db: AsyncSession, user_uuid: UUID, token: str) -> User:
        """
        Resolve the caller from verified token claims.

        Raises:
            AuthenticationError: the user is gone, or the token is not the
                one currently stored for them (logged out or refreshed).
        """
        user = await db.scalar(
            select(User)
            .options(selectinload(User.settings))
            .where(User.uuid == user_uuid, User.deleted_at.is_(None))
        )
        if user is None:
            raise AuthenticationError(message="User no longer exists", code="invalid_token")

        session = await db.scalar(
            select(Session).where(Session.user_id == user.id, Session.token == token)
        )
        if session is None:
            raise AuthenticationError(message="Session has been revoked", code="session_revoked")
        return user

    async def get_public_user(self, db: AsyncSession, user_uuid: UUID) -> PublicUserResponse:
        user = await db.scalar(
            select(User).where(User.uuid == user_uuid, User.deleted_at.is_(None))
        )
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_uuid))
        return PublicUserResponse.model_validate(user)

    async def list_settings(self, db: AsyncSession, user: User) -> List[UserSettingResponse]:
        rows = await db.scalars(
            select(UserSetting).where(UserSetting.user_id == user.id).order_by(UserSetting.key)
        )
        return [UserSettingResponse.model_validate(row) for row in rows]

    async def set_setting(
        self, db: AsyncSession, user: User, key: str, value: str
    ) -> UserSettingResponse:
        key = key.strip()
        if not key or len(key) > 100:
            raise ValidationError("Setting key must be 1-100 characters", field="key")

        setting = await db.scalar(
            select(UserSetting).where(UserSetting.user_id == user.id, UserSetting.key == key)
        )
        if setting is None:
            setting = UserSetting(user_id=user.id, key=key, value=value)
            db.add(setting)
        else:
            setting.value = value
        await db.flush()
        return UserSettingResponse.model_validate(setting)

    def to_response(self, user: User) -> UserResponse:
        return UserResponse.model_validate(user)

    async def _issue_session(self, db: AsyncSession, user: User) -> TokenResponse:
        token, expires_at = create_access_token(user.uuid, user.username)

        session = await db.scalar(select(Session).where(Session.user_id == user.id))
        if session is None:
            db.add(Session(user_id=user.id, token=token, expires_at=expires_at))
        else:
            session.token = token
            session.expires_at = expires_at
        await db.flush()

        return TokenResponse(token=token, expires_at=expires_at)


user_service = UserService()
