"""
User, authentication and settings schemas.

Three views of a user exist:
    UserResponse        — the caller's own account (legal name, settings)
    PublicUserResponse  — what other authenticated users may see
    OwnerRef            — the compact {uuid, name} embedded in other resources
"""

from uuid import UUID
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class OwnerRef(BaseModel):
    uuid: UUID
    name: str

    model_config = {"from_attributes": True}


class UserSettingResponse(BaseModel):
    key: str
    value: str
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserSettingUpdate(BaseModel):
    value: str = Field(max_length=10_000)


class UserResponse(BaseModel):
    uuid: UUID
    username: str
    name: str
    legal_name: Optional[str] = None
    email: str
    created_at: datetime
    updated_at: datetime
    settings: List[UserSettingResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class PublicUserResponse(BaseModel):
    uuid: UUID
    name: str
    email: str
    created_at: datetime

    model_config = {"from_attributes": True}


# ══════════════════════════════════════════════════════════════════════════
# Authentication payloads
# ══════════════════════════════════════════════════════════════════════════


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=150)
    password: str = Field(min_length=1, max_length=72)


class RegisterRequest(BaseModel):
    """
    New account payload.

    Password bounds: at least 8 characters; at most 72 because bcrypt only
    looks at the first 72 bytes and current bcrypt releases reject longer input.
    """
    username: str = Field(min_length=3, max_length=150, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    password: str = Field(min_length=8, max_length=72)
    name: str = Field(default="", max_length=255)
    legal_name: Optional[str] = Field(default=None, max_length=255)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class TokenResponse(BaseModel):
    token: str = Field(description="Signed JWT access token")
    token_type: str = Field(default="bearer")
    expires_at: datetime = Field(description="When the token stops being accepted (UTC)")
