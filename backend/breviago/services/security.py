"""
Breviago Backend — Password Hashing and Access Tokens
======================================================

What:  bcrypt password hashing and JWT (PyJWT) issue/verify.

Token format (HS256 by default):
    {
        "user_id":  "<user uuid>",
        "username": "alice",
        "iat":      1700000000,
        "exp":      1700086400,
        "iss":      "breviago",
        "jti":      "<random hex>"
    }

Only the algorithm configured in JWT_ALGORITHM is accepted on decode, so a
token signed with "none" or an asymmetric algorithm is rejected outright.
`jti` makes every issued token unique, even two issued in the same second,
which keeps the sessions.token column unique across login/refresh.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import bcrypt
import jwt

from breviago.config import settings
from breviago.exceptions import InvalidTokenError, TokenExpiredError, ValidationError

logger = logging.getLogger(__name__)

# bcrypt ignores (older releases) or rejects (4.1+) anything past 72 bytes
BCRYPT_MAX_BYTES = 72


@dataclass(frozen=True)
class TokenClaims:
    user_id: uuid.UUID
    username: str
    expires_at: datetime


def hash_password(password: str) -> str:
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        raise ValidationError("Password is too long", field="password")
    return bcrypt.hashpw(encoded, bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison; a malformed stored hash simply fails to verify."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Password verification failed on a malformed hash or oversized password")
        return False


def create_access_token(
    user_uuid: uuid.UUID,
    username: str,
    now: Optional[datetime] = None,
) -> Tuple[str, datetime]:
    """
    Sign a new access token for a user.

    Returns:
        (token, expires_at). The caller stores both in the sessions table.
    """
    issued_at = now or datetime.now(timezone.utc)
    expires_at = issued_at + timedelta(hours=settings.jwt_expire_hours)
    payload = {
        "user_id": str(user_uuid),
        "username": username,
        "iat": issued_at,
        "exp": expires_at,
        "iss": settings.jwt_issuer,
        "jti": uuid.uuid4().hex,
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return token, expires_at


def decode_access_token(token: str) -> TokenClaims:
    """
    Verify signature, algorithm, issuer and expiry.

    Raises:
        TokenExpiredError: the exp claim is in the past
        InvalidTokenError: anything else wrong with the token
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options={"require": ["exp", "iat", "user_id"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError()
    except jwt.InvalidTokenError as e:
        raise InvalidTokenError(context={"reason": type(e).__name__})

    try:
        user_id = uuid.UUID(str(payload["user_id"]))
    except ValueError:
        raise InvalidTokenError(context={"reason": "MalformedUserId"})

    return TokenClaims(
        user_id=user_id,
        username=str(payload.get("username", "")),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
