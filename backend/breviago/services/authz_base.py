"""
Breviago Backend — Authorization Service Interface
===================================================

What:  The contract every permission backend implements: check a relation,
       write/delete relationship tuples, report health.
How:   Relations are expressed as OpenFGA-style tuples of strings:

           user      "user:<uuid>"  (or "organization:<uuid>#member")
           relation  "owner" | "editor" | "viewer" | "member" | "admin"
           object    "<type>:<uuid>", type ∈ acronym, folder, document, organization

Implementations:
    - OpenFGAService:            remote checks against an OpenFGA store
    - LocalAuthorizationService: relations derived from the database rows
"""

import uuid
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

# Values reported by health_check()
AVAILABLE = "available"
UNAVAILABLE = "unavailable"
CIRCUIT_OPEN = "circuit_open"

# Wildcard subject: every user. Public acronyms grant it "viewer".
ALL_USERS = "user:*"


def user_ref(user_uuid: uuid.UUID) -> str:
    return f"user:{user_uuid}"


def organization_members_ref(org_uuid: uuid.UUID) -> str:
    return f"organization:{org_uuid}#member"


def object_ref(object_type: str, object_uuid: uuid.UUID) -> str:
    return f"{object_type}:{object_uuid}"


def parse_ref(ref: str) -> Tuple[str, Optional[uuid.UUID]]:
    """Split "type:uuid" into its parts; the uuid is None when malformed."""
    object_type, _, raw_id = ref.partition(":")
    raw_id = raw_id.split("#", 1)[0]
    try:
        return object_type, uuid.UUID(raw_id)
    except ValueError:
        return object_type, None


class AuthorizationService(ABC):
    """
    Contract:
        - check() answers True/False; it raises only when the backend cannot
          answer at all (AuthorizationServiceError, CircuitBreakerOpenError)
        - write/delete are idempotent from the caller's point of view
        - `db` lets database-backed implementations reuse the request's
          session; remote implementations ignore it
    """

    backend: str = "abstract"

    @abstractmethod
    async def check(
        self,
        user: str,
        relation: str,
        obj: str,
        *,
        db: Optional[AsyncSession] = None,
    ) -> bool:
        ...

    @abstractmethod
    async def write_relationship(self, user: str, relation: str, obj: str) -> None:
        ...

    @abstractmethod
    async def delete_relationship(self, user: str, relation: str, obj: str) -> None:
        ...

    @abstractmethod
    async def health_check(self) -> str:
        """Returns AVAILABLE, UNAVAILABLE or CIRCUIT_OPEN."""
        ...

    async def close(self) -> None:
        """Release network resources on shutdown."""
        return None
