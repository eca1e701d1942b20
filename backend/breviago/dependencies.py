"""
Breviago Backend — Route Dependencies
======================================

What:  FastAPI dependencies shared by the routers.

    get_current_user      — the authenticated User for this request
    require_permission()  — factory: dependency that enforces a relation on
                            the object named by a path parameter

The AuthenticationMiddleware has already verified the JWT and put its claims
on request.state; these dependencies add the database-side checks (user
still exists, session still holds this token) and the relation check.

Example:
    @router.put("/acronyms/{id}")
    async def update(
        id: UUID,
        user: User = Depends(require_permission("acronym", "editor")),
        ...
"""

import logging
import uuid

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from breviago.database import get_db_session
from breviago.exceptions import AuthenticationError, PermissionDeniedError, ValidationError
from breviago.models import User
from breviago.services.authorization import authorization_service
from breviago.services.authz_base import object_ref, user_ref
from breviago.services.user_service import user_service

logger = logging.getLogger(__name__)


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> User:
    user_id = getattr(request.state, "user_id", None)
    token = getattr(request.state, "token", None)
    if user_id is None or token is None:
        raise AuthenticationError(message="Authentication required")
    return await user_service.get_authenticated_user(db, user_id, token)


def require_permission(object_type: str, relation: str, param: str = "id"):
    """
    Build a dependency that checks `relation` on `<object_type>:<path param>`.

    Raises (from the dependency):
        AuthenticationError:        no authenticated user (401)
        ValidationError:            path parameter missing or not a UUID (400)
        PermissionDeniedError:      relation not held, or object missing (403)
        AuthorizationServiceError:  backend could not answer (503)
    """

    async def dependency(
        request: Request,
        user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_session),
    ) -> User:
        raw_id = request.path_params.get(param)
        if not raw_id:
            raise ValidationError("Object ID is required", field=param)
        try:
            object_uuid = uuid.UUID(str(raw_id))
        except ValueError:
            raise ValidationError("Invalid id", field=param)

        subject = user_ref(user.uuid)
        obj = object_ref(object_type, object_uuid)
        allowed = await authorization_service.check(subject, relation, obj, db=db)
        if not allowed:
            logger.info("Permission denied: %s %s %s", subject, relation, obj)
            raise PermissionDeniedError(
                context={"user": str(user.uuid), "relation": relation, "object": obj}
            )
        return user

    return dependency
