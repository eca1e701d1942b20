"""
Authorization backend selection.

`authorization_service` is a process-wide singleton: the OpenFGA variant holds
the circuit breaker and HTTP connection pool, which must be shared by every
request.
"""

import logging

from breviago.config import settings
from breviago.services.authz_base import AuthorizationService
from breviago.services.local_authz_service import LocalAuthorizationService
from breviago.services.openfga_service import OpenFGAService

logger = logging.getLogger(__name__)


def build_authorization_service(backend: str = None) -> AuthorizationService:
    backend = backend or settings.authz_backend
    if backend == "openfga":
        return OpenFGAService()
    return LocalAuthorizationService()


authorization_service = build_authorization_service()
