"""
Audit trail writer.

Audit rows are added to the caller's session, so they commit (or roll back)
together with the change they describe.
"""

import json
import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from breviago.models import AuditLog

logger = logging.getLogger(__name__)


class AuditService:
    def record(
        self,
        db: AsyncSession,
        user_id: Optional[int],
        event: str,
        action: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        entry = AuditLog(
            user_id=user_id,
            event=event,
            action=action,
            data=json.dumps(data or {}, default=str, sort_keys=True),
        )
        db.add(entry)
        logger.debug("Audit %s.%s user_id=%s", event, action, user_id)
        return entry


audit_service = AuditService()
