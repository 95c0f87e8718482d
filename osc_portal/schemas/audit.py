"""Audit log schemas."""


from datetime import datetime
from typing import Any

from osc_portal.schemas.common import CamelModel


class AuditLogOut(CamelModel):
    id: str
    actor_id: str | None = None
    action: str
    entity_type: str
    entity_id: str | None = None
    meta: dict[str, Any] | None = None
    created_at: datetime
