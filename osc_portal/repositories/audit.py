"""Audit log repository — append and read only, plus retention purge."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete

from osc_portal.domain.audit import AuditLog
from osc_portal.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLog]):
    model = AuditLog

    async def purge_before(self, cutoff: datetime) -> int:
        """Delete all rows created before *cutoff*; returns the number removed."""
        result = await self._session.execute(
            delete(AuditLog)
            .where(AuditLog.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        await self._session.flush()
        return result.rowcount
