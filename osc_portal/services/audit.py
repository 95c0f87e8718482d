"""Audit service — append-only record of every mutating operation.

Every service that changes state receives an AuditService bound to the same
session, so the audit row commits (or rolls back) with the change it records.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from osc_portal.core.config import settings
from osc_portal.core.pagination import PaginationParams
from osc_portal.domain.audit import AuditLog
from osc_portal.domain.user import User
from osc_portal.middleware.request_context import current_request_context
from osc_portal.repositories.audit import AuditLogRepository

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("osc_portal.audit")


def entity_type_of(entity: Any) -> str:
    """Audit entity type for an ORM instance (its table name)."""
    return getattr(entity, "__tablename__", type(entity).__name__.lower())


class AuditService:
    def __init__(self, session: AsyncSession):
        self._repo = AuditLogRepository(session)

    async def log(
        self,
        action: str,
        entity_type: str,
        entity_id: str | None,
        meta: dict[str, Any] | None = None,
        actor: User | None = None,
    ) -> AuditLog | None:
        """Persist one audit row. Returns None when auditing is disabled."""
        if not settings.audit_enabled:
            logger.debug(
                "Audit logging is disabled, skipping %s on %s %s",
                action, entity_type, entity_id,
            )
            return None

        meta = dict(meta or {})
        ctx = current_request_context()
        if ctx is not None:
            meta.update(
                ip_address=ctx.ip_address,
                user_agent=ctx.user_agent,
                request_id=ctx.request_id,
            )

        actor_id = actor.id if actor is not None else None
        try:
            entry = await self._repo.create(
                actor_id=actor_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                meta=meta,
            )
        except Exception:
            logger.exception(
                "Failed to create audit log entry action=%s entity=%s:%s",
                action, entity_type, entity_id,
            )
            raise

        audit_logger.log(
            logging.getLevelName(settings.audit_log_level.upper()),
            "audit %s entity=%s:%s actor=%s id=%s",
            action, entity_type, entity_id, actor_id, entry.id,
        )
        return entry

    async def log_user_action(
        self, actor: User, action: str, entity: Any, meta: dict[str, Any] | None = None
    ) -> AuditLog | None:
        return await self.log(action, entity_type_of(entity), entity.id, meta, actor)

    async def log_auth_event(
        self, action: str, user: User, meta: dict[str, Any] | None = None
    ) -> AuditLog | None:
        return await self.log_user_action(user, action, user, meta)

    async def log_identity_verification(
        self, user: User, verified: bool, meta: dict[str, Any] | None = None
    ) -> AuditLog | None:
        # Always one action; the outcome lives in meta
        return await self.log_user_action(
            user,
            "identity_verification_attempted",
            user,
            {**(meta or {}), "verification_result": verified},
        )

    async def log_company_event(
        self, actor: User, action: str, company: Any, meta: dict[str, Any] | None = None
    ) -> AuditLog | None:
        return await self.log_user_action(actor, action, company, meta)

    async def log_account_event(
        self, user: User, action: str, meta: dict[str, Any] | None = None
    ) -> AuditLog | None:
        return await self.log_user_action(user, action, user, meta)

    # ------------------------------------------------------------------
    # Queries / retention
    # ------------------------------------------------------------------

    async def list_for_actor(self, actor: User, pagination: PaginationParams):
        return await self._repo.page(
            AuditLog.actor_id == actor.id,
            offset=pagination.offset,
            limit=pagination.limit,
        )

    async def list_all(self, pagination: PaginationParams):
        return await self._repo.page(offset=pagination.offset, limit=pagination.limit)

    async def purge_older_than(self, days: int) -> int:
        """Delete audit rows older than *days*; returns how many were removed."""
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        deleted = await self._repo.purge_before(cutoff)
        logger.info(
            "Purged %d audit log entries older than %d days (before %s)",
            deleted, days, cutoff.isoformat(timespec="seconds"),
        )
        return deleted
