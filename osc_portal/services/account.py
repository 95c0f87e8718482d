"""Account lifecycle — self-service deactivation."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from osc_portal.domain.user import User
from osc_portal.repositories.user import AccessTokenRepository, UserRepository
from osc_portal.services.audit import AuditService

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, session: AsyncSession):
        self._users = UserRepository(session)
        self._tokens = AccessTokenRepository(session)
        self._audit = AuditService(session)

    async def deactivate_account(self, user: User) -> int:
        """Revoke every token and soft-delete the user. Returns revoked token count."""
        revoked = await self._tokens.revoke_all_for_user(user.id)
        await self._users.soft_delete(user.id)

        await self._audit.log_account_event(
            user,
            "account_deactivated",
            {
                "revoked_token_count": revoked,
                "deactivated_at": datetime.now(timezone.utc).isoformat(),
            },
        )
        logger.info("Deactivated account %s (%d tokens revoked)", user.id, revoked)
        return revoked
