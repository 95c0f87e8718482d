"""Identity (IC) verification.

The registry lookup sits behind the ``IdentityClient`` protocol. The only
implementation shipped here is ``MockIdentityClient``, a deterministic stand-in
for development and tests until the national registry adapter exists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from osc_portal.domain.user import User
from osc_portal.repositories.user import UserRepository
from osc_portal.services.audit import AuditService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityVerificationResult:
    verified: bool
    message: str
    metadata: dict[str, Any] = field(default_factory=dict)


class IdentityClient(Protocol):
    async def verify(self, ic_no: str) -> IdentityVerificationResult: ...


class MockIdentityClient:
    """Verifies an all-digit IC whose last digit is even."""

    method = "mock_adapter"

    @staticmethod
    def passes(ic_no: str) -> bool:
        ic_no = (ic_no or "").strip()
        if not (ic_no.isascii() and ic_no.isdigit()):
            return False
        return int(ic_no[-1]) % 2 == 0

    async def verify(self, ic_no: str) -> IdentityVerificationResult:
        now = datetime.now(timezone.utc).isoformat()
        if self.passes(ic_no):
            return IdentityVerificationResult(
                verified=True,
                message="Identity verification successful",
                metadata={
                    "ic_no": ic_no,
                    "verification_method": self.method,
                    "verified_at": now,
                },
            )
        return IdentityVerificationResult(
            verified=False,
            message="Identity verification failed",
            metadata={
                "ic_no": ic_no,
                "verification_method": self.method,
                "reason": "IC number does not meet verification criteria",
                "attempted_at": now,
            },
        )


def get_identity_client() -> IdentityClient:
    """FastAPI dependency; swap here when a real registry adapter is available."""
    return MockIdentityClient()


class IdentityVerificationService:
    def __init__(self, session: AsyncSession, client: IdentityClient):
        self._users = UserRepository(session)
        self._client = client
        self._audit = AuditService(session)

    async def verify_identity(self, user: User, ic_no: str) -> IdentityVerificationResult:
        result = await self._client.verify(ic_no)

        await self._users.update(user.id, status_verified_person=result.verified)
        user.status_verified_person = result.verified

        await self._audit.log_identity_verification(
            user,
            result.verified,
            {
                **result.metadata,
                "ic_no_provided": ic_no,
                "verification_message": result.message,
            },
        )
        logger.info("Identity verification for user %s: %s", user.id, result.verified)
        return result
