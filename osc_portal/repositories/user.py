"""User and access-token repositories."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select, update

from osc_portal.domain.token import AccessToken
from osc_portal.domain.user import User
from osc_portal.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User

    async def get_by_email(self, email: str, *, include_deleted: bool = False) -> User | None:
        q = select(User) if include_deleted else self._base_query()
        result = await self._session.execute(q.where(func.lower(User.email) == email.lower()))
        return result.scalars().first()

    async def email_taken(self, email: str, *, exclude_id: str | None = None) -> bool:
        # Deactivated accounts still hold their email
        q = select(User.id).where(func.lower(User.email) == email.lower())
        if exclude_id:
            q = q.where(User.id != exclude_id)
        return (await self._session.execute(q)).first() is not None

    async def ic_taken(self, ic_no: str) -> bool:
        q = select(User.id).where(User.ic_no == ic_no)
        return (await self._session.execute(q)).first() is not None


class AccessTokenRepository(BaseRepository[AccessToken]):
    model = AccessToken

    async def get_by_jti(self, jti: str) -> AccessToken | None:
        result = await self._session.execute(
            select(AccessToken).where(AccessToken.jti == jti)
        )
        return result.scalars().first()

    async def revoke(self, jti: str) -> bool:
        result = await self._session.execute(
            update(AccessToken)
            .where(AccessToken.jti == jti)
            .where(AccessToken.revoked_at.is_(None))
            .values(revoked_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="fetch")
        )
        await self._session.flush()
        return result.rowcount > 0

    async def revoke_all_for_user(self, user_id: str) -> int:
        """Revoke every live token of a user; returns how many were revoked."""
        result = await self._session.execute(
            update(AccessToken)
            .where(AccessToken.user_id == user_id)
            .where(AccessToken.revoked_at.is_(None))
            .values(revoked_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="fetch")
        )
        await self._session.flush()
        return result.rowcount
