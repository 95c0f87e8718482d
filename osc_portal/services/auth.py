"""Authentication service — registration, login, logout and profile edits."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from osc_portal.core.exceptions import ConflictError, UnauthorizedError
from osc_portal.core.security import (
    create_access_token,
    get_password_hash,
    verify_password,
)
from osc_portal.domain.user import User, UserRole
from osc_portal.repositories.user import AccessTokenRepository, UserRepository
from osc_portal.services.audit import AuditService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "The provided credentials are incorrect."


class AuthService:
    def __init__(self, session: AsyncSession):
        self._users = UserRepository(session)
        self._tokens = AccessTokenRepository(session)
        self._audit = AuditService(session)

    async def _issue_token(self, user: User, name: str) -> str:
        token, jti, expires_at = create_access_token(user.id)
        await self._tokens.create(user_id=user.id, jti=jti, name=name, expires_at=expires_at)
        return token

    async def register(self, name: str, email: str, password: str, ic_no: str) -> tuple[User, str]:
        """Create an unverified applicant account and sign it in."""
        if await self._users.email_taken(email):
            raise ConflictError("The email has already been taken.")
        if await self._users.ic_taken(ic_no):
            raise ConflictError("The ic no has already been taken.")

        user = await self._users.create(
            name=name,
            email=email.lower(),
            password_hash=get_password_hash(password),
            ic_no=ic_no,
            role=UserRole.PEMOHON.value,
            status_verified_person=False,
        )
        token = await self._issue_token(user, "registration")
        await self._audit.log_auth_event(
            "user_registered", user, {"email": user.email, "ic_no": user.ic_no}
        )
        logger.info("Registered user %s", user.id)
        return user, token

    async def login(self, email: str, password: str) -> tuple[User, str]:
        # Deactivated accounts are not found, so they get the same message
        user = await self._users.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise UnauthorizedError(INVALID_CREDENTIALS)

        token = await self._issue_token(user, "login")
        await self._audit.log_auth_event("user_logged_in", user, {"email": user.email})
        return user, token

    async def logout(self, user: User, jti: str) -> None:
        await self._tokens.revoke(jti)
        await self._audit.log_auth_event("user_logged_out", user)

    async def update_profile(
        self, user: User, name: str | None = None, email: str | None = None
    ) -> User:
        changes: dict[str, str] = {}
        if name is not None and name != user.name:
            changes["name"] = name
        if email is not None and email.lower() != user.email:
            if await self._users.email_taken(email, exclude_id=user.id):
                raise ConflictError("The email has already been taken.")
            changes["email"] = email.lower()

        if not changes:
            return user

        original = {field: getattr(user, field) for field in changes}
        updated = await self._users.update(user.id, **changes)
        await self._audit.log_user_action(
            user, "profile_updated", user, {"original": original, "updated": changes}
        )
        return updated  # type: ignore[return-value]
