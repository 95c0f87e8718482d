"""Password hashing, JWT issuing and the bearer-auth FastAPI dependencies."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from osc_portal.core.config import settings
from osc_portal.core.exceptions import ForbiddenError, UnauthorizedError
from osc_portal.db.base import get_db
from osc_portal.domain.user import User
from osc_portal.repositories.user import AccessTokenRepository, UserRepository

# Missing header is reported as 401 by get_principal, not 403 by HTTPBearer
bearer_scheme = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    # Bcrypt has a 72 byte limit
    password_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))


def get_password_hash(password: str) -> str:
    """Hash password with configurable rounds (BCRYPT_ROUNDS in .env)"""
    password_bytes = password.encode("utf-8")[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.bcrypt_rounds))
    return hashed.decode("utf-8")


def create_access_token(
    subject: str, expires_delta: Optional[timedelta] = None
) -> tuple[str, str, datetime]:
    """Create a JWT access token. Returns (token, jti, expires_at)."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    jti = secrets.token_hex(16)
    to_encode = {"sub": subject, "jti": jti, "exp": expire, "type": "access"}
    token = jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return token, jti, expire


def decode_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise UnauthorizedError("Could not validate credentials")


@dataclass
class Principal:
    """The authenticated user and the token id used for this request."""

    user: User
    jti: str


async def get_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_db),
) -> Principal:
    if credentials is None:
        raise UnauthorizedError()

    payload = decode_token(credentials.credentials)
    if payload.get("type") != "access" or not payload.get("jti") or not payload.get("sub"):
        raise UnauthorizedError("Invalid token type")

    token = await AccessTokenRepository(session).get_by_jti(payload["jti"])
    if token is None or token.is_revoked:
        raise UnauthorizedError()

    # Soft-deleted (deactivated) users are filtered out by the repository
    user = await UserRepository(session).get_by_id(payload["sub"])
    if user is None:
        raise UnauthorizedError()

    return Principal(user=user, jti=payload["jti"])


async def get_current_user(principal: Principal = Depends(get_principal)) -> User:
    return principal.user


async def require_verified_user(user: User = Depends(get_current_user)) -> User:
    if not user.status_verified_person:
        raise ForbiddenError(
            "Anda perlu mengesahkan identiti anda terlebih dahulu untuk mengakses ciri ini.",
            code="IDENTITY_NOT_VERIFIED",
        )
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise ForbiddenError()
    return user
