"""SQLAlchemy ORM model for issued bearer tokens (revocable JWT ids)."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from osc_portal.db.base import Base
from osc_portal.domain.mixins import TimestampMixin, UUIDMixin


class AccessToken(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "access_tokens"

    # The JWT "jti" claim; the token itself is never stored
    jti: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), default="auth-token", nullable=False)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None
