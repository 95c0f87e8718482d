"""SQLAlchemy ORM model for SSM-registered companies."""

from __future__ import annotations

import enum
from typing import Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from osc_portal.db.base import Base
from osc_portal.domain.mixins import TimestampMixin, UUIDMixin


class CompanyStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    UNKNOWN = "unknown"


class Company(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "companies"

    ssm_no: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=CompanyStatus.UNKNOWN.value, nullable=False, index=True
    )

    # At most one owner per company
    owner_user_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )

    owner: Mapped[Optional["User"]] = relationship(
        back_populates="owned_companies", lazy="noload"
    )
