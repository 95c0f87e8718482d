"""SQLAlchemy ORM model for portal users (applicants and administrators)."""

from __future__ import annotations

import enum
from typing import List

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from osc_portal.db.base import Base
from osc_portal.domain.mixins import SoftDeleteMixin, TimestampMixin, UUIDMixin


class UserRole(str, enum.Enum):
    PEMOHON = "PEMOHON"  # applicant
    PENTADBIR_SYS = "PENTADBIR_SYS"  # system administrator


class User(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    ic_no: Mapped[str] = mapped_column(String(12), nullable=False, unique=True, index=True)

    role: Mapped[str] = mapped_column(
        String(20), default=UserRole.PEMOHON.value, nullable=False
    )
    status_verified_person: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    owned_companies: Mapped[List["Company"]] = relationship(
        back_populates="owner", lazy="noload"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.PENTADBIR_SYS.value
