"""SQLAlchemy ORM models for license applications and their documents."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from osc_portal.db.base import Base
from osc_portal.domain.mixins import TimestampMixin, UUIDMixin


class PermohonanStatus(str, enum.Enum):
    DRAF = "Draf"
    DISERAHKAN = "Diserahkan"
    DIBATALKAN = "Dibatalkan"


class StatusSah(str, enum.Enum):
    BELUM_SAH = "BelumSah"
    DISAHKAN = "Disahkan"


class Permohonan(Base, UUIDMixin, TimestampMixin):
    """One license application. Only Draf applications are mutable."""

    __tablename__ = "permohonan"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Catalogued externally (Module 4), so no FK
    jenis_lesen_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    # premise address + business details
    butiran_operasi: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), default=PermohonanStatus.DRAF.value, nullable=False, index=True
    )
    tarikh_serahan: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )

    company: Mapped["Company"] = relationship(lazy="selectin")
    dokumen: Mapped[List["PermohonanDokumen"]] = relationship(
        back_populates="permohonan",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="PermohonanDokumen.created_at",
    )

    @property
    def is_draf(self) -> bool:
        return self.status == PermohonanStatus.DRAF.value


class PermohonanDokumen(Base, UUIDMixin, TimestampMixin):
    """One uploaded file satisfying a document requirement (keperluan dokumen)."""

    __tablename__ = "permohonan_dokumen"
    __table_args__ = (
        UniqueConstraint("permohonan_id", "keperluan_dokumen_id", name="uq_permohonan_keperluan"),
    )

    permohonan_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("permohonan.id", ondelete="CASCADE"), nullable=False, index=True
    )
    keperluan_dokumen_id: Mapped[int] = mapped_column(Integer, nullable=False)

    nama_fail: Mapped[str] = mapped_column(String(255), nullable=False)
    mime: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    saiz_bait: Mapped[int] = mapped_column(Integer, nullable=False)
    url_storan: Mapped[str] = mapped_column(String(500), nullable=False)
    hash_fail: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    status_sah: Mapped[str] = mapped_column(
        String(20), default=StatusSah.BELUM_SAH.value, nullable=False
    )
    uploaded_by: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    permohonan: Mapped["Permohonan"] = relationship(back_populates="dokumen", lazy="noload")

    @property
    def is_validated(self) -> bool:
        return self.status_sah == StatusSah.DISAHKAN.value
