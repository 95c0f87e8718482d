"""Permohonan (license application) and document repositories."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select

from osc_portal.domain.permohonan import Permohonan, PermohonanDokumen
from osc_portal.repositories.base import BaseRepository


class PermohonanRepository(BaseRepository[Permohonan]):
    model = Permohonan

    async def list_for_user(
        self,
        user_id: str,
        *,
        offset: int = 0,
        limit: int = 15,
        status: str | None = None,
        jenis_lesen_id: int | None = None,
        tarikh_dari: datetime | None = None,
        tarikh_hingga: datetime | None = None,
    ) -> tuple[list[Permohonan], int]:
        criteria = [Permohonan.user_id == user_id]
        if status is not None:
            criteria.append(Permohonan.status == status)
        if jenis_lesen_id is not None:
            criteria.append(Permohonan.jenis_lesen_id == jenis_lesen_id)
        if tarikh_dari is not None:
            criteria.append(Permohonan.tarikh_serahan >= tarikh_dari)
        if tarikh_hingga is not None:
            criteria.append(Permohonan.tarikh_serahan <= tarikh_hingga)

        return await self.page(*criteria, offset=offset, limit=limit)


class DokumenRepository(BaseRepository[PermohonanDokumen]):
    model = PermohonanDokumen

    async def get_for_requirement(
        self, permohonan_id: str, keperluan_dokumen_id: int
    ) -> PermohonanDokumen | None:
        result = await self._session.execute(
            select(PermohonanDokumen)
            .where(PermohonanDokumen.permohonan_id == permohonan_id)
            .where(PermohonanDokumen.keperluan_dokumen_id == keperluan_dokumen_id)
        )
        return result.scalars().first()

    async def uploaded_requirement_ids(self, permohonan_id: str) -> set[int]:
        result = await self._session.execute(
            select(PermohonanDokumen.keperluan_dokumen_id)
            .where(PermohonanDokumen.permohonan_id == permohonan_id)
        )
        return set(result.scalars().all())
