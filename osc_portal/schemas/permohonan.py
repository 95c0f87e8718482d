"""Permohonan (license application) and document schemas."""


from datetime import datetime
from typing import Any

from pydantic import Field

from osc_portal.schemas.common import CamelModel


class AlamatPremis(CamelModel):
    alamat_1: str = Field(min_length=1, max_length=255)
    alamat_2: str | None = Field(default=None, max_length=255)
    bandar: str = Field(min_length=1, max_length=100)
    poskod: str = Field(min_length=1, max_length=10)
    negeri: str = Field(min_length=1, max_length=100)


class ButiranOperasi(CamelModel):
    alamat_premis: AlamatPremis
    nama_perniagaan: str = Field(min_length=1, max_length=255)
    jenis_operasi: str | None = Field(default=None, max_length=255)
    bilangan_pekerja: int | None = Field(default=None, ge=0)
    catatan: str | None = None


class PermohonanCreate(CamelModel):
    company_id: str
    jenis_lesen_id: int
    butiran_operasi: ButiranOperasi


class PermohonanUpdate(CamelModel):
    company_id: str | None = None
    jenis_lesen_id: int | None = None
    butiran_operasi: ButiranOperasi | None = None


class CancelRequest(CamelModel):
    reason: str = Field(min_length=1, max_length=500)


class DokumenOut(CamelModel):
    id: str
    permohonan_id: str
    keperluan_dokumen_id: int
    nama_fail: str
    mime: str | None = None
    saiz_bait: int
    hash_fail: str | None = None
    status_sah: str
    uploaded_by: str | None = None
    created_at: datetime
    updated_at: datetime


class PermohonanOut(CamelModel):
    id: str
    user_id: str
    company_id: str
    company_name: str | None = None
    jenis_lesen_id: int
    jenis_lesen_nama: str
    kategori: str
    yuran_proses: float | None = None
    butiran_operasi: dict[str, Any] | None = None
    status: str
    tarikh_serahan: datetime | None = None
    dokumen: list[DokumenOut] = []
    created_at: datetime
    updated_at: datetime

    @classmethod
    def build(cls, permohonan, catalog: dict[str, Any]) -> "PermohonanOut":
        """Combine an application row with its catalog details."""
        return cls(
            id=permohonan.id,
            user_id=permohonan.user_id,
            company_id=permohonan.company_id,
            company_name=permohonan.company.name if permohonan.company else None,
            jenis_lesen_id=permohonan.jenis_lesen_id,
            butiran_operasi=permohonan.butiran_operasi,
            status=permohonan.status,
            tarikh_serahan=permohonan.tarikh_serahan,
            dokumen=[DokumenOut.model_validate(d) for d in permohonan.dokumen],
            created_at=permohonan.created_at,
            updated_at=permohonan.updated_at,
            **catalog,
        )


class CompletenessOut(CamelModel):
    complete: bool
    errors: list[str]
