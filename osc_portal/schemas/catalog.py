"""Module 4 catalog schemas."""


from osc_portal.schemas.common import CamelModel


class JenisLesenOut(CamelModel):
    id: int
    kod: str | None = None
    nama: str
    keterangan: str | None = None
    kategori: str | None = None
    yuran_proses: float | None = None


class KeperluanDokumenOut(CamelModel):
    id: int
    jenis_lesen_id: int | None = None
    nama: str
    keterangan: str | None = None
    wajib: bool = False
