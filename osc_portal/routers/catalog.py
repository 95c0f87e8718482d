"""Catalog router — Module 4 license types and requirements (module M02)."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from osc_portal.core.features import require_feature
from osc_portal.core.response import DataResponse
from osc_portal.core.security import get_current_user
from osc_portal.schemas.catalog import JenisLesenOut, KeperluanDokumenOut
from osc_portal.services.catalog import Module4Client, get_module4_client

router = APIRouter(
    prefix="/catalog",
    tags=["Catalog"],
    dependencies=[require_feature("MODULE_M02"), Depends(get_current_user)],
)


@router.get("/jenis-lesen", response_model=DataResponse[list[JenisLesenOut]])
async def list_jenis_lesen(catalog: Module4Client = Depends(get_module4_client)):
    """503 when Module 4 is unavailable in production."""
    items = await catalog.get_jenis_lesen()
    return {"data": [JenisLesenOut.model_validate(i) for i in items]}


@router.get(
    "/jenis-lesen/{jenis_lesen_id}/keperluan-dokumen",
    response_model=DataResponse[list[KeperluanDokumenOut]],
)
async def list_keperluan_dokumen(
    jenis_lesen_id: int,
    catalog: Module4Client = Depends(get_module4_client),
):
    items = await catalog.get_keperluan_dokumen(jenis_lesen_id)
    return {"data": [KeperluanDokumenOut.model_validate(i) for i in items]}
