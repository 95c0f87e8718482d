"""Permohonan router — application workflow and document uploads (module M02).

Ownership is enforced here (403 for other users' applications); draft-state
and completeness rules live in the services.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from osc_portal.core.features import require_feature
from osc_portal.core.pagination import PaginationParams
from osc_portal.core.response import DataResponse, ListResponse, paginated
from osc_portal.core.security import get_current_user
from osc_portal.core.storage import LocalStorage, get_storage
from osc_portal.db.base import get_db
from osc_portal.domain.permohonan import PermohonanStatus
from osc_portal.domain.user import User
from osc_portal.schemas.permohonan import (
    CancelRequest,
    CompletenessOut,
    DokumenOut,
    PermohonanCreate,
    PermohonanOut,
    PermohonanUpdate,
)
from osc_portal.services.catalog import Module4Client, get_module4_client
from osc_portal.services.dokumen import DokumenService
from osc_portal.services.events import AfterCommitDispatcher, EventDispatcher, get_dispatcher
from osc_portal.services.permohonan import PermohonanService

router = APIRouter(
    prefix="/permohonan", tags=["Permohonan"], dependencies=[require_feature("MODULE_M02")]
)


# ------------------------------------------------------------------
# Service wiring
# ------------------------------------------------------------------

def _svc(
    session: AsyncSession = Depends(get_db),
    catalog: Module4Client = Depends(get_module4_client),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
) -> PermohonanService:
    return PermohonanService(session, catalog, AfterCommitDispatcher(session, dispatcher))


def _dokumen_svc(
    session: AsyncSession = Depends(get_db),
    file_storage: LocalStorage = Depends(get_storage),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
) -> DokumenService:
    return DokumenService(session, file_storage, AfterCommitDispatcher(session, dispatcher))


async def _out(svc: PermohonanService, permohonan) -> PermohonanOut:
    details = await svc.catalog_details([permohonan])
    return PermohonanOut.build(permohonan, details[permohonan.jenis_lesen_id])


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("", response_model=ListResponse[PermohonanOut])
async def list_permohonan(
    filter_status: Optional[PermohonanStatus] = Query(default=None, alias="status"),
    jenis_lesen_id: Optional[int] = Query(default=None),
    tarikh_dari: Optional[datetime] = Query(default=None, description="Submitted on/after"),
    tarikh_hingga: Optional[datetime] = Query(default=None, description="Submitted on/before"),
    pagination: PaginationParams = Depends(),
    user: User = Depends(get_current_user),
    svc: PermohonanService = Depends(_svc),
):
    """The caller's applications, newest first."""
    items, total = await svc.list_permohonan(
        user,
        pagination,
        status=filter_status.value if filter_status else None,
        jenis_lesen_id=jenis_lesen_id,
        tarikh_dari=tarikh_dari,
        tarikh_hingga=tarikh_hingga,
    )
    details = await svc.catalog_details(items)
    return paginated(
        [PermohonanOut.build(p, details[p.jenis_lesen_id]) for p in items],
        total, pagination,
    )


@router.post("", response_model=DataResponse[PermohonanOut], status_code=status.HTTP_201_CREATED)
async def create_permohonan(
    body: PermohonanCreate,
    user: User = Depends(get_current_user),
    svc: PermohonanService = Depends(_svc),
):
    """Create a draft application for a company the caller owns."""
    permohonan = await svc.create_draft(
        user,
        company_id=body.company_id,
        jenis_lesen_id=body.jenis_lesen_id,
        butiran_operasi=body.butiran_operasi.model_dump(),
    )
    return {"data": await _out(svc, permohonan), "message": "Draft application created"}


@router.get("/{permohonan_id}", response_model=DataResponse[PermohonanOut])
async def get_permohonan(
    permohonan_id: str,
    user: User = Depends(get_current_user),
    svc: PermohonanService = Depends(_svc),
):
    permohonan = await svc.get_owned(permohonan_id, user)
    return {"data": await _out(svc, permohonan)}


@router.put("/{permohonan_id}", response_model=DataResponse[PermohonanOut])
async def update_permohonan(
    permohonan_id: str,
    body: PermohonanUpdate,
    user: User = Depends(get_current_user),
    svc: PermohonanService = Depends(_svc),
):
    permohonan = await svc.get_owned(permohonan_id, user)
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    updated = await svc.update_draft(permohonan, user, changes)
    return {"data": await _out(svc, updated), "message": "Draft application updated"}


@router.get("/{permohonan_id}/completeness", response_model=DataResponse[CompletenessOut])
async def check_completeness(
    permohonan_id: str,
    user: User = Depends(get_current_user),
    svc: PermohonanService = Depends(_svc),
):
    """What is still missing before the application can be submitted."""
    permohonan = await svc.get_owned(permohonan_id, user)
    errors = await svc.validate_completeness(permohonan)
    return {"data": CompletenessOut(complete=not errors, errors=errors)}


@router.post("/{permohonan_id}/submit", response_model=DataResponse[PermohonanOut])
async def submit_permohonan(
    permohonan_id: str,
    user: User = Depends(get_current_user),
    svc: PermohonanService = Depends(_svc),
):
    permohonan = await svc.get_owned(permohonan_id, user)
    submitted = await svc.submit(permohonan, user)
    return {"data": await _out(svc, submitted), "message": "Application submitted successfully"}


@router.post("/{permohonan_id}/cancel", response_model=DataResponse[PermohonanOut])
async def cancel_permohonan(
    permohonan_id: str,
    body: CancelRequest,
    user: User = Depends(get_current_user),
    svc: PermohonanService = Depends(_svc),
):
    permohonan = await svc.get_owned(permohonan_id, user)
    cancelled = await svc.cancel(permohonan, user, body.reason)
    return {"data": await _out(svc, cancelled), "message": "Application cancelled"}


# ------------------------------------------------------------------
# Documents
# ------------------------------------------------------------------

@router.post(
    "/{permohonan_id}/dokumen",
    response_model=DataResponse[DokumenOut],
    status_code=status.HTTP_201_CREATED,
)
async def upload_dokumen(
    permohonan_id: str,
    keperluan_dokumen_id: int = Form(...),
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    svc: PermohonanService = Depends(_svc),
    dokumen_svc: DokumenService = Depends(_dokumen_svc),
):
    """Upload (or replace) the document for one requirement of a draft application."""
    permohonan = await svc.get_owned(permohonan_id, user)
    content = await file.read()
    dokumen = await dokumen_svc.upload(
        permohonan,
        keperluan_dokumen_id,
        filename=file.filename or "",
        content_type=file.content_type,
        content=content,
        uploader=user,
    )
    return {"data": DokumenOut.model_validate(dokumen), "message": "Document uploaded successfully"}


@router.delete("/{permohonan_id}/dokumen/{dokumen_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_dokumen(
    permohonan_id: str,
    dokumen_id: str,
    user: User = Depends(get_current_user),
    svc: PermohonanService = Depends(_svc),
    dokumen_svc: DokumenService = Depends(_dokumen_svc),
):
    permohonan = await svc.get_owned(permohonan_id, user)
    dokumen = await dokumen_svc.get_dokumen(permohonan, dokumen_id)
    await dokumen_svc.delete(dokumen, user)
