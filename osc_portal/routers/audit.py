"""Audit log router (module M01). Page size is capped at 50."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from osc_portal.core.features import require_feature
from osc_portal.core.pagination import PaginationParams
from osc_portal.core.response import ListResponse, paginated
from osc_portal.core.security import get_current_user, require_admin
from osc_portal.db.base import get_db
from osc_portal.domain.user import User
from osc_portal.schemas.audit import AuditLogOut
from osc_portal.services.audit import AuditService

router = APIRouter(
    prefix="/audit", tags=["Audit"], dependencies=[require_feature("MODULE_M01")]
)

MAX_PAGE_SIZE = 50


@router.get("/logs", response_model=ListResponse[AuditLogOut])
async def my_logs(
    pagination: PaginationParams = Depends(),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """Audit entries where the caller is the actor, newest first."""
    pagination = pagination.capped(MAX_PAGE_SIZE)
    items, total = await AuditService(session).list_for_actor(user, pagination)
    return paginated(
        [AuditLogOut.model_validate(e) for e in items],
        total, pagination,
    )


@router.get("/all-logs", response_model=ListResponse[AuditLogOut])
async def all_logs(
    pagination: PaginationParams = Depends(),
    user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
):
    pagination = pagination.capped(MAX_PAGE_SIZE)
    items, total = await AuditService(session).list_all(pagination)
    return paginated(
        [AuditLogOut.model_validate(e) for e in items],
        total, pagination,
    )
