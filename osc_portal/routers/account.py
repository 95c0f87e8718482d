"""Account router — self-service deactivation (module M01)."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from osc_portal.core.features import require_feature
from osc_portal.core.response import DataResponse
from osc_portal.core.security import get_current_user
from osc_portal.db.base import get_db
from osc_portal.domain.user import User
from osc_portal.schemas.auth import DeactivateOut
from osc_portal.services.account import AccountService

router = APIRouter(
    prefix="/account", tags=["Account"], dependencies=[require_feature("MODULE_M01")]
)


@router.post("/deactivate", response_model=DataResponse[DeactivateOut])
async def deactivate(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """Soft-delete the account and revoke every token it holds."""
    revoked = await AccountService(session).deactivate_account(user)
    return {
        "data": DeactivateOut(revoked_token_count=revoked),
        "message": "Account deactivated successfully",
    }
