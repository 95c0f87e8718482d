"""Profile router — profile edits and IC verification (module M01)."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from osc_portal.core.features import require_feature
from osc_portal.core.response import DataResponse
from osc_portal.core.security import get_current_user
from osc_portal.db.base import get_db
from osc_portal.domain.user import User
from osc_portal.schemas.auth import (
    IdentityVerificationOut,
    UpdateProfileRequest,
    UserOut,
    VerifyIdentityRequest,
)
from osc_portal.services.auth import AuthService
from osc_portal.services.identity import (
    IdentityClient,
    IdentityVerificationService,
    get_identity_client,
)

router = APIRouter(
    prefix="/profile", tags=["Profile"], dependencies=[require_feature("MODULE_M01")]
)


@router.put("", response_model=DataResponse[UserOut])
async def update_profile(
    body: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    updated = await AuthService(session).update_profile(user, name=body.name, email=body.email)
    return {"data": UserOut.model_validate(updated), "message": "Profile updated successfully"}


@router.post("/verify-identity", response_model=DataResponse[IdentityVerificationOut])
async def verify_identity(
    body: VerifyIdentityRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    client: IdentityClient = Depends(get_identity_client),
):
    """Check the IC against the identity registry and record the outcome."""
    result = await IdentityVerificationService(session, client).verify_identity(user, body.ic_no)
    return {
        "data": IdentityVerificationOut(
            verified=result.verified,
            message=result.message,
            user=UserOut.model_validate(user),
        ),
        "message": result.message,
    }
