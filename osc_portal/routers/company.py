"""Company router — SSM verification and ownership (module M01)."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from osc_portal.core.features import require_feature
from osc_portal.core.response import DataResponse
from osc_portal.core.security import get_current_user, require_admin, require_verified_user
from osc_portal.db.base import get_db
from osc_portal.domain.user import User
from osc_portal.schemas.company import (
    CompanyOut,
    CompanyWithOwnerOut,
    LinkCompanyRequest,
    SSMVerificationOut,
    VerifySSMRequest,
)
from osc_portal.services.company import CompanyService, SSMClient, get_ssm_client

router = APIRouter(
    prefix="/company", tags=["Company"], dependencies=[require_feature("MODULE_M01")]
)


def _svc(session: AsyncSession, ssm_client: SSMClient) -> CompanyService:
    return CompanyService(session, ssm_client)


@router.post("/verify-ssm", response_model=DataResponse[SSMVerificationOut])
async def verify_ssm(
    body: VerifySSMRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    ssm_client: SSMClient = Depends(get_ssm_client),
):
    """Check an SSM number with the registry and create or refresh the company."""
    company, result = await _svc(session, ssm_client).verify_and_create_company(body.ssm_no, user)
    return {
        "data": SSMVerificationOut(
            company=CompanyOut.model_validate(company),
            status=result.status,
            message=result.message,
        ),
        "message": result.message,
    }


@router.post("/link", response_model=DataResponse[CompanyOut])
async def link_company(
    body: LinkCompanyRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    ssm_client: SSMClient = Depends(get_ssm_client),
):
    company = await _svc(session, ssm_client).link_user_to_company(user, body.company_id)
    return {"data": CompanyOut.model_validate(company), "message": "Company linked successfully"}


@router.get("/my-companies", response_model=DataResponse[list[CompanyOut]])
async def my_companies(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    ssm_client: SSMClient = Depends(get_ssm_client),
):
    items = await _svc(session, ssm_client).get_user_companies(user)
    return {"data": [CompanyOut.model_validate(c) for c in items]}


@router.get("/available", response_model=DataResponse[list[CompanyOut]])
async def available_companies(
    user: User = Depends(require_verified_user),
    session: AsyncSession = Depends(get_db),
    ssm_client: SSMClient = Depends(get_ssm_client),
):
    """Companies the user may link: unowned (not unknown status) plus their own."""
    items = await _svc(session, ssm_client).get_available_companies(user)
    return {"data": [CompanyOut.model_validate(c) for c in items]}


@router.get("/all", response_model=DataResponse[list[CompanyWithOwnerOut]])
async def all_companies(
    user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
    ssm_client: SSMClient = Depends(get_ssm_client),
):
    items = await _svc(session, ssm_client).get_all_companies(user)
    return {"data": [CompanyWithOwnerOut.model_validate(c) for c in items]}
