"""Company schemas."""


from datetime import datetime

from osc_portal.schemas.common import CamelModel, SSMNumber


class VerifySSMRequest(CamelModel):
    ssm_no: SSMNumber


class LinkCompanyRequest(CamelModel):
    company_id: str


class CompanyOwnerOut(CamelModel):
    id: str
    name: str
    email: str


class CompanyOut(CamelModel):
    id: str
    ssm_no: str
    name: str
    status: str
    owner_user_id: str | None = None
    created_at: datetime
    updated_at: datetime


class CompanyWithOwnerOut(CompanyOut):
    owner: CompanyOwnerOut | None = None


class SSMVerificationOut(CamelModel):
    company: CompanyOut
    status: str
    message: str
