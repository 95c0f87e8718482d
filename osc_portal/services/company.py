"""Company service — SSM verification and ownership linking.

The SSM registry sits behind the ``SSMClient`` protocol; ``MockSSMClient``
is the deterministic stand-in used until the registry adapter exists.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from osc_portal.core.exceptions import CompanyError, ForbiddenError, NotFoundError
from osc_portal.domain.company import Company, CompanyStatus
from osc_portal.domain.user import User
from osc_portal.repositories.company import CompanyRepository
from osc_portal.services.audit import AuditService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompanyStatusResult:
    status: str  # active | inactive | unknown
    message: str
    company_name: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)


class SSMClient(Protocol):
    async def check_company_status(self, ssm_no: str) -> CompanyStatusResult: ...


class MockSSMClient:
    """Numbers starting with ``SSM-`` are active, other non-empty ones inactive."""

    method = "mock_ssm_adapter"

    _MESSAGES = {
        CompanyStatus.ACTIVE.value: ("Company is active and registered with SSM", "valid"),
        CompanyStatus.INACTIVE.value: ("Company is inactive or suspended", "inactive"),
        CompanyStatus.UNKNOWN.value: ("Company status could not be determined", "not_found"),
    }

    @staticmethod
    def status_for(ssm_no: str) -> str:
        trimmed = (ssm_no or "").strip()
        if not trimmed:
            return CompanyStatus.UNKNOWN.value
        if trimmed.upper().startswith("SSM-"):
            return CompanyStatus.ACTIVE.value
        return CompanyStatus.INACTIVE.value

    @staticmethod
    def _company_name(ssm_no: str, status: str) -> Optional[str]:
        if status == CompanyStatus.UNKNOWN.value:
            return None
        identifier = re.sub(r"[^A-Z0-9]", "", ssm_no.upper())[:8]
        suffix = "Sdn Bhd" if status == CompanyStatus.ACTIVE.value else "Sdn Bhd (Inactive)"
        return f"Mock Company {identifier} {suffix}"

    async def check_company_status(self, ssm_no: str) -> CompanyStatusResult:
        status = self.status_for(ssm_no)
        message, registration_status = self._MESSAGES[status]
        return CompanyStatusResult(
            status=status,
            message=message,
            company_name=self._company_name(ssm_no, status),
            metadata={
                "ssm_no": ssm_no,
                "verification_method": self.method,
                "checked_at": datetime.now(timezone.utc).isoformat(),
                "registration_status": registration_status,
            },
        )


def get_ssm_client() -> SSMClient:
    """FastAPI dependency; swap here when a real registry adapter is available."""
    return MockSSMClient()


class CompanyService:
    def __init__(self, session: AsyncSession, ssm_client: SSMClient):
        self._repo = CompanyRepository(session)
        self._ssm = ssm_client
        self._audit = AuditService(session)

    async def verify_and_create_company(
        self, ssm_no: str, actor: User | None = None
    ) -> tuple[Company, CompanyStatusResult]:
        """Check the registry and upsert the company keyed by SSM number."""
        ssm_no = ssm_no.strip()
        result = await self._ssm.check_company_status(ssm_no)

        company = await self._repo.get_by_ssm_no(ssm_no)
        values: dict[str, Any] = {"status": result.status}
        if result.company_name is not None:
            values["name"] = result.company_name

        if company is not None:
            company = await self._repo.update(company.id, **values)
        else:
            values.setdefault("name", f"Company {ssm_no}")
            company = await self._repo.create(ssm_no=ssm_no, **values)

        if actor is not None:
            await self._audit.log_company_event(
                actor,
                "company_verified",
                company,
                {
                    "ssm_no": ssm_no,
                    "verification_status": result.status,
                    "company_name": result.company_name,
                    "verification_metadata": result.metadata,
                },
            )
        logger.info("SSM %s verified as %s", ssm_no, result.status)
        return company, result  # type: ignore[return-value]

    async def link_user_to_company(self, user: User, company_id: str) -> Company:
        company = await self._repo.get_by_id(company_id)
        if company is None:
            raise NotFoundError("Company", company_id)

        previous_owner_id = company.owner_user_id
        if previous_owner_id is not None and previous_owner_id != user.id and not user.is_admin:
            raise CompanyError.already_owned()
        if company.status == CompanyStatus.UNKNOWN.value:
            raise CompanyError.unknown_status()

        company = await self._repo.update(company.id, owner_user_id=user.id)
        await self._audit.log_company_event(
            user,
            "company_linked",
            company,
            {
                "company_id": company.id,
                "ssm_no": company.ssm_no,
                "company_name": company.name,
                "previous_owner_id": previous_owner_id,
            },
        )
        return company  # type: ignore[return-value]

    async def get_user_companies(self, user: User) -> list[Company]:
        return await self._repo.list_owned_by(user.id)

    async def get_available_companies(self, user: User) -> list[Company]:
        return await self._repo.list_available_to(user.id)

    async def get_all_companies(self, user: User) -> list[Company]:
        if not user.is_admin:
            raise ForbiddenError("Only administrators can view all companies")
        return await self._repo.list_all_with_owner()
