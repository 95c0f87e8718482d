"""Company repository."""

from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.orm import selectinload

from osc_portal.domain.company import Company, CompanyStatus
from osc_portal.repositories.base import BaseRepository


class CompanyRepository(BaseRepository[Company]):
    model = Company

    async def get_by_ssm_no(self, ssm_no: str) -> Company | None:
        result = await self._session.execute(
            select(Company).where(Company.ssm_no == ssm_no)
        )
        return result.scalars().first()

    async def list_owned_by(self, user_id: str) -> list[Company]:
        result = await self._session.execute(
            select(Company)
            .where(Company.owner_user_id == user_id)
            .order_by(Company.name.asc())
        )
        return list(result.scalars().all())

    async def list_available_to(self, user_id: str) -> list[Company]:
        """Companies a user may link or already owns (unknown status excluded)."""
        result = await self._session.execute(
            select(Company)
            .where(Company.status != CompanyStatus.UNKNOWN.value)
            .where(or_(Company.owner_user_id.is_(None), Company.owner_user_id == user_id))
            .order_by(Company.name.asc())
        )
        return list(result.scalars().all())

    async def list_all_with_owner(self) -> list[Company]:
        result = await self._session.execute(
            select(Company)
            .options(selectinload(Company.owner))
            .order_by(Company.name.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
