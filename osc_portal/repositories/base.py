"""Generic async repository shared by the portal's tables.

Rows of models with a ``deleted_at`` column are invisible to every read here
once that column is set. Listing is always newest first.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from osc_portal.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self._session = session

    @property
    def soft_deletes(self) -> bool:
        return hasattr(self.model, "deleted_at")

    def _base_query(self) -> Select:
        q = select(self.model)
        if self.soft_deletes:
            q = q.where(self.model.deleted_at.is_(None))
        return q

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_by_id(self, entity_id: str, *, refresh: bool = False) -> ModelT | None:
        """Fetch one live row; ``refresh`` reloads an instance already in the session."""
        q = self._base_query().where(self.model.id == entity_id)
        if refresh:
            q = q.execution_options(populate_existing=True)
        result = await self._session.execute(q)
        return result.scalars().first()

    async def page(
        self,
        *criteria: ColumnElement[bool],
        offset: int = 0,
        limit: int = 15,
    ) -> tuple[list[ModelT], int]:
        """Return one page of matching rows (newest first) and the unpaged count."""
        q = self._base_query().where(*criteria)
        total = (
            await self._session.execute(select(func.count()).select_from(q.subquery()))
        ).scalar_one()

        q = (
            q.order_by(self.model.created_at.desc(), self.model.id.desc())
            .offset(offset)
            .limit(limit)
        )
        items = (await self._session.execute(q)).scalars().all()
        return list(items), total

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def create(self, **kwargs: Any) -> ModelT:
        instance = self.model(**kwargs)
        self._session.add(instance)
        await self._session.flush()  # populate id and server defaults
        await self._session.refresh(instance)
        return instance

    async def update(self, entity_id: str, **kwargs: Any) -> ModelT | None:
        kwargs.pop("id", None)
        if hasattr(self.model, "updated_at"):
            kwargs.setdefault("updated_at", datetime.now(timezone.utc))

        await self._session.execute(
            update(self.model)
            .where(self.model.id == entity_id)
            .values(**kwargs)
            .execution_options(synchronize_session="fetch")
        )
        await self._session.flush()
        return await self.get_by_id(entity_id, refresh=True)

    async def soft_delete(self, entity_id: str) -> bool:
        if not self.soft_deletes:
            raise TypeError(f"{self.model.__name__} has no deleted_at column")
        result = await self._session.execute(
            update(self.model)
            .where(self.model.id == entity_id)
            .where(self.model.deleted_at.is_(None))
            .values(deleted_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="fetch")
        )
        await self._session.flush()
        return result.rowcount > 0

    async def delete(self, instance: ModelT) -> None:
        """Physically remove a row (documents and audit entries only)."""
        await self._session.delete(instance)
        await self._session.flush()
