"""
Base repository for the admin-managed configuration tables.
"""
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from footfall.core.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Generic lookups shared by the funnel, alert and report repositories.

    Subclasses set `model`. Listings are newest first when the model has
    a `created_at` column.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, id: UUID | str) -> ModelType | None:
        if isinstance(id, str):
            id = UUID(id)
        return await self.session.get(self.model, id)

    async def get_all(
        self,
        *,
        skip: int = 0,
        limit: int = 100,
    ) -> list[ModelType]:
        stmt = select(self.model)
        created_at = getattr(self.model, "created_at", None)
        if created_at is not None:
            stmt = stmt.order_by(created_at.desc())
        result = await self.session.execute(stmt.offset(skip).limit(limit))
        return list(result.scalars().all())

    async def create(self, obj_in: dict[str, Any]) -> ModelType:
        """Insert a row and load its server-side defaults."""
        db_obj = self.model(**obj_in)
        self.session.add(db_obj)
        await self.session.flush()
        await self.session.refresh(db_obj)
        return db_obj
