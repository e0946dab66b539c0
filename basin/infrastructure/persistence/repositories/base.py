"""Base repository: generic lookups for catalog models."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from basin.infrastructure.persistence.database import Base


class BaseRepository[ModelType: Base]:
    """Base repository with a tenant-scoped get_by_id.

    Catalog lookups are always tenant-scoped; subclasses add finders that
    take tenant_id explicitly.
    """

    def __init__(self, db: AsyncSession, model: type[ModelType]) -> None:
        self.db = db
        self.model = model

    async def get_by_id(self, entity_id: str, tenant_id: str | None = None) -> ModelType | None:
        """Return a single record by primary key (and tenant when the model has one), or None."""
        model: Any = self.model
        stmt = select(self.model).where(model.id == entity_id)
        if tenant_id is not None and hasattr(model, "tenant_id"):
            stmt = stmt.where(model.tenant_id == tenant_id)
        result = await self.db.execute(stmt.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

