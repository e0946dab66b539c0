"""Collection and field repositories (schema catalog)."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from basin.infrastructure.persistence.models.collection import Collection, Field
from basin.infrastructure.persistence.repositories.base import BaseRepository


class CollectionRepository(BaseRepository[Collection]):
    """Collection lookups by tenant and name, with fields eagerly loaded.

    Catalog rows are also written by Core statements, so lookups refresh
    objects already in the session.
    """

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Collection)

    async def get_by_name(self, tenant_id: str, name: str) -> Collection | None:
        result = await self.db.execute(
            select(Collection)
            .where(Collection.tenant_id == tenant_id, Collection.name == name)
            .options(selectinload(Collection.fields))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_with_fields(self, collection_id: str, tenant_id: str) -> Collection | None:
        result = await self.db.execute(
            select(Collection)
            .where(Collection.id == collection_id, Collection.tenant_id == tenant_id)
            .options(selectinload(Collection.fields))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()


class FieldRepository(BaseRepository[Field]):
    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Field)

    async def get_by_name(self, collection_id: str, name: str) -> Field | None:
        result = await self.db.execute(
            select(Field).where(Field.collection_id == collection_id, Field.name == name)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
