"""Role repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from basin.infrastructure.persistence.models.role import Role
from basin.infrastructure.persistence.repositories.base import BaseRepository


class RoleRepository(BaseRepository[Role]):
    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Role)

    async def get_by_name(self, tenant_id: str, name: str) -> Role | None:
        result = await self.db.execute(
            select(Role).where(Role.tenant_id == tenant_id, Role.name == name)
        )
        return result.scalar_one_or_none()
