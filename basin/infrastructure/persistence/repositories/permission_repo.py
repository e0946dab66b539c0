"""Permission rule repository."""

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from basin.infrastructure.persistence.models.permission import Permission
from basin.infrastructure.persistence.repositories.base import BaseRepository


class PermissionRepository(BaseRepository[Permission]):
    """Reads and writes policy rules, always scoped to one tenant."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Permission)

    async def find_rules(
        self,
        tenant_id: str,
        role_ids: Iterable[str],
        table_name: str,
        action: str,
    ) -> list[Permission]:
        """Return every rule for (any of role_ids, table_name, action) in the tenant, oldest first."""
        roles = list(role_ids)
        if not roles:
            return []
        result = await self.db.execute(
            select(Permission)
            .where(
                Permission.tenant_id == tenant_id,
                Permission.role_id.in_(roles),
                Permission.table_name == table_name,
                Permission.action == action,
            )
            .order_by(Permission.created_at, Permission.id)
        )
        return list(result.scalars().all())

    async def has_wildcard_rule(
        self, tenant_id: str, role_id: str, table_name: str, action: str
    ) -> bool:
        """True if an unfiltered all-columns rule already exists for the role."""
        rules = await self.find_rules(tenant_id, [role_id], table_name, action)
        return any(
            not r.field_filter and (not r.allowed_fields or "*" in r.allowed_fields)
            for r in rules
        )
