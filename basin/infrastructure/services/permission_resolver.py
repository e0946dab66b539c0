"""Resolves effective permissions from policy rules in the database (implements IPermissionResolver)."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from basin.domain.enums import Action
from basin.domain.exceptions import PolicyStoreUnavailableException, ValidationException
from basin.domain.value_objects.access import (
    AllowedColumns,
    Denied,
    EffectivePermission,
    Principal,
    RowFilter,
)
from basin.infrastructure.persistence.dynamic.catalog_values import (
    parse_allowed_fields,
    parse_field_filter,
)
from basin.infrastructure.persistence.repositories.permission_repo import PermissionRepository

logger = logging.getLogger(__name__)


class PermissionResolver:
    """Merges every rule matching (principal roles, table, action) in the principal's tenant.

    Columns are the union of allowed_fields (the wildcard absorbs everything);
    row filters are OR-ed, and an empty filter makes the result unrestricted.
    No matching rule yields Denied; an unreachable store raises.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.permissions = PermissionRepository(db)

    async def resolve(
        self, principal: Principal, table: str, action: Action
    ) -> EffectivePermission | Denied:
        try:
            rules = await self.permissions.find_rules(
                principal.tenant_id, principal.role_ids, table, action.value
            )
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                "Permission lookup failed: table=%s action=%s tenant_id=%s error=%s",
                table,
                action.value,
                principal.tenant_id,
                type(e).__name__,
            )
            raise PolicyStoreUnavailableException() from e

        rules = [rule for rule in rules if self._well_formed(rule, table)]
        if not rules:
            return Denied(table=table, action=action)

        columns = AllowedColumns.of(rules[0].allowed_fields)
        for rule in rules[1:]:
            columns = columns.union(AllowedColumns.of(rule.allowed_fields))
        return EffectivePermission(
            table=table,
            action=action,
            columns=columns,
            row_filter=RowFilter.from_rules(r.field_filter for r in rules),
        )

    @staticmethod
    def _well_formed(rule, table: str) -> bool:
        """False for a stored rule whose filter or column list has the wrong shape; it grants nothing."""
        try:
            parse_field_filter(rule.field_filter)
            parse_allowed_fields(rule.allowed_fields)
        except ValidationException as e:
            logger.warning(
                "Ignoring malformed permission rule: id=%s table=%s reason=%s",
                getattr(rule, "id", None),
                table,
                e.message,
            )
            return False
        return True
