"""Tenant provisioning: tenant row, physical namespace, admin role and its bootstrap rules.

The admin role receives wildcard CRUD rules on the system tables so it can
define collections, fields, roles and permissions through the item API. Rules
on data collections are granted later, when each collection is created.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy.ext.asyncio import AsyncSession

from basin.core.config import Settings, get_settings
from basin.core.constants import SYSTEM_TABLES
from basin.domain.enums import Action
from basin.domain.exceptions import ConflictException, ValidationException
from basin.infrastructure.persistence.models import Permission, Role, Tenant
from basin.infrastructure.persistence.repositories import (
    PermissionRepository,
    RoleRepository,
    TenantRepository,
)
from basin.infrastructure.services.schema_synchronizer import TenantNamespaceManager

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"^[a-z0-9][a-z0-9-]*$")


def schema_name_for(slug: str) -> str:
    """Namespace name for a tenant slug: 't_' plus the slug with '-' folded to '_'."""
    return "t_" + slug.replace("-", "_")


class TenantProvisioningService:
    """Creates a tenant and everything it needs before its first request."""

    def __init__(self, db: AsyncSession, settings: Settings | None = None) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.tenants = TenantRepository(db)
        self.roles = RoleRepository(db)
        self.permissions = PermissionRepository(db)
        self.namespaces = TenantNamespaceManager(db)

    async def provision(self, slug: str, name: str | None = None) -> tuple[Tenant, Role]:
        """Create tenant, schema and admin role with system-table rules.

        Raises:
            ValidationException: slug is not lowercase letters, digits and '-'.
            ConflictException: a tenant with this slug already exists.
        """
        if not slug or not _SLUG_RE.match(slug):
            raise ValidationException(
                "Tenant slug must be lowercase letters, digits and '-'", field="slug"
            )
        if await self.tenants.get_by_slug(slug) is not None:
            raise ConflictException(f"Tenant '{slug}' already exists")

        tenant = Tenant(name=name or slug, slug=slug, schema_name=schema_name_for(slug))
        self.db.add(tenant)
        await self.db.flush()
        await self.namespaces.ensure(tenant)
        role = await self.ensure_admin_role(tenant)
        logger.info("Provisioned tenant %s (schema %s)", tenant.id, tenant.schema_name)
        return tenant, role

    async def ensure_admin_role(self, tenant: Tenant) -> Role:
        """Return the tenant's admin role, creating it and any missing system-table rules."""
        role = await self.roles.get_by_name(tenant.id, self.settings.admin_role_name)
        if role is None:
            role = Role(
                tenant_id=tenant.id,
                name=self.settings.admin_role_name,
                description="Full access to the tenant's catalog and data",
                is_system=True,
            )
            self.db.add(role)
            await self.db.flush()
        for table in SYSTEM_TABLES:
            for action in Action:
                if await self.permissions.has_wildcard_rule(
                    tenant.id, role.id, table, action.value
                ):
                    continue
                self.db.add(
                    Permission(
                        tenant_id=tenant.id,
                        role_id=role.id,
                        table_name=table,
                        action=action.value,
                        field_filter=None,
                        allowed_fields=["*"],
                    )
                )
        await self.db.flush()
        return role
