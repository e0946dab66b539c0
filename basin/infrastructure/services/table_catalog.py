"""Resolves an item table name to a TableDescriptor.

System tables come first and are described from their ORM models; any other
name is looked up in the tenant's schema catalog.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from basin.core.config import Settings, get_settings
from basin.core.constants import SYSTEM_TABLES
from basin.domain.exceptions import CollectionNotFoundException
from basin.domain.value_objects.access import Principal
from basin.infrastructure.persistence.dynamic.descriptors import (
    FieldDefinition,
    TableDescriptor,
)
from basin.infrastructure.persistence.errors import DATABASE_ERRORS, classify_db_error
from basin.infrastructure.persistence.models import Collection, Field, Permission, Role
from basin.infrastructure.persistence.repositories import (
    CollectionRepository,
    TenantRepository,
)

logger = logging.getLogger(__name__)

_SYSTEM_MODELS = {
    "collections": Collection,
    "fields": Field,
    "roles": Role,
    "permissions": Permission,
}
_system_descriptors: dict[str, TableDescriptor] = {}


def system_descriptor(name: str) -> TableDescriptor | None:
    """Descriptor of a system table by item name, or None."""
    if name not in SYSTEM_TABLES:
        return None
    descriptor = _system_descriptors.get(name)
    if descriptor is None:
        descriptor = TableDescriptor.for_model(name, _SYSTEM_MODELS[name])
        _system_descriptors[name] = descriptor
    return descriptor


def physical_table_name(collection: str, settings: Settings | None = None) -> str:
    """Physical data table for a collection name."""
    settings = settings or get_settings()
    return f"{settings.data_table_prefix}{collection}"


class TableCatalog:
    """Describes tables addressable through the item API for one session."""

    def __init__(self, db: AsyncSession, settings: Settings | None = None) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.collections = CollectionRepository(db)
        self.tenants = TenantRepository(db)

    async def describe(self, principal: Principal, table: str) -> TableDescriptor:
        """Return the descriptor for table in the principal's tenant.

        Raises:
            CollectionNotFoundException: If no system table or collection has that name.
        """
        descriptor = system_descriptor(table)
        if descriptor is not None:
            return descriptor
        try:
            collection = await self.collections.get_by_name(principal.tenant_id, table)
            tenant = (
                await self.tenants.get_by_id(principal.tenant_id) if collection else None
            )
        except DATABASE_ERRORS as e:
            raise classify_db_error(
                e, table=table, action="describe", tenant_id=principal.tenant_id
            ) from e
        if collection is None or collection.is_system or tenant is None:
            raise CollectionNotFoundException(table)
        return TableDescriptor.for_collection(
            name=collection.name,
            physical_name=physical_table_name(collection.name, self.settings),
            schema=tenant.schema_name,
            fields=[FieldDefinition.from_model(f) for f in collection.fields],
            collection_id=collection.id,
        )
