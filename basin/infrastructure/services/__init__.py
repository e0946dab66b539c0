"""Infrastructure services: permission resolution, table catalog, schema synchronization, provisioning."""

from basin.infrastructure.services.permission_resolver import PermissionResolver
from basin.infrastructure.services.schema_synchronizer import (
    SchemaSynchronizer,
    TenantNamespaceManager,
)
from basin.infrastructure.services.table_catalog import TableCatalog
from basin.infrastructure.services.tenant_provisioning import TenantProvisioningService

__all__ = [
    "PermissionResolver",
    "SchemaSynchronizer",
    "TableCatalog",
    "TenantNamespaceManager",
    "TenantProvisioningService",
]
