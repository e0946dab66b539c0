"""Catalog repositories."""

from basin.infrastructure.persistence.repositories.collection_repo import (
    CollectionRepository,
    FieldRepository,
)
from basin.infrastructure.persistence.repositories.permission_repo import PermissionRepository
from basin.infrastructure.persistence.repositories.role_repo import RoleRepository
from basin.infrastructure.persistence.repositories.tenant_repo import TenantRepository

__all__ = [
    "CollectionRepository",
    "FieldRepository",
    "PermissionRepository",
    "RoleRepository",
    "TenantRepository",
]
