"""SQLAlchemy ORM models for the catalog. Import order matters for FK resolution."""

from basin.infrastructure.persistence.models.tenant import Tenant
from basin.infrastructure.persistence.models.role import Role
from basin.infrastructure.persistence.models.permission import Permission
from basin.infrastructure.persistence.models.collection import Collection, Field

__all__ = ["Tenant", "Role", "Permission", "Collection", "Field"]
