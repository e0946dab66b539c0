"""Role ORM model. Tenant-scoped roles referenced by permission rules."""

from sqlalchemy import Boolean, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from basin.infrastructure.persistence.database import Base
from basin.infrastructure.persistence.models.mixins import AuditedMultiTenantModel


class Role(AuditedMultiTenantModel, Base):
    """Role. Table: role. Unique (tenant_id, name)."""

    __tablename__ = "role"

    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (UniqueConstraint("tenant_id", "name", name="uq_role_tenant_name"),)
