"""Tenant ORM model. Each tenant owns one physical namespace (schema)."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from basin.infrastructure.persistence.database import Base
from basin.infrastructure.persistence.models.mixins import CuidMixin, TimestampMixin


class Tenant(CuidMixin, TimestampMixin, Base):
    """Tenant. Table: tenant. schema_name holds the tenant's data tables."""

    __tablename__ = "tenant"

    name: Mapped[str] = mapped_column(String, nullable=False)
    slug: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    schema_name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
