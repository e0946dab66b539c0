"""Collection and Field ORM models: the schema catalog."""

from typing import Any

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from basin.infrastructure.persistence.database import Base
from basin.infrastructure.persistence.models.mixins import AuditedMultiTenantModel


class Collection(AuditedMultiTenantModel, Base):
    """Logical table. Table: collection. Unique (tenant_id, name)."""

    __tablename__ = "collection"

    name: Mapped[str] = mapped_column(String, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str | None] = mapped_column(String, nullable=True)
    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    fields: Mapped[list["Field"]] = relationship(
        back_populates="collection",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Field.sort_order",
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_collection_tenant_name"),
    )


class Field(AuditedMultiTenantModel, Base):
    """Logical column. Table: field. Unique (collection_id, name); cascades with its collection."""

    __tablename__ = "field"

    collection_id: Mapped[str] = mapped_column(
        String, ForeignKey("collection.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String, nullable=True)
    type: Mapped[str] = mapped_column(String, nullable=False, default="text")
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_unique: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    default_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    validation_rules: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB, nullable=True
    )
    relation_target: Mapped[str | None] = mapped_column(String, nullable=True)

    collection: Mapped[Collection] = relationship(back_populates="fields")

    __table_args__ = (
        UniqueConstraint("collection_id", "name", name="uq_field_collection_name"),
    )
