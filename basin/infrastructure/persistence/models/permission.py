"""Permission ORM model: one policy rule (role, table, action, row filter, columns)."""

from typing import Any

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from basin.infrastructure.persistence.database import Base
from basin.infrastructure.persistence.models.mixins import AuditedMultiTenantModel


class Permission(AuditedMultiTenantModel, Base):
    """Permission rule. Table: permission.

    field_filter is a flat column -> value map (conjunction). allowed_fields
    NULL, empty or ['*'] means every column.
    """

    __tablename__ = "permission"

    role_id: Mapped[str] = mapped_column(
        String, ForeignKey("role.id", ondelete="CASCADE"), nullable=False
    )
    table_name: Mapped[str] = mapped_column(String, nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    field_filter: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    allowed_fields: Mapped[list[str] | None] = mapped_column(
        ARRAY(Text), nullable=True
    )

    __table_args__ = (
        CheckConstraint(
            "action IN ('create', 'read', 'update', 'delete')",
            name="ck_permission_action",
        ),
        Index("ix_permission_lookup", "tenant_id", "table_name", "action", "role_id"),
    )
