"""Table descriptors: one abstraction for data collections and system tables.

A TableDescriptor tells the query builder which columns exist, their logical
types, which are server-managed, and how the table is scoped to a tenant.
Data collections are described from catalog rows; system tables (collections,
fields, roles, permissions) from their ORM tables, so both go through the
same builder and resolver.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any

from sqlalchemy import Column, MetaData, Table

from basin.core.constants import AUDIT_COLUMNS, TENANT_COLUMN
from basin.domain.enums import FieldType
from basin.infrastructure.persistence.dynamic.catalog_values import (
    coerce_flag,
    coerce_sort_order,
    parse_validation_rules,
)
from basin.infrastructure.persistence.dynamic.identifiers import forced
from basin.infrastructure.persistence.dynamic.types import column_type, logical_type_of


@dataclass(frozen=True)
class FieldDefinition:
    """Declared field of a collection, as used for DDL and catalog rows."""

    name: str
    type: str = FieldType.TEXT.value
    is_required: bool = False
    is_unique: bool = False
    default_value: str | None = None
    relation_target: str | None = None
    display_name: str | None = None
    sort_order: int = 0
    validation_rules: Mapping[str, Any] | None = None

    # Attributes that shape the physical column; changing them needs ALTER COLUMN.
    STRUCTURAL = ("name", "type", "is_required", "is_unique", "default_value", "relation_target")

    @classmethod
    def from_model(cls, model: Any) -> FieldDefinition:
        """Build from a Field ORM instance (or any object with the same attributes)."""
        return cls(
            name=model.name,
            type=model.type,
            is_required=bool(model.is_required),
            is_unique=bool(model.is_unique),
            default_value=model.default_value,
            relation_target=model.relation_target,
            display_name=model.display_name,
            sort_order=model.sort_order or 0,
            validation_rules=model.validation_rules,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> FieldDefinition:
        """Build from a request body; recognized type aliases are stored canonically.

        Flags and sort order are coerced the way the catalog stores them.

        Raises:
            ValidationException: A flag, sort order or validation_rules value is malformed.
        """
        raw_type = str(data.get("type") or FieldType.TEXT.value)
        known = FieldType.normalize(raw_type)
        return cls(
            name=data["name"],
            type=known.value if known else raw_type.strip().lower(),
            is_required=coerce_flag(data.get("is_required"), "is_required"),
            is_unique=coerce_flag(data.get("is_unique"), "is_unique"),
            default_value=data.get("default_value"),
            relation_target=data.get("relation_target"),
            display_name=data.get("display_name"),
            sort_order=coerce_sort_order(data.get("sort_order")),
            validation_rules=parse_validation_rules(data.get("validation_rules")),
        )

    def structure(self) -> tuple[Any, ...]:
        return tuple(getattr(self, attr) for attr in self.STRUCTURAL)

    def structural_changes(self, other: FieldDefinition) -> list[str]:
        """Names of structural attributes that differ from other."""
        return [a for a in self.STRUCTURAL if getattr(self, a) != getattr(other, a)]


@dataclass(frozen=True)
class ColumnDescriptor:
    """One column of a described table."""

    name: str
    type: str
    required: bool = False
    unique: bool = False
    has_default: bool = False
    server_managed: bool = False
    primary_key: bool = False
    validation_rules: Mapping[str, Any] | None = None


@dataclass
class TableDescriptor:
    """Columns and placement of one addressable table.

    Attributes:
        name: Name used by callers and permission rules (collection name or system table name).
        physical_name: Table name in the database.
        schema: Namespace holding the table (None for catalog tables).
        columns: Ordered column descriptors.
        is_system: True for catalog tables exposed as items.
        tenant_column: Column scoping rows to a tenant, if the table is shared by tenants.
        collection_id: Catalog id of the collection (data tables only).
    """

    name: str
    physical_name: str
    columns: Sequence[ColumnDescriptor]
    schema: str | None = None
    is_system: bool = False
    tenant_column: str | None = None
    collection_id: str | None = None
    orm_table: Table | None = field(default=None, repr=False)

    @cached_property
    def by_name(self) -> dict[str, ColumnDescriptor]:
        return {c.name: c for c in self.columns}

    @cached_property
    def column_names(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    @cached_property
    def table(self) -> Table:
        """SQLAlchemy Core table used to build statements."""
        if self.orm_table is not None:
            return self.orm_table
        cols = [
            Column(
                forced(c.name),
                column_type(c.type),
                primary_key=c.primary_key,
                key=c.name,
            )
            for c in self.columns
        ]
        return Table(
            forced(self.physical_name),
            MetaData(),
            *cols,
            schema=forced(self.schema) if self.schema else None,
        )

    def has_column(self, name: str) -> bool:
        return name in self.by_name

    def column(self, name: str) -> ColumnDescriptor:
        return self.by_name[name]

    def sql_column(self, name: str) -> Column:
        return self.table.c[name]

    @classmethod
    def for_collection(
        cls,
        name: str,
        physical_name: str,
        schema: str,
        fields: Iterable[FieldDefinition],
        collection_id: str | None = None,
    ) -> TableDescriptor:
        """Describe a data table: id, audit columns, then declared fields in sort order."""
        columns = [
            ColumnDescriptor("id", FieldType.UUID.value, has_default=True, server_managed=True, primary_key=True),
            ColumnDescriptor("created_at", FieldType.DATETIME.value, has_default=True, server_managed=True),
            ColumnDescriptor("updated_at", FieldType.DATETIME.value, has_default=True, server_managed=True),
            ColumnDescriptor("created_by", FieldType.TEXT.value, server_managed=True),
            ColumnDescriptor("updated_by", FieldType.TEXT.value, server_managed=True),
        ]
        for f in sorted(fields, key=lambda f: (f.sort_order, f.name)):
            columns.append(
                ColumnDescriptor(
                    name=f.name,
                    type=f.type,
                    required=f.is_required,
                    unique=f.is_unique,
                    has_default=f.default_value is not None,
                    validation_rules=f.validation_rules,
                )
            )
        return cls(
            name=name,
            physical_name=physical_name,
            columns=columns,
            schema=schema,
            collection_id=collection_id,
        )

    @classmethod
    def for_model(cls, name: str, model: Any) -> TableDescriptor:
        """Describe a catalog table from its ORM model (tenant-scoped by tenant_id)."""
        table: Table = model.__table__
        server_managed = set(AUDIT_COLUMNS) | {TENANT_COLUMN}
        columns = []
        for col in table.columns:
            has_default = col.default is not None or col.server_default is not None
            managed = col.key in server_managed
            columns.append(
                ColumnDescriptor(
                    name=col.key,
                    type=logical_type_of(col.type),
                    required=not (has_default or col.nullable or managed),
                    unique=bool(col.unique),
                    has_default=has_default,
                    server_managed=managed,
                    primary_key=col.primary_key,
                )
            )
        return cls(
            name=name,
            physical_name=table.name,
            columns=columns,
            is_system=True,
            tenant_column=TENANT_COLUMN if TENANT_COLUMN in table.c else None,
            orm_table=table,
        )
