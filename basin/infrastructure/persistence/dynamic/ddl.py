"""DDL text for tenant namespaces and data tables.

Every schema, table and column name is passed through quote_identifier().
Default values are raw SQL expressions supplied by callers allowed to create
fields; they are emitted as given.
"""

from collections.abc import Iterable

from sqlalchemy import TextClause, text

from basin.domain.enums import FieldType
from basin.infrastructure.persistence.dynamic.descriptors import FieldDefinition
from basin.infrastructure.persistence.dynamic.identifiers import (
    qualified_table,
    quote_identifier,
)
from basin.infrastructure.persistence.dynamic.types import canonical_type, physical_type

_AUDIT_COLUMNS_DDL = (
    "id UUID PRIMARY KEY DEFAULT gen_random_uuid()",
    "created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()",
    "updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()",
    "created_by TEXT",
    "updated_by TEXT",
)

COLUMN_EXISTS: TextClause = text(
    "SELECT 1 FROM information_schema.columns "
    "WHERE table_schema = :schema AND table_name = :table AND column_name = :column"
)

TABLE_EXISTS: TextClause = text(
    "SELECT 1 FROM information_schema.tables "
    "WHERE table_schema = :schema AND table_name = :table"
)


def column_definition(
    schema: str,
    field: FieldDefinition,
    relation_table: str | None = None,
) -> str:
    """Return '"name" TYPE [REFERENCES ...] [NOT NULL] [UNIQUE] [DEFAULT ...]'.

    Args:
        schema: Namespace of the referenced table for relation fields.
        field: Declared field.
        relation_table: Physical table of the relation target, when it exists.
    """
    parts = [quote_identifier(field.name), physical_type(field.type)]
    if canonical_type(field.type) is FieldType.RELATION and relation_table:
        parts.append(
            f"REFERENCES {qualified_table(schema, relation_table)} ({quote_identifier('id')})"
        )
    if field.is_required:
        parts.append("NOT NULL")
    if field.is_unique:
        parts.append("UNIQUE")
    if field.default_value is not None and field.default_value != "":
        parts.append(f"DEFAULT {field.default_value}")
    return " ".join(parts)


def create_schema_sql(schema: str) -> str:
    return f"CREATE SCHEMA IF NOT EXISTS {quote_identifier(schema)}"


def create_table_sql(
    schema: str,
    table: str,
    fields: Iterable[FieldDefinition],
    relation_tables: dict[str, str] | None = None,
) -> str:
    """CREATE TABLE with the fixed primary key and audit columns plus one column per field."""
    relation_tables = relation_tables or {}
    columns = list(_AUDIT_COLUMNS_DDL)
    for f in fields:
        columns.append(
            column_definition(schema, f, relation_tables.get(f.relation_target or ""))
        )
    body = ",\n    ".join(columns)
    return f"CREATE TABLE {qualified_table(schema, table)} (\n    {body}\n)"


def add_column_sql(
    schema: str,
    table: str,
    field: FieldDefinition,
    relation_table: str | None = None,
) -> str:
    return (
        f"ALTER TABLE {qualified_table(schema, table)} "
        f"ADD COLUMN IF NOT EXISTS {column_definition(schema, field, relation_table)}"
    )


def drop_column_sql(schema: str, table: str, column: str) -> str:
    return (
        f"ALTER TABLE {qualified_table(schema, table)} "
        f"DROP COLUMN IF EXISTS {quote_identifier(column)}"
    )


def drop_table_sql(schema: str, table: str) -> str:
    return f"DROP TABLE IF EXISTS {qualified_table(schema, table)} CASCADE"
