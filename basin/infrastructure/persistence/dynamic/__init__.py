"""Dynamic SQL over runtime-defined tables: quoting, types, descriptors, statements, DDL."""

from basin.infrastructure.persistence.dynamic.descriptors import (
    ColumnDescriptor,
    FieldDefinition,
    TableDescriptor,
)
from basin.infrastructure.persistence.dynamic.identifiers import (
    qualified_table,
    quote_identifier,
)
from basin.infrastructure.persistence.dynamic.query_builder import ListParams, QueryBuilder

__all__ = [
    "ColumnDescriptor",
    "FieldDefinition",
    "ListParams",
    "QueryBuilder",
    "TableDescriptor",
    "qualified_table",
    "quote_identifier",
]
