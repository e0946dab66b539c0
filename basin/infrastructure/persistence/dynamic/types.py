"""Logical field type -> physical column type.

The DDL strings are fixed for compatibility with existing tenant tables.
The SQLAlchemy types are used to bind values with the right driver codecs.
"""

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text, Uuid
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.types import TypeEngine

from basin.domain.enums import FieldType

# Not a caller-facing field type; used for the permission.allowed_fields column.
TEXT_ARRAY = "text[]"

_DDL_TYPES: dict[FieldType, str] = {
    FieldType.TEXT: "TEXT",
    FieldType.STRING: "VARCHAR(255)",
    FieldType.INTEGER: "INTEGER",
    FieldType.DECIMAL: "DECIMAL",
    FieldType.BOOLEAN: "BOOLEAN",
    FieldType.DATETIME: "TIMESTAMP WITH TIME ZONE",
    FieldType.DATE: "DATE",
    FieldType.JSON: "JSONB",
    FieldType.UUID: "UUID",
    FieldType.RELATION: "UUID",
}

STRING_MAX_LENGTH = 255


def canonical_type(type_name: str) -> FieldType:
    """Return the FieldType for a stored type name; unrecognized names fall back to TEXT."""
    return FieldType.normalize(type_name) or FieldType.TEXT


def physical_type(type_name: str) -> str:
    """Return the DDL column type for a logical type name."""
    return _DDL_TYPES[canonical_type(type_name)]


def column_type(type_name: str) -> TypeEngine:
    """Return the SQLAlchemy type used to bind and read values of a logical type."""
    if type_name == TEXT_ARRAY:
        return ARRAY(Text)
    match canonical_type(type_name):
        case FieldType.STRING:
            return String(STRING_MAX_LENGTH)
        case FieldType.INTEGER:
            return Integer()
        case FieldType.DECIMAL:
            return Numeric(asdecimal=True)
        case FieldType.BOOLEAN:
            return Boolean()
        case FieldType.DATETIME:
            return DateTime(timezone=True)
        case FieldType.DATE:
            return Date()
        case FieldType.JSON:
            return JSONB()
        case FieldType.UUID | FieldType.RELATION:
            return Uuid(as_uuid=True)
        case _:
            return Text()


def logical_type_of(sa_type: TypeEngine) -> str:
    """Map a catalog ORM column type back to a logical type name (system tables)."""
    if isinstance(sa_type, ARRAY):
        return TEXT_ARRAY
    if isinstance(sa_type, Boolean):
        return FieldType.BOOLEAN.value
    if isinstance(sa_type, Integer):
        return FieldType.INTEGER.value
    if isinstance(sa_type, JSONB):
        return FieldType.JSON.value
    if isinstance(sa_type, DateTime):
        return FieldType.DATETIME.value
    if isinstance(sa_type, Uuid):
        return FieldType.UUID.value
    return FieldType.TEXT.value
