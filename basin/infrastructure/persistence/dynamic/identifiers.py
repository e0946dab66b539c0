"""Identifier quoting for SQL text built from catalog names.

Identifiers cannot be bound as parameters, so every table, schema and column
name that reaches SQL text goes through quote_identifier(). Names are also
validated on creation (see basin.domain.value_objects.names); quoting is the
second layer and always applies, even to names that would not need it.
"""

import re

from sqlalchemy.dialects import postgresql
from sqlalchemy.sql.elements import quoted_name

_preparer = postgresql.dialect().identifier_preparer

_VALID_IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def validate_sql_identifier(name: str, context: str = "identifier") -> str:
    """Validate that a string is a plain SQL identifier (letters, digits, underscore).

    Raises:
        ValueError: If the name is empty or contains other characters.
    """
    if not name:
        raise ValueError(f"SQL {context} cannot be empty")
    if not _VALID_IDENTIFIER_PATTERN.match(name):
        raise ValueError(
            f"Invalid SQL {context}: must contain only letters, digits, "
            "and underscores, and cannot start with a digit"
        )
    return name


def quote_identifier(name: str) -> str:
    """Return name as a double-quoted PostgreSQL identifier (embedded quotes doubled)."""
    if not name or "\x00" in name:
        raise ValueError("Identifier must be a non-empty string without NUL bytes")
    return _preparer.quote_identifier(name)


def qualified_table(schema: str | None, table: str) -> str:
    """Return "schema"."table" (or just "table" when schema is None), both quoted."""
    if schema:
        return f"{quote_identifier(schema)}.{quote_identifier(table)}"
    return quote_identifier(table)


def forced(name: str) -> quoted_name:
    """Return a SQLAlchemy name that is always quoted when compiled (case kept exactly)."""
    return quoted_name(name, quote=True)
