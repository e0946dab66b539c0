"""Domain enumerations for Basin.

Enums represent fixed sets of domain values (policy actions, logical field types).
"""

from enum import Enum


class Action(str, Enum):
    """Action a permission rule grants on a table."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class FieldType(str, Enum):
    """Canonical logical column types of a collection field.

    Aliases accepted on input (string, float, object, int, bool) are folded
    onto these by normalize(). Anything unrecognized stays as given and is
    stored as TEXT.
    """

    TEXT = "text"
    STRING = "string"
    INTEGER = "integer"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    DATE = "date"
    JSON = "json"
    UUID = "uuid"
    RELATION = "relation"

    @classmethod
    def normalize(cls, value: str) -> "FieldType | None":
        """Return the FieldType for value (aliases included), or None if unrecognized."""
        key = (value or "").strip().lower()
        key = _FIELD_TYPE_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return None


_FIELD_TYPE_ALIASES: dict[str, str] = {
    "int": "integer",
    "float": "decimal",
    "number": "decimal",
    "bool": "boolean",
    "object": "json",
}
