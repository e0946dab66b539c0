"""Name validation for catalog objects that become physical identifiers.

Collection and field names are checked against a strict allow-list when they
are created. Quoting at statement build time is a second layer, not the only one.
"""

import re
from dataclasses import dataclass

from basin.core.constants import AUDIT_COLUMNS, MAX_IDENTIFIER_LENGTH, TENANT_COLUMN

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_object_name(value: str, kind: str, reserve: int = 0) -> str:
    """Validate a collection or field name. Raises ValueError on failure.

    Args:
        value: Proposed name.
        kind: 'collection' or 'field' (used in messages).
        reserve: Bytes taken by a prefix added to the physical name.
    """
    if not value or not isinstance(value, str):
        raise ValueError(f"{kind} name must be a non-empty string")
    if not _NAME_RE.match(value):
        raise ValueError(
            f"{kind} name must start with a letter or underscore and contain only "
            "letters, digits and underscores"
        )
    if len(value.encode("utf-8")) + reserve > MAX_IDENTIFIER_LENGTH:
        raise ValueError(
            f"{kind} name must not exceed {MAX_IDENTIFIER_LENGTH - reserve} characters"
        )
    return value


@dataclass(frozen=True)
class CollectionName:
    """Validated collection name; the physical table name adds a fixed prefix."""

    value: str
    prefix: str = "data_"

    def __post_init__(self) -> None:
        validate_object_name(self.value, "collection", reserve=len(self.prefix))

    @property
    def physical(self) -> str:
        return f"{self.prefix}{self.value}"


@dataclass(frozen=True)
class FieldName:
    """Validated field name; must not shadow a server-managed column."""

    value: str

    def __post_init__(self) -> None:
        validate_object_name(self.value, "field")
        if self.value.lower() in AUDIT_COLUMNS or self.value.lower() == TENANT_COLUMN:
            raise ValueError(f"field name '{self.value}' is reserved")
