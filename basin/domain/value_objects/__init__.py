"""Domain value objects and shared value types."""

from basin.domain.value_objects.access import (
    WILDCARD,
    AllowedColumns,
    Denied,
    EffectivePermission,
    Principal,
    RowFilter,
)
from basin.domain.value_objects.names import (
    CollectionName,
    FieldName,
    validate_object_name,
)

__all__ = [
    "WILDCARD",
    "AllowedColumns",
    "Denied",
    "EffectivePermission",
    "Principal",
    "RowFilter",
    "CollectionName",
    "FieldName",
    "validate_object_name",
]
