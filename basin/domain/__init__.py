"""Domain layer: enums, value objects, and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from basin.domain.enums import Action, FieldType
from basin.domain.exceptions import (
    AuthenticationException,
    AuthorizationException,
    BasinException,
    CollectionNotFoundException,
    ConflictException,
    InternalException,
    PolicyStoreUnavailableException,
    ResourceNotFoundException,
    SchemaInconsistencyException,
    SqlNotConfiguredException,
    UnsupportedSchemaEvolutionException,
    ValidationException,
)
from basin.domain.value_objects import (
    AllowedColumns,
    Denied,
    EffectivePermission,
    Principal,
    RowFilter,
)

__all__ = [
    # Enums
    "Action",
    "FieldType",
    # Exceptions
    "AuthenticationException",
    "AuthorizationException",
    "BasinException",
    "CollectionNotFoundException",
    "ConflictException",
    "InternalException",
    "PolicyStoreUnavailableException",
    "ResourceNotFoundException",
    "SchemaInconsistencyException",
    "SqlNotConfiguredException",
    "UnsupportedSchemaEvolutionException",
    "ValidationException",
    # Value objects
    "AllowedColumns",
    "Denied",
    "EffectivePermission",
    "Principal",
    "RowFilter",
]
