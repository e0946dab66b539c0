"""Domain exceptions for Basin.

Defines domain-level exceptions for authorization, validation and schema
synchronization outcomes. These are independent of infrastructure concerns;
the presentation layer maps them to HTTP responses in exception handlers.
Messages and details never carry SQL text, physical identifiers or bound values.
"""

from typing import Any


class BasinException(Exception):
    """Base exception for all Basin application errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, table).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return the error payload sent to API callers."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(BasinException):
    """Raised when caller input fails validation (unknown field, bad value, missing required)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class AuthenticationException(BasinException):
    """Raised when the caller could not be authenticated (missing or invalid token)."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, "AUTHENTICATION_ERROR")


class AuthorizationException(BasinException):
    """Raised when no policy grants the principal the requested action (fail closed)."""

    def __init__(
        self,
        resource: str | None = None,
        action: str | None = None,
        message: str = "Permission denied",
    ) -> None:
        """Initialize with optional resource, action, and message.

        Args:
            resource: Optional table name the action was attempted on.
            action: Optional action that was attempted (create, read, update, delete).
            message: Human-readable message; default used when resource/action omitted.
        """
        if resource and action:
            message = f"Permission denied: {action} on {resource}"
        details: dict[str, Any] = {}
        if resource:
            details["resource"] = resource
        if action:
            details["action"] = action
        super().__init__(message, "PERMISSION_DENIED", details)


class ResourceNotFoundException(BasinException):
    """Raised when a row is absent or outside the caller's row filter; both cases look the same."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Table name the row was looked up in.
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class CollectionNotFoundException(BasinException):
    """Raised when a table name matches neither a system table nor a catalog collection."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Collection not found: {name}",
            "COLLECTION_NOT_FOUND",
            {"collection": name},
        )


class ConflictException(BasinException):
    """Raised on unique violations: duplicate collection, field, or unique column value."""

    def __init__(self, message: str, resource: str | None = None) -> None:
        details = {"resource": resource} if resource else {}
        super().__init__(message, "CONFLICT", details)


class UnsupportedSchemaEvolutionException(BasinException):
    """Raised when a change would require renaming or retyping live physical schema."""

    def __init__(self, resource: str, attributes: list[str]) -> None:
        """Initialize with the catalog resource and the attributes that cannot change.

        Args:
            resource: 'collection' or 'field'.
            attributes: Names of attributes the caller tried to change.
        """
        super().__init__(
            f"Unsupported schema evolution: cannot change {', '.join(attributes)} of an existing {resource}",
            "UNSUPPORTED_SCHEMA_EVOLUTION",
            {"resource": resource, "attributes": attributes},
        )


class SchemaInconsistencyException(BasinException):
    """Raised when the catalog names a collection whose physical table is missing."""

    def __init__(self, collection: str) -> None:
        super().__init__(
            f"Storage for collection '{collection}' is out of sync with its definition",
            "SCHEMA_INCONSISTENCY",
            {"collection": collection},
        )


class InternalException(BasinException):
    """Raised for unexpected driver or connectivity failures (details are logged, not returned)."""

    def __init__(self, message: str = "Internal error") -> None:
        super().__init__(message, "INTERNAL_ERROR")


class PolicyStoreUnavailableException(BasinException):
    """Raised when permission rules cannot be loaded (fatal configuration error)."""

    def __init__(self) -> None:
        super().__init__(
            "Permission store is unavailable",
            "POLICY_STORE_UNAVAILABLE",
        )


class SqlNotConfiguredException(BasinException):
    """Raised when an operation requires Postgres but DATABASE_URL is not set."""

    def __init__(self) -> None:
        super().__init__(
            message="This operation requires a SQL database that is not configured.",
            error_code="SERVICE_UNAVAILABLE",
        )
