"""Classification of database driver errors into domain exceptions.

One place decides what a failed statement means to the caller. Messages never
include SQL text, identifiers or bound values; the raw error is logged with
table, action and tenant context instead.
"""

import logging

from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from basin.domain.exceptions import (
    BasinException,
    ConflictException,
    InternalException,
    SchemaInconsistencyException,
    ValidationException,
)

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
UNDEFINED_TABLE = "42P01"
UNDEFINED_COLUMN = "42703"

_VALIDATION_STATES: dict[str, str] = {
    "23502": "A required field is missing",
    "23503": "A referenced item does not exist",
    "23514": "A value violates a check constraint",
    "22P02": "A value has an invalid format",
    "22007": "A date or time value has an invalid format",
    "22003": "A numeric value is out of range",
    "22001": "A value is too long for its field",
    "22021": "A value contains characters the database cannot store",
    "22P05": "A value contains characters the database cannot store",
}


def sqlstate_of(exc: BaseException) -> str | None:
    """Return the SQLSTATE of a driver error wrapped by SQLAlchemy, if any."""
    orig = getattr(exc, "orig", None)
    if orig is None:
        return None
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def classify_db_error(
    exc: BaseException,
    *,
    table: str,
    action: str,
    tenant_id: str | None,
) -> BasinException:
    """Map a driver error to the domain exception the caller should see.

    Args:
        exc: Error raised while executing a statement.
        table: Logical table name (collection or system table).
        action: create, read, update, delete or a schema operation name.
        tenant_id: Principal's tenant, for log context.
    """
    state = sqlstate_of(exc) if isinstance(exc, DBAPIError) else None
    if state == UNIQUE_VIOLATION:
        return ConflictException(
            f"An item in '{table}' already has this unique value", resource=table
        )
    if state in _VALIDATION_STATES:
        return ValidationException(_VALIDATION_STATES[state])
    if state == UNDEFINED_TABLE:
        logger.error(
            "Physical table missing for catalog entry: table=%s action=%s tenant_id=%s",
            table,
            action,
            tenant_id,
        )
        return SchemaInconsistencyException(table)
    if state == UNDEFINED_COLUMN:
        logger.error(
            "Physical column missing for catalog field: table=%s action=%s tenant_id=%s",
            table,
            action,
            tenant_id,
        )
        return SchemaInconsistencyException(table)
    logger.error(
        "Database error: table=%s action=%s tenant_id=%s sqlstate=%s error=%s",
        table,
        action,
        tenant_id,
        state,
        type(getattr(exc, "orig", None) or exc).__name__,
    )
    return InternalException()


DATABASE_ERRORS: tuple[type[BaseException], ...] = (SQLAlchemyError, OSError)
