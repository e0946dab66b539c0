"""Statement execution with driver errors classified into domain exceptions."""

from collections.abc import Mapping
from typing import Any

from sqlalchemy import Executable, Result
from sqlalchemy.ext.asyncio import AsyncSession

from basin.infrastructure.persistence.errors import DATABASE_ERRORS, classify_db_error


async def execute(
    db: AsyncSession,
    statement: Executable,
    params: Mapping[str, Any] | None = None,
    *,
    table: str,
    action: str,
    tenant_id: str | None,
) -> Result:
    """Execute statement; raise the classified domain exception on driver failure."""
    try:
        return await db.execute(statement, params)
    except DATABASE_ERRORS as e:
        raise classify_db_error(e, table=table, action=action, tenant_id=tenant_id) from e


async def fetch_one(
    db: AsyncSession,
    statement: Executable,
    *,
    table: str,
    action: str,
    tenant_id: str | None,
) -> dict[str, Any] | None:
    """Execute and return the first row as a dict (None when no row)."""
    result = await execute(db, statement, table=table, action=action, tenant_id=tenant_id)
    row = result.mappings().first()
    return dict(row) if row is not None else None
