"""Generic CRUD over collections and system tables.

Every operation runs Authorize -> Build -> Execute -> Shape:

- Authorize resolves the caller's effective permission; Denied stops the
  request before any table lookup or statement is built.
- Build describes the table and lets QueryBuilder validate input and produce
  the statement.
- Execute runs it (writes to collections and fields go through the schema
  synchronizer); driver errors are classified in one place.
- Shape trims rows to the columns the caller may see.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from basin.application.dtos.items import ItemListResult, ItemMeta, ItemResult, ListMeta
from basin.application.services.authorization_service import AuthorizationService
from basin.core.config import Settings, get_settings
from basin.domain.enums import Action
from basin.domain.exceptions import (
    CollectionNotFoundException,
    ResourceNotFoundException,
    ValidationException,
)
from basin.domain.value_objects.access import Principal
from basin.infrastructure.persistence.dynamic.catalog_values import normalize_catalog_body
from basin.infrastructure.persistence.dynamic.identifiers import validate_sql_identifier
from basin.infrastructure.persistence.dynamic.query_builder import ListParams, QueryBuilder
from basin.infrastructure.persistence.dynamic.runner import execute, fetch_one
from basin.infrastructure.services.schema_synchronizer import SchemaSynchronizer
from basin.infrastructure.services.table_catalog import TableCatalog, system_descriptor

logger = logging.getLogger(__name__)

# Writes to these tables change what any cached permission would resolve to.
_POLICY_TABLES = frozenset({"permissions", "roles", "collections"})
_SCHEMA_TABLES = frozenset({"collections", "fields"})


class ItemsService:
    """Executes item operations for one request session."""

    def __init__(
        self,
        db: AsyncSession,
        authorization: AuthorizationService,
        catalog: TableCatalog | None = None,
        synchronizer: SchemaSynchronizer | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.db = db
        self.authorization = authorization
        self.settings = settings or get_settings()
        self.catalog = catalog or TableCatalog(db, self.settings)
        self.synchronizer = synchronizer or SchemaSynchronizer(db, self.settings)

    # ---- Pipeline steps ----

    async def _prepare(self, principal: Principal, table: str, action: Action) -> QueryBuilder:
        """Authorize, then describe the table and return a builder for it."""
        try:
            validate_sql_identifier(table, "table name")
        except ValueError:
            raise CollectionNotFoundException(table) from None
        permission = await self.authorization.require(principal, table, action)
        descriptor = await self.catalog.describe(principal, table)
        return QueryBuilder(descriptor, permission, principal)

    async def _after_write(self, principal: Principal, table: str) -> None:
        if table in _POLICY_TABLES:
            await self.authorization.invalidate_tenant_cache(principal.tenant_id)

    @staticmethod
    def _meta(table: str, row: Mapping[str, Any] | None, item_id: str | None = None) -> ItemMeta:
        ident = row.get("id") if row else item_id
        return ItemMeta(table=table, id=str(ident) if ident is not None else None)

    # ---- Reads ----

    async def list_items(
        self, principal: Principal, table: str, params: Mapping[str, Any]
    ) -> ItemListResult:
        builder = await self._prepare(principal, table, Action.READ)
        query = ListParams.from_query(
            params, self.settings.default_page_size, self.settings.max_page_size
        )
        rows_stmt, total_stmt = builder.select_list(query)
        ctx = {"table": table, "action": Action.READ.value, "tenant_id": principal.tenant_id}
        total = (await execute(self.db, total_stmt, **ctx)).scalar_one()
        rows = (await execute(self.db, rows_stmt, **ctx)).mappings().all()
        data = [builder.shape(r) for r in rows]
        return ItemListResult(
            data=data,
            meta=ListMeta(count=len(data), total=total, limit=query.limit, offset=query.offset),
        )

    async def get_item(self, principal: Principal, table: str, item_id: str) -> ItemResult:
        builder = await self._prepare(principal, table, Action.READ)
        row = await fetch_one(
            self.db,
            builder.select_one(item_id),
            table=table,
            action=Action.READ.value,
            tenant_id=principal.tenant_id,
        )
        if row is None:
            raise ResourceNotFoundException(table, item_id)
        return ItemResult(data=builder.shape(row), meta=self._meta(table, row))

    # ---- Writes ----

    async def create_item(
        self, principal: Principal, table: str, body: Mapping[str, Any]
    ) -> ItemResult:
        builder = await self._prepare(principal, table, Action.CREATE)
        if not isinstance(body, Mapping):
            raise ValidationException("Request body must be a JSON object")
        body = normalize_catalog_body(table, body)

        if table == "collections":
            payload = dict(body)
            field_bodies = payload.pop("fields", None) or []
            if not isinstance(field_bodies, list) or not all(
                isinstance(f, Mapping) for f in field_bodies
            ):
                raise ValidationException("'fields' must be a list of objects", field="fields")
            field_bodies = [normalize_catalog_body("fields", f) for f in field_bodies]
            field_builder = None
            if field_bodies:
                field_permission = await self.authorization.require(
                    principal, "fields", Action.CREATE
                )
                field_builder = QueryBuilder(
                    system_descriptor("fields"), field_permission, principal
                )
            row = await self.synchronizer.create_collection(
                principal, builder, payload, field_builder, field_bodies
            )
        elif table == "fields":
            row = await self.synchronizer.add_field(principal, builder, body)
        else:
            async with self.db.begin_nested():
                row = await fetch_one(
                    self.db,
                    builder.insert(body),
                    table=table,
                    action=Action.CREATE.value,
                    tenant_id=principal.tenant_id,
                )
                builder.ensure_admitted(row)

        await self._after_write(principal, table)
        return ItemResult(data=builder.shape(row), meta=self._meta(table, row))

    async def update_item(
        self, principal: Principal, table: str, item_id: str, body: Mapping[str, Any]
    ) -> ItemResult:
        builder = await self._prepare(principal, table, Action.UPDATE)
        if isinstance(body, Mapping):
            body = normalize_catalog_body(table, body)
        statement = builder.update(item_id, body)
        if table in _SCHEMA_TABLES:
            await self.synchronizer.guard_metadata_update(
                principal, table, item_id, builder.validate_body(body)
            )
        async with self.db.begin_nested():
            row = await fetch_one(
                self.db,
                statement,
                table=table,
                action=Action.UPDATE.value,
                tenant_id=principal.tenant_id,
            )
            if row is None:
                raise ResourceNotFoundException(table, item_id)
            builder.ensure_admitted(row)

        await self._after_write(principal, table)
        return ItemResult(data=builder.shape(row), meta=self._meta(table, row))

    async def delete_item(self, principal: Principal, table: str, item_id: str) -> ItemResult:
        builder = await self._prepare(principal, table, Action.DELETE)
        if table == "collections":
            row = await self.synchronizer.delete_collection(principal, builder, item_id)
        elif table == "fields":
            row = await self.synchronizer.delete_field(principal, builder, item_id)
        else:
            row = await fetch_one(
                self.db,
                builder.delete(item_id),
                table=table,
                action=Action.DELETE.value,
                tenant_id=principal.tenant_id,
            )
            if row is None:
                raise ResourceNotFoundException(table, item_id)

        await self._after_write(principal, table)
        return ItemResult(data={"id": str(row["id"])}, meta=self._meta(table, row))
