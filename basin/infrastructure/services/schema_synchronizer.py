"""Keeps physical tables in step with the schema catalog.

Writes to the collections and fields system tables land here. Each
operation runs inside a SAVEPOINT on the request's session, so a failure in
any step (catalog row, DDL, field rows, auto-grant) rolls back every step.
PostgreSQL DDL is transactional, so a rolled-back CREATE TABLE leaves nothing behind.

Only metadata of existing collections and fields may change; anything that
would need ALTER COLUMN TYPE or a rename is rejected.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from basin.core.config import Settings, get_settings
from basin.domain.enums import Action, FieldType
from basin.domain.exceptions import (
    ConflictException,
    ResourceNotFoundException,
    UnsupportedSchemaEvolutionException,
    ValidationException,
)
from basin.domain.value_objects.access import Principal
from basin.domain.value_objects.names import CollectionName, FieldName, validate_object_name
from basin.infrastructure.persistence.dynamic import ddl
from basin.infrastructure.persistence.dynamic.descriptors import FieldDefinition
from basin.infrastructure.persistence.dynamic.query_builder import QueryBuilder
from basin.infrastructure.persistence.dynamic.runner import execute, fetch_one
from basin.infrastructure.persistence.dynamic.types import canonical_type
from basin.infrastructure.persistence.models import Collection, Permission, Tenant
from basin.infrastructure.persistence.repositories import (
    CollectionRepository,
    FieldRepository,
    PermissionRepository,
    RoleRepository,
    TenantRepository,
)
from basin.infrastructure.services.table_catalog import physical_table_name

logger = logging.getLogger(__name__)

COLLECTION_STRUCTURAL = ("name", "is_system")
FIELD_STRUCTURAL = (*FieldDefinition.STRUCTURAL, "collection_id")


def _row_of(obj: Any) -> dict[str, Any]:
    """Plain dict of an ORM instance's column values."""
    return {c.key: getattr(obj, c.key) for c in obj.__table__.columns}


class TenantNamespaceManager:
    """Creates the physical namespace (schema) owned by a tenant."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def ensure(self, tenant: Tenant) -> str:
        """CREATE SCHEMA IF NOT EXISTS for the tenant; returns the schema name."""
        try:
            validate_object_name(tenant.schema_name, "schema")
        except ValueError as e:
            raise ValidationException(str(e), field="schema_name") from None
        await execute(
            self.db,
            text(ddl.create_schema_sql(tenant.schema_name)),
            table="tenant",
            action="create_schema",
            tenant_id=tenant.id,
        )
        return tenant.schema_name


class SchemaSynchronizer:
    """Applies collection and field writes to both the catalog and physical schema."""

    def __init__(self, db: AsyncSession, settings: Settings | None = None) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.collections = CollectionRepository(db)
        self.fields = FieldRepository(db)
        self.permissions = PermissionRepository(db)
        self.roles = RoleRepository(db)
        self.tenants = TenantRepository(db)
        self.namespaces = TenantNamespaceManager(db)

    # ---- Helpers ----

    async def _tenant(self, principal: Principal) -> Tenant:
        tenant = await self.tenants.get_by_id(principal.tenant_id)
        if tenant is None:
            raise ValidationException("Tenant does not exist")
        return tenant

    async def _run(self, principal: Principal, statement: Any, table: str, action: str) -> None:
        await execute(
            self.db, statement, table=table, action=action, tenant_id=principal.tenant_id
        )

    def _collection_name(self, value: Any) -> CollectionName:
        try:
            return CollectionName(str(value or ""), prefix=self.settings.data_table_prefix)
        except ValueError as e:
            raise ValidationException(str(e), field="name") from None

    @staticmethod
    def _field_definition(body: Mapping[str, Any]) -> FieldDefinition:
        try:
            FieldName(str(body.get("name") or ""))
        except ValueError as e:
            raise ValidationException(str(e), field="name") from None
        return FieldDefinition.from_mapping(body)

    async def _relation_tables(
        self, principal: Principal, definitions: Sequence[FieldDefinition], own_name: str
    ) -> dict[str, str]:
        """Physical tables of relation targets; unknown targets are rejected."""
        tables: dict[str, str] = {}
        for d in definitions:
            if canonical_type(d.type) is not FieldType.RELATION:
                continue
            if not d.relation_target:
                raise ValidationException(
                    f"Relation field '{d.name}' needs a relation_target", field=d.name
                )
            if d.relation_target != own_name:
                target = await self.collections.get_by_name(principal.tenant_id, d.relation_target)
                if target is None or target.is_system:
                    raise ValidationException(
                        f"Relation target '{d.relation_target}' does not exist", field=d.name
                    )
            tables[d.relation_target] = physical_table_name(d.relation_target, self.settings)
        return tables

    async def _grant_admin(self, principal: Principal, collection: str) -> None:
        """Give the tenant's admin role wildcard CRUD rules on a new collection."""
        if not self.settings.auto_grant_admin:
            return
        role = await self.roles.get_by_name(principal.tenant_id, self.settings.admin_role_name)
        if role is None:
            return
        for action in Action:
            if await self.permissions.has_wildcard_rule(
                principal.tenant_id, role.id, collection, action.value
            ):
                continue
            self.db.add(
                Permission(
                    tenant_id=principal.tenant_id,
                    role_id=role.id,
                    table_name=collection,
                    action=action.value,
                    field_filter=None,
                    allowed_fields=["*"],
                    created_by=principal.user_id,
                    updated_by=principal.user_id,
                )
            )
        await self.db.flush()

    # ---- Collections ----

    async def create_collection(
        self,
        principal: Principal,
        builder: QueryBuilder,
        body: Mapping[str, Any],
        field_builder: QueryBuilder | None = None,
        field_bodies: Sequence[Mapping[str, Any]] = (),
    ) -> dict[str, Any]:
        """Insert the collection row, create its table, insert its field rows; all or nothing.

        Args:
            principal: Caller.
            builder: Builder for the collections system table (create permission).
            body: Collection attributes from the caller.
            field_builder: Builder for the fields system table; required when field_bodies is set.
            field_bodies: Declared fields, created together with the collection.
        """
        name = self._collection_name(body.get("name"))
        if body.get("is_system"):
            raise ValidationException("System collections cannot be created", field="is_system")
        definitions = [self._field_definition(f) for f in field_bodies]
        seen: set[str] = set()
        for d in definitions:
            if d.name in seen:
                raise ConflictException(f"Field '{d.name}' is declared twice", resource="fields")
            seen.add(d.name)
        tenant = await self._tenant(principal)

        async with self.db.begin_nested():
            row = await fetch_one(
                self.db,
                builder.insert(body),
                table="collections",
                action="create",
                tenant_id=principal.tenant_id,
            )
            builder.ensure_admitted(row)

            relation_tables = await self._relation_tables(principal, definitions, name.value)
            schema = await self.namespaces.ensure(tenant)
            await self._run(
                principal,
                text(ddl.create_table_sql(schema, name.physical, definitions, relation_tables)),
                name.value,
                "create_table",
            )
            logger.info(
                "Created data table for collection %s (tenant_id=%s, %d fields)",
                name.value,
                principal.tenant_id,
                len(definitions),
            )

            for field_body, definition in zip(field_bodies, definitions, strict=True):
                if field_builder is None:
                    raise ValidationException("Creating fields is not permitted", field="fields")
                normalized = {**field_body, "type": definition.type}
                field_row = await fetch_one(
                    self.db,
                    field_builder.insert(normalized, preset={"collection_id": row["id"]}),
                    table="fields",
                    action="create",
                    tenant_id=principal.tenant_id,
                )
                field_builder.ensure_admitted(field_row)

            await self._grant_admin(principal, name.value)
        return row

    async def delete_collection(
        self, principal: Principal, builder: QueryBuilder, item_id: str
    ) -> dict[str, Any]:
        """Delete the collection row (fields cascade) and drop its table.

        Rules naming the collection are kept: callers that could reach it get
        CollectionNotFound afterwards, and a re-created collection of the same
        name is reachable again under the same rules.
        """
        async with self.db.begin_nested():
            row = await fetch_one(
                self.db,
                builder.delete(item_id),
                table="collections",
                action="delete",
                tenant_id=principal.tenant_id,
            )
            if row is None:
                raise ResourceNotFoundException("collections", item_id)
            if row["is_system"]:
                raise ValidationException("System collections cannot be deleted")
            tenant = await self._tenant(principal)
            await self._run(
                principal,
                text(ddl.drop_table_sql(tenant.schema_name, physical_table_name(row["name"], self.settings))),
                row["name"],
                "drop_table",
            )
            logger.info(
                "Dropped data table for collection %s (tenant_id=%s)",
                row["name"],
                principal.tenant_id,
            )
        return row

    # ---- Fields ----

    async def add_field(
        self, principal: Principal, builder: QueryBuilder, body: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Add a field to an existing collection; idempotent for an identical definition.

        A second call with the same definition returns the existing field row
        (adding the physical column if it is missing). A different definition
        under the same name is a conflict.
        """
        definition = self._field_definition(body)
        values = builder.prepare_insert_values({**body, "type": definition.type})
        collection = await self.collections.get_with_fields(
            values["collection_id"], principal.tenant_id
        )
        if collection is None:
            raise ValidationException("Collection does not exist", field="collection_id")
        if collection.is_system:
            raise ValidationException("System collections have no managed fields", field="collection_id")
        tenant = await self._tenant(principal)
        table = physical_table_name(collection.name, self.settings)

        existing = next((f for f in collection.fields if f.name == definition.name), None)
        if existing is None:
            try:
                async with self.db.begin_nested():
                    row = await fetch_one(
                        self.db,
                        builder.insert({**body, "type": definition.type}),
                        table="fields",
                        action="create",
                        tenant_id=principal.tenant_id,
                    )
                    builder.ensure_admitted(row)
                    await self._ensure_column(principal, tenant.schema_name, table, collection, definition)
                return row
            except ConflictException:
                existing = await self.fields.get_by_name(collection.id, definition.name)
                if existing is None:
                    raise

        current = FieldDefinition.from_model(existing)
        if current.structure() != definition.structure():
            raise ConflictException(
                f"Field '{definition.name}' already exists with a different definition",
                resource="fields",
            )
        async with self.db.begin_nested():
            await self._ensure_column(principal, tenant.schema_name, table, collection, current)
        return _row_of(existing)

    async def _ensure_column(
        self,
        principal: Principal,
        schema: str,
        table: str,
        collection: Collection,
        definition: FieldDefinition,
    ) -> None:
        """ADD COLUMN unless a column with exactly this (case-sensitive) name exists."""
        result = await execute(
            self.db,
            ddl.COLUMN_EXISTS,
            {"schema": schema, "table": table, "column": definition.name},
            table=collection.name,
            action="add_field",
            tenant_id=principal.tenant_id,
        )
        if result.first() is not None:
            logger.debug("Column %s already present on %s", definition.name, collection.name)
            return
        relation_tables = await self._relation_tables(principal, [definition], collection.name)
        await self._run(
            principal,
            text(
                ddl.add_column_sql(
                    schema, table, definition, relation_tables.get(definition.relation_target or "")
                )
            ),
            collection.name,
            "add_field",
        )
        logger.info(
            "Added column %s to collection %s (tenant_id=%s)",
            definition.name,
            collection.name,
            principal.tenant_id,
        )

    async def delete_field(
        self, principal: Principal, builder: QueryBuilder, item_id: str
    ) -> dict[str, Any]:
        """Delete the field row and drop its physical column in one step."""
        async with self.db.begin_nested():
            row = await fetch_one(
                self.db,
                builder.delete(item_id),
                table="fields",
                action="delete",
                tenant_id=principal.tenant_id,
            )
            if row is None:
                raise ResourceNotFoundException("fields", item_id)
            collection = await self.collections.get_by_id(row["collection_id"], principal.tenant_id)
            if collection is not None and not collection.is_system:
                tenant = await self._tenant(principal)
                await self._run(
                    principal,
                    text(
                        ddl.drop_column_sql(
                            tenant.schema_name,
                            physical_table_name(collection.name, self.settings),
                            row["name"],
                        )
                    ),
                    collection.name,
                    "delete_field",
                )
                logger.info(
                    "Dropped column %s from collection %s (tenant_id=%s)",
                    row["name"],
                    collection.name,
                    principal.tenant_id,
                )
        return row

    # ---- Metadata updates ----

    async def guard_metadata_update(
        self,
        principal: Principal,
        table: str,
        item_id: str,
        values: Mapping[str, Any],
    ) -> None:
        """Reject updates that change structural attributes of a collection or field.

        Attributes sent with their current value are accepted. A missing row is
        left for the UPDATE itself to report.
        """
        if table == "collections":
            current = await self.collections.get_by_id(item_id, principal.tenant_id)
            structural = COLLECTION_STRUCTURAL
        else:
            current = await self.fields.get_by_id(item_id, principal.tenant_id)
            structural = FIELD_STRUCTURAL
        if current is None:
            return
        changed = []
        for attr in structural:
            if attr not in values:
                continue
            new, old = values[attr], getattr(current, attr)
            if attr == "type":
                new, old = canonical_type(str(new)), canonical_type(old)
            if new != old:
                changed.append(attr)
        if changed:
            raise UnsupportedSchemaEvolutionException(
                "collection" if table == "collections" else "field", changed
            )

