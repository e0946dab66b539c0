"""Collection and field lifecycle against Postgres. Require DATABASE_URL; session is rolled back after each test."""

import pytest
from sqlalchemy import text

from basin.domain.exceptions import (
    CollectionNotFoundException,
    ConflictException,
    SchemaInconsistencyException,
    UnsupportedSchemaEvolutionException,
    ValidationException,
)
from basin.domain.value_objects.access import Principal
from basin.infrastructure.persistence.dynamic import ddl
from basin.infrastructure.persistence.models import Role

pytestmark = pytest.mark.requires_db


async def _table_exists(db_session, schema: str, table: str) -> bool:
    result = await db_session.execute(ddl.TABLE_EXISTS, {"schema": schema, "table": table})
    return result.first() is not None


async def _column_count(db_session, schema: str, table: str, column: str) -> int:
    result = await db_session.execute(
        ddl.COLUMN_EXISTS, {"schema": schema, "table": table, "column": column}
    )
    return len(result.all())


@pytest.fixture
async def admin(tenant_admin, grant):
    """Tenant admin allowed to manage collections and fields."""
    tenant, role, principal = tenant_admin
    await grant(role, "collections")
    await grant(role, "fields")
    return tenant, role, principal


async def test_posts_end_to_end(items_service, admin) -> None:
    """Create posts, add title, write and list an item, delete the collection."""
    tenant, _, principal = admin
    created = await items_service.create_item(principal, "collections", {"name": "posts"})
    collection_id = created.data["id"]
    assert await _table_exists(items_service.db, tenant.schema_name, "data_posts")

    await items_service.create_item(
        principal,
        "fields",
        {"collection_id": collection_id, "name": "title", "type": "text", "is_required": True},
    )
    await items_service.create_item(principal, "posts", {"title": "hello"})

    listed = await items_service.list_items(principal, "posts", {})
    assert listed.meta.total == 1
    row = listed.data[0]
    assert row["title"] == "hello"
    assert row["id"] is not None
    assert row["created_at"] is not None

    await items_service.delete_item(principal, "collections", collection_id)
    assert not await _table_exists(items_service.db, tenant.schema_name, "data_posts")
    # The creator keeps its rules and sees the same schema-absence error as everyone else.
    with pytest.raises(CollectionNotFoundException):
        await items_service.list_items(principal, "posts", {})


async def test_recreated_collection_is_reachable_again(items_service, admin) -> None:
    """Deleting and re-creating a collection leaves the creator with working access."""
    _, _, principal = admin
    created = await items_service.create_item(principal, "collections", {"name": "drafts"})
    await items_service.delete_item(principal, "collections", created.data["id"])
    await items_service.create_item(principal, "collections", {"name": "drafts"})
    listed = await items_service.list_items(principal, "drafts", {})
    assert listed.meta.total == 0


async def test_read_rule_on_deleted_collection_is_not_found(
    items_service, admin, grant, db_session
) -> None:
    """A principal still holding a read rule on a deleted collection gets CollectionNotFound."""
    tenant, _, principal = admin
    created = await items_service.create_item(principal, "collections", {"name": "notes"})
    reader_role = Role(tenant_id=tenant.id, name="reader")
    db_session.add(reader_role)
    await db_session.flush()
    await grant(reader_role, "notes", actions=("read",))

    await items_service.delete_item(principal, "collections", created.data["id"])

    reader = Principal(tenant_id=tenant.id, role_ids=frozenset({reader_role.id}))
    with pytest.raises(CollectionNotFoundException):
        await items_service.list_items(reader, "notes", {})


async def test_missing_physical_table_is_schema_inconsistency(items_service, admin) -> None:
    """A catalog entry whose table was dropped outside the service is reported distinctly."""
    tenant, _, principal = admin
    await items_service.create_item(principal, "collections", {"name": "orphans"})
    await items_service.db.execute(text(ddl.drop_table_sql(tenant.schema_name, "data_orphans")))
    with pytest.raises(SchemaInconsistencyException):
        await items_service.list_items(principal, "orphans", {})


async def test_collection_creation_is_atomic(items_service, admin) -> None:
    """If a field row fails after CREATE TABLE, neither the collection nor its table remains."""
    tenant, _, principal = admin
    with pytest.raises(ValidationException):
        await items_service.create_item(
            principal,
            "collections",
            {
                "name": "atomic",
                "fields": [{"name": "a", "type": "text"}, {"name": "b", "bogus": 1}],
            },
        )
    assert not await _table_exists(items_service.db, tenant.schema_name, "data_atomic")
    with pytest.raises(CollectionNotFoundException):
        await items_service.catalog.describe(principal, "atomic")


async def test_duplicate_collection_is_conflict(items_service, admin) -> None:
    """A second collection with the same name is a conflict."""
    _, _, principal = admin
    await items_service.create_item(principal, "collections", {"name": "dupes"})
    with pytest.raises(ConflictException):
        await items_service.create_item(principal, "collections", {"name": "dupes"})


async def test_add_field_is_idempotent(items_service, admin) -> None:
    """Adding the same field twice yields one catalog row and one physical column."""
    tenant, _, principal = admin
    created = await items_service.create_item(principal, "collections", {"name": "articles"})
    body = {"collection_id": created.data["id"], "name": "Title", "type": "string"}
    first = await items_service.create_item(principal, "fields", body)
    second = await items_service.create_item(principal, "fields", dict(body))
    assert first.data["id"] == second.data["id"]
    assert await _column_count(items_service.db, tenant.schema_name, "data_articles", "Title") == 1

    fields = await items_service.list_items(
        principal, "fields", {"collection_id": created.data["id"]}
    )
    assert fields.meta.total == 1


async def test_add_field_with_different_definition_conflicts(items_service, admin) -> None:
    """The same name with another type is a conflict, not a silent change."""
    _, _, principal = admin
    created = await items_service.create_item(principal, "collections", {"name": "items"})
    body = {"collection_id": created.data["id"], "name": "qty", "type": "integer"}
    await items_service.create_item(principal, "fields", body)
    with pytest.raises(ConflictException):
        await items_service.create_item(principal, "fields", {**body, "type": "text"})


async def test_field_type_change_is_unsupported(items_service, admin) -> None:
    """Changing a field's type is rejected; metadata updates go through."""
    _, _, principal = admin
    created = await items_service.create_item(principal, "collections", {"name": "docs"})
    field = await items_service.create_item(
        principal, "fields", {"collection_id": created.data["id"], "name": "body", "type": "text"}
    )
    with pytest.raises(UnsupportedSchemaEvolutionException):
        await items_service.update_item(principal, "fields", field.data["id"], {"type": "integer"})
    updated = await items_service.update_item(
        principal, "fields", field.data["id"], {"display_name": "Body"}
    )
    assert updated.data["display_name"] == "Body"


async def test_delete_field_drops_column(items_service, admin) -> None:
    """Deleting a field removes its catalog row and its physical column."""
    tenant, _, principal = admin
    created = await items_service.create_item(principal, "collections", {"name": "tasks"})
    field = await items_service.create_item(
        principal, "fields", {"collection_id": created.data["id"], "name": "due", "type": "date"}
    )
    await items_service.delete_item(principal, "fields", field.data["id"])
    assert await _column_count(items_service.db, tenant.schema_name, "data_tasks", "due") == 0


async def test_string_flags_keep_add_field_idempotent(items_service, admin) -> None:
    """String "false" flags give a nullable column and a repeated add matches the stored row."""
    tenant, _, principal = admin
    created = await items_service.create_item(principal, "collections", {"name": "memos"})
    body = {
        "collection_id": created.data["id"],
        "name": "title",
        "type": "text",
        "is_required": "false",
        "is_unique": "false",
    }
    first = await items_service.create_item(principal, "fields", body)
    second = await items_service.create_item(principal, "fields", dict(body))
    assert first.data["id"] == second.data["id"]
    assert first.data["is_required"] is False
    await items_service.create_item(principal, "memos", {"title": None})
    listed = await items_service.list_items(principal, "memos", {})
    assert listed.meta.total == 1
