"""ItemsService unit tests with mocked session, authorization and catalog."""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from basin.application.use_cases.items import ItemsService
from basin.domain.enums import Action
from basin.domain.exceptions import (
    AuthorizationException,
    CollectionNotFoundException,
    ResourceNotFoundException,
    ValidationException,
)
from basin.domain.value_objects.access import (
    AllowedColumns,
    EffectivePermission,
    Principal,
    RowFilter,
)
from basin.infrastructure.persistence.dynamic.descriptors import (
    FieldDefinition,
    TableDescriptor,
)
from basin.infrastructure.services.table_catalog import system_descriptor

PRINCIPAL = Principal(tenant_id="t1", role_ids=frozenset({"r1"}), user_id="u1")

POSTS = TableDescriptor.for_collection(
    name="posts",
    physical_name="data_posts",
    schema="t_1",
    fields=[FieldDefinition(name="title", type="text", is_required=True)],
)


def _grant(table: str, action: Action, columns: list[str] | None = None) -> EffectivePermission:
    return EffectivePermission(
        table=table,
        action=action,
        columns=AllowedColumns.of(columns),
        row_filter=RowFilter.unrestricted(),
    )


def _result(rows: list[dict] | None = None, scalar: int | None = None) -> MagicMock:
    result = MagicMock()
    result.scalar_one.return_value = scalar
    result.mappings.return_value.all.return_value = rows or []
    result.mappings.return_value.first.return_value = (rows or [None])[0]
    return result


@pytest.fixture
def service_mocks():
    """ItemsService with a mocked session, authorization service and catalog."""
    db = MagicMock()
    db.execute = AsyncMock()
    authorization = AsyncMock()
    catalog = AsyncMock()
    catalog.describe = AsyncMock(return_value=POSTS)
    synchronizer = AsyncMock()
    svc = ItemsService(db, authorization, catalog=catalog, synchronizer=synchronizer)
    return svc, db, authorization, catalog, synchronizer


async def test_denied_stops_before_describe(service_mocks) -> None:
    """Authorization failure short-circuits: the table is never described or queried."""
    svc, db, authorization, catalog, _ = service_mocks
    authorization.require = AsyncMock(side_effect=AuthorizationException("posts", "read"))
    with pytest.raises(AuthorizationException):
        await svc.list_items(PRINCIPAL, "posts", {})
    catalog.describe.assert_not_called()
    db.execute.assert_not_called()


async def test_malformed_table_name_is_not_found(service_mocks) -> None:
    """A table name that cannot be an identifier is reported as an unknown collection."""
    svc, _, authorization, _, _ = service_mocks
    with pytest.raises(CollectionNotFoundException):
        await svc.list_items(PRINCIPAL, "posts;drop", {})
    authorization.require.assert_not_called()


async def test_list_items_shapes_rows_and_meta(service_mocks) -> None:
    """list_items returns visible columns with count/total/limit/offset."""
    svc, db, authorization, _, _ = service_mocks
    authorization.require = AsyncMock(return_value=_grant("posts", Action.READ, ["title"]))
    row_id = uuid.uuid4()
    db.execute.side_effect = [
        _result(scalar=1),
        _result(rows=[{"id": row_id, "title": "hello"}]),
    ]
    result = await svc.list_items(PRINCIPAL, "posts", {"limit": "10"})
    assert result.data == [{"id": row_id, "title": "hello"}]
    assert result.meta.model_dump() == {"count": 1, "total": 1, "limit": 10, "offset": 0}


async def test_get_item_not_found(service_mocks) -> None:
    """A row absent (or filtered out) is NotFound."""
    svc, db, authorization, _, _ = service_mocks
    authorization.require = AsyncMock(return_value=_grant("posts", Action.READ))
    db.execute.return_value = _result(rows=[])
    with pytest.raises(ResourceNotFoundException):
        await svc.get_item(PRINCIPAL, "posts", str(uuid.uuid4()))


async def test_create_item_returns_row_and_meta(service_mocks) -> None:
    """create_item inserts, checks the written row and returns {data, meta}."""
    svc, db, authorization, _, _ = service_mocks
    authorization.require = AsyncMock(return_value=_grant("posts", Action.CREATE))
    row_id = uuid.uuid4()
    row = {
        "id": row_id,
        "title": "hello",
        "created_at": datetime.now(timezone.utc),
        "updated_at": datetime.now(timezone.utc),
        "created_by": "u1",
        "updated_by": "u1",
    }
    db.execute.return_value = _result(rows=[row])
    result = await svc.create_item(PRINCIPAL, "posts", {"title": "hello"})
    assert result.data["title"] == "hello"
    assert result.meta.table == "posts"
    assert result.meta.id == str(row_id)
    authorization.invalidate_tenant_cache.assert_not_called()


async def test_permission_write_invalidates_cache(service_mocks) -> None:
    """Writing a permission rule drops the tenant's cached permissions."""
    svc, db, authorization, catalog, _ = service_mocks
    authorization.require = AsyncMock(return_value=_grant("permissions", Action.CREATE))
    catalog.describe = AsyncMock(return_value=system_descriptor("permissions"))
    db.execute.return_value = _result(
        rows=[{"id": "p1", "tenant_id": "t1", "role_id": "r1", "table_name": "posts", "action": "read"}]
    )
    await svc.create_item(
        PRINCIPAL, "permissions", {"role_id": "r1", "table_name": "posts", "action": "read"}
    )
    authorization.invalidate_tenant_cache.assert_awaited_once_with("t1")


async def test_collection_create_goes_through_synchronizer(service_mocks) -> None:
    """Creating in collections delegates to the schema synchronizer with the field bodies."""
    svc, _, authorization, catalog, synchronizer = service_mocks
    authorization.require = AsyncMock(
        side_effect=[
            _grant("collections", Action.CREATE),
            _grant("fields", Action.CREATE),
        ]
    )
    catalog.describe = AsyncMock(return_value=system_descriptor("collections"))
    synchronizer.create_collection = AsyncMock(return_value={"id": "c1", "name": "posts"})
    result = await svc.create_item(
        PRINCIPAL, "collections", {"name": "posts", "fields": [{"name": "title"}]}
    )
    args = synchronizer.create_collection.await_args.args
    assert args[2] == {"name": "posts"}
    assert args[4] == [{"name": "title"}]
    assert result.meta.id == "c1"
    authorization.invalidate_tenant_cache.assert_awaited_once_with("t1")


async def test_delete_returns_id_only(service_mocks) -> None:
    """delete_item answers with the deleted id."""
    svc, db, authorization, _, _ = service_mocks
    authorization.require = AsyncMock(return_value=_grant("posts", Action.DELETE))
    row_id = uuid.uuid4()
    db.execute.return_value = _result(rows=[{"id": row_id, "title": "x"}])
    result = await svc.delete_item(PRINCIPAL, "posts", str(row_id))
    assert result.data == {"id": str(row_id)}


async def test_permission_with_list_filter_is_rejected(service_mocks) -> None:
    """A field_filter that is not an object is a validation error and is never stored."""
    svc, db, authorization, catalog, _ = service_mocks
    authorization.require = AsyncMock(return_value=_grant("permissions", Action.CREATE))
    catalog.describe = AsyncMock(return_value=system_descriptor("permissions"))
    with pytest.raises(ValidationException) as exc_info:
        await svc.create_item(
            PRINCIPAL,
            "permissions",
            {"role_id": "r1", "table_name": "posts", "action": "read", "field_filter": ["open"]},
        )
    assert exc_info.value.details == {"field": "field_filter"}
    db.execute.assert_not_called()
    authorization.invalidate_tenant_cache.assert_not_called()


async def test_permission_update_with_bad_columns_is_rejected(service_mocks) -> None:
    """allowed_fields must be a list of column names on update too."""
    svc, db, authorization, catalog, _ = service_mocks
    authorization.require = AsyncMock(return_value=_grant("permissions", Action.UPDATE))
    catalog.describe = AsyncMock(return_value=system_descriptor("permissions"))
    with pytest.raises(ValidationException):
        await svc.update_item(PRINCIPAL, "permissions", "p1", {"allowed_fields": "title"})
    db.execute.assert_not_called()


async def test_field_flags_are_coerced_before_the_synchronizer(service_mocks) -> None:
    """String flags reach the synchronizer as the booleans the catalog stores."""
    svc, _, authorization, catalog, synchronizer = service_mocks
    authorization.require = AsyncMock(return_value=_grant("fields", Action.CREATE))
    catalog.describe = AsyncMock(return_value=system_descriptor("fields"))
    synchronizer.add_field = AsyncMock(return_value={"id": "f1", "name": "title"})
    await svc.create_item(
        PRINCIPAL,
        "fields",
        {"collection_id": "c1", "name": "title", "is_required": "false", "is_unique": "false"},
    )
    body = synchronizer.add_field.await_args.args[2]
    assert body["is_required"] is False
    assert body["is_unique"] is False


async def test_nested_field_rules_are_validated(service_mocks) -> None:
    """validation_rules on a field created with its collection are checked before any DDL."""
    svc, _, authorization, catalog, synchronizer = service_mocks
    authorization.require = AsyncMock(return_value=_grant("collections", Action.CREATE))
    catalog.describe = AsyncMock(return_value=system_descriptor("collections"))
    with pytest.raises(ValidationException):
        await svc.create_item(
            PRINCIPAL,
            "collections",
            {"name": "posts", "fields": [{"name": "qty", "validation_rules": {"min": "abc"}}]},
        )
    synchronizer.create_collection.assert_not_called()
