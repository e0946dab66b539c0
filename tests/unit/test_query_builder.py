"""QueryBuilder unit tests: statements compiled with the PostgreSQL dialect, no database."""

import uuid

import pytest
from sqlalchemy.dialects import postgresql

from basin.domain.enums import Action
from basin.domain.exceptions import (
    AuthorizationException,
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
from basin.infrastructure.persistence.dynamic.query_builder import (
    FilterCondition,
    FilterOperator,
    ListParams,
    QueryBuilder,
    SortField,
)
from basin.infrastructure.services.table_catalog import system_descriptor

PRINCIPAL = Principal(tenant_id="t1", role_ids=frozenset({"r1"}), user_id="u1")


def _posts() -> TableDescriptor:
    return TableDescriptor.for_collection(
        name="posts",
        physical_name="data_posts",
        schema="t_1",
        fields=[
            FieldDefinition(name="title", type="text", is_required=True),
            FieldDefinition(name="status", type="text", sort_order=1),
            FieldDefinition(name="views", type="integer", sort_order=2),
            FieldDefinition(name="default", type="text", sort_order=3),
        ],
    )


def _builder(
    action: Action = Action.READ,
    columns: list[str] | None = None,
    filters: list[dict] | None = None,
    descriptor: TableDescriptor | None = None,
) -> QueryBuilder:
    permission = EffectivePermission(
        table="posts",
        action=action,
        columns=AllowedColumns.of(columns),
        row_filter=RowFilter.from_rules(filters or [None]),
    )
    return QueryBuilder(descriptor or _posts(), permission, PRINCIPAL)


def _compile(stmt):
    return stmt.compile(dialect=postgresql.dialect())


class TestListParams:
    def test_defaults(self) -> None:
        p = ListParams.from_query({}, default_limit=25, max_limit=100)
        assert (p.limit, p.offset, p.sort, p.filters) == (25, 0, None, ())

    def test_limit_clamped(self) -> None:
        assert ListParams.from_query({"limit": "1000"}, 25, 100).limit == 100

    def test_page_aliases(self) -> None:
        p = ListParams.from_query({"per_page": "10", "page": "3"}, 25, 100)
        assert (p.limit, p.offset) == (10, 20)

    def test_invalid_paging_rejected(self) -> None:
        with pytest.raises(ValidationException, match="integer"):
            ListParams.from_query({"limit": "ten"}, 25, 100)
        with pytest.raises(ValidationException, match="negative"):
            ListParams.from_query({"offset": "-1"}, 25, 100)

    def test_filters_exclude_reserved_params(self) -> None:
        p = ListParams.from_query({"sort": "-views", "status": "open", "views__gte": "3"}, 25, 100)
        assert p.sort == SortField("views", descending=True)
        assert FilterCondition("status", FilterOperator.EQ, "open") in p.filters
        assert FilterCondition("views", FilterOperator.GTE, "3") in p.filters

    def test_order_overrides_prefix(self) -> None:
        assert SortField.parse("-views", "asc") == SortField("views", descending=False)

    def test_unknown_suffix_kept_in_column_name(self) -> None:
        assert FilterCondition.parse("a__like", "x").column == "a__like"


class TestReads:
    def test_select_list_scoped_and_bound(self) -> None:
        """List is scoped by the row filter; every value is a bind parameter."""
        builder = _builder(filters=[{"status": "open"}])
        params = ListParams.from_query({"views__gt": "2"}, 25, 100)
        rows, total = builder.select_list(params)
        compiled = _compile(rows)
        sql = str(compiled)
        assert 'FROM "t_1"."data_posts"' in sql
        assert '"data_posts"."status" = %(status_1)s' in sql
        assert "open" not in sql
        assert compiled.params["status_1"] == "open"
        assert 2 in compiled.params.values()
        assert "ORDER BY" in sql and '"created_at" DESC' in sql
        assert "count(*)" in str(_compile(total))

    def test_reserved_word_column_is_quoted(self) -> None:
        rows, _ = _builder().select_list(ListParams.from_query({"default": "x"}, 25, 100))
        assert '"data_posts"."default"' in str(_compile(rows))

    def test_enumerated_columns_include_id(self) -> None:
        builder = _builder(columns=["title"])
        assert builder.readable_columns() == ("id", "title")

    def test_filter_on_unreadable_column_ignored(self) -> None:
        builder = _builder(columns=["title"])
        rows, _ = builder.select_list(ListParams.from_query({"status": "open"}, 25, 100))
        assert "open" not in _compile(rows).params.values()

    def test_unknown_row_filter_column_fails_closed(self) -> None:
        """A rule filtering on a column the table lacks admits nothing."""
        builder = _builder(filters=[{"missing": "x"}])
        rows, _ = builder.select_list(ListParams.from_query({}, 25, 100))
        assert "false" in str(_compile(rows)).lower()

    def test_row_filter_literal_that_does_not_fit_is_dropped(self) -> None:
        builder = _builder(filters=[{"views": "many"}, {"status": "open"}])
        assert builder.row_filter.clauses == ({"status": "open"},)

    def test_select_one_invalid_id_is_not_found(self) -> None:
        with pytest.raises(ResourceNotFoundException):
            _builder().select_one("not-a-uuid")

    def test_shape_trims_columns(self) -> None:
        builder = _builder(columns=["title"])
        assert builder.shape({"id": 1, "title": "a", "status": "b"}) == {"id": 1, "title": "a"}


class TestWrites:
    def test_injection_value_stays_a_bind_parameter(self) -> None:
        """A value with SQL metacharacters never alters statement structure."""
        payload = "'; DROP TABLE x; --"
        compiled = _compile(_builder(Action.CREATE).insert({"title": payload}))
        assert payload not in str(compiled)
        assert payload in compiled.params.values()

    def test_insert_sets_audit_columns(self) -> None:
        compiled = _compile(_builder(Action.CREATE).insert({"title": "hello"}))
        assert compiled.params["created_by"] == "u1"
        assert compiled.params["updated_by"] == "u1"
        assert "RETURNING" in str(compiled)

    def test_missing_required_field(self) -> None:
        with pytest.raises(ValidationException, match="'title' is required"):
            _builder(Action.CREATE).insert({"status": "open"})

    def test_null_required_field(self) -> None:
        with pytest.raises(ValidationException, match="required"):
            _builder(Action.CREATE).insert({"title": None})

    @pytest.mark.parametrize("key", ["id", "created_at", "updated_by"])
    def test_audit_columns_not_writable(self, key: str) -> None:
        with pytest.raises(ValidationException, match="managed by the server"):
            _builder(Action.CREATE).insert({"title": "a", key: "x"})

    def test_unknown_and_disallowed_fields_rejected(self) -> None:
        with pytest.raises(ValidationException, match="not writable"):
            _builder(Action.CREATE).insert({"title": "a", "nope": 1})
        with pytest.raises(ValidationException, match="not writable"):
            _builder(Action.CREATE, columns=["title"]).insert({"title": "a", "status": "x"})

    def test_empty_body_rejected(self) -> None:
        with pytest.raises(ValidationException, match="no fields"):
            _builder(Action.UPDATE).update(str(uuid.uuid4()), {})

    def test_create_fills_row_filter_columns(self) -> None:
        """Filter columns the body omits are taken from the first admitting rule."""
        values = _builder(Action.CREATE, filters=[{"status": "open"}]).prepare_insert_values(
            {"title": "a"}
        )
        assert values["status"] == "open"

    def test_create_outside_row_filter_forbidden(self) -> None:
        with pytest.raises(AuthorizationException):
            _builder(Action.CREATE, filters=[{"status": "open"}]).insert(
                {"title": "a", "status": "closed"}
            )

    def test_update_cannot_leave_row_filter(self) -> None:
        with pytest.raises(AuthorizationException):
            _builder(Action.UPDATE, filters=[{"status": "open"}]).update(
                str(uuid.uuid4()), {"status": "closed"}
            )

    def test_update_scoped_by_id_and_filter(self) -> None:
        item_id = uuid.uuid4()
        compiled = _compile(
            _builder(Action.UPDATE, filters=[{"status": "open"}]).update(str(item_id), {"title": "b"})
        )
        sql = str(compiled)
        assert sql.startswith('UPDATE "t_1"."data_posts"')
        assert "now()" in sql
        assert item_id in compiled.params.values()

    def test_ensure_admitted(self) -> None:
        builder = _builder(Action.UPDATE, filters=[{"status": "open"}])
        builder.ensure_admitted({"status": "open"})
        with pytest.raises(AuthorizationException):
            builder.ensure_admitted({"status": "closed"})


class TestSystemTables:
    def test_system_table_statements_are_tenant_scoped(self) -> None:
        """System tables carry tenant_id; it is injected on create and enforced on reads."""
        descriptor = system_descriptor("roles")
        builder = _builder(Action.CREATE, descriptor=descriptor)
        compiled = _compile(builder.insert({"name": "editor"}))
        assert compiled.params["tenant_id"] == "t1"
        rows, _ = _builder(descriptor=descriptor).select_list(ListParams.from_query({}, 25, 100))
        assert "t1" in _compile(rows).params.values()

    def test_tenant_id_not_writable(self) -> None:
        builder = _builder(Action.CREATE, descriptor=system_descriptor("roles"))
        with pytest.raises(ValidationException, match="managed by the server"):
            builder.insert({"name": "editor", "tenant_id": "other"})

    def test_unknown_system_name(self) -> None:
        assert system_descriptor("posts") is None
