"""Statement builder for permission-scoped item queries.

Given a table descriptor, the caller's effective permission and request input,
builds SQLAlchemy Core statements for list, get, create, update and delete.
Identifiers are always quoted by the compiler (forced quoting on data tables);
every value is a bound parameter.

Read-side input that names a column the caller may not read is ignored.
Write-side input that names such a column is rejected.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sqlalchemy import Delete, Insert, Select, Update, and_, delete, false, func, insert, or_, select, true, update
from sqlalchemy.sql.elements import ColumnElement

from basin.core.constants import AUDIT_COLUMNS, RESERVED_QUERY_PARAMS
from basin.domain.exceptions import (
    AuthorizationException,
    ResourceNotFoundException,
    ValidationException,
)
from basin.domain.value_objects.access import EffectivePermission, Principal, RowFilter
from basin.infrastructure.persistence.dynamic.descriptors import TableDescriptor
from basin.infrastructure.persistence.dynamic.values import coerce_value

logger = logging.getLogger(__name__)

DEFAULT_SORT_COLUMN = "created_at"


class FilterOperator(str, Enum):
    """Comparison operators accepted as a field__op suffix."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"


@dataclass(frozen=True)
class FilterCondition:
    """One caller filter: column, operator, raw value."""

    column: str
    operator: FilterOperator
    value: Any

    @classmethod
    def parse(cls, key: str, value: Any) -> FilterCondition:
        """Parse 'status' or 'price__gte' into a condition.

        A suffix that is not a known operator is left as part of the column
        name (and will then match no column).
        """
        name, sep, suffix = key.rpartition("__")
        if sep:
            try:
                return cls(column=name, operator=FilterOperator(suffix.lower()), value=value)
            except ValueError:
                pass
        return cls(column=key, operator=FilterOperator.EQ, value=value)

    def to_clause(self, column: ColumnElement, bound: Any) -> ColumnElement:
        match self.operator:
            case FilterOperator.NE:
                return column != bound
            case FilterOperator.GT:
                return column > bound
            case FilterOperator.GTE:
                return column >= bound
            case FilterOperator.LT:
                return column < bound
            case FilterOperator.LTE:
                return column <= bound
            case _:
                return column == bound


@dataclass(frozen=True)
class SortField:
    """Sort column and direction. '-field' means descending."""

    column: str
    descending: bool = False

    @classmethod
    def parse(cls, sort: str | None, order: str | None = None) -> SortField | None:
        if not sort:
            return None
        descending = sort.startswith("-")
        column = sort.lstrip("-+")
        if order:
            descending = order.strip().lower() == "desc"
        return cls(column=column, descending=descending)


@dataclass(frozen=True)
class ListParams:
    """Parsed list query: filters, sort and page window."""

    filters: tuple[FilterCondition, ...] = field(default_factory=tuple)
    sort: SortField | None = None
    limit: int = 25
    offset: int = 0

    @classmethod
    def from_query(
        cls,
        params: Mapping[str, Any],
        default_limit: int,
        max_limit: int,
    ) -> ListParams:
        """Parse query parameters (limit/offset or per_page/page, sort/order, filters).

        Raises:
            ValidationException: If a paging parameter is not a non-negative integer.
        """
        limit = _int_param(params, "limit") or _int_param(params, "per_page") or default_limit
        limit = max(1, min(limit, max_limit))
        offset = _int_param(params, "offset")
        if offset is None:
            page = _int_param(params, "page")
            offset = (page - 1) * limit if page and page > 1 else 0
        filters = tuple(
            FilterCondition.parse(k, v)
            for k, v in params.items()
            if k not in RESERVED_QUERY_PARAMS
        )
        return cls(
            filters=filters,
            sort=SortField.parse(params.get("sort"), params.get("order")),
            limit=limit,
            offset=offset,
        )


def _int_param(params: Mapping[str, Any], name: str) -> int | None:
    raw = params.get(name)
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationException(f"'{name}' must be an integer", field=name) from None
    if value < 0:
        raise ValidationException(f"'{name}' must not be negative", field=name)
    return value


class QueryBuilder:
    """Builds statements for one table under one effective permission.

    The permission's row filter is restricted to columns the table has (a
    clause on a missing column can never match) and its literals are coerced
    to the column types so they bind and compare correctly.
    """

    def __init__(
        self,
        descriptor: TableDescriptor,
        permission: EffectivePermission,
        principal: Principal,
    ) -> None:
        self.descriptor = descriptor
        self.permission = permission
        self.principal = principal
        row_filter, unknown = permission.row_filter.restrict_to(descriptor.column_names)
        if unknown:
            logger.warning(
                "Ignoring row filter clauses on unknown columns: table=%s action=%s tenant_id=%s columns=%s",
                descriptor.name,
                permission.action.value,
                principal.tenant_id,
                unknown,
            )
        self.row_filter: RowFilter = self._coerce_row_filter(row_filter)

    @property
    def table(self):
        return self.descriptor.table

    def _coerce_row_filter(self, row_filter: RowFilter) -> RowFilter:
        """Coerce filter literals to column types; drop clauses whose literal cannot fit."""
        if row_filter.is_unrestricted:
            return row_filter
        kept: list[dict[str, Any]] = []
        for clause in row_filter.clauses:
            try:
                kept.append(
                    {k: coerce_value(self.descriptor.column(k), v) for k, v in clause.items()}
                )
            except ValidationException:
                logger.warning(
                    "Ignoring row filter clause whose literal does not fit its column: table=%s columns=%s",
                    self.descriptor.name,
                    sorted(clause),
                )
        return RowFilter(clauses=tuple(kept))

    # ---- Scope ----

    def readable_columns(self) -> tuple[str, ...]:
        """Columns returned to the caller. Enumerated grants always include id."""
        columns = self.permission.columns
        names = columns.resolve(self.descriptor.column_names)
        if not columns.wildcard and "id" not in names:
            names = ("id", *names)
        return names

    def row_filter_clause(self) -> ColumnElement:
        """OR of per-rule AND clauses; true() when unrestricted, false() when nothing matches."""
        if self.row_filter.is_unrestricted:
            return true()
        if self.row_filter.admits_nothing:
            return false()
        return or_(
            *(
                and_(*(self.descriptor.sql_column(k) == v for k, v in clause.items()))
                for clause in self.row_filter.clauses
            )
        )

    def scope(self) -> list[ColumnElement]:
        """Tenant and row-filter predicates applied to every statement."""
        clauses: list[ColumnElement] = []
        if self.descriptor.tenant_column:
            clauses.append(
                self.descriptor.sql_column(self.descriptor.tenant_column)
                == self.principal.tenant_id
            )
        clauses.append(self.row_filter_clause())
        return clauses

    def _id_clause(self, item_id: str) -> ColumnElement:
        column = self.descriptor.column("id")
        try:
            bound = coerce_value(column, item_id)
        except ValidationException:
            raise ResourceNotFoundException(self.descriptor.name, item_id) from None
        return self.descriptor.sql_column("id") == bound

    # ---- Reads ----

    def select_list(self, params: ListParams) -> tuple[Select, Select]:
        """Return (page statement, total count statement)."""
        readable = self.readable_columns()
        where = self.scope()
        for condition in params.filters:
            if condition.column not in readable:
                continue
            bound = coerce_value(
                self.descriptor.column(condition.column), condition.value, from_query=True
            )
            where.append(condition.to_clause(self.descriptor.sql_column(condition.column), bound))

        sort = params.sort
        if sort is None or sort.column not in readable:
            sort = SortField(DEFAULT_SORT_COLUMN, descending=True)
        sort_column = self.descriptor.sql_column(sort.column)
        id_column = self.descriptor.sql_column("id")

        rows = (
            select(*(self.descriptor.sql_column(c) for c in readable))
            .where(*where)
            .order_by(
                sort_column.desc() if sort.descending else sort_column.asc(),
                id_column.desc() if sort.descending else id_column.asc(),
            )
            .limit(params.limit)
            .offset(params.offset)
        )
        total = select(func.count()).select_from(self.table).where(*where)
        return rows, total

    def select_one(self, item_id: str) -> Select:
        readable = self.readable_columns()
        return select(*(self.descriptor.sql_column(c) for c in readable)).where(
            self._id_clause(item_id), *self.scope()
        )

    # ---- Writes ----

    def validate_body(self, body: Mapping[str, Any]) -> dict[str, Any]:
        """Check write keys against the allow-list and coerce values. Unknown keys are rejected."""
        if not isinstance(body, Mapping):
            raise ValidationException("Request body must be a JSON object")
        if not body:
            raise ValidationException("Request body has no fields to write")
        values: dict[str, Any] = {}
        for key, raw in body.items():
            if key in AUDIT_COLUMNS or key == self.descriptor.tenant_column:
                raise ValidationException(f"Field '{key}' is managed by the server", field=key)
            if not self.descriptor.has_column(key) or not self.permission.columns.permits(key):
                raise ValidationException(f"Field '{key}' is not writable", field=key)
            column = self.descriptor.column(key)
            if column.server_managed:
                raise ValidationException(f"Field '{key}' is managed by the server", field=key)
            values[key] = coerce_value(column, raw)
            if values[key] is None and column.required:
                raise ValidationException(f"Field '{key}' is required", field=key)
        return values

    def _forbidden(self) -> AuthorizationException:
        return AuthorizationException(
            resource=self.descriptor.name, action=self.permission.action.value
        )

    def prepare_insert_values(
        self, body: Mapping[str, Any], preset: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        """Validate, fill row-filter columns, and check required fields for a create."""
        values = self.validate_body(body)
        for key, value in (preset or {}).items():
            values[key] = coerce_value(self.descriptor.column(key), value)
        clause = self.row_filter.admitting_clause(values)
        if clause is None:
            raise self._forbidden()
        for key, literal in clause.items():
            values.setdefault(key, literal)
        for column in self.descriptor.columns:
            if column.server_managed or not column.required or column.has_default:
                continue
            if values.get(column.name) is None:
                raise ValidationException(f"Field '{column.name}' is required", field=column.name)
        return values

    def insert(
        self, body: Mapping[str, Any], preset: Mapping[str, Any] | None = None
    ) -> Insert:
        """INSERT ... RETURNING every column. preset holds server-chosen values (e.g. a parent id)."""
        values = self.prepare_insert_values(body, preset)
        if self.descriptor.tenant_column:
            values[self.descriptor.tenant_column] = self.principal.tenant_id
        values["created_by"] = self.principal.user_id
        values["updated_by"] = self.principal.user_id
        return insert(self.table).values(**values).returning(*self.table.c)

    def update(self, item_id: str, body: Mapping[str, Any]) -> Update:
        values = self.validate_body(body)
        if self.row_filter.admitting_clause(values) is None:
            raise self._forbidden()
        values["updated_at"] = func.now()
        values["updated_by"] = self.principal.user_id
        return (
            update(self.table)
            .where(self._id_clause(item_id), *self.scope())
            .values(**values)
            .returning(*self.table.c)
        )

    def delete(self, item_id: str) -> Delete:
        return (
            delete(self.table)
            .where(self._id_clause(item_id), *self.scope())
            .returning(*self.table.c)
        )

    # ---- Results ----

    def ensure_admitted(self, row: Mapping[str, Any]) -> None:
        """Raise if a written row is outside every rule's row filter."""
        if not self.row_filter.matches(row):
            raise self._forbidden()

    def shape(self, row: Mapping[str, Any]) -> dict[str, Any]:
        """Restrict a full row to the columns the caller may see."""
        return {c: row[c] for c in self.readable_columns() if c in row}
