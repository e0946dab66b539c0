"""Access-control value objects.

A resolved permission is the merge of every policy rule matching
(principal roles, table, action): the union of allowed columns and the
disjunction of row filters. These types carry that merge and the checks the
executor runs against it. They hold no I/O and are safe to share across tasks.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from basin.domain.enums import Action

WILDCARD = "*"


@dataclass(frozen=True)
class Principal:
    """Request-scoped caller: role identifiers plus tenant. Never persisted."""

    tenant_id: str
    role_ids: frozenset[str]
    user_id: str | None = None

    def __post_init__(self) -> None:
        if not self.tenant_id:
            raise ValueError("Principal tenant_id must be a non-empty string")
        if not isinstance(self.role_ids, frozenset):
            object.__setattr__(self, "role_ids", frozenset(self.role_ids))


@dataclass(frozen=True)
class AllowedColumns:
    """Column allow-list: either the wildcard or an ordered set of names.

    The wildcard is kept distinct from any enumeration so it also covers
    columns added after the rule was written.
    """

    names: tuple[str, ...] = ()
    wildcard: bool = False

    @classmethod
    def all(cls) -> "AllowedColumns":
        return cls(wildcard=True)

    @classmethod
    def of(cls, names: Iterable[str] | None) -> "AllowedColumns":
        """Build from a stored allowed_fields value. None, empty or '*' mean all columns."""
        if names is None:
            return cls.all()
        ordered: list[str] = []
        for name in names:
            if name == WILDCARD:
                return cls.all()
            if isinstance(name, str) and name and name not in ordered:
                ordered.append(name)
        if not ordered:
            return cls.all()
        return cls(names=tuple(ordered))

    def union(self, other: "AllowedColumns") -> "AllowedColumns":
        if self.wildcard or other.wildcard:
            return AllowedColumns.all()
        merged = list(self.names)
        merged.extend(n for n in other.names if n not in merged)
        return AllowedColumns(names=tuple(merged))

    def permits(self, column: str) -> bool:
        return self.wildcard or column in self.names

    def resolve(self, available: Sequence[str]) -> tuple[str, ...]:
        """Return the permitted subset of available, in table order for the wildcard."""
        if self.wildcard:
            return tuple(available)
        present = set(available)
        return tuple(n for n in self.names if n in present)

    def to_list(self) -> list[str]:
        return [WILDCARD] if self.wildcard else list(self.names)


@dataclass(frozen=True)
class RowFilter:
    """Disjunction of conjunctive equality clauses.

    Each clause maps column -> required value. An empty clause admits every
    row, so one empty clause makes the whole filter unrestricted. A filter
    with no clauses admits nothing.
    """

    clauses: tuple[dict[str, Any], ...] = field(default_factory=tuple)

    @classmethod
    def unrestricted(cls) -> "RowFilter":
        return cls(clauses=({},))

    @classmethod
    def from_rules(cls, filters: Iterable[Mapping[str, Any] | None]) -> "RowFilter":
        """Merge the field_filter of every matching rule (None counts as empty).

        A value that is not a mapping contributes no clause, so it admits no rows.
        """
        clauses = tuple(
            dict(f or {}) for f in filters if f is None or isinstance(f, Mapping)
        )
        if any(not c for c in clauses):
            return cls.unrestricted()
        return cls(clauses=clauses)

    @property
    def is_unrestricted(self) -> bool:
        return any(not c for c in self.clauses)

    @property
    def admits_nothing(self) -> bool:
        return not self.clauses

    @property
    def columns(self) -> frozenset[str]:
        return frozenset(k for c in self.clauses for k in c)

    def restrict_to(self, columns: Iterable[str]) -> tuple["RowFilter", list[str]]:
        """Drop clauses that reference columns outside columns.

        A clause on a missing column can never match, so dropping it keeps the
        filter closed. Returns the new filter and the unknown column names.
        """
        known = set(columns)
        kept: list[dict[str, Any]] = []
        unknown: list[str] = []
        for clause in self.clauses:
            missing = [k for k in clause if k not in known]
            if missing:
                unknown.extend(m for m in missing if m not in unknown)
                continue
            kept.append(clause)
        return RowFilter(clauses=tuple(kept)), unknown

    def matches(self, row: Mapping[str, Any]) -> bool:
        """True if the complete row satisfies at least one clause."""
        return any(
            all(k in row and row[k] == v for k, v in clause.items())
            for clause in self.clauses
        )

    def admitting_clause(self, values: Mapping[str, Any]) -> dict[str, Any] | None:
        """First clause compatible with partial values (present keys equal), or None."""
        for clause in self.clauses:
            if all(k not in values or values[k] == v for k, v in clause.items()):
                return clause
        return None

    def to_list(self) -> list[dict[str, Any]]:
        return [dict(c) for c in self.clauses]


@dataclass(frozen=True)
class EffectivePermission:
    """Merged grant for one (principal, table, action)."""

    table: str
    action: Action
    columns: AllowedColumns
    row_filter: RowFilter

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "action": self.action.value,
            "allowed_fields": self.columns.to_list(),
            "row_filter": self.row_filter.to_list(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EffectivePermission":
        return cls(
            table=data["table"],
            action=Action(data["action"]),
            columns=AllowedColumns.of(data.get("allowed_fields")),
            row_filter=RowFilter(
                clauses=tuple(dict(c) for c in data.get("row_filter") or ())
            ),
        )


@dataclass(frozen=True)
class Denied:
    """No rule grants the action. Returned, not raised."""

    table: str
    action: Action
    reason: str = "no matching permission rule"
