"""Shape checks for catalog attributes that drive DDL or authorization.

Field flags, sort order and validation_rules become physical column options or
per-value checks; permission field_filter and allowed_fields become SQL
predicates and column lists. They are normalized with pydantic before they are
stored, so the catalog row, the physical schema and later reads agree.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    FiniteFloat,
    NonNegativeInt,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
    model_validator,
)

from basin.domain.exceptions import ValidationException
from basin.infrastructure.persistence.dynamic.identifiers import validate_sql_identifier

_FLAG: TypeAdapter[bool] = TypeAdapter(bool)
_ORDER: TypeAdapter[int] = TypeAdapter(int)
_FILTER: TypeAdapter[dict[str, StrictStr | StrictBool | StrictInt | StrictFloat | None]] = (
    TypeAdapter(dict[str, StrictStr | StrictBool | StrictInt | StrictFloat | None])
)
_COLUMNS: TypeAdapter[list[StrictStr]] = TypeAdapter(list[StrictStr])

FIELD_FLAGS = ("is_required", "is_unique")


class ValidationRules(BaseModel):
    """Per-value rules of a field: text length bounds, numeric bounds."""

    model_config = ConfigDict(extra="forbid")

    min_length: NonNegativeInt | None = None
    max_length: NonNegativeInt | None = None
    min: int | FiniteFloat | None = None
    max: int | FiniteFloat | None = None

    @model_validator(mode="after")
    def _bounds_ordered(self) -> ValidationRules:
        if (
            self.min_length is not None
            and self.max_length is not None
            and self.min_length > self.max_length
        ):
            raise ValueError("min_length must not exceed max_length")
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("min must not exceed max")
        return self


def coerce_flag(value: Any, name: str) -> bool:
    """Boolean field attribute; None means False, 'false'/'0' are False."""
    if value is None:
        return False
    try:
        return _FLAG.validate_python(value)
    except ValidationError:
        raise ValidationException(f"'{name}' must be a boolean", field=name) from None


def coerce_sort_order(value: Any) -> int:
    if value is None or value == "":
        return 0
    try:
        return _ORDER.validate_python(value)
    except ValidationError:
        raise ValidationException("'sort_order' must be an integer", field="sort_order") from None


def parse_validation_rules(value: Any) -> dict[str, Any] | None:
    """Validated rules with unset keys dropped; None when there are none.

    Raises:
        ValidationException: Unknown key, non-numeric bound, or min above max.
    """
    if value is None:
        return None
    if isinstance(value, Mapping):
        value = dict(value)
    try:
        rules = ValidationRules.model_validate(value)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'validation_rules'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationException(
            f"Invalid validation_rules ({problems})", field="validation_rules"
        ) from None
    return rules.model_dump(exclude_none=True) or None


def parse_field_filter(value: Any) -> dict[str, Any] | None:
    """A row filter: flat object of column name -> scalar value (None means unrestricted)."""
    if value is None:
        return None
    try:
        parsed = _FILTER.validate_python(value)
    except ValidationError:
        raise ValidationException(
            "'field_filter' must be an object mapping column names to scalar values",
            field="field_filter",
        ) from None
    for column in parsed:
        try:
            validate_sql_identifier(column, "field_filter column")
        except ValueError as e:
            raise ValidationException(str(e), field="field_filter") from None
    return parsed


def parse_allowed_fields(value: Any) -> list[str] | None:
    """A column allow-list: list of column names or ['*'] (None means every column)."""
    if value is None:
        return None
    try:
        parsed = _COLUMNS.validate_python(value)
    except ValidationError:
        raise ValidationException(
            "'allowed_fields' must be a list of column names", field="allowed_fields"
        ) from None
    for column in parsed:
        if column == "*":
            continue
        try:
            validate_sql_identifier(column, "allowed_fields column")
        except ValueError as e:
            raise ValidationException(str(e), field="allowed_fields") from None
    return parsed


def normalize_catalog_body(table: str, body: Mapping[str, Any]) -> dict[str, Any]:
    """Return body with the checked attributes of a fields or permissions row normalized.

    Only keys present in body are touched, so partial updates stay partial.
    Other tables are returned unchanged.
    """
    result = dict(body)
    if table == "fields":
        for flag in FIELD_FLAGS:
            if flag in result:
                result[flag] = coerce_flag(result[flag], flag)
        if "sort_order" in result:
            result["sort_order"] = coerce_sort_order(result["sort_order"])
        if "validation_rules" in result:
            result["validation_rules"] = parse_validation_rules(result["validation_rules"])
    elif table == "permissions":
        if "field_filter" in result:
            result["field_filter"] = parse_field_filter(result["field_filter"])
        if "allowed_fields" in result:
            result["allowed_fields"] = parse_allowed_fields(result["allowed_fields"])
    return result
