"""Value coercion and validation per logical field type.

Caller values (JSON body or query string) are converted to the Python type the
driver binds for the column, then checked against the field's validation_rules.
Error messages name the field and the expected type, never the value.
"""

import json
import logging
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import AwareDatetime, TypeAdapter, ValidationError

from basin.domain.enums import FieldType
from basin.domain.exceptions import ValidationException
from basin.infrastructure.persistence.dynamic.catalog_values import parse_validation_rules
from basin.infrastructure.persistence.dynamic.descriptors import ColumnDescriptor
from basin.infrastructure.persistence.dynamic.types import (
    STRING_MAX_LENGTH,
    TEXT_ARRAY,
    canonical_type,
)

logger = logging.getLogger(__name__)

_ADAPTERS: dict[FieldType, TypeAdapter] = {
    FieldType.TEXT: TypeAdapter(str),
    FieldType.STRING: TypeAdapter(str),
    FieldType.INTEGER: TypeAdapter(int),
    FieldType.DECIMAL: TypeAdapter(Decimal),
    FieldType.BOOLEAN: TypeAdapter(bool),
    FieldType.DATETIME: TypeAdapter(AwareDatetime),
    FieldType.DATE: TypeAdapter(date),
    FieldType.UUID: TypeAdapter(UUID),
    FieldType.RELATION: TypeAdapter(UUID),
}
_TEXT_ARRAY_ADAPTER: TypeAdapter = TypeAdapter(list[str])

_NUMERIC = (FieldType.INTEGER, FieldType.DECIMAL)
_TEXTUAL = (FieldType.TEXT, FieldType.STRING)


def coerce_value(column: ColumnDescriptor, value: Any, *, from_query: bool = False) -> Any:
    """Convert value to the bind type of column and apply its validation rules.

    Args:
        column: Target column.
        value: Raw value from the request.
        from_query: True for query-string values (JSON columns then parse the text as JSON).

    Raises:
        ValidationException: If the value cannot be converted or breaks a rule.
    """
    if value is None:
        return None
    if column.type == TEXT_ARRAY:
        if from_query and isinstance(value, str):
            value = [v for v in value.split(",") if v]
        return _validate(_TEXT_ARRAY_ADAPTER, value, column, "a list of strings")

    field_type = canonical_type(column.type)
    if field_type is FieldType.JSON:
        if from_query and isinstance(value, str):
            try:
                return json.loads(value)
            except ValueError:
                return value
        return value

    if isinstance(value, (dict, list)):
        raise ValidationException(
            f"Invalid value for field '{column.name}': expected {field_type.value}",
            field=column.name,
        )
    if field_type in _NUMERIC and isinstance(value, bool):
        raise ValidationException(
            f"Invalid value for field '{column.name}': expected {field_type.value}",
            field=column.name,
        )
    if field_type in _TEXTUAL and not isinstance(value, str):
        if from_query or not isinstance(value, (int, float, Decimal)):
            raise ValidationException(
                f"Invalid value for field '{column.name}': expected {field_type.value}",
                field=column.name,
            )
        value = str(value)

    result = _validate(_ADAPTERS[field_type], value, column, field_type.value)
    _check_rules(column, field_type, result)
    return result


def _validate(adapter: TypeAdapter, value: Any, column: ColumnDescriptor, expected: str) -> Any:
    try:
        return adapter.validate_python(value)
    except ValidationError:
        raise ValidationException(
            f"Invalid value for field '{column.name}': expected {expected}",
            field=column.name,
        ) from None


def _stored_rules(column: ColumnDescriptor) -> dict[str, Any]:
    """Validation rules of column; a malformed stored value is logged and not enforced."""
    try:
        return parse_validation_rules(column.validation_rules) or {}
    except ValidationException:
        logger.warning("Ignoring malformed validation_rules on field %s", column.name)
        return {}


def _check_rules(column: ColumnDescriptor, field_type: FieldType, value: Any) -> None:
    rules = _stored_rules(column)
    if field_type in _TEXTUAL:
        max_length = rules.get("max_length")
        if field_type is FieldType.STRING:
            max_length = min(max_length or STRING_MAX_LENGTH, STRING_MAX_LENGTH)
        min_length = rules.get("min_length")
        if min_length is not None and len(value) < int(min_length):
            raise ValidationException(
                f"Field '{column.name}' must be at least {min_length} characters",
                field=column.name,
            )
        if max_length is not None and len(value) > int(max_length):
            raise ValidationException(
                f"Field '{column.name}' must be at most {max_length} characters",
                field=column.name,
            )
    elif field_type in _NUMERIC:
        minimum = rules.get("min")
        maximum = rules.get("max")
        if minimum is not None and value < Decimal(str(minimum)):
            raise ValidationException(
                f"Field '{column.name}' must be at least {minimum}", field=column.name
            )
        if maximum is not None and value > Decimal(str(maximum)):
            raise ValidationException(
                f"Field '{column.name}' must be at most {maximum}", field=column.name
            )
