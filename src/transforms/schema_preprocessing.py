"""Schema-inferring value preprocessing.

This module walks a decoded item and returns both a cleaned value tree
and the column schema describing it. Nulls, empty strings, and the
``VOIDED`` sentinel are omitted; legacy and ISO date strings become
timestamps; lists and maps recurse with type unification and field
merging. The walk is pure: no I/O and no state beyond one call.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Mapping

from core.constants import (
    DEFAULT_LEGACY_TIMEZONE,
    DEFAULT_MAX_NESTING_DEPTH,
    VOIDED_SENTINEL,
)
from core.errors import NestingDepthError, UnsupportedTypeError
from core.schema_types import ColumnSchema, record_schema
from transforms.legacy_dates import format_utc_iso, is_iso_utc_date, try_parse_legacy_date
from transforms.schema_merge import merge_field_lists, unify_column_types

_INVALID_FIELD_CHARACTERS = re.compile(r"[^A-Za-z0-9_]")


@dataclass(frozen=True)
class PreprocessOptions:
    """Value cleaning options.

    Attributes:
        keep_empty_strings: Emit empty strings as STRING values instead of omitting them.
        legacy_timezone: IANA zone legacy date strings were recorded in.
        max_depth: Deepest supported nesting level below the root value.
    """

    keep_empty_strings: bool = False
    legacy_timezone: str = DEFAULT_LEGACY_TIMEZONE
    max_depth: int = DEFAULT_MAX_NESTING_DEPTH


@dataclass(frozen=True)
class PreprocessResult:
    """Cleaned value paired with its inferred column."""

    value: Any
    schema: ColumnSchema


def sanitize_field_name(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9_]`` with an underscore."""
    return _INVALID_FIELD_CHARACTERS.sub("_", name)


def preprocess(
    field_name: str,
    value: Any,
    options: PreprocessOptions | None = None,
) -> PreprocessResult | None:
    """Clean a decoded value and infer its column schema.

    Args:
        field_name: Column name for the value; sanitized before use.
        value: Decoded item value (scalar, list, set, or mapping).
        options: Cleaning options; defaults drop empty strings.

    Returns:
        Cleaned value and schema, or None when the value is omitted.

    Raises:
        UnsupportedTypeError: For binary or otherwise unrepresentable values.
        MixedTypeArrayError: For lists whose elements do not share one type.
        SchemaConflictError: For list records reusing a field name incompatibly.
        NestingDepthError: For values nested deeper than ``options.max_depth``.
    """
    return _preprocess(sanitize_field_name(field_name), value, options or PreprocessOptions(), 0)


def _preprocess(
    name: str,
    value: Any,
    options: PreprocessOptions,
    depth: int,
) -> PreprocessResult | None:
    if depth > options.max_depth:
        raise NestingDepthError(
            f"Field '{name}' nests deeper than {options.max_depth} levels.",
            name,
        )
    if value is None:
        return None
    if isinstance(value, bool):
        return PreprocessResult(value, ColumnSchema(name, "BOOLEAN"))
    if isinstance(value, (Decimal, int, float)):
        return _preprocess_number(name, value)
    if isinstance(value, str):
        return _preprocess_string(name, value, options)
    if isinstance(value, (list, tuple)):
        return _preprocess_list(name, value, options, depth)
    if isinstance(value, (set, frozenset)):
        return _preprocess_list(name, _ordered_set_elements(value), options, depth)
    if isinstance(value, Mapping):
        return _preprocess_record(name, value, options, depth)
    raise UnsupportedTypeError(
        f"Cannot generate a column for a '{type(value).__name__}' value (field: {name}).",
        name,
    )


def _preprocess_number(name: str, value: Decimal | int | float) -> PreprocessResult:
    finite = value.is_finite() if isinstance(value, Decimal) else math.isfinite(value)
    if not finite:
        raise UnsupportedTypeError(
            f"Cannot generate a column for non-finite number {value} (field: {name}).",
            name,
        )
    return PreprocessResult(value, ColumnSchema(name, "NUMERIC"))


def _preprocess_string(name: str, value: str, options: PreprocessOptions) -> PreprocessResult | None:
    if value == "":
        if options.keep_empty_strings:
            return PreprocessResult(value, ColumnSchema(name, "STRING"))
        return None
    if value == VOIDED_SENTINEL:
        return None
    legacy_date = try_parse_legacy_date(value, options.legacy_timezone)
    if legacy_date is not None:
        return PreprocessResult(format_utc_iso(legacy_date), ColumnSchema(name, "TIMESTAMP"))
    trimmed = value.strip()
    if is_iso_utc_date(trimmed):
        return PreprocessResult(trimmed, ColumnSchema(name, "TIMESTAMP"))
    return PreprocessResult(value, ColumnSchema(name, "STRING"))


def _preprocess_list(
    name: str,
    elements: Iterable[Any],
    options: PreprocessOptions,
    depth: int,
) -> PreprocessResult | None:
    results = [
        result
        for result in (_preprocess(name, element, options, depth + 1) for element in elements)
        if result is not None
    ]
    if not results:
        return None
    if any(result.schema.mode == "REPEATED" for result in results):
        raise UnsupportedTypeError(
            f"List field '{name}' contains nested lists, which columns cannot represent.",
            name,
        )
    column_type = unify_column_types((result.schema.type for result in results), name)
    fields: tuple[ColumnSchema, ...] = ()
    if column_type == "RECORD":
        fields = merge_field_lists((result.schema.fields for result in results), name)
    schema = ColumnSchema(name, column_type, mode="REPEATED", fields=fields)
    return PreprocessResult([result.value for result in results], schema)


def _preprocess_record(
    name: str,
    mapping: Mapping[Any, Any],
    options: PreprocessOptions,
    depth: int,
) -> PreprocessResult | None:
    cleaned: dict[str, Any] = {}
    fields: list[ColumnSchema] = []
    for key, child_value in mapping.items():
        child_name = sanitize_field_name(str(key))
        if child_name in cleaned:
            continue
        result = _preprocess(child_name, child_value, options, depth + 1)
        if result is None:
            continue
        cleaned[child_name] = result.value
        fields.append(result.schema)
    if not fields:
        return None
    return PreprocessResult(cleaned, record_schema(name, tuple(fields)))


def _ordered_set_elements(values: set[Any] | frozenset[Any]) -> list[Any]:
    # string and number sets sort naturally; anything else keeps set order
    try:
        return sorted(values)
    except TypeError:
        return list(values)
