"""Column type unification and record schema merging.

List elements and repeated records each infer their own schema; this
module combines them into one schema the warehouse can evolve additively.
Types never union: elements and same-named fields must agree exactly.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from core.errors import MixedTypeArrayError, SchemaConflictError
from core.schema_types import ColumnSchema, ColumnType


def unify_column_types(column_types: Iterable[ColumnType], field_name: str) -> ColumnType:
    """Reduce list element types to the single column type of the list.

    Args:
        column_types: Types inferred for each list element.
        field_name: List field name for error context.

    Returns:
        The unified element type.

    Raises:
        MixedTypeArrayError: If elements do not share one type.
        ValueError: If no element types are provided.
    """
    distinct_types = set(column_types)
    if not distinct_types:
        raise ValueError(f"Cannot unify an empty type list for field '{field_name}'.")
    if len(distinct_types) > 1:
        raise MixedTypeArrayError(
            f"List field '{field_name}' mixes element types "
            f"{', '.join(sorted(distinct_types))}; lists must hold one type.",
            field_name,
        )
    return distinct_types.pop()


def merge_field_lists(
    field_lists: Iterable[Iterable[ColumnSchema]],
    field_name: str,
) -> tuple[ColumnSchema, ...]:
    """Merge record field lists into one de-duplicated union.

    Fields keep the position of their first occurrence. A name seen again
    must be compatible with its first occurrence: same mode and the same
    type; RECORD fields of the same name merge their children.

    Args:
        field_lists: Field lists in input order.
        field_name: Parent field name for error context.

    Returns:
        Merged fields in first-seen order.

    Raises:
        SchemaConflictError: If one name carries incompatible definitions.
    """
    merged: dict[str, ColumnSchema] = {}
    for fields in field_lists:
        for column in fields:
            existing = merged.get(column.name)
            if existing is None:
                merged[column.name] = column
            else:
                merged[column.name] = merge_columns(existing, column, field_name)
    return tuple(merged.values())


def merge_columns(existing: ColumnSchema, incoming: ColumnSchema, field_name: str) -> ColumnSchema:
    """Merge two definitions of the same column.

    Args:
        existing: First-seen definition.
        incoming: Later definition with the same name.
        field_name: Parent field name for error context.

    Returns:
        Combined column definition.

    Raises:
        SchemaConflictError: If mode or type are incompatible.
    """
    path = f"{field_name}.{existing.name}" if field_name else existing.name
    if existing.mode != incoming.mode:
        raise SchemaConflictError(
            f"Field '{path}' appears as both {existing.mode} and {incoming.mode}.",
            path,
        )
    if existing.type != incoming.type:
        raise SchemaConflictError(
            f"Field '{path}' appears as both {existing.type} and {incoming.type}.",
            path,
        )
    if existing.type != "RECORD":
        return existing
    fields = merge_field_lists((existing.fields, incoming.fields), path)
    return replace(existing, fields=fields)
