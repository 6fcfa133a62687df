"""Column schema models for warehouse tables.

This module defines the recursive column schema produced by value
preprocessing and consumed by warehouse load streams.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Literal

ColumnType = Literal["NUMERIC", "INTEGER", "BOOLEAN", "STRING", "TIMESTAMP", "RECORD"]
ColumnMode = Literal["NULLABLE", "REPEATED", "REQUIRED"]


@dataclass(frozen=True)
class ColumnSchema:
    """One warehouse column definition.

    Attributes:
        name: Sanitized column name.
        type: Column type.
        mode: Column mode; REPEATED for list-derived columns.
        fields: Ordered child columns, only populated for RECORD columns.
    """

    name: str
    type: ColumnType
    mode: ColumnMode = "NULLABLE"
    fields: tuple["ColumnSchema", ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if (self.type == "RECORD") != bool(self.fields):
            raise ValueError(
                f"Column '{self.name}' of type {self.type} must have fields "
                "if and only if it is a RECORD."
            )

    def renamed(self, name: str) -> "ColumnSchema":
        """Return a copy with a different column name."""
        return replace(self, name=name)

    def field_names(self) -> tuple[str, ...]:
        """Return child column names in order."""
        return tuple(child.name for child in self.fields)

    def to_api_repr(self) -> dict[str, object]:
        """Render the warehouse REST representation of this column."""
        payload: dict[str, object] = {
            "name": self.name,
            "type": self.type,
            "mode": self.mode,
        }
        if self.fields:
            payload["fields"] = [child.to_api_repr() for child in self.fields]
        return payload

    @classmethod
    def from_api_repr(cls, payload: dict[str, Any]) -> "ColumnSchema":
        """Parse a column from its warehouse REST representation."""
        return cls(
            name=str(payload["name"]),
            type=payload["type"],
            mode=payload.get("mode", "NULLABLE"),
            fields=tuple(cls.from_api_repr(child) for child in payload.get("fields") or ()),
        )


def record_schema(name: str, fields: tuple[ColumnSchema, ...], mode: ColumnMode = "NULLABLE") -> ColumnSchema:
    """Build a RECORD column from child columns."""
    return ColumnSchema(name=name, type="RECORD", mode=mode, fields=fields)
