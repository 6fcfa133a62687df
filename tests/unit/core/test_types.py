"""Unit tests for shared typed models."""

from __future__ import annotations

import pytest

from core.schema_types import ColumnSchema, record_schema
from core.types import ChangeEnvelope, envelope_schema


def test_change_envelope_payload_layout() -> None:
    """Envelopes should serialize into Keys, Metadata, and NewImage."""
    envelope = ChangeEnvelope(
        pk="patient#1",
        sk="appointment#2",
        timestamp="2022-05-10T18:00:00.000Z",
        new_image={"pk": "patient#1"},
    )

    payload = envelope.to_payload()

    assert payload["Keys"] == {"pk": "patient#1", "sk": "appointment#2"}
    assert payload["Metadata"] == {
        "deleted": False,
        "eventKind": "INSERT",
        "processed": 0,
        "timestamp": "2022-05-10T18:00:00.000Z",
    }
    assert payload["NewImage"] == {"pk": "patient#1"}


def test_envelope_schema_renames_image_record() -> None:
    """The image record should become the NewImage column."""
    image = record_schema("", (ColumnSchema("pk", "STRING"),))

    columns = envelope_schema(image)

    assert tuple(column.name for column in columns) == ("Keys", "Metadata", "NewImage")
    assert columns[2].field_names() == ("pk",)


def test_column_schema_requires_fields_only_for_records() -> None:
    """RECORD columns need fields and scalar columns must not have them."""
    with pytest.raises(ValueError):
        ColumnSchema("address", "RECORD")
    with pytest.raises(ValueError):
        ColumnSchema("name", "STRING", fields=(ColumnSchema("x", "STRING"),))


def test_column_schema_api_repr_round_trips_nested_fields() -> None:
    """Nested columns should survive the REST representation."""
    column = record_schema("address", (ColumnSchema("lines", "STRING", mode="REPEATED"),))

    assert ColumnSchema.from_api_repr(column.to_api_repr()) == column
