"""Shared typed models.

This module defines immutable data models used by the ingest, transform,
and store layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from core.constants import (
    DEFAULT_EVENT_KIND,
    DEFAULT_EXCLUDED_TABLES,
    DEFAULT_LEGACY_TIMEZONE,
    DEFAULT_LOAD_FAILURE_POLICY,
)
from core.schema_types import ColumnSchema, record_schema

EventKind = Literal["INSERT", "MODIFY", "REMOVE"]
LoadFailurePolicy = Literal["continue", "abort"]


@dataclass(frozen=True)
class MigrationOptions:
    """Migration run options.

    Attributes:
        source_uri: Export data folder, ``s3://bucket/prefix`` or local directory.
        dataset: Destination warehouse dataset.
        include_tables: When set, only these tables are loaded.
        exclude_tables: Tables never loaded.
        batch_size: Shards per batch window; None means one window for the run.
        timestamp_override: Optional fixed envelope timestamp (ISO-8601).
        keep_empty_strings: Keep empty strings as STRING values instead of omitting.
        legacy_timezone: IANA zone used to interpret legacy date strings.
        on_load_failure: Policy applied when a window settles with failed loads.
        output_dir: Optional local directory used instead of the warehouse.
    """

    source_uri: str
    dataset: str
    include_tables: tuple[str, ...] = ()
    exclude_tables: tuple[str, ...] = DEFAULT_EXCLUDED_TABLES
    batch_size: int | None = None
    timestamp_override: str | None = None
    keep_empty_strings: bool = False
    legacy_timezone: str = DEFAULT_LEGACY_TIMEZONE
    on_load_failure: LoadFailurePolicy = DEFAULT_LOAD_FAILURE_POLICY
    output_dir: str | None = None


@dataclass(frozen=True)
class ChangeEnvelope:
    """Normalized change event written to a destination table.

    Attributes:
        pk: Partition key of the source item.
        sk: Sort key of the source item.
        timestamp: UTC ISO-8601 event timestamp.
        new_image: Cleaned item image.
        event_kind: Change kind; exports are always inserts.
        deleted: Soft-delete flag.
        processed: Downstream processing marker.
    """

    pk: str
    sk: str
    timestamp: str
    new_image: dict[str, Any]
    event_kind: EventKind = DEFAULT_EVENT_KIND
    deleted: bool = False
    processed: int = 0

    def to_payload(self) -> dict[str, Any]:
        """Serialize the envelope into its warehouse row layout."""
        return {
            "Keys": {"pk": self.pk, "sk": self.sk},
            "Metadata": {
                "deleted": self.deleted,
                "eventKind": self.event_kind,
                "processed": self.processed,
                "timestamp": self.timestamp,
            },
            "NewImage": self.new_image,
        }


def envelope_schema(image_schema: ColumnSchema) -> tuple[ColumnSchema, ...]:
    """Build the table columns for envelopes carrying ``image_schema``.

    Args:
        image_schema: RECORD schema inferred from the cleaned image.

    Returns:
        Top-level table columns: Keys, Metadata, and NewImage.
    """
    keys = record_schema(
        "Keys",
        (ColumnSchema("pk", "STRING"), ColumnSchema("sk", "STRING")),
    )
    metadata = record_schema(
        "Metadata",
        (
            ColumnSchema("deleted", "BOOLEAN"),
            ColumnSchema("eventKind", "STRING"),
            ColumnSchema("processed", "INTEGER"),
            ColumnSchema("timestamp", "TIMESTAMP"),
        ),
    )
    return (keys, metadata, image_schema.renamed("NewImage"))


@dataclass(frozen=True)
class MigrationSummary:
    """Outcome counters for a completed migration run.

    Attributes:
        shards_processed: Shards streamed through the pipeline.
        shards_skipped: Shards skipped for missing body or metadata.
        rows_written: Envelopes accepted by table sinks.
        records_skipped: Records dropped by classification or cleaning.
        windows: Batch windows flushed.
        completed_loads: Load jobs that finished successfully.
        failed_loads: Load jobs or streams that failed.
    """

    shards_processed: int
    shards_skipped: int
    rows_written: int
    records_skipped: int
    windows: int
    completed_loads: int
    failed_loads: int
