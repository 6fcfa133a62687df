"""Export item normalization into change envelopes.

This module decodes one exported item, classifies it into a destination
table, cleans it, and wraps it into the change envelope written to the
warehouse. Per-record problems are logged and the record is skipped.
"""

from __future__ import annotations

import decimal
import json
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from boto3.dynamodb.types import TypeDeserializer

from core.constants import (
    EXPORT_ITEM_FIELD,
    PARTITION_KEY_FIELD,
    SORT_KEY_FIELD,
)
from core.errors import PreprocessingError
from core.logging_config import get_logger
from core.schema_types import ColumnSchema
from core.types import ChangeEnvelope, MigrationOptions, envelope_schema
from transforms.legacy_dates import format_utc_iso, normalize_utc_timestamp
from transforms.schema_preprocessing import PreprocessOptions, preprocess
from transforms.table_classifier import classify_table, is_table_selected

_LOGGER = get_logger(__name__)
_DESERIALIZER = TypeDeserializer()


@dataclass(frozen=True)
class NormalizedRecord:
    """Envelope routed to a table with the columns inferred for it.

    Attributes:
        table_name: Destination table.
        envelope: Change envelope to write.
        schema: Table columns describing the envelope.
    """

    table_name: str
    envelope: ChangeEnvelope
    schema: tuple[ColumnSchema, ...]


def decode_item(raw_item: Mapping[str, Any]) -> dict[str, Any]:
    """Decode a typed-attribute map into native Python values.

    Args:
        raw_item: Attribute map, e.g. ``{"pk": {"S": "patient#1"}}``.

    Returns:
        Native mapping with Decimal numbers, sets, and nested values.

    Raises:
        TypeError: For unknown attribute tags.
        decimal.DecimalException: For numbers outside the store's precision.
    """
    return {key: _DESERIALIZER.deserialize(value) for key, value in raw_item.items()}


class RecordNormalizer:
    """Stateful normalizer that counts accepted and skipped records."""

    def __init__(self, options: MigrationOptions) -> None:
        self._options = options
        self._preprocess_options = PreprocessOptions(
            keep_empty_strings=options.keep_empty_strings,
            legacy_timezone=options.legacy_timezone,
        )
        self._timestamp_override = (
            normalize_utc_timestamp(options.timestamp_override)
            if options.timestamp_override
            else None
        )
        self.accepted = 0
        self.skipped: Counter[str] = Counter()

    @property
    def skipped_total(self) -> int:
        """Return the number of skipped records across all reasons."""
        return sum(self.skipped.values())

    def normalize_line(self, line: bytes | str, last_modified: datetime) -> NormalizedRecord | None:
        """Parse one export line and normalize its item.

        Args:
            line: JSON text ``{"Item": {...}}``.
            last_modified: Last-modified time of the shard holding the line.

        Returns:
            Normalized record, or None when the record is skipped.
        """
        if not line.strip():
            return None
        try:
            payload = json.loads(line)
        except ValueError as error:
            # JSONDecodeError and UnicodeDecodeError both land here
            return self._skip("invalid_json", None, None, message=str(error))
        raw_item = payload.get(EXPORT_ITEM_FIELD) if isinstance(payload, dict) else None
        if not isinstance(raw_item, dict):
            return self._skip("missing_item", None, None)
        return self.normalize(raw_item, last_modified)

    def normalize(self, raw_item: Mapping[str, Any], last_modified: datetime) -> NormalizedRecord | None:
        """Normalize a typed-attribute item into a routed change envelope.

        Args:
            raw_item: Typed-attribute map of one exported item.
            last_modified: Last-modified time of the source shard.

        Returns:
            Normalized record, or None when the record is skipped.
        """
        try:
            record = decode_item(raw_item)
        except (TypeError, decimal.DecimalException) as error:
            return self._skip("undecodable", None, None, message=str(error))
        pk = record.get(PARTITION_KEY_FIELD)
        sk = record.get(SORT_KEY_FIELD)
        if not isinstance(pk, str) or not isinstance(sk, str):
            return self._skip("missing_key", pk, sk)
        table_name = classify_table(pk, sk)
        if table_name is None:
            return self._skip("unclassified", pk, sk, quiet=True)
        if not is_table_selected(
            table_name, self._options.include_tables, self._options.exclude_tables
        ):
            return self._skip("filtered", pk, sk, quiet=True)
        try:
            result = preprocess("", record, self._preprocess_options)
        except PreprocessingError as error:
            return self._skip(
                type(error).__name__,
                pk,
                sk,
                field_name=error.field_name,
                message=str(error),
            )
        if result is None:
            return self._skip("empty_after_cleaning", pk, sk)
        envelope = ChangeEnvelope(
            pk=pk,
            sk=sk,
            timestamp=self._timestamp_override or format_utc_iso(last_modified),
            new_image=result.value,
        )
        self.accepted += 1
        return NormalizedRecord(
            table_name=table_name,
            envelope=envelope,
            schema=envelope_schema(result.schema),
        )

    def _skip(
        self,
        reason: str,
        pk: object,
        sk: object,
        quiet: bool = False,
        **fields: object,
    ) -> None:
        self.skipped[reason] += 1
        log = _LOGGER.debug if quiet else _LOGGER.warning
        log("record_skipped", reason=reason, pk=pk, sk=sk, **fields)
        return None
