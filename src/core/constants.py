"""Core constants used across migration modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

DEFAULT_LEGACY_TIMEZONE = "America/New_York"
DEFAULT_EXCLUDED_TABLES = ("rulecollection_state",)
DEFAULT_HIGH_WATER_BYTES = 16 * 1024 * 1024
DEFAULT_PROGRESS_INTERVAL_ROWS = 10000
DEFAULT_MAX_NESTING_DEPTH = 32
DEFAULT_LOAD_FAILURE_POLICY = "continue"
SUPPORTED_LOAD_FAILURE_POLICIES = ("continue", "abort")
VOIDED_SENTINEL = "VOIDED"
KEY_SEPARATOR = "#"
SHARD_SUFFIX = ".json.gz"
EXPORT_ITEM_FIELD = "Item"
PARTITION_KEY_FIELD = "pk"
SORT_KEY_FIELD = "sk"
DEFAULT_EVENT_KIND = "INSERT"
LOCAL_TABLE_FILE_SUFFIX = ".jsonl"
LOCAL_SCHEMA_FILE_SUFFIX = ".schema.json"
