"""Typed run-spec parsing for declarative migrations.

This module loads and validates YAML run-spec files so CLI and SDK runs
can share one reviewed description of a migration.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Sequence, cast

import yaml

from core.constants import (
    DEFAULT_EXCLUDED_TABLES,
    DEFAULT_LEGACY_TIMEZONE,
    DEFAULT_LOAD_FAILURE_POLICY,
    SUPPORTED_LOAD_FAILURE_POLICIES,
)
from core.errors import MigrateRunSpecError
from core.types import LoadFailurePolicy, MigrationOptions

_ROOT_KEYS = frozenset({"version", "migration"})
_MIGRATION_KEYS = frozenset(
    {
        "source_uri",
        "dataset",
        "include_tables",
        "exclude_tables",
        "batch_size",
        "timestamp_override",
        "keep_empty_strings",
        "legacy_timezone",
        "on_load_failure",
        "output_dir",
    }
)


def load_run_spec(spec_path: str) -> MigrationOptions:
    """Load and validate a YAML run-spec from disk.

    Example::

        version: 1
        migration:
          source_uri: s3://exports/AWSDynamoDB/0001/data
          dataset: clinical_raw
          batch_size: 20

    Args:
        spec_path: File path to YAML run-spec.

    Returns:
        Migration options described by the run-spec.

    Raises:
        MigrateRunSpecError: If file is invalid or schema checks fail.
    """
    payload = _load_yaml_payload(spec_path)
    root_mapping = _expect_mapping(payload, "run spec root")
    _validate_keys(root_mapping, _ROOT_KEYS, "run spec root")
    _parse_version(root_mapping)
    raw_migration = root_mapping.get("migration")
    if raw_migration is None:
        raise MigrateRunSpecError(
            "Run spec missing required field 'migration'. Add source_uri and dataset."
        )
    migration_mapping = _expect_mapping(raw_migration, "run spec migration")
    _validate_keys(migration_mapping, _MIGRATION_KEYS, "run spec migration")
    return _parse_migration(migration_mapping)


def _load_yaml_payload(spec_path: str) -> object:
    spec_file = Path(spec_path).expanduser().resolve()
    if not spec_file.exists():
        raise MigrateRunSpecError(
            f"Run spec file does not exist at {spec_file}. Provide a valid YAML file path."
        )
    try:
        payload = cast(object, yaml.safe_load(spec_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise MigrateRunSpecError(
            f"Failed to read run spec at {spec_file}: {error}. Check file permissions and retry."
        ) from error
    except yaml.YAMLError as error:
        raise MigrateRunSpecError(
            f"Failed to parse YAML run spec at {spec_file}: {error}. Fix YAML syntax and retry."
        ) from error
    if payload is None:
        raise MigrateRunSpecError(
            f"Run spec at {spec_file} is empty. Define 'version' and 'migration'."
        )
    return payload


def _expect_mapping(value: object, context: str) -> Mapping[str, object]:
    if isinstance(value, Mapping):
        normalized_mapping = {}
        for key, payload in value.items():
            if not isinstance(key, str):
                raise MigrateRunSpecError(
                    f"Invalid {context}: expected string keys, got {type(key).__name__}."
                )
            normalized_mapping[key] = payload
        return normalized_mapping
    raise MigrateRunSpecError(
        f"Invalid {context}: expected object mapping, got {type(value).__name__}."
    )


def _expect_sequence(value: object, context: str) -> Sequence[object]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return value
    raise MigrateRunSpecError(f"Invalid {context}: expected list, got {type(value).__name__}.")


def _validate_keys(mapping: Mapping[str, object], allowed: frozenset[str], context: str) -> None:
    unknown_keys = sorted(mapping.keys() - allowed)
    if unknown_keys:
        raise MigrateRunSpecError(
            f"Unsupported {context} keys: {', '.join(unknown_keys)}. "
            f"Use only: {', '.join(sorted(allowed))}."
        )


def _parse_version(root_mapping: Mapping[str, object]) -> int:
    raw_version = root_mapping.get("version")
    if not isinstance(raw_version, int) or isinstance(raw_version, bool):
        raise MigrateRunSpecError("Run spec field 'version' must be an integer. Set version: 1.")
    if raw_version != 1:
        raise MigrateRunSpecError(f"Unsupported run spec version {raw_version}. Use version: 1.")
    return raw_version


def _parse_migration(mapping: Mapping[str, object]) -> MigrationOptions:
    return MigrationOptions(
        source_uri=_required_string(mapping, "source_uri"),
        dataset=_required_string(mapping, "dataset"),
        include_tables=_string_tuple(mapping, "include_tables", ()),
        exclude_tables=_string_tuple(mapping, "exclude_tables", DEFAULT_EXCLUDED_TABLES),
        batch_size=_optional_positive_int(mapping, "batch_size"),
        timestamp_override=_optional_string(mapping, "timestamp_override"),
        keep_empty_strings=_optional_bool(mapping, "keep_empty_strings"),
        legacy_timezone=_optional_string(mapping, "legacy_timezone") or DEFAULT_LEGACY_TIMEZONE,
        on_load_failure=_parse_load_failure_policy(mapping),
        output_dir=_optional_string(mapping, "output_dir"),
    )


def _required_string(mapping: Mapping[str, object], key: str) -> str:
    value = _optional_string(mapping, key)
    if value is None:
        raise MigrateRunSpecError(f"Run spec migration missing required field '{key}'.")
    return value


def _optional_string(mapping: Mapping[str, object], key: str) -> str | None:
    value = mapping.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise MigrateRunSpecError(f"Run spec field '{key}' must be a non-empty string.")
    return value


def _optional_bool(mapping: Mapping[str, object], key: str) -> bool:
    value = mapping.get(key, False)
    if not isinstance(value, bool):
        raise MigrateRunSpecError(f"Run spec field '{key}' must be true or false.")
    return value


def _optional_positive_int(mapping: Mapping[str, object], key: str) -> int | None:
    value = mapping.get(key)
    if value is None:
        return None
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise MigrateRunSpecError(f"Run spec field '{key}' must be a positive integer.")
    return value


def _string_tuple(
    mapping: Mapping[str, object],
    key: str,
    default: tuple[str, ...],
) -> tuple[str, ...]:
    if key not in mapping:
        return default
    rows = _expect_sequence(mapping[key], f"run spec field '{key}'")
    values = []
    for row in rows:
        if not isinstance(row, str) or not row:
            raise MigrateRunSpecError(f"Run spec field '{key}' must list table names as strings.")
        values.append(row)
    return tuple(values)


def _parse_load_failure_policy(mapping: Mapping[str, object]) -> LoadFailurePolicy:
    raw_policy = mapping.get("on_load_failure", DEFAULT_LOAD_FAILURE_POLICY)
    if raw_policy in SUPPORTED_LOAD_FAILURE_POLICIES:
        return cast(LoadFailurePolicy, raw_policy)
    raise MigrateRunSpecError(
        f"Unsupported on_load_failure '{raw_policy}'. "
        f"Use one of: {', '.join(SUPPORTED_LOAD_FAILURE_POLICIES)}."
    )
