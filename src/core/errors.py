"""Migration exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Run-level failures derive from MigrateError; per-record preprocessing
failures derive from PreprocessingError and are skippable.
"""

from __future__ import annotations


class MigrateError(Exception):
    """Base exception for all migration failures."""


class MigrateConfigError(MigrateError):
    """Raised for invalid runtime configuration."""


class MigrateIngestError(MigrateError):
    """Raised for shard listing, retrieval, and decompression failures."""


class MigrateLoadError(MigrateError):
    """Raised when warehouse load jobs fail under the abort policy."""


class MigrateRunSpecError(MigrateError):
    """Raised for invalid or unsupported run-spec configuration."""


class PreprocessingError(Exception):
    """Base exception for record values that cannot be converted."""

    def __init__(self, message: str, field_name: str) -> None:
        super().__init__(message)
        self.field_name = field_name


class UnsupportedTypeError(PreprocessingError):
    """Raised when a value type has no column representation."""


class MixedTypeArrayError(PreprocessingError):
    """Raised when list elements do not share one column type."""


class SchemaConflictError(PreprocessingError):
    """Raised when one field name maps to incompatible column types."""


class NestingDepthError(PreprocessingError):
    """Raised when a value nests deeper than the supported limit."""
