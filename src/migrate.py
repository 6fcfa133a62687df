"""Public SDK surface for the export migrator.

This module provides a stable import path for migration users.
It re-exports the primary client and typed option models.
"""

from __future__ import annotations

from core.config import MigrateConfig
from core.run_spec import load_run_spec
from core.types import ChangeEnvelope, MigrationOptions, MigrationSummary
from store.local_warehouse import LocalWarehouse
from store.migration_sdk import MigrationClient
from transforms.schema_preprocessing import PreprocessOptions, preprocess
from transforms.table_classifier import classify_table

__all__ = [
    "ChangeEnvelope",
    "LocalWarehouse",
    "MigrateConfig",
    "MigrationClient",
    "MigrationOptions",
    "MigrationSummary",
    "PreprocessOptions",
    "classify_table",
    "load_run_spec",
    "preprocess",
]
