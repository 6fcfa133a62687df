"""Python SDK for export migrations.

This module exposes high-level APIs to run a migration from options or a
YAML run-spec, and to preview table routing for a pair of item keys.
"""

from __future__ import annotations

from core.config import MigrateConfig
from core.run_spec import load_run_spec
from core.types import MigrationOptions, MigrationSummary
from ingest.pipeline import migrate_export
from store.warehouse import Warehouse
from transforms.table_classifier import classify_table


class MigrationClient:
    """Primary SDK entry point for migration runs."""

    def __init__(self, config: MigrateConfig | None = None) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
        """
        self._config = config or MigrateConfig.from_env()

    @property
    def config(self) -> MigrateConfig:
        """Return the runtime configuration used by this client."""
        return self._config

    def migrate(self, options: MigrationOptions, warehouse: Warehouse | None = None) -> MigrationSummary:
        """Migrate an export into the destination dataset.

        Args:
            options: Migration options.
            warehouse: Optional destination override.

        Returns:
            Run counters.

        Raises:
            MigrateConfigError: If options are invalid.
            MigrateIngestError: If shards cannot be listed or decompressed.
            MigrateLoadError: If loads fail under the ``abort`` policy.
        """
        return migrate_export(options, self._config, warehouse=warehouse)

    def run_spec(self, spec_path: str, warehouse: Warehouse | None = None) -> MigrationSummary:
        """Run the migration described by a YAML run-spec.

        Raises:
            MigrateRunSpecError: If the run-spec is invalid.
        """
        return self.migrate(load_run_spec(spec_path), warehouse=warehouse)

    def classify(self, pk: str, sk: str) -> str | None:
        """Return the destination table for an item key pair."""
        return classify_table(pk, sk)
