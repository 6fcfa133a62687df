"""Migration orchestration across shards and batch windows.

This module streams shards sequentially through normalization into the
current batch window, and flushes the window every ``batch_size`` shards:
all sinks are ended and every load job is awaited before records are
routed into a fresh window.
"""

from __future__ import annotations

from core.config import MigrateConfig
from core.constants import SUPPORTED_LOAD_FAILURE_POLICIES
from core.errors import MigrateConfigError, MigrateLoadError
from core.logging_config import get_logger
from core.types import MigrationOptions, MigrationSummary
from ingest.progress import MigrationProgress
from ingest.record_normalizer import RecordNormalizer
from ingest.shard_source import ShardSource, build_shard_source, iter_shard_lines
from store.bigquery_warehouse import BigQueryWarehouse
from store.local_warehouse import LocalWarehouse
from store.sink_manager import BatchWindow, SinkOutcome
from store.warehouse import LoadStreamOptions, Warehouse
from transforms.legacy_dates import normalize_utc_timestamp, validate_timezone

_LOGGER = get_logger(__name__)


class MigrationPipelineRunner:
    """Sequential shard driver with barrier-separated batch windows."""

    def __init__(
        self,
        options: MigrationOptions,
        config: MigrateConfig,
        warehouse: Warehouse | None = None,
        shard_source: ShardSource | None = None,
    ) -> None:
        validate_migration_options(options)
        self._options = options
        self._config = config
        self._warehouse = warehouse if warehouse is not None else build_warehouse(options, config)
        self._source = (
            shard_source
            if shard_source is not None
            else build_shard_source(options.source_uri, config)
        )
        self._normalizer = RecordNormalizer(options)
        self._load_options = LoadStreamOptions()
        self._windows = 0
        self._completed_loads = 0
        self._failed_loads = 0

    def run(self) -> MigrationSummary:
        """Migrate every shard and return run counters.

        Raises:
            MigrateIngestError: If listing or decompression fails.
            MigrateLoadError: If loads fail under the ``abort`` policy.
        """
        shard_keys = self._source.list_shards()
        _LOGGER.info(
            "migration_started",
            source_uri=self._options.source_uri,
            dataset=self._options.dataset,
            shards=len(shard_keys),
            batch_size=self._options.batch_size,
        )
        progress = MigrationProgress(
            total_shards=len(shard_keys),
            interval_rows=self._config.progress_interval_rows,
        )
        window: BatchWindow | None = None
        for shard_index, shard_key in enumerate(shard_keys, 1):
            if window is None:
                window = self._open_window()
            self._process_shard(shard_key, shard_index, window, progress)
            if self._options.batch_size and shard_index % self._options.batch_size == 0:
                self._flush_window(window, progress)
                window = None
        if window is not None:
            self._flush_window(window, progress)
        summary = MigrationSummary(
            shards_processed=progress.shards_processed,
            shards_skipped=progress.shards_skipped,
            rows_written=progress.rows_written,
            records_skipped=self._normalizer.skipped_total,
            windows=self._windows,
            completed_loads=self._completed_loads,
            failed_loads=self._failed_loads,
        )
        _log_migration_completion(self._options, summary, dict(self._normalizer.skipped))
        return summary

    def _open_window(self) -> BatchWindow:
        self._windows += 1
        return BatchWindow(self._warehouse, self._load_options, window_index=self._windows)

    def _process_shard(
        self,
        shard_key: str,
        shard_index: int,
        window: BatchWindow,
        progress: MigrationProgress,
    ) -> None:
        progress.log_shard_started(shard_key, shard_index)
        shard = self._source.open_shard(shard_key)
        if shard is None:
            progress.log_shard_skipped(shard_key, "missing_body_or_last_modified")
            return
        line_count = 0
        for line in iter_shard_lines(shard):
            line_count += 1
            record = self._normalizer.normalize_line(line, shard.last_modified)
            if record is None:
                continue
            # write returns once the sink has capacity again
            if window.write(record.table_name, record.schema, record.envelope):
                progress.record_row()
        progress.log_shard_completed(shard_key, line_count)

    def _flush_window(self, window: BatchWindow, progress: MigrationProgress) -> list[SinkOutcome]:
        window.close()
        outcomes = window.settle()
        failed = [outcome for outcome in outcomes if not outcome.succeeded]
        self._completed_loads += len(outcomes) - len(failed)
        self._failed_loads += len(failed)
        progress.log_window_settled(window.window_index, len(outcomes) - len(failed), len(failed))
        if failed and self._options.on_load_failure == "abort":
            failed_tables = ", ".join(outcome.table_name for outcome in failed)
            raise MigrateLoadError(
                f"Load jobs failed in batch window {window.window_index} for tables: "
                f"{failed_tables}. Inspect the load_job_failed events and rerun."
            )
        return outcomes


def migrate_export(
    options: MigrationOptions,
    config: MigrateConfig,
    warehouse: Warehouse | None = None,
) -> MigrationSummary:
    """Run the export migration.

    Args:
        options: Migration options.
        config: Runtime configuration.
        warehouse: Optional destination override.

    Returns:
        Run counters.

    Raises:
        MigrateConfigError: If options are invalid.
        MigrateIngestError: If shards cannot be listed or decompressed.
        MigrateLoadError: If loads fail under the ``abort`` policy.
    """
    runner = MigrationPipelineRunner(options, config, warehouse=warehouse)
    return runner.run()


def build_warehouse(options: MigrationOptions, config: MigrateConfig) -> Warehouse:
    """Build the destination warehouse for a run."""
    if options.output_dir:
        return LocalWarehouse(options.output_dir, config.high_water_bytes)
    return BigQueryWarehouse(options.dataset, config)


def validate_migration_options(options: MigrationOptions) -> None:
    """Validate option values that the type system cannot express.

    Raises:
        MigrateConfigError: If a value is out of range or unsupported.
    """
    if not options.source_uri:
        raise MigrateConfigError("Migration source_uri is required.")
    if not options.dataset:
        raise MigrateConfigError("Migration dataset is required.")
    if options.batch_size is not None and options.batch_size <= 0:
        raise MigrateConfigError(
            f"Invalid batch_size {options.batch_size}: expected a positive number of shards."
        )
    if options.on_load_failure not in SUPPORTED_LOAD_FAILURE_POLICIES:
        raise MigrateConfigError(
            f"Unsupported on_load_failure '{options.on_load_failure}'. "
            f"Use one of: {', '.join(SUPPORTED_LOAD_FAILURE_POLICIES)}."
        )
    validate_timezone(options.legacy_timezone)
    if options.timestamp_override is not None:
        normalize_utc_timestamp(options.timestamp_override)


def _log_migration_completion(
    options: MigrationOptions,
    summary: MigrationSummary,
    skipped_by_reason: dict[str, int],
) -> None:
    """Log run completion with contextual metadata."""
    _LOGGER.info(
        "migration_completed",
        source_uri=options.source_uri,
        dataset=options.dataset,
        shards_processed=summary.shards_processed,
        shards_skipped=summary.shards_skipped,
        rows_written=summary.rows_written,
        records_skipped=summary.records_skipped,
        skipped_by_reason=skipped_by_reason,
        windows=summary.windows,
        completed_loads=summary.completed_loads,
        failed_loads=summary.failed_loads,
    )
