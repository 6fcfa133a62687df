"""Structured migration progress reporting.

This module counts rows written across the whole run and emits periodic
progress events plus per-shard and per-window summaries.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


@dataclass
class MigrationProgress:
    """Track and emit migration progress events."""

    total_shards: int
    interval_rows: int
    rows_written: int = 0
    shards_processed: int = 0
    shards_skipped: int = 0
    run_started_at: float = field(default_factory=time.monotonic)

    def record_row(self) -> None:
        """Count one written row, logging every ``interval_rows`` rows."""
        self.rows_written += 1
        if self.rows_written % self.interval_rows == 0:
            _LOGGER.info(
                "migration_progress",
                rows_written=self.rows_written,
                shards_processed=self.shards_processed,
                total_shards=self.total_shards,
                elapsed_seconds=round(self._elapsed(), 3),
            )

    def log_shard_started(self, shard_key: str, shard_index: int) -> None:
        """Log one event when a shard starts streaming."""
        _LOGGER.info(
            "shard_started",
            shard_key=shard_key,
            shard=shard_index,
            total_shards=self.total_shards,
        )

    def log_shard_completed(self, shard_key: str, line_count: int) -> None:
        """Count and log a fully streamed shard."""
        self.shards_processed += 1
        _LOGGER.info(
            "shard_completed",
            shard_key=shard_key,
            lines=line_count,
            rows_written=self.rows_written,
        )

    def log_shard_skipped(self, shard_key: str, reason: str) -> None:
        """Count and log a shard that could not be streamed."""
        self.shards_skipped += 1
        _LOGGER.error("shard_skipped", shard_key=shard_key, reason=reason)

    def log_window_settled(self, window_index: int, completed: int, failed: int) -> None:
        """Log the outcome counts of a settled batch window."""
        _LOGGER.info(
            "batch_window_settled",
            window=window_index,
            completed_loads=completed,
            failed_loads=failed,
            rows_written=self.rows_written,
            elapsed_seconds=round(self._elapsed(), 3),
        )

    def _elapsed(self) -> float:
        return max(0.0, time.monotonic() - self.run_started_at)
