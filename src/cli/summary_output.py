"""Console rendering of migration run counters."""

from __future__ import annotations

from core.types import MigrationSummary


def print_summary(summary: MigrationSummary) -> None:
    """Print run counters as ``key=value`` lines."""
    print(f"shards_processed={summary.shards_processed}")
    print(f"shards_skipped={summary.shards_skipped}")
    print(f"rows_written={summary.rows_written}")
    print(f"records_skipped={summary.records_skipped}")
    print(f"windows={summary.windows}")
    print(f"completed_loads={summary.completed_loads}")
    print(f"failed_loads={summary.failed_loads}")
