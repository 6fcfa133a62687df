"""Migrator CLI entry points.
This module exposes the migrate, run-spec, and classify commands.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
import sys
from typing import Any, Sequence

from cli.run_spec_command import add_run_spec_command, run_run_spec_command
from cli.summary_output import print_summary
from core.constants import (
    DEFAULT_EXCLUDED_TABLES,
    DEFAULT_LEGACY_TIMEZONE,
    DEFAULT_LOAD_FAILURE_POLICY,
    SUPPORTED_LOAD_FAILURE_POLICIES,
)
from core.errors import MigrateError
from core.types import MigrationOptions
from store.migration_sdk import MigrationClient
from transforms.table_classifier import classify_table


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="dynamo-migrate",
        description="Migrate a DynamoDB table export into BigQuery tables",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_migrate_command(subparsers)
    add_run_spec_command(subparsers)
    _add_classify_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the migrator CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "classify":
        return _run_classify_command(args)
    try:
        client = MigrationClient()
        if args.command == "migrate":
            return _run_migrate_command(client, args)
        if args.command == "run-spec":
            return run_run_spec_command(client, args)
    except MigrateError as error:
        print(f"migration_error={error}", file=sys.stderr)
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _run_migrate_command(client: MigrationClient, args: argparse.Namespace) -> int:
    """Handle migrate command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    options = MigrationOptions(
        source_uri=args.source,
        dataset=args.dataset,
        include_tables=tuple(args.include),
        exclude_tables=tuple(args.exclude) if args.exclude is not None else DEFAULT_EXCLUDED_TABLES,
        batch_size=args.batch_size,
        timestamp_override=args.timestamp,
        keep_empty_strings=args.keep_empty_strings,
        legacy_timezone=args.timezone,
        on_load_failure=args.on_load_failure,
        output_dir=args.output_dir,
    )
    summary = client.migrate(options)
    print_summary(summary)
    return 0


def _run_classify_command(args: argparse.Namespace) -> int:
    """Print the table an item key pair routes to, or ``-`` when unrouted."""
    table_name = classify_table(args.pk, args.sk)
    print(table_name or "-")
    return 0 if table_name else 1


def _add_migrate_command(subparsers: Any) -> None:
    """Register migrate subcommand."""
    parser = subparsers.add_parser("migrate", help="Migrate an export data folder")
    parser.add_argument("source", help="Export data folder: s3://bucket/prefix or local directory")
    parser.add_argument("--dataset", required=True, help="Destination BigQuery dataset")
    parser.add_argument("--batch-size", type=int, help="Shards per batch window")
    parser.add_argument(
        "--include",
        action="append",
        default=[],
        metavar="TABLE",
        help="Only load this table; repeat for more tables",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        metavar="TABLE",
        help=f"Never load this table; defaults to {', '.join(DEFAULT_EXCLUDED_TABLES)}",
    )
    parser.add_argument(
        "--keep-empty-strings",
        action="store_true",
        help="Keep empty strings instead of omitting them",
    )
    parser.add_argument("--timestamp", help="Fixed ISO-8601 envelope timestamp")
    parser.add_argument(
        "--timezone",
        default=DEFAULT_LEGACY_TIMEZONE,
        help="IANA timezone used to read legacy date strings",
    )
    parser.add_argument(
        "--on-load-failure",
        choices=SUPPORTED_LOAD_FAILURE_POLICIES,
        default=DEFAULT_LOAD_FAILURE_POLICY,
        help="Continue or abort when a batch window has failed loads",
    )
    parser.add_argument("--output-dir", help="Write tables to a local directory instead of BigQuery")


def _add_classify_command(subparsers: Any) -> None:
    """Register classify subcommand."""
    parser = subparsers.add_parser("classify", help="Show the table an item key pair routes to")
    parser.add_argument("pk", help="Partition key, e.g. patient#123")
    parser.add_argument("sk", help="Sort key, e.g. appointment#456")
