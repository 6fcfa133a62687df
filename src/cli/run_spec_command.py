"""Run-spec CLI command wiring.

This module registers the run-spec subcommand and delegates execution to
the SDK client so CLI and SDK runs read specs the same way.
"""

from __future__ import annotations

import argparse
from typing import Any

from cli.summary_output import print_summary
from store.migration_sdk import MigrationClient


def add_run_spec_command(subparsers: Any) -> None:
    """Register run-spec subcommand."""
    parser = subparsers.add_parser(
        "run-spec",
        help="Run a migration described by a YAML run-spec",
    )
    parser.add_argument("spec_file", help="Path to YAML run-spec file")


def run_run_spec_command(client: MigrationClient, args: argparse.Namespace) -> int:
    """Handle run-spec command invocation."""
    summary = client.run_spec(args.spec_file)
    print_summary(summary)
    return 0
