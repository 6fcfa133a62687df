"""Runtime configuration model for the migrator.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os

from core.constants import DEFAULT_HIGH_WATER_BYTES, DEFAULT_PROGRESS_INTERVAL_ROWS
from core.errors import MigrateConfigError


@dataclass(frozen=True)
class MigrateConfig:
    """Validated runtime configuration.

    Attributes:
        s3_region: Optional default AWS region for S3 operations.
        s3_profile: Optional AWS profile for boto3 session initialization.
        gcp_project: Optional Google Cloud project for BigQuery jobs.
        gcp_keyfile: Optional service-account key file for BigQuery.
        high_water_bytes: Buffered bytes per sink before writes report backpressure.
        progress_interval_rows: Rows between progress log events.
    """

    s3_region: str | None
    s3_profile: str | None
    gcp_project: str | None
    gcp_keyfile: str | None
    high_water_bytes: int = DEFAULT_HIGH_WATER_BYTES
    progress_interval_rows: int = DEFAULT_PROGRESS_INTERVAL_ROWS

    @classmethod
    def from_env(cls) -> "MigrateConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            MigrateConfigError: If environment values are invalid.
        """
        high_water_bytes = _parse_positive_int(
            "MIGRATE_HIGH_WATER_BYTES",
            os.getenv("MIGRATE_HIGH_WATER_BYTES", str(DEFAULT_HIGH_WATER_BYTES)),
        )
        progress_interval_rows = _parse_positive_int(
            "MIGRATE_PROGRESS_INTERVAL",
            os.getenv("MIGRATE_PROGRESS_INTERVAL", str(DEFAULT_PROGRESS_INTERVAL_ROWS)),
        )
        return cls(
            s3_region=os.getenv("MIGRATE_S3_REGION"),
            s3_profile=os.getenv("MIGRATE_S3_PROFILE"),
            gcp_project=os.getenv("MIGRATE_GCP_PROJECT"),
            gcp_keyfile=os.getenv("MIGRATE_GCP_KEYFILE"),
            high_water_bytes=high_water_bytes,
            progress_interval_rows=progress_interval_rows,
        )


def _parse_positive_int(variable_name: str, raw_value: str) -> int:
    """Parse a positive integer environment value.

    Args:
        variable_name: Environment variable name for error context.
        raw_value: Raw string from environment.

    Returns:
        Parsed positive integer.

    Raises:
        MigrateConfigError: If value is not a positive integer.
    """
    try:
        parsed_value = int(raw_value)
    except ValueError as error:
        raise MigrateConfigError(
            f"Invalid {variable_name} value: "
            f"expected integer, got '{raw_value}'. "
            f"Set {variable_name} to a numeric value."
        ) from error
    if parsed_value <= 0:
        raise MigrateConfigError(
            f"Invalid {variable_name} value: expected a positive integer, got {parsed_value}."
        )
    return parsed_value
